"""Data models for the hierarchical execution log."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class LogStatus(str, Enum):
    """Status of a log entry."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class LogEntry(BaseModel):
    """One node of a task's execution tree."""

    id: int
    task_id: str
    parent_id: Optional[int] = None  # None for the root entry
    action: str
    status: LogStatus = LogStatus.PENDING
    timestamp: str  # ISO format
    data: Optional[Any] = None
    error: Optional[Any] = None
    finalized_at: Optional[str] = None  # Root only

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class TaskLog(BaseModel):
    """A root entry together with its descendants, oldest first."""

    root: LogEntry
    children: list[LogEntry] = Field(default_factory=list)

    @property
    def entries(self) -> list[LogEntry]:
        return [self.root, *self.children]

    def tree(self) -> dict[str, Any]:
        """Nested representation with each entry's children under ``children``."""
        nodes: dict[int, dict[str, Any]] = {
            entry.id: {**entry.model_dump(mode="json"), "children": []} for entry in self.entries
        }
        for entry in self.children:
            nodes[entry.parent_id]["children"].append(nodes[entry.id])  # type: ignore[index]
        return nodes[self.root.id]


class ChainVerification(BaseModel):
    """Result of re-hashing a task's record chain."""

    task_id: str
    valid: bool
    records: int
    broken_at: Optional[int] = None  # Index of the first bad record
    reason: Optional[str] = None
