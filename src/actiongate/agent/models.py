"""Data models for task execution."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from actiongate.audit.models import LogEntry
from actiongate.tools.models import ToolCallResult


class ExecutionState(str, Enum):
    """States of the execution loop."""

    AWAITING_MODEL = "awaiting_model"  # Initial state, re-entered after every observation
    TOOL_REQUESTED = "tool_requested"  # Model response is being interpreted
    APPROVAL_PENDING = "approval_pending"  # Waiting on a human for a sensitive tool
    TOOL_EXECUTING = "tool_executing"  # Validated call dispatched to the backend
    FINAL = "final"
    FAILED = "failed"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionState.FINAL, ExecutionState.FAILED, ExecutionState.TIMEOUT)


class EventType(str, Enum):
    """Execution event types for streaming."""

    ITERATION_START = "iteration_start"  # New iteration begins
    TOOL_REQUESTED = "tool_requested"  # Model asked for a tool
    APPROVAL_NEEDED = "approval_needed"  # Sensitive tool waits for a human
    TOOL_APPROVED = "tool_approved"  # Approver said yes
    TOOL_DENIED = "tool_denied"  # Approver said no, or time ran out
    TOOL_COMPLETE = "tool_complete"  # Tool execution completes
    TOOL_ERROR = "tool_error"  # Tool execution fails
    AGENT_COMPLETE = "agent_complete"  # Loop reached a terminal state


class AgentEvent(BaseModel):
    """Event emitted during task execution for streaming updates."""

    model_config = ConfigDict(use_enum_values=True)

    event_type: EventType = Field(description="Type of event")

    task_id: str = Field(description="Task the event belongs to")

    iteration: int = Field(description="Current iteration number (1-based)")

    tool_name: Optional[str] = Field(default=None, description="Tool name (for tool events)")

    message: Optional[str] = Field(
        default=None,
        description="Human-readable message describing the event",
    )

    data: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional event data (arguments, results, etc.)",
    )

    timestamp: Optional[str] = Field(default=None, description="ISO format timestamp")


class ConversationTurn(BaseModel):
    """One prior turn of the operator conversation."""

    role: str  # "user", "agent" or "assistant"
    content: str

    @property
    def speaker(self) -> str:
        return "User" if self.role == "user" else "Assistant"


@dataclass
class Task:
    """One invocation of the engine, from command to result."""

    command: str
    history: list[ConversationTurn] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: ExecutionState = ExecutionState.AWAITING_MODEL
    iteration_count: int = 0


@dataclass
class LoopResult:
    """Outcome of driving the execution loop to a terminal state."""

    state: ExecutionState
    output: str
    iterations: int
    tool_results: list[ToolCallResult] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.state == ExecutionState.FINAL


@dataclass
class TaskResult:
    """What the orchestrator returns for one command."""

    output: str
    log: list[LogEntry]
    task_id: str
    success: bool
    state: ExecutionState
    error: Optional[str] = None
    iterations: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "success": self.success,
            "state": self.state.value,
            "output": self.output,
            "error": self.error,
            "iterations": self.iterations,
            "log": [entry.model_dump(mode="json") for entry in self.log],
        }
