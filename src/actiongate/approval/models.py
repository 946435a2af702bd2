"""Data models for approval requests and decisions."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ApprovalDecision(str, Enum):
    """Outcome of an approval request."""

    APPROVED = "approved"
    REJECTED = "rejected"
    TIMEOUT = "timeout"  # TTL elapsed with no response


class ApprovalRequest(BaseModel):
    """A sensitive tool call waiting for a human decision."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    task_id: str
    tool_name: str
    description: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    ttl_ms: int = Field(default=300_000, gt=0)

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_ms / 1000

    def to_event(self) -> dict[str, Any]:
        """Outbound notification published to the approval channel."""
        return {
            "type": "approval_required",
            "id": self.id,
            "action": self.tool_name,
            "description": self.description,
            "timeout": self.ttl_ms,
            "data": self.payload,
        }


class ApprovalResponse(BaseModel):
    """A decision correlated to an ApprovalRequest by id."""

    id: str
    decision: ApprovalDecision
    reason: Optional[str] = None
    resolved_at: datetime = Field(default_factory=datetime.now)

    @property
    def approved(self) -> bool:
        return self.decision == ApprovalDecision.APPROVED

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> "ApprovalResponse":
        """Build a response from an inbound ``approval_response`` event.

        Raises:
            ValueError: If the event is not an approval response.
        """
        event_type = event.get("type", "approval_response")
        if event_type != "approval_response":
            raise ValueError(f"Not an approval response: {event_type}")
        if not event.get("id"):
            raise ValueError("Approval response has no id")

        # Anything other than a literal true rejects
        decision = ApprovalDecision.APPROVED if event.get("approved") is True else ApprovalDecision.REJECTED
        return cls(id=str(event["id"]), decision=decision, reason=event.get("reason"))

    @classmethod
    def timed_out(cls, request_id: str) -> "ApprovalResponse":
        return cls(id=request_id, decision=ApprovalDecision.TIMEOUT, reason="approval timed out")
