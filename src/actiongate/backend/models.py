"""Envelope models of the backend action API."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActionError(BaseModel):
    """Structured error carried by a failed action."""

    model_config = ConfigDict(extra="allow")

    code: str = "ACTION_FAILED"
    message: str = ""


class ActionResponse(BaseModel):
    """Response envelope returned by every backend action."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    success: bool
    action: str
    data: Optional[Any] = None
    error: Optional[ActionError] = None
    log_id: Optional[int] = Field(default=None, alias="logId")

    def error_message(self) -> str:
        if self.error and self.error.message:
            return self.error.message
        return f"Action '{self.action}' failed"
