"""Data models for the tool catalog."""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ParameterType = Literal["string", "integer", "number", "boolean", "array", "object"]


class SideEffectClass(str, Enum):
    """How much a tool can change on the backend."""

    READ = "read"  # No mutation
    WRITE = "write"  # Mutation, executes without approval
    SENSITIVE = "sensitive"  # Mutation that requires human approval


class ToolParameter(BaseModel):
    """Defines a parameter for a tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ParameterType
    description: str = ""
    required: bool = True
    default: Optional[Any] = None
    enum: Optional[tuple[str, ...]] = None  # For restricted choices


class BackendRoute(BaseModel):
    """Where a tool call lands on the backend action API."""

    model_config = ConfigDict(frozen=True)

    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
    path: str  # May contain {param} placeholders
    fixed: dict[str, Any] = Field(default_factory=dict)  # Merged into body/query

    @property
    def sends_body(self) -> bool:
        return self.method != "GET"


class ToolDefinition(BaseModel):
    """Canonical, provider-independent description of an invocable operation."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = ()
    side_effect: SideEffectClass = SideEffectClass.READ
    closed: bool = True  # Reject unknown argument names
    route: Optional[BackendRoute] = None
    approval_template: Optional[str] = None  # e.g. "Refund order #{id}"

    @property
    def required_fields(self) -> set[str]:
        return {p.name for p in self.parameters if p.required}

    @property
    def requires_approval(self) -> bool:
        return self.side_effect == SideEffectClass.SENSITIVE

    def parameter(self, name: str) -> Optional[ToolParameter]:
        """Get a parameter by name."""
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def describe_call(self, arguments: dict[str, Any]) -> str:
        """Human-readable description of a call, used in approval prompts."""
        if self.approval_template:
            try:
                return self.approval_template.format(**arguments)
            except (KeyError, IndexError, ValueError):
                pass
        rendered = ", ".join(f"{k}={v!r}" for k, v in arguments.items())
        return f"Execute {self.name}({rendered})"

    def __str__(self) -> str:
        return f"ToolDefinition({self.name}, {self.side_effect.value})"


class ToolCallRequest(BaseModel):
    """A tool call as emitted by the model, before normalization."""

    tool_name: str
    raw_arguments: Any = None  # JSON string or native mapping
    call_id: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.tool_name}({self.raw_arguments!r})"


class ToolCallResult(BaseModel):
    """Outcome of one tool call, fed back to the model as an observation."""

    tool_name: str
    validated_arguments: dict[str, Any] = Field(default_factory=dict)
    success: bool
    output: Any = None
    error: Optional[dict[str, Any]] = None  # {"code": ..., "message": ...}
    call_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def is_error(self) -> bool:
        return not self.success

    def to_observation(self) -> str:
        """Render the result as observation text for the transcript."""
        if self.success:
            payload: Any = self.output
        elif isinstance(self.output, str) and self.output:
            # Failures with a prepared observation, e.g. "rejected: <reason>"
            payload = self.output
        else:
            payload = {"success": False, "error": self.error}
        if isinstance(payload, str):
            return payload
        return json.dumps(payload, default=str)

    def __str__(self) -> str:
        if self.is_error:
            return f"Error: {self.error}"
        text = self.to_observation()
        return text[:200] + ("..." if len(text) > 200 else "")
