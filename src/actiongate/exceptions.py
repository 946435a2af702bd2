"""
Engine exceptions for ActionGate.

Recoverable errors are turned into observations and fed back to the
model. Fatal errors end the task.
"""

from typing import Any


class ActionGateError(Exception):
    """Base exception for engine errors."""

    code = "AGENT_ERROR"
    recoverable = True

    def __init__(self, message: str, tool_name: str | None = None):
        super().__init__(message)
        self.message = message
        self.tool_name = tool_name

    def to_observation(self) -> dict[str, Any]:
        """Structured error payload fed back to the model."""
        return {
            "success": False,
            "error": {"code": self.code, "message": self.message},
        }


class ValidationError(ActionGateError):
    """Tool arguments do not match the canonical schema."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        tool_name: str | None = None,
        problems: list[str] | None = None,
    ):
        super().__init__(message, tool_name)
        self.problems = problems or []


class ToolNotFoundError(ActionGateError):
    """The model asked for a tool that is not in the registry."""

    code = "TOOL_NOT_FOUND"


class ToolExecutionError(ActionGateError):
    """The backend call behind a tool failed."""

    code = "TOOL_ERROR"

    def __init__(
        self,
        message: str,
        tool_name: str | None = None,
        error_code: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, tool_name)
        if error_code:
            self.code = error_code
        self.status_code = status_code


class FormatError(ActionGateError):
    """A textual transcript could not be parsed."""

    code = "FORMAT_ERROR"

    def __init__(self, message: str, transcript: str = ""):
        super().__init__(message)
        self.transcript = transcript


class ApprovalRejected(ActionGateError):
    """A human rejected a sensitive tool call."""

    code = "APPROVAL_REJECTED"

    def __init__(self, reason: str, tool_name: str | None = None):
        super().__init__(f"rejected: {reason}", tool_name)
        self.reason = reason


class ApprovalTimeout(ApprovalRejected):
    """No approval decision arrived before the request expired."""

    code = "APPROVAL_TIMEOUT"

    def __init__(self, tool_name: str | None = None):
        super().__init__("approval timed out", tool_name)


class IterationLimitExceeded(ActionGateError):
    """The loop reached its configured iteration cap."""

    code = "ITERATION_LIMIT"
    recoverable = False

    def __init__(self, max_iterations: int):
        super().__init__(f"Maximum iterations ({max_iterations}) reached")
        self.max_iterations = max_iterations


class FatalConfigurationError(ActionGateError):
    """Model or backend cannot be reached with the configured credentials."""

    code = "CONFIGURATION_ERROR"
    recoverable = False


class ConfigurationError(FatalConfigurationError):
    """Raised when configuration loading or validation fails."""


class LogStateError(ActionGateError):
    """Misuse of the hierarchical logger (unknown root, double finalize)."""

    code = "LOG_STATE_ERROR"
    recoverable = False
