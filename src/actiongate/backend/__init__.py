"""Client for the backend action API."""

from actiongate.backend.client import BackendClient, ToolExecutor
from actiongate.backend.models import ActionError, ActionResponse

__all__ = ["ActionError", "ActionResponse", "BackendClient", "ToolExecutor"]
