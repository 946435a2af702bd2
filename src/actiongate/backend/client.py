"""
HTTP client for the backend action API.

Every tool with a route is executed as one HTTP request. GET requests
carry their arguments as query parameters; all other verbs send a JSON
body. The backend answers with an :class:`ActionResponse` envelope.
"""

import logging
import re
from typing import Any, Optional, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from actiongate.backend.models import ActionResponse
from actiongate.exceptions import FatalConfigurationError, ToolExecutionError
from actiongate.tools.models import ToolDefinition

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


class ToolExecutor(Protocol):
    """Anything that can run a validated tool call."""

    async def execute(self, definition: ToolDefinition, arguments: dict[str, Any]) -> Any: ...


def _query_value(value: Any) -> Any:
    # Query strings have no booleans
    if isinstance(value, bool):
        return str(value).lower()
    return value


class BackendClient:
    """
    Async client for the backend action API.

    Use as an async context manager, or call :meth:`aclose` when done.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        api_key: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Root URL of the action API, e.g. http://localhost:3000/api
            timeout: Request timeout in seconds
            api_key: Optional bearer token
            headers: Extra headers sent with every request
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        if api_key:
            request_headers["Authorization"] = f"Bearer {api_key}"

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=request_headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Any) -> "BackendClient":
        """
        Create a client from configuration.

        Args:
            config: BackendConfig instance
        """
        return cls(
            base_url=config.base_url,
            timeout=config.timeout,
            api_key=config.api_key,
            headers=config.headers,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
        tool_name: Optional[str] = None,
    ) -> ActionResponse:
        """
        Send one request and parse the response envelope.

        Raises:
            FatalConfigurationError: The backend refused our credentials (401/403)
            ToolExecutionError: Connection failure, timeout, or unreadable response
        """
        logger.debug(f"API Request: {method} {self.base_url}{path}")

        try:
            response = await self._client.request(method, path, params=params, json=body)
        except httpx.TimeoutException as e:
            raise ToolExecutionError(
                f"Backend request timed out after {self.timeout}s",
                tool_name=tool_name,
                error_code="BACKEND_TIMEOUT",
            ) from e
        except httpx.RequestError as e:
            raise ToolExecutionError(
                f"Backend request failed: {e}",
                tool_name=tool_name,
                error_code="BACKEND_UNAVAILABLE",
            ) from e

        if response.status_code in (401, 403):
            raise FatalConfigurationError(
                f"Backend rejected credentials ({response.status_code}) for {method} {path}"
            )

        try:
            envelope = ActionResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ToolExecutionError(
                f"Backend returned an invalid response ({response.status_code})",
                tool_name=tool_name,
                error_code="INVALID_RESPONSE",
                status_code=response.status_code,
            ) from e

        if response.is_error and envelope.success:
            # A 4xx/5xx never counts as success, whatever the body says
            envelope = envelope.model_copy(update={"success": False})

        logger.debug(f"API Response: {method} {path} success={envelope.success}")
        return envelope

    async def execute(self, definition: ToolDefinition, arguments: dict[str, Any]) -> Any:
        """
        Run a validated tool call against the backend.

        Returns:
            The ``data`` payload of a successful action

        Raises:
            ToolExecutionError: The action failed or the backend was unreachable
            FatalConfigurationError: The backend refused our credentials
        """
        route = definition.route
        if route is None:
            raise ToolExecutionError(
                f"Tool '{definition.name}' has no backend route",
                tool_name=definition.name,
                error_code="NO_ROUTE",
            )

        payload = dict(arguments)
        path = _PLACEHOLDER_RE.sub(lambda m: str(payload.pop(m.group(1), m.group(0))), route.path)
        payload = {**route.fixed, **payload}

        if route.sends_body:
            envelope = await self.request(route.method, path, body=payload, tool_name=definition.name)
        else:
            params = {k: _query_value(v) for k, v in payload.items()}
            envelope = await self.request(route.method, path, params=params, tool_name=definition.name)

        if not envelope.success:
            raise ToolExecutionError(
                envelope.error_message(),
                tool_name=definition.name,
                error_code=envelope.error.code if envelope.error else None,
            )

        return envelope.data
