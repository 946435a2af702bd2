"""
Model client for ActionGate.

One LiteLLM-backed client serves all three provider variants. The
variant only changes how tool specs travel on the wire and how the
response's calls are read back.
"""

import logging
from typing import Any, Protocol

import litellm
from litellm import acompletion

from actiongate.config.schema import ModelConfig
from actiongate.providers.exceptions import to_provider_error
from actiongate.providers.models import CompletionResponse, Message, ModelToolCall, TokenUsage
from actiongate.tools.translator import ProviderToolSpec, ProviderVariant

logger = logging.getLogger(__name__)

# Configure LiteLLM defaults
litellm.drop_params = True  # Drop unsupported params per-provider


class ModelBackend(Protocol):
    """Anything the execution loop can ask for the next step."""

    async def complete(
        self,
        messages: list[Message],
        *,
        tools: list[ProviderToolSpec] | None = None,
        variant: ProviderVariant = ProviderVariant.JSON,
    ) -> CompletionResponse: ...


def _lower_types(schema: dict[str, Any]) -> dict[str, Any]:
    """Recursively lowercase ``type`` values of a declaration schema."""
    result: dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            result[key] = value.lower()
        elif key == "properties" and isinstance(value, dict):
            result[key] = {name: _lower_types(prop) for name, prop in value.items()}
        elif key == "items" and isinstance(value, dict):
            result[key] = _lower_types(value)
        else:
            result[key] = value
    return result


def wrap_declaration(declaration: dict[str, Any]) -> dict[str, Any]:
    """
    Wrap a structured function declaration for transport through LiteLLM.

    LiteLLM accepts the OpenAI tool shape and re-encodes it for the target
    provider, so the declaration travels inside a ``function`` envelope.
    """
    return {
        "type": "function",
        "function": {
            "name": declaration["name"],
            "description": declaration.get("description", ""),
            "parameters": _lower_types(declaration.get("parameters") or {"type": "OBJECT"}),
        },
    }


class ModelClient:
    """
    Async client for the external language model.

    Requests go through ``litellm.acompletion``; failures are converted
    into the engine's taxonomy (fatal configuration errors or recoverable
    provider errors).
    """

    def __init__(self, config: ModelConfig):
        """
        Initialize the client.

        Args:
            config: Model configuration (model name, credentials, timeout).
        """
        self.config = config

    @property
    def model(self) -> str:
        return self.config.name

    def _request_kwargs(
        self,
        messages: list[Message],
        tools: list[ProviderToolSpec] | None,
        variant: ProviderVariant,
    ) -> dict[str, Any]:
        request_kwargs: dict[str, Any] = {
            "model": self.config.name,
            "messages": [msg.to_dict() for msg in messages],
            "temperature": self.config.temperature,
            "timeout": self.config.request_timeout,
        }
        if self.config.max_tokens:
            request_kwargs["max_tokens"] = self.config.max_tokens
        if self.config.api_key:
            request_kwargs["api_key"] = self.config.api_key
        if self.config.api_base:
            request_kwargs["api_base"] = self.config.api_base

        # Textual variant carries its catalog inside the prompt
        if tools and variant != ProviderVariant.TEXTUAL:
            if variant == ProviderVariant.STRUCTURED:
                request_kwargs["tools"] = [wrap_declaration(t) for t in tools]  # type: ignore[arg-type]
            else:
                request_kwargs["tools"] = list(tools)
                request_kwargs["parallel_tool_calls"] = False
            request_kwargs["tool_choice"] = "auto"

        return request_kwargs

    async def complete(
        self,
        messages: list[Message],
        *,
        tools: list[ProviderToolSpec] | None = None,
        variant: ProviderVariant = ProviderVariant.JSON,
    ) -> CompletionResponse:
        """
        Ask the model for its next step.

        Args:
            messages: Conversation transcript.
            tools: Tool specs already translated for ``variant``.
            variant: Provider variant the specs are rendered for.

        Returns:
            Normalized response with text content and raw tool calls.

        Raises:
            FatalConfigurationError: Credentials or model name are wrong.
            ProviderError: Any other model failure (recoverable).
        """
        request_kwargs = self._request_kwargs(messages, tools, ProviderVariant(variant))
        logger.debug(f"Completing with model {self.config.name} ({len(messages)} messages)")

        try:
            response = await acompletion(**request_kwargs)
        except Exception as e:
            error = to_provider_error(e, self.config.name)
            logger.warning(f"Model request failed: {error}")
            raise error from e

        return self._parse_response(response)

    def _parse_response(self, response: Any) -> CompletionResponse:
        """Parse a LiteLLM response into the unified format."""
        message = response.choices[0].message
        content = message.content or ""
        if isinstance(content, list):
            content = "".join(
                block.get("text", "") for block in content if isinstance(block, dict)
            )

        tool_calls = [
            ModelToolCall(
                name=call.function.name,
                arguments=call.function.arguments,
                id=getattr(call, "id", None),
            )
            for call in (getattr(message, "tool_calls", None) or [])
        ]

        usage = getattr(response, "usage", None)
        token_usage = TokenUsage(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )

        return CompletionResponse(
            content=content,
            tool_calls=tool_calls,
            model=self.config.name,
            usage=token_usage,
            finish_reason=response.choices[0].finish_reason or "unknown",
            raw=response.model_dump() if hasattr(response, "model_dump") else None,
        )
