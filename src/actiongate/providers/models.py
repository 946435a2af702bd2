"""
Model provider data models for ActionGate.

Defines the message and response types exchanged with the external
language model, independent of the provider variant.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MessageRole(str, Enum):
    """Roles LiteLLM accepts in a chat transcript."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ModelToolCall:
    """One tool call as returned by the model, arguments untouched."""

    name: str
    arguments: str | dict[str, Any] | None  # JSON string or native mapping
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the OpenAI tool call shape LiteLLM expects."""
        arguments = self.arguments
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments or {})
        return {
            "id": self.id or f"call_{self.name}",
            "type": "function",
            "function": {"name": self.name, "arguments": arguments},
        }


@dataclass
class Message:
    """One chat message in the OpenAI shape LiteLLM speaks."""

    role: str  # "system" | "user" | "assistant" | "tool"
    content: str
    tool_calls: list[ModelToolCall] = field(default_factory=list)
    tool_call_id: str | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            payload["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id:
            payload["tool_call_id"] = self.tool_call_id
        if self.name:
            payload["name"] = self.name
        return payload

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM.value, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER.value, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[ModelToolCall] | None = None) -> "Message":
        return cls(role=MessageRole.ASSISTANT.value, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(cls, content: str, call: ModelToolCall) -> "Message":
        """Create a tool result message answering ``call``."""
        return cls(
            role=MessageRole.TOOL.value,
            content=content,
            tool_call_id=call.to_dict()["id"],
            name=call.name,
        )


@dataclass
class TokenUsage:
    """Prompt and completion token counts for one call."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self) -> None:
        if self.total_tokens == 0:
            self.total_tokens = self.input_tokens + self.output_tokens


@dataclass
class CompletionResponse:
    """Unified completion response from any provider variant."""

    content: str
    tool_calls: list[ModelToolCall] = field(default_factory=list)
    model: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str = "stop"
    raw: dict[str, Any] | None = None  # LiteLLM response as a dict, for debug logs

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
