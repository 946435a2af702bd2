"""
External language model access for ActionGate.

All provider variants are served through LiteLLM.
"""

from actiongate.providers.client import ModelBackend, ModelClient, wrap_declaration
from actiongate.providers.exceptions import (
    FailureType,
    ModelTimeoutError,
    ProviderError,
    RateLimitError,
    classify_error,
    is_fatal,
    to_provider_error,
)
from actiongate.providers.models import (
    CompletionResponse,
    Message,
    MessageRole,
    ModelToolCall,
    TokenUsage,
)

__all__ = [
    "CompletionResponse",
    "FailureType",
    "Message",
    "MessageRole",
    "ModelBackend",
    "ModelClient",
    "ModelTimeoutError",
    "ModelToolCall",
    "ProviderError",
    "RateLimitError",
    "TokenUsage",
    "classify_error",
    "is_fatal",
    "to_provider_error",
    "wrap_declaration",
]
