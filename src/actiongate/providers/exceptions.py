"""
Model provider exceptions for ActionGate.

Provider failures are classified so the execution loop can tell a
recoverable model error (network, rate limit, server) from a
configuration problem that ends the task.
"""

from enum import Enum

from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError as LiteLLMAuthError,
    ContextWindowExceededError,
    NotFoundError,
    RateLimitError as LiteLLMRateLimitError,
    ServiceUnavailableError,
    Timeout,
)

from actiongate.exceptions import FatalConfigurationError


class FailureType(Enum):
    """Classification of provider failures."""

    RATE_LIMIT = "rate_limit"
    AUTH_ERROR = "auth_error"
    MODEL_NOT_FOUND = "model_not_found"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    CONTEXT_LENGTH = "context_length"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"


class ProviderError(Exception):
    """A model call failed in a way the loop may retry."""

    def __init__(
        self,
        message: str,
        model: str | None = None,
        failure_type: FailureType = FailureType.UNKNOWN,
    ):
        super().__init__(message)
        self.model = model
        self.failure_type = failure_type


class ModelTimeoutError(ProviderError):
    """The model did not answer within the request timeout."""

    def __init__(self, message: str, model: str | None = None):
        super().__init__(message, model, FailureType.TIMEOUT)


class RateLimitError(ProviderError):
    """The provider throttled the request."""

    def __init__(
        self,
        message: str,
        model: str | None = None,
        retry_after: int | None = None,
    ):
        super().__init__(message, model, FailureType.RATE_LIMIT)
        self.retry_after = retry_after


# First match wins; checked before the APIError status fallback
_BY_EXCEPTION: tuple[tuple[type[Exception] | tuple[type[Exception], ...], FailureType], ...] = (
    ((TimeoutError, Timeout), FailureType.TIMEOUT),
    (LiteLLMRateLimitError, FailureType.RATE_LIMIT),
    (LiteLLMAuthError, FailureType.AUTH_ERROR),
    (NotFoundError, FailureType.MODEL_NOT_FOUND),
    (ContextWindowExceededError, FailureType.CONTEXT_LENGTH),
    ((APIConnectionError, ServiceUnavailableError), FailureType.NETWORK_ERROR),
)

_AUTH_HINTS = ("api key", "authentication")


def _by_status(status: int | None) -> FailureType:
    if status in (401, 403):
        return FailureType.AUTH_ERROR
    if status is None:
        return FailureType.UNKNOWN
    if status >= 500:
        return FailureType.SERVER_ERROR
    if status >= 400:
        return FailureType.INVALID_REQUEST
    return FailureType.UNKNOWN


def classify_error(error: Exception) -> FailureType:
    """Map an exception raised by a model call onto a FailureType."""
    if isinstance(error, ProviderError):
        return error.failure_type

    for kinds, failure_type in _BY_EXCEPTION:
        if isinstance(error, kinds):
            return failure_type

    if isinstance(error, APIError):
        return _by_status(getattr(error, "status_code", None))

    # Providers without typed errors still mention credentials in the text
    text = str(error).lower()
    if any(hint in text for hint in _AUTH_HINTS):
        return FailureType.AUTH_ERROR
    return FailureType.UNKNOWN


def is_fatal(failure_type: FailureType) -> bool:
    """True when the operator has to fix credentials or the model name."""
    return failure_type in {FailureType.AUTH_ERROR, FailureType.MODEL_NOT_FOUND}


def to_provider_error(error: Exception, model: str | None = None) -> Exception:
    """
    Convert a raw model-call exception into the engine's taxonomy.

    Fatal failures become :class:`FatalConfigurationError`; everything else
    becomes a :class:`ProviderError` carrying its failure type.
    """
    if isinstance(error, (ProviderError, FatalConfigurationError)):
        return error

    failure_type = classify_error(error)
    if is_fatal(failure_type):
        return FatalConfigurationError(f"Model '{model}' is not usable: {error}")
    if failure_type == FailureType.TIMEOUT:
        return ModelTimeoutError(f"Model request timed out: {error}", model)
    if failure_type == FailureType.RATE_LIMIT:
        return RateLimitError(str(error), model, getattr(error, "retry_after", None))
    return ProviderError(str(error), model, failure_type)
