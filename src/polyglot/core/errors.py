"""Error taxonomy for Polyglot.

Every error carries a stable ``code``. Provider errors additionally carry a
``retryable`` flag which the orchestrator alone uses to decide whether a
request is attempted again.
"""

from __future__ import annotations

__all__ = [
    "InvalidModelError",
    "MaxRetriesExceededError",
    "ModelNotChangeableError",
    "ModelNotFoundError",
    "NetworkError",
    "PolyglotError",
    "ProviderAPIError",
    "ProviderError",
    "RateLimitExceededError",
    "StreamingNotSupportedError",
    "UnknownError",
]


class PolyglotError(Exception):
    """Base class for all Polyglot errors."""

    retryable: bool = False

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ModelNotFoundError(PolyglotError):
    """Raised when no provider is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Model "{name}" not found', "MODEL_NOT_FOUND")
        self.name = name


class StreamingNotSupportedError(PolyglotError):
    """Raised when a provider is missing or cannot stream."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Streaming not supported for model "{name}"', "STREAMING_NOT_SUPPORTED")
        self.name = name


class ModelNotChangeableError(PolyglotError):
    """Raised when a provider adapter cannot switch models."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f'Model "{name}" does not support changing models', "MODEL_NOT_CHANGEABLE"
        )
        self.name = name


class InvalidModelError(PolyglotError):
    """Raised when a model id is not in the adapter's allow-list."""

    def __init__(self, message: str, model: str) -> None:
        super().__init__(message, "INVALID_MODEL")
        self.model = model


class ProviderError(PolyglotError):
    """An error raised at a provider adapter boundary."""

    def __init__(
        self,
        message: str,
        code: str,
        *,
        vendor: str,
        model: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, code)
        self.vendor = vendor
        self.model = model
        self.status_code = status_code


class RateLimitExceededError(ProviderError):
    """The provider answered with HTTP 429."""

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        vendor: str,
        model: str | None = None,
        retry_after: str | None = None,
    ) -> None:
        super().__init__(
            message, "RATE_LIMIT_EXCEEDED", vendor=vendor, model=model, status_code=429
        )
        self.retry_after = retry_after


class NetworkError(ProviderError):
    """Transport failure or a 5xx answer from the provider."""

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        vendor: str,
        model: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message, "NETWORK_ERROR", vendor=vendor, model=model, status_code=status_code
        )


class ProviderAPIError(ProviderError):
    """Any other adapter failure, tagged with the vendor (e.g. ``CLAUDE_API_ERROR``)."""

    def __init__(
        self,
        message: str,
        *,
        vendor: str,
        model: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            f"{vendor.upper()}_API_ERROR",
            vendor=vendor,
            model=model,
            status_code=status_code,
        )


class MaxRetriesExceededError(PolyglotError):
    """Raised once the retry budget is spent on retryable failures."""

    def __init__(self, attempts: int, last_error: PolyglotError) -> None:
        super().__init__(
            f"Max retries reached after {attempts} attempts: {last_error.message}",
            "MAX_RETRIES",
        )
        self.attempts = attempts
        self.last_error = last_error


class UnknownError(PolyglotError):
    """Wraps an exception that no layer classified. Never retried."""

    def __init__(self, message: str = "An unknown error occurred") -> None:
        super().__init__(message, "UNKNOWN_ERROR")
