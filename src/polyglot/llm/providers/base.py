"""Provider adapter protocols and the helpers every adapter shares.

An adapter must implement ``generate_response``. Streaming
(``generate_streaming_response``) and model switching (``set_model``) are
optional capabilities, detected structurally by the orchestrator.

Errors are classified exactly once, here, from the HTTP status code:
429 becomes a retryable ``RateLimitExceededError``, 5xx and transport
faults become a retryable ``NetworkError``, anything else a vendor-tagged
``ProviderAPIError``.
"""

from __future__ import annotations

__all__ = [
    "LLMModel",
    "StreamingLLMModel",
    "SwitchableModel",
    "build_parameters",
    "chat_completion_delta",
    "error_for_status",
    "log_provider_error",
    "parse_chat_completion",
    "to_wire_messages",
    "translate_error",
    "validate_model",
]

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog

from polyglot.core.errors import (
    InvalidModelError,
    NetworkError,
    PolyglotError,
    ProviderAPIError,
    ProviderError,
    RateLimitExceededError,
)
from polyglot.core.types import (
    ChatMessage,
    GenerateOptions,
    LLMResponse,
    ModelConfig,
    TokenUsage,
)

logger = structlog.get_logger(__name__)


# --- Capability protocols ---


@runtime_checkable
class LLMModel(Protocol):
    """Protocol every provider adapter satisfies."""

    async def generate_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> LLMResponse:
        """Send the conversation and return the canonical response."""
        ...


@runtime_checkable
class StreamingLLMModel(Protocol):
    """Adapter that can stream text chunks."""

    def generate_streaming_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> AsyncIterator[str]:
        """Return an async iterator of text chunks."""
        ...


@runtime_checkable
class SwitchableModel(Protocol):
    """Adapter whose model id can be changed after construction."""

    def set_model(self, model: str) -> None:
        """Switch to *model*, raising ``InvalidModelError`` if unsupported."""
        ...


# --- Shared helpers ---


def validate_model(label: str, model: str, supported: Sequence[str]) -> str:
    """Return *model* if it is in *supported*, else raise ``InvalidModelError``."""
    if model not in supported:
        raise InvalidModelError(f"Invalid {label} model: {model}", model)
    return model


def build_parameters(config: ModelConfig, options: GenerateOptions | None) -> dict[str, Any]:
    """Merge per-call options over the adapter's default parameters."""
    params = dict(config.parameters)
    if options is not None:
        params.update(options.to_payload())
    return params


def to_wire_messages(messages: Sequence[ChatMessage]) -> list[dict[str, str]]:
    """Serialise messages to the OpenAI-style ``{role, content}`` shape."""
    return [{"role": str(message.role), "content": message.content} for message in messages]


def parse_chat_completion(data: dict[str, Any]) -> LLMResponse:
    """Decode an OpenAI-style chat completion body."""
    content = data["choices"][0]["message"]["content"]
    usage = None
    raw_usage = data.get("usage")
    if raw_usage:
        usage = TokenUsage(
            prompt_tokens=raw_usage.get("prompt_tokens", 0),
            completion_tokens=raw_usage.get("completion_tokens", 0),
            total_tokens=raw_usage.get("total_tokens", 0),
        )
    return LLMResponse(content=content or "", usage=usage)


def chat_completion_delta(event: dict[str, Any]) -> str | None:
    """Extract the text of an OpenAI-style streaming chunk, if any."""
    choices = event.get("choices") or []
    if not choices:
        return None
    delta = choices[0].get("delta") or {}
    return delta.get("content") or None


def error_for_status(
    status_code: int,
    message: str,
    *,
    vendor: str,
    model: str | None,
    retry_after: str | None = None,
) -> ProviderError:
    """Map an HTTP status code to the matching provider error."""
    if status_code == 429:
        return RateLimitExceededError(
            message, vendor=vendor, model=model, retry_after=retry_after
        )
    if status_code >= 500:
        return NetworkError(message, vendor=vendor, model=model, status_code=status_code)
    return ProviderAPIError(message, vendor=vendor, model=model, status_code=status_code)


def translate_error(
    exc: Exception,
    *,
    vendor: str,
    label: str,
    model: str | None,
) -> PolyglotError:
    """Classify an exception raised inside an adapter.

    Args:
        exc: The exception caught at the adapter boundary.
        vendor: Short vendor tag used in error codes (e.g. ``"claude"``).
        label: Human-readable vendor name used in messages.
        model: The model id in use.

    Returns:
        A ``PolyglotError``. Errors that are already classified are
        returned unchanged.
    """
    if isinstance(exc, PolyglotError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        error = error_for_status(
            status_code,
            f"{label} API error: HTTP {status_code}",
            vendor=vendor,
            model=model,
            retry_after=exc.response.headers.get("retry-after"),
        )
    elif isinstance(exc, httpx.TransportError):
        error = NetworkError(f"{label} API network error: {exc}", vendor=vendor, model=model)
    else:
        error = ProviderAPIError(f"{label} API error: {exc}", vendor=vendor, model=model)

    log_provider_error(error)
    return error


def log_provider_error(error: ProviderError) -> None:
    """Log a classified provider error at a level matching its kind."""
    if isinstance(error, RateLimitExceededError):
        logger.warning(
            "provider_rate_limited",
            vendor=error.vendor,
            model=error.model,
            retry_after=error.retry_after,
        )
    elif isinstance(error, NetworkError):
        logger.error(
            "provider_network_error",
            vendor=error.vendor,
            model=error.model,
            status_code=error.status_code,
        )
    else:
        logger.error(
            "provider_api_error",
            vendor=error.vendor,
            model=error.model,
            status_code=error.status_code,
            error=error.message,
        )
