"""Core Polyglot components: types, errors, middleware, orchestrator."""

from polyglot.core.errors import (
    InvalidModelError,
    MaxRetriesExceededError,
    ModelNotChangeableError,
    ModelNotFoundError,
    NetworkError,
    PolyglotError,
    ProviderAPIError,
    ProviderError,
    RateLimitExceededError,
    StreamingNotSupportedError,
    UnknownError,
)
from polyglot.core.middleware import Middleware, MiddlewareChain, NextHandler
from polyglot.core.polyglot import Polyglot
from polyglot.core.types import (
    ChatMessage,
    ChatRole,
    GenerateOptions,
    LLMResponse,
    ModelConfig,
    TokenUsage,
)

__all__ = [
    "ChatMessage",
    "ChatRole",
    "GenerateOptions",
    "InvalidModelError",
    "LLMResponse",
    "MaxRetriesExceededError",
    "Middleware",
    "MiddlewareChain",
    "ModelConfig",
    "ModelNotChangeableError",
    "ModelNotFoundError",
    "NetworkError",
    "NextHandler",
    "Polyglot",
    "PolyglotError",
    "ProviderAPIError",
    "ProviderError",
    "RateLimitExceededError",
    "StreamingNotSupportedError",
    "TokenUsage",
    "UnknownError",
]
