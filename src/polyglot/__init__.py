"""Polyglot: one async client for many LLM providers."""

from polyglot.core import (
    ChatMessage,
    ChatRole,
    GenerateOptions,
    LLMResponse,
    ModelConfig,
    Polyglot,
    PolyglotError,
    TokenUsage,
)
from polyglot.factory import create_polyglot
from polyglot.llm import (
    ChatGPTModel,
    ClaudeModel,
    GeminiModel,
    MistralModel,
    MockLLMModel,
    TokenBucketRateLimiter,
)
from polyglot.plugins import LoggerPlugin, Plugin

__version__ = "0.1.0"

__all__ = [
    "ChatGPTModel",
    "ChatMessage",
    "ChatRole",
    "ClaudeModel",
    "GeminiModel",
    "GenerateOptions",
    "LLMResponse",
    "LoggerPlugin",
    "MistralModel",
    "MockLLMModel",
    "ModelConfig",
    "Plugin",
    "Polyglot",
    "PolyglotError",
    "TokenBucketRateLimiter",
    "TokenUsage",
    "__version__",
    "create_polyglot",
]
