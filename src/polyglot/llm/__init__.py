"""LLM abstraction layer.

Provider adapters, mock, HTTP transport, response cache, rate limiting,
and token estimation.
"""

from polyglot.llm.cache import ResponseCache
from polyglot.llm.http import HttpClient
from polyglot.llm.mock import MockLLMModel
from polyglot.llm.providers import (
    ChatGPTModel,
    ClaudeModel,
    GeminiModel,
    LLMModel,
    MistralModel,
    StreamingLLMModel,
    SwitchableModel,
)
from polyglot.llm.rate_limiter import RateLimiter, TokenBucketRateLimiter
from polyglot.llm.token_counter import (
    TokenUsageTracker,
    estimate_messages_token_count,
    estimate_token_count,
)

__all__ = [
    "ChatGPTModel",
    "ClaudeModel",
    "GeminiModel",
    "HttpClient",
    "LLMModel",
    "MistralModel",
    "MockLLMModel",
    "RateLimiter",
    "ResponseCache",
    "StreamingLLMModel",
    "SwitchableModel",
    "TokenBucketRateLimiter",
    "TokenUsageTracker",
    "estimate_messages_token_count",
    "estimate_token_count",
]
