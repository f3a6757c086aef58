"""Build a ready ``Polyglot`` from ``PolyglotSettings``."""

from __future__ import annotations

__all__ = ["PROVIDER_NAMES", "create_polyglot"]

from collections.abc import Callable

import structlog

from polyglot.config.settings import PolyglotSettings, ProviderSettings
from polyglot.core.polyglot import Polyglot
from polyglot.core.types import ModelConfig
from polyglot.llm.cache import ResponseCache
from polyglot.llm.http import HttpClient
from polyglot.llm.providers.base import LLMModel
from polyglot.llm.providers.chatgpt import ChatGPTModel
from polyglot.llm.providers.claude import ClaudeModel
from polyglot.llm.providers.gemini import GeminiModel
from polyglot.llm.providers.mistral import MistralModel
from polyglot.llm.rate_limiter import TokenBucketRateLimiter
from polyglot.observability.metrics import PolyglotMetrics

logger = structlog.get_logger(__name__)

# Registered provider name -> settings attribute
PROVIDER_NAMES: dict[str, str] = {
    "chatgpt": "openai",
    "claude": "anthropic",
    "gemini": "gemini",
    "mistral": "mistral",
}


def _model_config(provider: ProviderSettings) -> ModelConfig:
    return ModelConfig(
        api_key=provider.api_key,
        api_url=provider.api_url,
        model=provider.model,
        parameters=dict(provider.parameters),
    )


def _adapter_builders(timeout_seconds: float) -> dict[str, Callable[[ModelConfig], LLMModel]]:
    return {
        "chatgpt": lambda config: ChatGPTModel(config, timeout_seconds=timeout_seconds),
        "claude": lambda config: ClaudeModel(
            config, http_client=HttpClient(timeout_seconds=timeout_seconds)
        ),
        "gemini": lambda config: GeminiModel(
            config, http_client=HttpClient(timeout_seconds=timeout_seconds)
        ),
        "mistral": lambda config: MistralModel(
            config, http_client=HttpClient(timeout_seconds=timeout_seconds)
        ),
    }


def create_polyglot(
    settings: PolyglotSettings | None = None,
    *,
    metrics: PolyglotMetrics | None = None,
) -> Polyglot:
    """Create a ``Polyglot`` with every configured provider registered.

    A provider is registered when it is enabled and has an API key. It gets
    a token-bucket limiter when both rate limit fields are set.

    Args:
        settings: Settings to use; loaded from the environment if omitted.
        metrics: Optional metrics sink passed to the orchestrator.

    Returns:
        The configured orchestrator.
    """
    if settings is None:
        settings = PolyglotSettings()

    polyglot = Polyglot(
        cache=ResponseCache(max_entries=settings.cache.max_entries),
        metrics=metrics,
        max_attempts=settings.retry.max_attempts,
        retry_backoff_seconds=settings.retry.backoff_seconds,
    )

    builders = _adapter_builders(settings.http.timeout_seconds)
    for name, attribute in PROVIDER_NAMES.items():
        provider: ProviderSettings = getattr(settings, attribute)
        if not provider.is_configured:
            logger.debug("provider_skipped", provider=name, enabled=provider.enabled)
            continue
        rate_limiter = None
        if provider.is_rate_limited:
            rate_limiter = TokenBucketRateLimiter(
                provider.rate_limit_max_tokens, provider.rate_limit_refill_rate
            )
        polyglot.add_model(name, builders[name](_model_config(provider)), rate_limiter)

    logger.info("polyglot_created", providers=polyglot.registered_models)
    return polyglot
