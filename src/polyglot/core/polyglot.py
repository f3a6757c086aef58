"""Request orchestration core.

``Polyglot`` routes chat requests to registered provider adapters and
applies the shared concerns around each call: plugin hooks, response
caching, the middleware chain, per-provider rate limiting, retry of
transient provider failures, and token usage accounting.

Usage::

    polyglot = Polyglot()
    polyglot.add_model("claude", ClaudeModel(config), TokenBucketRateLimiter(10_000, 10))
    polyglot.add_plugin(LoggerPlugin())
    response = await polyglot.generate_response(
        "claude", [ChatMessage(role="user", content="Explain quantum computing briefly.")]
    )
"""

from __future__ import annotations

__all__ = ["DEFAULT_MAX_ATTEMPTS", "DEFAULT_RETRY_BACKOFF_SECONDS", "Polyglot"]

import asyncio
import time
from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from polyglot.core.errors import (
    MaxRetriesExceededError,
    ModelNotChangeableError,
    ModelNotFoundError,
    PolyglotError,
    StreamingNotSupportedError,
    UnknownError,
)
from polyglot.core.middleware import Middleware, MiddlewareChain
from polyglot.core.types import ChatMessage, GenerateOptions, LLMResponse, coerce_options
from polyglot.llm.cache import ResponseCache
from polyglot.llm.token_counter import TokenUsageTracker, estimate_messages_token_count

if TYPE_CHECKING:
    from polyglot.llm.providers.base import LLMModel
    from polyglot.llm.rate_limiter import RateLimiter
    from polyglot.observability.metrics import PolyglotMetrics
    from polyglot.plugins.base import Plugin

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0


class Polyglot:
    """One interface over many LLM providers.

    All registries are per instance. They are plain dicts mutated only from
    the event loop, so concurrent requests see last-write-wins upserts.
    """

    def __init__(
        self,
        *,
        cache: ResponseCache | None = None,
        usage_tracker: TokenUsageTracker | None = None,
        metrics: PolyglotMetrics | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
    ) -> None:
        """Initialise an empty orchestrator.

        Args:
            cache: Response cache; a new unbounded one is created if omitted.
            usage_tracker: Token usage counter; created if omitted.
            metrics: Optional metrics sink.
            max_attempts: Attempts per request, counting the first one.
            retry_backoff_seconds: Fixed delay between attempts.

        Raises:
            ValueError: If *max_attempts* is less than 1.
        """
        if max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {max_attempts}"
            raise ValueError(msg)
        self.max_attempts = max_attempts
        self.retry_backoff_seconds = retry_backoff_seconds

        self._models: dict[str, LLMModel] = {}
        self._rate_limiters: dict[str, RateLimiter] = {}
        self._middleware = MiddlewareChain()
        self._plugins: list[Plugin] = []
        self._cache = cache if cache is not None else ResponseCache()
        self._usage = usage_tracker if usage_tracker is not None else TokenUsageTracker()
        self._metrics = metrics

    # --- Registration ---

    def add_model(
        self,
        name: str,
        model: LLMModel,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """Register *model* under *name*, replacing any previous entry.

        A given *rate_limiter* replaces the provider's previous limiter;
        omitting it keeps whatever limiter was registered before.
        """
        replaced = name in self._models
        self._models[name] = model
        if rate_limiter is not None:
            self._rate_limiters[name] = rate_limiter
        logger.info(
            "model_added",
            provider=name,
            adapter=type(model).__name__,
            rate_limited=name in self._rate_limiters,
            replaced=replaced,
        )

    def use(self, middleware: Middleware) -> None:
        """Append *middleware*; earlier registrations wrap later ones."""
        self._middleware.add(middleware)

    def add_plugin(self, plugin: Plugin) -> None:
        """Append *plugin* and run its ``init`` hook, if any, right away."""
        self._plugins.append(plugin)
        init = getattr(plugin, "init", None)
        if callable(init):
            init(self)
        logger.info("plugin_added", plugin=getattr(plugin, "name", type(plugin).__name__))

    @property
    def registered_models(self) -> list[str]:
        """Names of the registered providers, sorted."""
        return sorted(self._models)

    def get_model(self, name: str) -> LLMModel:
        """Return the adapter registered under *name*.

        Raises:
            ModelNotFoundError: If nothing is registered under *name*.
        """
        model = self._models.get(name)
        if model is None:
            raise ModelNotFoundError(name)
        return model

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    # --- Plugin hooks ---

    async def _pre_process(self, messages: list[ChatMessage]) -> list[ChatMessage]:
        for plugin in self._plugins:
            hook = getattr(plugin, "pre_process", None)
            if hook is not None:
                messages = list(await hook(messages))
        return messages

    async def _post_process(self, response: LLMResponse) -> LLMResponse:
        for plugin in self._plugins:
            hook = getattr(plugin, "post_process", None)
            if hook is not None:
                response = await hook(response)
        return response

    # --- Dispatch ---

    async def _dispatch(
        self,
        provider_name: str,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None,
    ) -> LLMResponse:
        """Innermost step of the middleware chain."""
        model = self._models.get(provider_name)
        if model is None:
            raise ModelNotFoundError(provider_name)
        rate_limiter = self._rate_limiters.get(provider_name)
        if rate_limiter is not None:
            await rate_limiter.consume(self.estimate_message_tokens(messages))
        return await model.generate_response(list(messages), options)

    def _record_outcome(self, provider_name: str, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.requests_total.inc(labels={"provider": provider_name, "outcome": outcome})

    async def generate_response(
        self,
        provider_name: str,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | dict[str, Any] | None = None,
        use_cache: bool = True,
    ) -> LLMResponse:
        """Generate a response from the provider registered as *provider_name*.

        Plugins pre-process the messages, then the cache is consulted. A
        cache hit returns immediately without rate limiting, provider call,
        or usage accounting. Otherwise the request runs through the
        middleware chain, and transient provider failures are retried with a
        fixed backoff.

        Args:
            provider_name: Registered provider name.
            messages: The conversation.
            options: Generation options, as a model or a plain dict.
            use_cache: Read from and write to the response cache.

        Returns:
            The (post-processed) response.

        Raises:
            ModelNotFoundError: If *provider_name* is not registered.
            MaxRetriesExceededError: If every attempt failed with a
                retryable error.
            PolyglotError: Any non-retryable error, unchanged.
            UnknownError: Wrapping any unclassified exception.
        """
        resolved_options = coerce_options(options)
        working = list(messages)
        logger.info(
            "generating_response",
            provider=provider_name,
            estimated_tokens=self.estimate_message_tokens(working),
        )

        working = await self._pre_process(working)

        cache_key = ResponseCache.make_key(provider_name, working, resolved_options)
        if use_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.info("cache_hit", provider=provider_name, cache_key=cache_key)
                if self._metrics is not None:
                    self._metrics.cache_hits_total.inc(labels={"provider": provider_name})
                return cached

        async def terminal(current: Sequence[ChatMessage]) -> LLMResponse:
            return await self._dispatch(provider_name, current, resolved_options)

        attempt = 0
        while True:
            attempt += 1
            try:
                start = time.monotonic()
                response = await self._middleware.run(working, terminal)
                if self._metrics is not None:
                    self._metrics.request_duration_seconds.observe(
                        time.monotonic() - start, labels={"provider": provider_name}
                    )
                response = await self._post_process(response)
            except PolyglotError as exc:
                if not exc.retryable:
                    self._record_outcome(provider_name, "error")
                    raise
                if attempt >= self.max_attempts:
                    logger.error(
                        "max_retries_reached",
                        provider=provider_name,
                        attempts=attempt,
                        error=exc.message,
                    )
                    self._record_outcome(provider_name, "error")
                    raise MaxRetriesExceededError(attempt, exc) from exc
                logger.warning(
                    "retrying_request",
                    provider=provider_name,
                    retries_left=self.max_attempts - attempt,
                    code=exc.code,
                )
                if self._metrics is not None:
                    self._metrics.retries_total.inc(labels={"provider": provider_name})
                await asyncio.sleep(self.retry_backoff_seconds)
                continue
            except Exception as exc:
                logger.error("unclassified_error", provider=provider_name, error=repr(exc))
                self._record_outcome(provider_name, "error")
                raise UnknownError(f"An unknown error occurred: {exc}") from exc
            break

        if response.usage is not None:
            self._usage.add_usage(response.usage.prompt_tokens, response.usage.completion_tokens)
            if self._metrics is not None:
                self._metrics.tokens_total.inc(
                    response.usage.prompt_tokens + response.usage.completion_tokens,
                    labels={"provider": provider_name},
                )
            logger.info(
                "token_usage_updated",
                provider=provider_name,
                total_usage=self._usage.get_total_usage(),
            )

        if use_cache:
            self._cache.set(cache_key, response)
            logger.debug("response_cached", provider=provider_name, cache_key=cache_key)

        self._record_outcome(provider_name, "success")
        return response

    def generate_streaming_response(
        self,
        provider_name: str,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | dict[str, Any] | None = None,
    ) -> AsyncIterator[str]:
        """Return the provider's chunk stream for *messages*.

        Streaming bypasses plugins, the cache, rate limiting, and retries.
        Errors surface while iterating.

        Raises:
            StreamingNotSupportedError: If the provider is unregistered or
                cannot stream. Raised before any network call.
        """
        model = self._models.get(provider_name)
        stream = getattr(model, "generate_streaming_response", None)
        if model is None or not callable(stream):
            raise StreamingNotSupportedError(provider_name)
        logger.info("streaming_response", provider=provider_name)
        return stream(list(messages), coerce_options(options))

    # --- Utilities ---

    def estimate_message_tokens(self, messages: Sequence[ChatMessage]) -> int:
        """Heuristic token estimate for *messages*."""
        return estimate_messages_token_count(messages)

    def change_model(self, provider_name: str, new_model: str) -> None:
        """Switch the model used by a registered provider.

        Raises:
            ModelNotFoundError: If *provider_name* is not registered.
            ModelNotChangeableError: If the adapter cannot switch models.
            InvalidModelError: If the adapter does not support *new_model*.
        """
        model = self.get_model(provider_name)
        set_model = getattr(model, "set_model", None)
        if not callable(set_model):
            raise ModelNotChangeableError(provider_name)
        set_model(new_model)
        logger.info("model_changed", provider=provider_name, model=new_model)

    def get_total_token_usage(self) -> int:
        """Total prompt plus completion tokens across all calls."""
        return self._usage.get_total_usage()

    def reset_token_usage(self) -> None:
        self._usage.reset()

    async def close(self) -> None:
        """Close every registered adapter that holds a connection."""
        for name, model in self._models.items():
            close = getattr(model, "close", None)
            if callable(close):
                await close()
                logger.debug("model_closed", provider=name)
