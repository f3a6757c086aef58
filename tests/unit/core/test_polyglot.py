"""Tests for the Polyglot orchestrator."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from unittest.mock import AsyncMock, patch

import pydantic
import pytest
from structlog.testing import capture_logs

from polyglot.core.errors import (
    InvalidModelError,
    MaxRetriesExceededError,
    ModelNotChangeableError,
    ModelNotFoundError,
    NetworkError,
    ProviderAPIError,
    RateLimitExceededError,
    StreamingNotSupportedError,
    UnknownError,
)
from polyglot.core.middleware import Middleware, NextHandler
from polyglot.core.polyglot import Polyglot
from polyglot.core.types import (
    ChatMessage,
    ChatRole,
    GenerateOptions,
    LLMResponse,
)
from polyglot.llm.cache import ResponseCache
from polyglot.llm.mock import MockLLMModel
from polyglot.observability.metrics import PolyglotMetrics
from polyglot.plugins.base import Plugin

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SLEEP = "polyglot.core.polyglot.asyncio.sleep"


def _user(content: str) -> ChatMessage:
    return ChatMessage(role=ChatRole.USER, content=content)


class PlainModel:
    """Adapter with only the required capability."""

    def __init__(self, content: str = "plain") -> None:
        self.content = content
        self.calls = 0

    async def generate_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> LLMResponse:
        self.calls += 1
        return LLMResponse(content=self.content)


class RecordingPlugin(Plugin):
    """Plugin that records hook calls into a shared list."""

    def __init__(self, name: str, events: list[str]) -> None:
        self.name = name
        self.events = events
        self.initialised_with: Polyglot | None = None

    def init(self, polyglot: Polyglot) -> None:
        self.initialised_with = polyglot
        self.events.append(f"{self.name}:init")

    async def pre_process(self, messages: list[ChatMessage]) -> list[ChatMessage]:
        self.events.append(f"{self.name}:pre")
        return messages

    async def post_process(self, response: LLMResponse) -> LLMResponse:
        self.events.append(f"{self.name}:post")
        return response.model_copy(update={"content": f"{response.content}+{self.name}"})


# ---------------------------------------------------------------------------
# Construction and registration
# ---------------------------------------------------------------------------


class TestRegistration:
    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            Polyglot(max_attempts=0)

    def test_registered_models_sorted(self) -> None:
        polyglot = Polyglot()
        polyglot.add_model("zeta", MockLLMModel())
        polyglot.add_model("alpha", MockLLMModel())
        assert polyglot.registered_models == ["alpha", "zeta"]

    def test_get_model(self, polyglot: Polyglot, mock_model: MockLLMModel) -> None:
        assert polyglot.get_model("mock") is mock_model

    def test_get_model_unknown(self, polyglot: Polyglot) -> None:
        with pytest.raises(ModelNotFoundError):
            polyglot.get_model("nope")

    @pytest.mark.asyncio
    async def test_add_model_replaces_previous(
        self, polyglot: Polyglot, messages: list[ChatMessage]
    ) -> None:
        replacement = PlainModel("replacement")
        polyglot.add_model("mock", replacement)
        response = await polyglot.generate_response("mock", messages)
        assert response.content == "replacement"
        assert polyglot.registered_models == ["mock"]

    @pytest.mark.asyncio
    async def test_replacing_model_keeps_rate_limiter(self, messages: list[ChatMessage]) -> None:
        limiter = AsyncMock()
        polyglot = Polyglot()
        polyglot.add_model("p", MockLLMModel(), limiter)
        polyglot.add_model("p", MockLLMModel())
        await polyglot.generate_response("p", messages)
        limiter.consume.assert_awaited_once()


# ---------------------------------------------------------------------------
# generate_response
# ---------------------------------------------------------------------------


class TestGenerateResponse:
    @pytest.mark.asyncio
    async def test_returns_model_response(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        mock_model.add_response("hello", "hi there")
        response = await polyglot.generate_response("mock", messages)
        assert response.content == "hi there"
        mock_model.assert_called_with("hello")

    @pytest.mark.asyncio
    async def test_unknown_provider(self, polyglot: Polyglot) -> None:
        with pytest.raises(ModelNotFoundError) as exc_info:
            await polyglot.generate_response("nope", [])
        assert exc_info.value.code == "MODEL_NOT_FOUND"
        assert exc_info.value.message == 'Model "nope" not found'

    @pytest.mark.asyncio
    async def test_dict_options_are_forwarded(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        await polyglot.generate_response("mock", messages, {"temperature": 0.2, "seed": 7})
        options = mock_model.options_history[-1]
        assert isinstance(options, GenerateOptions)
        assert options.to_payload() == {"temperature": 0.2, "seed": 7}

    @pytest.mark.asyncio
    async def test_model_receives_a_copy_of_messages(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        await polyglot.generate_response("mock", messages)
        assert mock_model.call_history[0] == messages
        assert mock_model.call_history[0] is not messages

    @pytest.mark.asyncio
    async def test_concurrent_requests(self, polyglot: Polyglot, mock_model: MockLLMModel) -> None:
        mock_model.add_response("one", "first")
        mock_model.add_response("two", "second")
        first, second = await asyncio.gather(
            polyglot.generate_response("mock", [_user("one")]),
            polyglot.generate_response("mock", [_user("two")]),
        )
        assert (first.content, second.content) == ("first", "second")


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestCaching:
    @pytest.mark.asyncio
    async def test_identical_request_served_from_cache(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        first = await polyglot.generate_response("mock", messages)
        second = await polyglot.generate_response("mock", messages)
        assert second == first
        assert mock_model.call_count == 1
        assert polyglot.cache.size == 1

    @pytest.mark.asyncio
    async def test_cached_response_cannot_be_altered_by_caller(
        self, polyglot: Polyglot, messages: list[ChatMessage]
    ) -> None:
        first = await polyglot.generate_response("mock", messages)
        with pytest.raises(pydantic.ValidationError):
            first.content = "tampered"  # type: ignore[misc]
        second = await polyglot.generate_response("mock", messages)
        assert second.content == "mock response"

    @pytest.mark.asyncio
    async def test_cache_hit_skips_usage_accounting(
        self, polyglot: Polyglot, messages: list[ChatMessage]
    ) -> None:
        await polyglot.generate_response("mock", messages)
        total = polyglot.get_total_token_usage()
        await polyglot.generate_response("mock", messages)
        assert polyglot.get_total_token_usage() == total

    @pytest.mark.asyncio
    async def test_cache_hit_skips_rate_limiter(self, messages: list[ChatMessage]) -> None:
        limiter = AsyncMock()
        polyglot = Polyglot()
        polyglot.add_model("mock", MockLLMModel(), limiter)
        await polyglot.generate_response("mock", messages)
        await polyglot.generate_response("mock", messages)
        limiter.consume.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_use_cache_false_bypasses_read_and_write(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        await polyglot.generate_response("mock", messages, use_cache=False)
        await polyglot.generate_response("mock", messages, use_cache=False)
        assert mock_model.call_count == 2
        assert polyglot.cache.size == 0

    @pytest.mark.asyncio
    async def test_different_options_are_distinct_entries(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        await polyglot.generate_response("mock", messages, {"temperature": 0.1})
        await polyglot.generate_response("mock", messages, {"temperature": 0.9})
        assert mock_model.call_count == 2

    @pytest.mark.asyncio
    async def test_providers_do_not_share_entries(self, messages: list[ChatMessage]) -> None:
        first, second = PlainModel("a"), PlainModel("b")
        polyglot = Polyglot()
        polyglot.add_model("a", first)
        polyglot.add_model("b", second)
        assert (await polyglot.generate_response("a", messages)).content == "a"
        assert (await polyglot.generate_response("b", messages)).content == "b"

    @pytest.mark.asyncio
    async def test_shared_cache_instance(self, messages: list[ChatMessage]) -> None:
        cache = ResponseCache()
        polyglot = Polyglot(cache=cache)
        polyglot.add_model("mock", MockLLMModel())
        await polyglot.generate_response("mock", messages)
        assert cache.size == 1


# ---------------------------------------------------------------------------
# Retries and error classification
# ---------------------------------------------------------------------------


class TestRetries:
    @pytest.mark.asyncio
    async def test_retryable_errors_are_retried(
        self, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        polyglot = Polyglot(retry_backoff_seconds=1.0)
        polyglot.add_model("mock", mock_model)
        mock_model.queue_errors(
            RateLimitExceededError("slow down", vendor="mock"),
            NetworkError("bad gateway", vendor="mock", status_code=502),
        )
        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            response = await polyglot.generate_response("mock", messages)

        assert response.content == "mock response"
        assert mock_model.call_count == 3
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(1.0)

    @pytest.mark.asyncio
    async def test_exhausted_budget_raises_max_retries(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        errors = [RateLimitExceededError(f"limit {i}", vendor="mock") for i in range(3)]
        mock_model.queue_errors(*errors)
        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(MaxRetriesExceededError) as exc_info:
                await polyglot.generate_response("mock", messages)

        error = exc_info.value
        assert error.code == "MAX_RETRIES"
        assert error.attempts == 3
        assert error.last_error is errors[-1]
        assert error.__cause__ is errors[-1]
        assert mock_model.call_count == 3
        assert mock_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_single_attempt_budget(
        self, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        polyglot = Polyglot(max_attempts=1)
        polyglot.add_model("mock", mock_model)
        mock_model.queue_errors(NetworkError("down", vendor="mock"))
        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(MaxRetriesExceededError):
                await polyglot.generate_response("mock", messages)
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates_unchanged(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        error = ProviderAPIError("bad request", vendor="claude", status_code=400)
        mock_model.queue_errors(error)
        with patch(SLEEP, new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ProviderAPIError) as exc_info:
                await polyglot.generate_response("mock", messages)
        assert exc_info.value is error
        assert exc_info.value.code == "CLAUDE_API_ERROR"
        assert mock_model.call_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unclassified_exception_wrapped(self, messages: list[ChatMessage]) -> None:
        model = AsyncMock()
        model.generate_response.side_effect = ValueError("boom")
        polyglot = Polyglot()
        polyglot.add_model("broken", model)

        with pytest.raises(UnknownError) as exc_info:
            await polyglot.generate_response("broken", messages)

        assert exc_info.value.code == "UNKNOWN_ERROR"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert model.generate_response.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_request_is_not_cached(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        mock_model.queue_errors(ProviderAPIError("nope", vendor="mock"))
        with pytest.raises(ProviderAPIError):
            await polyglot.generate_response("mock", messages)
        assert polyglot.cache.size == 0
        response = await polyglot.generate_response("mock", messages)
        assert response.content == "mock response"

    @pytest.mark.asyncio
    async def test_retry_logs_retries_left(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        mock_model.queue_errors(
            NetworkError("down", vendor="mock"), NetworkError("down", vendor="mock")
        )
        with patch(SLEEP, new_callable=AsyncMock), capture_logs() as logs:
            await polyglot.generate_response("mock", messages)
        retries = [entry for entry in logs if entry["event"] == "retrying_request"]
        assert [entry["retries_left"] for entry in retries] == [2, 1]
        assert all(entry["provider"] == "mock" for entry in retries)


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------


class TestPlugins:
    def test_init_runs_on_registration(self, polyglot: Polyglot) -> None:
        events: list[str] = []
        plugin = RecordingPlugin("a", events)
        polyglot.add_plugin(plugin)
        assert plugin.initialised_with is polyglot
        assert events == ["a:init"]

    @pytest.mark.asyncio
    async def test_hooks_run_in_registration_order(
        self, polyglot: Polyglot, messages: list[ChatMessage]
    ) -> None:
        events: list[str] = []
        polyglot.add_plugin(RecordingPlugin("a", events))
        polyglot.add_plugin(RecordingPlugin("b", events))

        response = await polyglot.generate_response("mock", messages)

        assert events == ["a:init", "b:init", "a:pre", "b:pre", "a:post", "b:post"]
        assert response.content == "mock response+a+b"

    @pytest.mark.asyncio
    async def test_pre_process_rewrites_messages(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        class SystemPrompt(Plugin):
            name = "system"

            async def pre_process(self, msgs: list[ChatMessage]) -> list[ChatMessage]:
                return [ChatMessage(role=ChatRole.SYSTEM, content="Be brief."), *msgs]

        polyglot.add_plugin(SystemPrompt())
        await polyglot.generate_response("mock", messages)
        sent = mock_model.call_history[0]
        assert [m.role for m in sent] == [ChatRole.SYSTEM, ChatRole.USER]

    @pytest.mark.asyncio
    async def test_cache_hit_skips_post_process(
        self, polyglot: Polyglot, messages: list[ChatMessage]
    ) -> None:
        events: list[str] = []
        polyglot.add_plugin(RecordingPlugin("a", events))
        await polyglot.generate_response("mock", messages)
        second = await polyglot.generate_response("mock", messages)
        assert events.count("a:post") == 1
        assert events.count("a:pre") == 2
        assert second.content == "mock response+a"

    @pytest.mark.asyncio
    async def test_duck_typed_plugin_without_hooks(
        self, polyglot: Polyglot, messages: list[ChatMessage]
    ) -> None:
        class NameOnly:
            name = "bare"

        polyglot.add_plugin(NameOnly())  # type: ignore[arg-type]
        response = await polyglot.generate_response("mock", messages)
        assert response.content == "mock response"


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_onion_order(self, polyglot: Polyglot, messages: list[ChatMessage]) -> None:
        trace: list[str] = []

        def make(tag: str) -> Middleware:
            async def middleware(
                msgs: Sequence[ChatMessage], next_handler: NextHandler
            ) -> LLMResponse:
                trace.append(f"{tag}-before")
                response = await next_handler(msgs)
                trace.append(f"{tag}-after")
                return response

            return middleware

        polyglot.use(make("a"))
        polyglot.use(make("b"))
        await polyglot.generate_response("mock", messages)
        assert trace == ["a-before", "b-before", "b-after", "a-after"]

    @pytest.mark.asyncio
    async def test_short_circuit_skips_provider(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        async def canned(msgs: Sequence[ChatMessage], next_handler: NextHandler) -> LLMResponse:
            return LLMResponse(content="canned")

        polyglot.use(canned)
        response = await polyglot.generate_response("mock", messages)
        assert response.content == "canned"
        assert mock_model.call_count == 0

    @pytest.mark.asyncio
    async def test_middleware_rewrites_messages(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        async def redact(msgs: Sequence[ChatMessage], next_handler: NextHandler) -> LLMResponse:
            return await next_handler([_user("[redacted]")])

        polyglot.use(redact)
        await polyglot.generate_response("mock", messages)
        assert mock_model.call_history[0][0].content == "[redacted]"

    @pytest.mark.asyncio
    async def test_middleware_runs_on_every_attempt(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        calls = 0

        async def count(msgs: Sequence[ChatMessage], next_handler: NextHandler) -> LLMResponse:
            nonlocal calls
            calls += 1
            return await next_handler(msgs)

        polyglot.use(count)
        mock_model.queue_errors(NetworkError("down", vendor="mock"))
        with patch(SLEEP, new_callable=AsyncMock):
            await polyglot.generate_response("mock", messages)
        assert calls == 2

    @pytest.mark.asyncio
    async def test_middleware_exception_wrapped(
        self, polyglot: Polyglot, messages: list[ChatMessage]
    ) -> None:
        async def explode(msgs: Sequence[ChatMessage], next_handler: NextHandler) -> LLMResponse:
            raise RuntimeError("middleware failed")

        polyglot.use(explode)
        with pytest.raises(UnknownError):
            await polyglot.generate_response("mock", messages)


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


class TestStreaming:
    @pytest.mark.asyncio
    async def test_streams_chunks(self, polyglot: Polyglot, messages: list[ChatMessage]) -> None:
        chunks = [c async for c in polyglot.generate_streaming_response("mock", messages)]
        assert chunks == ["mock ", "response"]

    @pytest.mark.asyncio
    async def test_streaming_bypasses_cache_and_usage(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        for _ in range(2):
            async for _chunk in polyglot.generate_streaming_response("mock", messages):
                pass
        assert mock_model.call_count == 2
        assert polyglot.cache.size == 0
        assert polyglot.get_total_token_usage() == 0

    def test_unknown_provider_raises_immediately(self, polyglot: Polyglot) -> None:
        with pytest.raises(StreamingNotSupportedError) as exc_info:
            polyglot.generate_streaming_response("nope", [])
        assert exc_info.value.code == "STREAMING_NOT_SUPPORTED"

    def test_non_streaming_adapter_raises_immediately(self, messages: list[ChatMessage]) -> None:
        polyglot = Polyglot()
        model = PlainModel()
        polyglot.add_model("plain", model)
        with pytest.raises(StreamingNotSupportedError):
            polyglot.generate_streaming_response("plain", messages)
        assert model.calls == 0

    @pytest.mark.asyncio
    async def test_stream_errors_surface_while_iterating(
        self, polyglot: Polyglot, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        mock_model.queue_errors(NetworkError("down", vendor="mock"))
        stream = polyglot.generate_streaming_response("mock", messages)
        with pytest.raises(NetworkError):
            async for _chunk in stream:
                pass


# ---------------------------------------------------------------------------
# Model switching
# ---------------------------------------------------------------------------


class TestChangeModel:
    def test_switches_model(self, polyglot: Polyglot, mock_model: MockLLMModel) -> None:
        polyglot.change_model("mock", "mock-large")
        assert mock_model.current_model == "mock-large"

    def test_unknown_provider(self, polyglot: Polyglot) -> None:
        with pytest.raises(ModelNotFoundError):
            polyglot.change_model("nope", "mock-large")

    def test_adapter_without_set_model(self) -> None:
        polyglot = Polyglot()
        polyglot.add_model("plain", PlainModel())
        with pytest.raises(ModelNotChangeableError) as exc_info:
            polyglot.change_model("plain", "anything")
        assert exc_info.value.code == "MODEL_NOT_CHANGEABLE"

    def test_invalid_model_propagates(self, polyglot: Polyglot, mock_model: MockLLMModel) -> None:
        with pytest.raises(InvalidModelError):
            polyglot.change_model("mock", "gpt-99")
        assert mock_model.current_model == "mock"


# ---------------------------------------------------------------------------
# Token usage and rate limiting
# ---------------------------------------------------------------------------


class TestUsageAndRateLimiting:
    def test_estimate_message_tokens(self, polyglot: Polyglot, messages: list[ChatMessage]) -> None:
        assert polyglot.estimate_message_tokens(messages) == 7
        assert polyglot.estimate_message_tokens([]) == 0

    @pytest.mark.asyncio
    async def test_usage_accumulates_and_resets(
        self, polyglot: Polyglot, messages: list[ChatMessage]
    ) -> None:
        assert polyglot.get_total_token_usage() == 0
        await polyglot.generate_response("mock", messages)
        # prompt 7 + completion "mock response" 2
        assert polyglot.get_total_token_usage() == 9
        await polyglot.generate_response("mock", messages, use_cache=False)
        assert polyglot.get_total_token_usage() == 18
        polyglot.reset_token_usage()
        assert polyglot.get_total_token_usage() == 0

    @pytest.mark.asyncio
    async def test_response_without_usage_is_not_counted(self, messages: list[ChatMessage]) -> None:
        polyglot = Polyglot()
        polyglot.add_model("mock", MockLLMModel(report_usage=False))
        await polyglot.generate_response("mock", messages)
        assert polyglot.get_total_token_usage() == 0

    @pytest.mark.asyncio
    async def test_rate_limiter_consumes_estimate(self, conversation: list[ChatMessage]) -> None:
        limiter = AsyncMock()
        polyglot = Polyglot()
        polyglot.add_model("mock", MockLLMModel(), limiter)
        await polyglot.generate_response("mock", conversation)
        limiter.consume.assert_awaited_once_with(
            polyglot.estimate_message_tokens(conversation)
        )

    @pytest.mark.asyncio
    async def test_rate_limiter_consumed_on_every_attempt(
        self, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        limiter = AsyncMock()
        polyglot = Polyglot()
        polyglot.add_model("mock", mock_model, limiter)
        mock_model.queue_errors(RateLimitExceededError("429", vendor="mock"))
        with patch(SLEEP, new_callable=AsyncMock):
            await polyglot.generate_response("mock", messages)
        assert limiter.consume.await_count == 2


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TestMetrics:
    @pytest.mark.asyncio
    async def test_records_success_cache_hit_and_tokens(self, messages: list[ChatMessage]) -> None:
        metrics = PolyglotMetrics()
        polyglot = Polyglot(metrics=metrics)
        polyglot.add_model("mock", MockLLMModel())

        await polyglot.generate_response("mock", messages)
        await polyglot.generate_response("mock", messages)

        labels = {"provider": "mock"}
        assert metrics.requests_total.get({"provider": "mock", "outcome": "success"}) == 1
        assert metrics.cache_hits_total.get(labels) == 1
        assert metrics.tokens_total.get(labels) == 9
        assert metrics.request_duration_seconds.get_count(labels) == 1

    @pytest.mark.asyncio
    async def test_records_retries_and_errors(
        self, mock_model: MockLLMModel, messages: list[ChatMessage]
    ) -> None:
        metrics = PolyglotMetrics()
        polyglot = Polyglot(metrics=metrics, max_attempts=2)
        polyglot.add_model("mock", mock_model)
        mock_model.queue_errors(
            NetworkError("down", vendor="mock"), NetworkError("down", vendor="mock")
        )
        with patch(SLEEP, new_callable=AsyncMock), pytest.raises(MaxRetriesExceededError):
            await polyglot.generate_response("mock", messages)

        assert metrics.retries_total.get({"provider": "mock"}) == 1
        assert metrics.requests_total.get({"provider": "mock", "outcome": "error"}) == 1


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestClose:
    @pytest.mark.asyncio
    async def test_closes_adapters_that_support_it(self) -> None:
        closable = AsyncMock()
        polyglot = Polyglot()
        polyglot.add_model("closable", closable)
        polyglot.add_model("plain", PlainModel())
        await polyglot.close()
        closable.close.assert_awaited_once()


def test_usage_is_per_instance(messages: list[ChatMessage]) -> None:
    first, second = Polyglot(), Polyglot()
    first.add_model("mock", MockLLMModel())
    asyncio.run(first.generate_response("mock", messages))
    assert first.get_total_token_usage() == 9
    assert second.get_total_token_usage() == 0


