"""Mock provider adapter for tests and offline demos.

Returns pre-configured responses based on pattern matching against the last
message, records every call, and can be primed with errors to exercise the
retry path.
"""

from __future__ import annotations

__all__ = ["MockLLMModel"]

from collections.abc import AsyncIterator, Sequence

from polyglot.core.errors import PolyglotError
from polyglot.core.types import ChatMessage, GenerateOptions, LLMResponse, TokenUsage
from polyglot.llm.providers.base import validate_model
from polyglot.llm.token_counter import estimate_messages_token_count, estimate_token_count

MOCK_MODELS: tuple[str, ...] = ("mock", "mock-large")


class MockLLMModel:
    """A deterministic adapter supporting every optional capability.

    Usage is estimated with the heuristic token counter unless disabled.
    """

    def __init__(self, *, model: str = "mock", report_usage: bool = True) -> None:
        self.current_model = validate_model("Mock", model, MOCK_MODELS)
        self.report_usage = report_usage
        self.call_history: list[list[ChatMessage]] = []
        self.options_history: list[GenerateOptions | None] = []
        self._responses: list[tuple[str, str]] = []
        self._default_response = "mock response"
        self._pending_errors: list[PolyglotError] = []

    def add_response(self, pattern: str, response: str) -> None:
        """Return *response* when the last message contains *pattern*."""
        self._responses.append((pattern, response))

    def set_default_response(self, response: str) -> None:
        """Set the fallback response used when no pattern matches."""
        self._default_response = response

    def queue_errors(self, *errors: PolyglotError) -> None:
        """Raise these errors, in order, on the next calls before answering."""
        self._pending_errors.extend(errors)

    def set_model(self, model: str) -> None:
        self.current_model = validate_model("Mock", model, MOCK_MODELS)

    def _match(self, messages: Sequence[ChatMessage]) -> str:
        last = messages[-1].content if messages else ""
        for pattern, response in self._responses:
            if pattern in last:
                return response
        return self._default_response

    async def generate_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> LLMResponse:
        """Return the matching response, or raise the next queued error."""
        self.call_history.append(list(messages))
        self.options_history.append(options)
        if self._pending_errors:
            raise self._pending_errors.pop(0)

        content = self._match(messages)
        usage = None
        if self.report_usage:
            prompt_tokens = estimate_messages_token_count(messages)
            completion_tokens = estimate_token_count(content)
            usage = TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            )
        return LLMResponse(content=content, usage=usage)

    async def generate_streaming_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> AsyncIterator[str]:
        """Stream the matching response word by word."""
        self.call_history.append(list(messages))
        self.options_history.append(options)
        if self._pending_errors:
            raise self._pending_errors.pop(0)
        words = self._match(messages).split(" ")
        for index, word in enumerate(words):
            yield word if index == len(words) - 1 else f"{word} "

    @property
    def call_count(self) -> int:
        return len(self.call_history)

    def assert_called_with(self, pattern: str) -> None:
        """Assert that at least one call's last message contained *pattern*.

        Raises:
            AssertionError: If no matching call was found.
        """
        for messages in self.call_history:
            if messages and pattern in messages[-1].content:
                return
        seen = [m[-1].content[:80] for m in self.call_history if m]
        raise AssertionError(
            f"No call with pattern {pattern!r} found. "
            f"Call history ({len(self.call_history)} calls): {seen}"
        )
