"""Shared test fixtures for Polyglot tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from polyglot.core.polyglot import Polyglot
from polyglot.core.types import ChatMessage, ChatRole, ModelConfig
from polyglot.llm.mock import MockLLMModel
from tests.helpers import FakeClock


@pytest.fixture
def messages() -> list[ChatMessage]:
    """A one-turn user conversation."""
    return [ChatMessage(role=ChatRole.USER, content="hello world")]


@pytest.fixture
def conversation() -> list[ChatMessage]:
    """A multi-turn conversation with every role."""
    return [
        ChatMessage(role=ChatRole.SYSTEM, content="You are terse."),
        ChatMessage(role=ChatRole.USER, content="What is 2 + 2?"),
        ChatMessage(role=ChatRole.ASSISTANT, content="4"),
        ChatMessage(role=ChatRole.USER, content="And 3 + 3?"),
    ]


@pytest.fixture
def mock_model() -> MockLLMModel:
    """Mock adapter that returns canned responses."""
    return MockLLMModel()


@pytest.fixture
def polyglot(mock_model: MockLLMModel) -> Polyglot:
    """Orchestrator with the mock registered as ``mock`` and no retry delay."""
    instance = Polyglot(retry_backoff_seconds=0.0)
    instance.add_model("mock", mock_model)
    return instance


@pytest.fixture
def model_config() -> Callable[..., ModelConfig]:
    """Factory for adapter configs with a test key."""

    def _make(**kwargs: object) -> ModelConfig:
        kwargs.setdefault("api_key", "test-key")
        return ModelConfig(**kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def clock() -> FakeClock:
    """Fake monotonic clock starting at zero."""
    return FakeClock()
