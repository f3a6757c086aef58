"""Heuristic token estimation and cumulative usage tracking.

The estimate is deliberately approximate: it feeds rate-limit accounting,
never billing. It is deterministic, so tests pin exact values.
"""

from __future__ import annotations

__all__ = [
    "TokenUsageTracker",
    "estimate_messages_token_count",
    "estimate_token_count",
]

import re
from collections.abc import Iterable

from polyglot.core.types import ChatMessage

# Words (with apostrophes) or any single non-space character.
_TOKEN_PATTERN = re.compile(r"\b[\w']+\b|\S", re.ASCII)
_DIGITS_PATTERN = re.compile(r"\d+", re.ASCII)

# Overhead per message for role framing.
MESSAGE_OVERHEAD_TOKENS = 4


def estimate_token_count(text: str) -> int:
    """Estimate the number of LLM tokens in *text*.

    Each word or punctuation mark counts once. Words longer than ten
    characters add ``len // 5``; numbers add ``max(1, len // 2)``; and the
    whole text adds ``len // 100``.
    """
    count = 0
    for token in _TOKEN_PATTERN.findall(text.lower()):
        count += 1
        if len(token) > 10:
            count += len(token) // 5
        if _DIGITS_PATTERN.fullmatch(token):
            count += max(1, len(token) // 2)
    return count + len(text) // 100


def estimate_messages_token_count(messages: Iterable[ChatMessage]) -> int:
    """Estimate tokens for a conversation, including per-message overhead."""
    return sum(
        MESSAGE_OVERHEAD_TOKENS
        + estimate_token_count(str(message.role))
        + estimate_token_count(message.content)
        for message in messages
    )


class TokenUsageTracker:
    """Running total of prompt and completion tokens across all calls."""

    def __init__(self) -> None:
        self._total_tokens = 0

    def add_usage(self, prompt_tokens: int, completion_tokens: int) -> None:
        self._total_tokens += prompt_tokens + completion_tokens

    def get_total_usage(self) -> int:
        return self._total_tokens

    def reset(self) -> None:
        self._total_tokens = 0
