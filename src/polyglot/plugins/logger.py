"""Plugin that logs outgoing messages and incoming responses."""

from __future__ import annotations

__all__ = ["LoggerPlugin"]

import structlog

from polyglot.core.types import ChatMessage, LLMResponse
from polyglot.plugins.base import Plugin

logger = structlog.get_logger(__name__)


class LoggerPlugin(Plugin):
    """Logs traffic at INFO without modifying it.

    Message content is truncated to ``max_chars`` characters.
    """

    name = "logger"

    def __init__(self, *, max_chars: int = 200) -> None:
        self.max_chars = max_chars

    async def pre_process(self, messages: list[ChatMessage]) -> list[ChatMessage]:
        logger.info(
            "sending_messages",
            plugin=self.name,
            count=len(messages),
            messages=[
                {"role": str(m.role), "content": m.content[: self.max_chars]} for m in messages
            ],
        )
        return messages

    async def post_process(self, response: LLMResponse) -> LLMResponse:
        logger.info(
            "received_response",
            plugin=self.name,
            content=response.content[: self.max_chars],
            total_tokens=response.usage.total_tokens if response.usage else None,
        )
        return response
