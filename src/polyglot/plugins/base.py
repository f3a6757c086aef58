"""Plugin interface.

A plugin is any object with a ``name`` and, optionally, ``init``,
``pre_process``, and ``post_process``. Subclassing ``Plugin`` gives
pass-through defaults for the hooks you do not override.
"""

from __future__ import annotations

__all__ = ["Plugin"]

from typing import TYPE_CHECKING

from polyglot.core.types import ChatMessage, LLMResponse

if TYPE_CHECKING:
    from polyglot.core.polyglot import Polyglot


class Plugin:
    """Named extension with optional setup and pre/post hooks."""

    name: str = "plugin"

    def init(self, polyglot: Polyglot) -> None:
        """Called once at registration with the live orchestrator."""

    async def pre_process(self, messages: list[ChatMessage]) -> list[ChatMessage]:
        """Transform messages before dispatch."""
        return messages

    async def post_process(self, response: LLMResponse) -> LLMResponse:
        """Transform the response after dispatch."""
        return response
