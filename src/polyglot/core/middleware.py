"""Ordered middleware chain wrapping the final provider dispatch.

A middleware receives the messages and a ``next`` callable. It may rewrite
the messages, call ``next`` (any number of times), transform the result, or
answer on its own without calling ``next``, in which case nothing further
down the chain runs.
"""

from __future__ import annotations

__all__ = ["Middleware", "MiddlewareChain", "NextHandler"]

from collections.abc import Awaitable, Callable, Sequence
from functools import partial

from polyglot.core.types import ChatMessage, LLMResponse

NextHandler = Callable[[Sequence[ChatMessage]], Awaitable[LLMResponse]]
Middleware = Callable[[Sequence[ChatMessage], NextHandler], Awaitable[LLMResponse]]


class MiddlewareChain:
    """Middleware list plus an index-based driver.

    Registration order is execution order: the first middleware added is
    the outermost.
    """

    def __init__(self) -> None:
        self._middlewares: list[Middleware] = []

    def add(self, middleware: Middleware) -> None:
        self._middlewares.append(middleware)

    def __len__(self) -> int:
        return len(self._middlewares)

    async def run(
        self,
        messages: Sequence[ChatMessage],
        terminal: NextHandler,
    ) -> LLMResponse:
        """Run *messages* through every middleware, then *terminal*.

        The chain is snapshotted on entry, so middleware registered while a
        request is in flight only applies to later requests.
        """
        middlewares = tuple(self._middlewares)

        async def dispatch(index: int, current: Sequence[ChatMessage]) -> LLMResponse:
            if index < len(middlewares):
                return await middlewares[index](current, partial(dispatch, index + 1))
            return await terminal(current)

        return await dispatch(0, messages)
