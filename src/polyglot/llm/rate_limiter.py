"""Token-bucket rate limiting for provider admission control.

The bucket is refilled lazily on each ``consume`` call from the elapsed
monotonic time; there is no background timer. Callers that find the
bucket short are suspended with ``asyncio.sleep`` until enough tokens
have accrued, so other in-flight requests keep running.
"""

from __future__ import annotations

__all__ = ["RateLimiter", "TokenBucketRateLimiter"]

import asyncio
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger(__name__)


@runtime_checkable
class RateLimiter(Protocol):
    """Anything that can admit a request costing *tokens* units."""

    async def consume(self, tokens: int) -> None:
        """Wait until *tokens* units are available, then take them."""
        ...


class TokenBucketRateLimiter:
    """Token bucket with capacity ``max_tokens`` and a fixed refill rate.

    Concurrent consumers of one bucket are served one at a time, in
    arrival order.

    A request larger than ``max_tokens`` can never be fully covered, since
    refill is capped at capacity. Such a request waits once, then overdraws
    the bucket below zero; the next consumer's wait is computed from that
    negative balance.
    """

    def __init__(
        self,
        max_tokens: float,
        refill_rate: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialise a full bucket.

        Args:
            max_tokens: Bucket capacity.
            refill_rate: Tokens added per second.
            clock: Monotonic time source in seconds.

        Raises:
            ValueError: If either argument is not positive.
        """
        if max_tokens <= 0:
            msg = f"max_tokens must be positive, got {max_tokens}"
            raise ValueError(msg)
        if refill_rate <= 0:
            msg = f"refill_rate must be positive, got {refill_rate}"
            raise ValueError(msg)
        self.max_tokens = float(max_tokens)
        self.refill_rate = float(refill_rate)
        self._tokens = float(max_tokens)
        self._clock = clock
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        self._tokens = min(self.max_tokens, self._tokens + elapsed * self.refill_rate)
        self._last_refill = now

    @property
    def available_tokens(self) -> float:
        """Tokens that would be available right now (does not mutate state)."""
        elapsed = self._clock() - self._last_refill
        return min(self.max_tokens, self._tokens + elapsed * self.refill_rate)

    async def consume(self, tokens: int) -> None:
        """Take *tokens* from the bucket, waiting for refill if needed.

        Args:
            tokens: Number of tokens the request costs.
        """
        async with self._lock:
            self._refill()
            if self._tokens < tokens:
                wait_seconds = (tokens - self._tokens) / self.refill_rate
                logger.debug(
                    "rate_limit_wait",
                    requested=tokens,
                    available=round(self._tokens, 3),
                    wait_seconds=round(wait_seconds, 3),
                )
                await asyncio.sleep(wait_seconds)
                self._refill()
            if tokens > self.max_tokens:
                logger.warning(
                    "rate_limit_overdraft",
                    requested=tokens,
                    max_tokens=self.max_tokens,
                )
            self._tokens -= tokens
