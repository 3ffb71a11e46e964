"""
Sliding-window rate limiter for outgoing listing requests.

Reddit allows 100 OAuth requests per minute per client. Sessions fetch
independently, so the Reddit adapter funnels every listing request
through one limiter shared by all of them.
"""

import asyncio
import time
from collections import deque
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class SlidingWindowRateLimiter:
    """
    Allow at most ``max_calls`` acquisitions in any ``period_seconds`` window.

    Callers beyond the limit wait until the oldest call leaves the window.
    Safe for concurrent coroutines on one event loop.
    """

    def __init__(
        self,
        max_calls: int = 100,
        period_seconds: float = 60,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            max_calls: Maximum calls per window (default: 100)
            period_seconds: Window length in seconds (default: 60)
            clock: Monotonic time source, injectable for tests
        """
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")

        self.max_calls = max_calls
        self.period_seconds = period_seconds
        self._clock = clock or time.monotonic
        self._calls: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.period_seconds:
            self._calls.popleft()

    async def acquire(self) -> None:
        """
        Wait until a call is allowed, then record it.

        Example:
            >>> limiter = SlidingWindowRateLimiter(max_calls=100, period_seconds=60)
            >>> await limiter.acquire()
        """
        async with self._lock:
            while True:
                now = self._clock()
                self._evict(now)

                if len(self._calls) < self.max_calls:
                    self._calls.append(now)
                    if len(self._calls) > self.max_calls * 0.9:
                        logger.warning(
                            "rate_limit_approaching",
                            calls_made=len(self._calls),
                            max_calls=self.max_calls,
                        )
                    return

                wait_time = self._calls[0] + self.period_seconds - now
                logger.warning(
                    "rate_limit_hit",
                    calls_made=len(self._calls),
                    wait_seconds=round(wait_time, 2),
                )
                await asyncio.sleep(max(wait_time, 0))

    def get_remaining(self) -> int:
        """Number of calls available in the current window."""
        self._evict(self._clock())
        return max(0, self.max_calls - len(self._calls))

    def reset(self) -> None:
        """Forget every recorded call."""
        self._calls.clear()
        logger.info("rate_limiter_reset")
