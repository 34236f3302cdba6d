"""Admission-rate limiting for calls into the record store.

Airtable allows five requests per second per base. The limiter counts
calls by the time they start, using a sliding window of start timestamps.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_CALLS = 5
DEFAULT_PERIOD_SECONDS = 1.0


class RateLimiter:
    """Sliding window rate limiter with first-come, first-served admission."""

    def __init__(
        self,
        max_calls: int = DEFAULT_MAX_CALLS,
        period: float = DEFAULT_PERIOD_SECONDS,
    ) -> None:
        """Initializes the rate limiter.

        Args:
            max_calls: Maximum number of calls started within one window.
            period: Length of the window in seconds.
        """
        if max_calls < 1:
            msg = "max_calls must be at least 1"
            raise ValueError(msg)
        if period <= 0:
            msg = "period must be positive"
            raise ValueError(msg)
        self.max_calls = max_calls
        self.period = period
        self.timestamps: deque[float] = deque()
        # Waiters queue on the lock, so admission follows arrival order.
        self._lock = asyncio.Lock()

    def _cleanup_timestamps(self, now: float) -> None:
        """Removes timestamps older than the window."""
        while self.timestamps and now - self.timestamps[0] >= self.period:
            self.timestamps.popleft()

    async def acquire(self) -> None:
        """Waits until a call may start, then records its start time."""
        async with self._lock:
            while True:
                now = time.monotonic()
                self._cleanup_timestamps(now)
                if len(self.timestamps) < self.max_calls:
                    self.timestamps.append(now)
                    return
                wait_time = self.timestamps[0] + self.period - now
                logger.debug("Rate limit reached. Waiting for %.3f seconds.", wait_time)
                await asyncio.sleep(max(0.0, wait_time))

    async def schedule(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run `operation` once the window admits it.

        Errors raised by the operation reach the caller unchanged. The slot
        is consumed either way and nothing is retried.
        """
        await self.acquire()
        return await operation()

    def get_wait_time(self) -> float:
        """Estimates the time needed before the next call can start.

        Callers already queued ahead are not accounted for.
        """
        now = time.monotonic()
        self._cleanup_timestamps(now)
        if len(self.timestamps) < self.max_calls:
            return 0.0
        return max(0.0, self.timestamps[0] + self.period - now)
