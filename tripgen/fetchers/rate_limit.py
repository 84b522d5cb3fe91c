"""
Sliding-window rate limiter for outbound API calls.

Callers await `acquire()` before each request and are queued until a slot
in the window frees up, instead of failing on the provider's HTTP 429.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque


logger = logging.getLogger(__name__)

# Added to every computed wait so the slot has definitely expired on wake-up
WAIT_BUFFER_SECONDS = 0.01


class SlidingWindowRateLimiter:
    """
    Allow at most `max_calls` acquisitions in any `window_seconds` interval.

    The clock and sleep functions are injectable so tests can drive the
    limiter with a fake clock.
    """

    def __init__(
        self,
        max_calls: int = 5,
        window_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._calls: Deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.window_seconds:
            self._calls.popleft()

    async def acquire(self) -> None:
        """Wait until a call is allowed, then record it."""
        async with self._lock:
            now = self._clock()
            self._evict(now)
            while len(self._calls) >= self.max_calls:
                wait = self.window_seconds - (now - self._calls[0]) + WAIT_BUFFER_SECONDS
                logger.debug(f"Rate limit reached, waiting {wait * 1000:.0f}ms")
                await self._sleep(wait)
                now = self._clock()
                self._evict(now)
            self._calls.append(now)

    @property
    def in_window(self) -> int:
        """Number of calls currently counted against the window."""
        self._evict(self._clock())
        return len(self._calls)
