"""
Tests for the sliding-window rate limiter, driven by a fake clock.
"""

import asyncio

import pytest

from tripgen.fetchers.rate_limit import SlidingWindowRateLimiter


class _FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _make_limiter(clock, max_calls=5, window_seconds=1.0):
    return SlidingWindowRateLimiter(
        max_calls=max_calls, window_seconds=window_seconds, clock=clock, sleep=clock.sleep
    )


class TestSlidingWindowRateLimiter:
    """Tests for call admission within the window."""

    def test_calls_under_limit_do_not_wait(self):
        """Up to max_calls acquisitions pass immediately."""
        clock = _FakeClock()
        limiter = _make_limiter(clock)

        async def scenario():
            for _ in range(5):
                await limiter.acquire()

        asyncio.run(scenario())
        assert clock.sleeps == []
        assert limiter.in_window == 5

    def test_sixth_call_waits_for_window(self):
        """The call over the limit waits until the oldest slot expires."""
        clock = _FakeClock()
        limiter = _make_limiter(clock)

        async def scenario():
            for _ in range(6):
                await limiter.acquire()

        asyncio.run(scenario())
        assert len(clock.sleeps) == 1
        assert clock.sleeps[0] == pytest.approx(1.01)
        assert clock.now >= 1.0

    def test_no_more_than_max_calls_in_any_window(self):
        """Timestamps of admitted calls never exceed max_calls per window."""
        clock = _FakeClock()
        limiter = _make_limiter(clock, max_calls=3, window_seconds=1.0)
        admitted = []

        async def scenario():
            for _ in range(10):
                await limiter.acquire()
                admitted.append(clock.now)
                clock.now += 0.1

        asyncio.run(scenario())
        for start in admitted:
            in_window = [t for t in admitted if start <= t < start + 1.0]
            assert len(in_window) <= 3

    def test_slots_free_up_after_window(self):
        """Calls older than the window no longer count."""
        clock = _FakeClock()
        limiter = _make_limiter(clock, max_calls=2)

        async def scenario():
            await limiter.acquire()
            await limiter.acquire()
            clock.now = 1.5
            await limiter.acquire()

        asyncio.run(scenario())
        assert clock.sleeps == []
        assert limiter.in_window == 1

    def test_invalid_configuration_rejected(self):
        """A non-positive limit or window is rejected."""
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(max_calls=0)
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(window_seconds=0)
