"""
Polling client for the generation API.

Waits for a submitted generation to reach a terminal status. The client
gives up after a few consecutive failed checks or once the overall time
cap elapses; in both cases its saved generation id is stale.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx


logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("completed", "failed")


@dataclass
class PollPolicy:
    """
    Attributes:
        interval_seconds: Wait between status checks
        max_consecutive_failures: Failed checks in a row before giving up
        max_duration_seconds: Overall cap on waiting for one generation
    """

    interval_seconds: float = 2.0
    max_consecutive_failures: int = 3
    max_duration_seconds: float = 900.0


class PollAbandonedError(Exception):
    """Raised when polling stops without a terminal status."""

    def __init__(self, generation_id: str, reason: str):
        super().__init__(f"Stopped polling generation {generation_id}: {reason}")
        self.generation_id = generation_id
        self.reason = reason
        # The saved generation id should be discarded by the caller
        self.clear_storage = True


class GenerationPoller:
    """
    Polls GET /api/generations/{id} until the generation finishes.

    Args:
        client: HTTP client configured with the service base URL
        policy: Polling policy (defaults: 2s interval, 3 failures, 15 minutes)
        clock: Monotonic clock, injectable for tests
        sleep: Async sleep, injectable for tests
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        policy: Optional[PollPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self.policy = policy or PollPolicy()
        self._clock = clock
        self._sleep = sleep

    async def check(self, generation_id: str) -> Dict[str, Any]:
        """
        Fetch the current status once.

        Raises:
            httpx.HTTPError: On transport failures or non-2xx responses
        """
        response = await self._client.get(f"/api/generations/{generation_id}")
        response.raise_for_status()
        return response.json()

    async def wait(self, generation_id: str) -> Dict[str, Any]:
        """
        Poll until the generation completes or fails.

        Returns:
            The terminal status payload

        Raises:
            PollAbandonedError: After too many consecutive failed checks or
                when the time cap elapses
        """
        started_at = self._clock()
        failures = 0

        while True:
            if self._clock() - started_at >= self.policy.max_duration_seconds:
                logger.warning(f"[poller] Generation {generation_id} timed out")
                raise PollAbandonedError(generation_id, "timed out")

            try:
                payload = await self.check(generation_id)
            except (httpx.HTTPError, ValueError) as e:
                failures += 1
                logger.warning(
                    f"[poller] Check {failures}/{self.policy.max_consecutive_failures} "
                    f"failed for {generation_id}: {e}"
                )
                if failures >= self.policy.max_consecutive_failures:
                    raise PollAbandonedError(generation_id, f"{failures} consecutive failed checks")
            else:
                failures = 0
                if payload.get("status") in TERMINAL_STATUSES:
                    logger.info(f"[poller] Generation {generation_id} finished: {payload['status']}")
                    return payload

            await self._sleep(self.policy.interval_seconds)
