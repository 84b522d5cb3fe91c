"""
Tests for the polling client.

The service is served by httpx.MockTransport; time is driven by a fake
clock advanced by the poller's own sleeps.
"""

import asyncio

import httpx
import pytest

from tripgen.client import GenerationPoller, PollAbandonedError, PollPolicy


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.now += seconds


def _scripted_service(replies):
    """Answer successive status checks from a list of (status_code, body) pairs."""
    calls = []

    def handler(request):
        calls.append(request.url.path)
        status_code, body = replies[min(len(calls), len(replies)) - 1]
        if status_code is None:
            raise httpx.ConnectError("offline", request=request)
        return httpx.Response(status_code, json=body)

    return handler, calls


def _wait(handler, policy=None):
    clock = _FakeClock()
    client = httpx.AsyncClient(base_url="http://tripgen.test", transport=httpx.MockTransport(handler))
    poller = GenerationPoller(client, policy=policy, clock=clock, sleep=clock.sleep)
    return asyncio.run(poller.wait("gen-1")), clock


def _status(value, **extra):
    return {"generationId": "gen-1", "status": value, **extra}


class TestGenerationPoller:
    """Tests for waiting on a generation."""

    def test_returns_terminal_payload(self):
        """Polling stops at the first completed status."""
        handler, calls = _scripted_service(
            [
                (200, _status("pending")),
                (200, _status("processing", summaries=["Finding events"])),
                (200, _status("completed", bundles=[])),
            ]
        )
        payload, clock = _wait(handler)
        assert payload["status"] == "completed"
        assert calls == ["/api/generations/gen-1"] * 3
        assert clock.now == pytest.approx(4.0)

    def test_failed_is_terminal(self):
        """A failed generation is returned, not retried."""
        handler, _ = _scripted_service([(200, _status("failed", error="Failed to generate trip bundles"))])
        payload, _ = _wait(handler)
        assert payload["status"] == "failed"

    def test_gives_up_after_consecutive_failures(self):
        """Three failed checks in a row abandon the generation."""
        handler, calls = _scripted_service([(500, {"detail": "boom"})])
        with pytest.raises(PollAbandonedError) as exc_info:
            _wait(handler)
        assert len(calls) == 3
        assert exc_info.value.clear_storage is True

    def test_missing_generation_counts_as_failure(self):
        """A 404 is a failed check."""
        handler, calls = _scripted_service([(404, {"detail": "Generation gen-1 not found"})])
        with pytest.raises(PollAbandonedError):
            _wait(handler)
        assert len(calls) == 3

    def test_success_resets_failure_count(self):
        """Failures separated by a successful check do not accumulate."""
        handler, calls = _scripted_service(
            [
                (None, None),
                (None, None),
                (200, _status("processing")),
                (503, {}),
                (None, None),
                (200, _status("completed", bundles=[])),
            ]
        )
        payload, _ = _wait(handler)
        assert payload["status"] == "completed"
        assert len(calls) == 6

    def test_time_cap(self):
        """Polling stops once the overall time cap elapses."""
        handler, calls = _scripted_service([(200, _status("processing"))])
        policy = PollPolicy(interval_seconds=2.0, max_duration_seconds=10.0)
        with pytest.raises(PollAbandonedError) as exc_info:
            _wait(handler, policy=policy)
        assert exc_info.value.reason == "timed out"
        assert len(calls) == 5
