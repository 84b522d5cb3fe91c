"""Client-side helpers for the generation API."""

from tripgen.client.poller import GenerationPoller, PollAbandonedError, PollPolicy

__all__ = ["GenerationPoller", "PollAbandonedError", "PollPolicy"]
