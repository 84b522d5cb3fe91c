"""
Timing tracker for generation runs.

Accumulates model response time, tool execution time and overall run time
per generation and logs a summary when the run ends.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional


logger = logging.getLogger(__name__)

# Generation-based timer registry so nodes and the orchestrator share one instance
_timer_registry: Dict[str, "RunTimer"] = {}


def format_duration(ms: float) -> str:
    """
    Render a millisecond duration for logs.

    Examples: "850ms", "12.40s", "2m 5.10s".
    """
    if ms < 1000:
        return f"{ms:.0f}ms"
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - minutes * 60:.2f}s"


def get_or_create_timer(generation_id: str) -> "RunTimer":
    """
    Get the timer for a generation or create a new one.

    Args:
        generation_id: Unique generation identifier

    Returns:
        RunTimer instance for this generation
    """
    if generation_id not in _timer_registry:
        _timer_registry[generation_id] = RunTimer(generation_id)
    return _timer_registry[generation_id]


def remove_timer(generation_id: str) -> None:
    """
    Remove a timer from the registry (e.g., after the run ends).

    Args:
        generation_id: Generation ID to remove
    """
    _timer_registry.pop(generation_id, None)


class RunTimer:
    """
    Accumulates timings for one generation run.

    Tracks how many model responses were consumed, the total time spent
    waiting on the model, and the total time spent executing tool calls.
    """

    def __init__(self, generation_id: str, clock: Callable[[], float] = time.perf_counter):
        self.generation_id = generation_id
        self._clock = clock
        self._started_at = clock()
        self._model_response_count = 0
        self._model_total_ms = 0.0
        self._tool_total_ms = 0.0
        self._tool_call_count = 0

    def now(self) -> float:
        return self._clock()

    def log_model_response(self, started_at: float) -> float:
        """
        Record one consumed model response.

        Args:
            started_at: Clock value taken when the request was submitted

        Returns:
            Duration of this response in milliseconds
        """
        duration_ms = (self._clock() - started_at) * 1000
        self._model_response_count += 1
        self._model_total_ms += duration_ms
        logger.info(
            f"[generation={self.generation_id}] Model response #{self._model_response_count} "
            f"completed in {format_duration(duration_ms)}"
        )
        return duration_ms

    def log_tool_calls(self, count: int, started_at: float) -> float:
        """
        Record one batch of tool calls.

        Args:
            count: Number of tool calls executed in the batch
            started_at: Clock value taken before the first call

        Returns:
            Duration of the batch in milliseconds
        """
        duration_ms = (self._clock() - started_at) * 1000
        self._tool_call_count += count
        self._tool_total_ms += duration_ms
        logger.info(
            f"[generation={self.generation_id}] Tool calls completed ({count} calls) "
            f"in {format_duration(duration_ms)}"
        )
        return duration_ms

    def get_accumulated_stats(self) -> Dict[str, Any]:
        """
        Get current accumulated statistics without logging.

        Returns:
            Dictionary with current totals
        """
        total_ms = (self._clock() - self._started_at) * 1000
        return {
            "total_ms": round(total_ms, 2),
            "model_response_count": self._model_response_count,
            "model_total_ms": round(self._model_total_ms, 2),
            "tool_call_count": self._tool_call_count,
            "tool_total_ms": round(self._tool_total_ms, 2),
            "overhead_ms": round(total_ms - self._model_total_ms - self._tool_total_ms, 2),
        }

    def log_summary(self, status: Optional[str] = None) -> Dict[str, Any]:
        """
        Log and return the run summary.

        Args:
            status: Terminal status of the run, included in the log line

        Returns:
            Summary dictionary with all totals
        """
        stats = self.get_accumulated_stats()
        logger.info(
            f"[generation={self.generation_id}] Timing summary | status={status or 'unknown'}, "
            f"total={format_duration(stats['total_ms'])}, "
            f"model={format_duration(stats['model_total_ms'])} "
            f"({stats['model_response_count']} responses), "
            f"tools={format_duration(stats['tool_total_ms'])} "
            f"({stats['tool_call_count']} calls), "
            f"overhead={format_duration(stats['overhead_ms'])}"
        )
        return stats
