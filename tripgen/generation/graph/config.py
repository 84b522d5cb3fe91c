"""
Graph configuration for the generation workflow.

Centralizes tuning for the model/tool loop so behavior can be adjusted
without modifying the graph wiring.
"""

from dataclasses import dataclass
from typing import Optional

from tripgen.config import get_settings


@dataclass
class GenerationGraphConfig:
    """
    Configuration for the generation graph.

    Attributes:
        prompt_id: Stored prompt template the model is invoked with
        max_tool_rounds: Tool-call rounds allowed before the run fails
        background: Run model responses in provider background mode
        stream: Consume model responses as event streams
        reasoning_effort: Reasoning effort requested from the model
        reasoning_summary: Reasoning summary mode (drives progress summaries)
        poll_interval_seconds: Wait between status checks on non-streamed background responses
    """

    prompt_id: str = "pmpt_68b758d74f60819593d91d254518d4fc020955df32c90659"

    # Safety limit for the function call loop
    max_tool_rounds: int = 10

    # Provider execution mode
    background: bool = True
    stream: bool = True

    # Reasoning configuration
    reasoning_effort: str = "medium"
    reasoning_summary: str = "auto"

    # Non-streamed background polling
    poll_interval_seconds: float = 2.0

    # Retry configuration for terminal record writes (tenacity)
    persist_attempts: int = 3
    persist_min_wait: float = 0.5  # seconds
    persist_max_wait: float = 4.0  # seconds

    @property
    def recursion_limit(self) -> int:
        """Graph step limit: one model step and one tool step per round, plus slack."""
        return 2 * (self.max_tool_rounds + 1) + 10


# Default configuration instance
DEFAULT_CONFIG = GenerationGraphConfig()


def get_config(
    prompt_id: Optional[str] = None,
    max_tool_rounds: Optional[int] = None,
    background: Optional[bool] = None,
    stream: Optional[bool] = None,
    reasoning_effort: Optional[str] = None,
    persist_min_wait: Optional[float] = None,
    persist_max_wait: Optional[float] = None,
) -> GenerationGraphConfig:
    """
    Create a configuration with optional overrides.

    Prompt id and execution mode default to the environment settings.

    Returns:
        GenerationGraphConfig with specified overrides applied
    """
    settings = get_settings()
    return GenerationGraphConfig(
        prompt_id=prompt_id or settings.openai_prompt_id,
        max_tool_rounds=max_tool_rounds
        if max_tool_rounds is not None
        else DEFAULT_CONFIG.max_tool_rounds,
        background=background if background is not None else settings.generation_background,
        stream=stream if stream is not None else settings.generation_stream,
        reasoning_effort=reasoning_effort or DEFAULT_CONFIG.reasoning_effort,
        persist_min_wait=persist_min_wait
        if persist_min_wait is not None
        else DEFAULT_CONFIG.persist_min_wait,
        persist_max_wait=persist_max_wait
        if persist_max_wait is not None
        else DEFAULT_CONFIG.persist_max_wait,
    )
