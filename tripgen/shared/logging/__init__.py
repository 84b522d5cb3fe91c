"""Logging configuration and utilities."""

from tripgen.shared.logging.config import configure_logging, log_state_transition, StructuredFormatter
from tripgen.shared.logging.timing import (
    RunTimer,
    format_duration,
    get_or_create_timer,
    remove_timer,
)

__all__ = [
    "configure_logging",
    "log_state_transition",
    "StructuredFormatter",
    "RunTimer",
    "format_duration",
    "get_or_create_timer",
    "remove_timer",
]
