"""
Structured logging configuration.

Provides JSON-formatted logging for generation state transitions and events.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TextIO, Union


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs log records as JSON.

    Each log entry includes:
    - timestamp: ISO format datetime
    - level: Log level name
    - logger: Logger name
    - message: Log message
    - extra: Any additional fields passed to the log call
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra"):
            log_entry["extra"] = record.extra

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


PIPE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-35s | %(message)s"
PIPE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_output: bool = False,
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None,
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """
    Configure service logging.

    Plain output uses the pipe format; with json_output every handler
    writes one StructuredFormatter JSON object per line instead.

    Args:
        level: Logging level name or number
        json_output: Emit JSON lines instead of the pipe format
        log_file: Optional path of a file that receives the same output
        stream: Console stream (default: stdout)
        logger_name: Logger to configure (default: the root logger)

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if json_output:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(PIPE_FORMAT, datefmt=PIPE_DATE_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def log_state_transition(
    event: str,
    state: Dict[str, Any],
    extra: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a generation state transition event.

    Args:
        event: Name of the event (e.g., "model_round_complete", "run_failed")
        state: Current generation state dictionary (key fields are extracted)
        extra: Additional context to include in the log
        logger: Logger instance to use. If not provided, uses default.
    """
    if logger is None:
        logger = logging.getLogger("tripgen")

    state_summary = {
        "generation_id": state.get("generation_id"),
        "phase": state.get("phase"),
        "tool_rounds": state.get("tool_rounds"),
        "response_id": state.get("response_id"),
        "conversation_items": len(state.get("conversation") or []),
    }

    log_data = {
        "event": event,
        "state_summary": state_summary,
    }

    if extra:
        log_data["extra"] = extra

    record = logger.makeRecord(
        logger.name,
        logging.INFO,
        "",
        0,
        f"State transition: {event}",
        args=(),
        exc_info=None,
    )
    record.extra = log_data

    logger.handle(record)
