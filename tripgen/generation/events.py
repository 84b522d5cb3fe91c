"""
Progress notifications emitted while a generation runs.

Notifications are named events with a JSON payload. The streaming HTTP
route forwards them as server-sent events; other callers may ignore them.
"""

import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel


logger = logging.getLogger(__name__)

# Phrase shown to users for every failed generation; provider detail goes in `detail`
USER_ERROR_MESSAGE = "Failed to generate trip bundles"

_BOLD_TITLE = re.compile(r"^\*\*([^*]+)\*\*")


class Notification(BaseModel):
    """One progress notification (event name + payload)."""

    event: str
    data: Dict[str, Any]


Emitter = Callable[[Notification], Awaitable[None]]


def extract_summary_title(text: str) -> str:
    """
    Reduce a reasoning summary part to a short title.

    A summary starting with a bold span yields that span's text. Otherwise
    bold markers are removed and the whole summary is kept.
    """
    trimmed = (text or "").strip()
    if trimmed.startswith("**"):
        match = _BOLD_TITLE.match(trimmed)
        if match:
            return match.group(1).strip()
    return trimmed.replace("**", "").strip()


def response_id_event(response_id: str, cursor: Optional[int]) -> Notification:
    return Notification(event="response_id", data={"responseId": response_id, "cursor": cursor})


def cursor_event(cursor: int) -> Notification:
    return Notification(event="cursor", data={"cursor": cursor})


def summary_event(text: str, cursor: Optional[int]) -> Notification:
    return Notification(event="summary", data={"text": text, "cursor": cursor})


def completed_event(response_id: Optional[str], cursor: Optional[int], bundles: List[Any]) -> Notification:
    return Notification(
        event="completed",
        data={"responseId": response_id, "cursor": cursor, "bundles": bundles},
    )


def error_event(detail: Optional[str], clear_storage: bool = False) -> Notification:
    data: Dict[str, Any] = {"message": USER_ERROR_MESSAGE, "detail": detail}
    if clear_storage:
        data["clearStorage"] = True
    return Notification(event="error", data=data)


async def safe_emit(emit: Optional[Emitter], notification: Notification, _log: str = "") -> None:
    """Deliver a notification; delivery failures are logged and skipped."""
    if emit is None:
        return
    try:
        await emit(notification)
    except Exception as e:
        logger.warning(f"{_log}Failed to deliver '{notification.event}' notification: {e}")
