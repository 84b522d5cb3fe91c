"""
Tool dispatcher for model function calls.

Maps a function call requested by the model to the matching fetcher and
returns a JSON-serializable result. Failures are reported inside the
result so the model sees them as tool output; dispatch never raises.
"""

import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from tripgen.fetchers.opengraph import OpenGraphImageFetcher
from tripgen.fetchers.ticketmaster import TicketmasterClient, TicketmasterSearchParams


logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]

INVALID_ARGUMENTS = {"error": "invalid arguments"}


class InvalidToolArguments(ValueError):
    """Raised by a handler when the decoded arguments are unusable."""


class ToolDispatcher:
    """
    Registry of named async tool handlers.

    Example:
        dispatcher = ToolDispatcher()
        dispatcher.register("fetch_event_images", handler)
        result = await dispatcher.dispatch("fetch_event_images", '{"url": "..."}')
    """

    def __init__(self):
        self._handlers: Dict[str, ToolHandler] = {}

    def register(self, name: str, handler: ToolHandler) -> None:
        self._handlers[name] = handler

    @property
    def tool_names(self):
        return sorted(self._handlers)

    async def dispatch(self, tool_name: str, raw_arguments: Optional[str]) -> Dict[str, Any]:
        """
        Execute one tool call.

        Args:
            tool_name: Function name requested by the model
            raw_arguments: JSON-encoded argument object as streamed by the model

        Returns:
            The handler's result, or an {"error": ...} object
        """
        handler = self._handlers.get(tool_name)
        if handler is None:
            logger.error(f"[tools] Unknown function: {tool_name}")
            return {"error": f"Unknown function: {tool_name}"}

        try:
            arguments = json.loads(raw_arguments or "")
        except (TypeError, ValueError):
            logger.warning(f"[tools] Could not decode arguments for {tool_name}: {str(raw_arguments)[:200]}")
            return dict(INVALID_ARGUMENTS)
        if not isinstance(arguments, dict):
            return dict(INVALID_ARGUMENTS)

        started_at = time.perf_counter()
        try:
            result = await handler(arguments)
        except (InvalidToolArguments, ValidationError) as e:
            logger.warning(f"[tools] Invalid arguments for {tool_name}: {e}")
            return dict(INVALID_ARGUMENTS)
        except Exception as e:
            logger.exception(f"[tools] {tool_name} failed: {e}")
            return {"error": f"{type(e).__name__}: {e}"}

        logger.info(f"[tools] {tool_name} finished in {(time.perf_counter() - started_at) * 1000:.0f}ms")
        return result


def build_tool_output(call: Dict[str, Any], result: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a tool result as a function_call_output conversation item."""
    return {
        "type": "function_call_output",
        "call_id": call.get("call_id"),
        "output": json.dumps(result),
    }


def image_lookup_tool(fetcher: OpenGraphImageFetcher) -> ToolHandler:
    """Handler for fetch_event_images({"url": str}) -> {"images": [...], "url": url}."""

    async def fetch_event_images(arguments: Dict[str, Any]) -> Dict[str, Any]:
        url = arguments.get("url")
        if not isinstance(url, str) or not url.strip():
            raise InvalidToolArguments("url is required")
        images = await fetcher.fetch_images(url)
        return {"images": images, "url": url}

    return fetch_event_images


def ticket_search_tools(client: TicketmasterClient) -> Dict[str, ToolHandler]:
    """Handlers for the ticket search tools."""

    async def search_ticketmaster_events(arguments: Dict[str, Any]) -> Dict[str, Any]:
        params = TicketmasterSearchParams.model_validate(arguments)
        result = await client.search_events(params)
        if isinstance(result, list):
            return {"events": [event.model_dump(by_alias=True) for event in result]}
        return result.model_dump(exclude_none=True)

    async def get_ticketmaster_classifications(arguments: Dict[str, Any]) -> Dict[str, Any]:
        result = await client.get_classifications()
        if isinstance(result, list):
            return {"segments": [segment.model_dump() for segment in result]}
        return result.model_dump(exclude_none=True)

    return {
        "search_ticketmaster_events": search_ticketmaster_events,
        "get_ticketmaster_classifications": get_ticketmaster_classifications,
    }


def build_dispatcher(
    image_fetcher: OpenGraphImageFetcher,
    ticketmaster: Optional[TicketmasterClient] = None,
) -> ToolDispatcher:
    """
    Create a dispatcher with the image lookup tool and, when a ticket search
    client is given, the ticket search tools.
    """
    dispatcher = ToolDispatcher()
    dispatcher.register("fetch_event_images", image_lookup_tool(image_fetcher))
    if ticketmaster is not None:
        for name, handler in ticket_search_tools(ticketmaster).items():
            dispatcher.register(name, handler)
    return dispatcher
