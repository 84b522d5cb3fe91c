"""
Model provider abstraction.

The orchestrator consumes a provider as a stream of plain event dicts in
the Responses API shape (type, sequence_number, response, item, delta,
...). This keeps the graph nodes independent of the SDK's typed objects
and lets tests script providers with literal dicts.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

import openai
from openai import AsyncOpenAI

from tripgen.generation.errors import ResumeError
from tripgen.shared.llm.client import (
    create_response,
    retrieve_response,
    retrieve_response_stream,
)


logger = logging.getLogger(__name__)

PENDING_STATUSES = ("queued", "in_progress")


@dataclass
class ModelRequest:
    """One model invocation against the stored prompt."""

    prompt_id: str
    variables: Dict[str, str]
    input: List[Dict[str, Any]] = field(default_factory=list)
    background: bool = True
    stream: bool = True
    reasoning_effort: str = "medium"
    reasoning_summary: str = "auto"


class ModelProvider(Protocol):
    def create(self, request: ModelRequest) -> AsyncIterator[Dict[str, Any]]:
        """Submit a request and yield its events."""
        ...

    def resume(self, response_id: str, cursor: Optional[int]) -> AsyncIterator[Dict[str, Any]]:
        """
        Re-attach to a running or finished response, yielding events after `cursor`.

        Raises ResumeError (on first iteration) when the provider rejects the request.
        """
        ...


def to_event_dict(obj: Any) -> Dict[str, Any]:
    """Convert an SDK model (or dict) to a plain dict."""
    if isinstance(obj, dict):
        return obj
    return obj.model_dump(exclude_none=True)


def terminal_events_for(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Synthesize the event sequence a stream would have produced for a finished response."""
    status = response.get("status")
    if status == "completed":
        terminal_type = "response.completed"
    elif status == "incomplete":
        terminal_type = "response.incomplete"
    else:
        terminal_type = "response.failed"
    return [
        {"type": "response.created", "sequence_number": 0, "response": response},
        {"type": terminal_type, "sequence_number": 1, "response": response},
    ]


class OpenAIResponsesProvider:
    """
    Provider backed by the OpenAI Responses API.

    Args:
        client: Optional AsyncOpenAI instance. The cached client is used otherwise.
        poll_interval_seconds: Wait between status checks for non-streamed background responses
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, poll_interval_seconds: float = 2.0):
        self._client = client
        self._poll_interval_seconds = poll_interval_seconds

    def _build_params(self, request: ModelRequest) -> Dict[str, Any]:
        return {
            "prompt": {"id": request.prompt_id, "variables": request.variables},
            "input": request.input,
            "background": request.background,
            "stream": request.stream,
            "store": True,
            "reasoning": {"effort": request.reasoning_effort, "summary": request.reasoning_summary},
        }

    async def create(self, request: ModelRequest) -> AsyncIterator[Dict[str, Any]]:
        result = await create_response(self._build_params(request), client=self._client)

        if request.stream:
            async for event in result:
                yield to_event_dict(event)
            return

        # Non-streamed: wait for a terminal status, then replay it as events
        response = to_event_dict(result)
        while response.get("status") in PENDING_STATUSES:
            await asyncio.sleep(self._poll_interval_seconds)
            response = to_event_dict(await retrieve_response(response["id"], client=self._client))
        for event in terminal_events_for(response):
            yield event

    async def resume(self, response_id: str, cursor: Optional[int]) -> AsyncIterator[Dict[str, Any]]:
        try:
            stream = await retrieve_response_stream(response_id, cursor, client=self._client)
        except openai.APIStatusError as e:
            logger.error(f"Resume rejected for {response_id}: {e.status_code} {e.message}")
            raise ResumeError(f"Failed to resume stream: {e.message}") from e

        async for event in stream:
            yield to_event_dict(event)
