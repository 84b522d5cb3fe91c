"""
Scripted model provider and Responses API event builders for tests.

A scripted provider replays literal event dicts in the shape the
OpenAI Responses stream produces, so the generation graph can be driven
without network access.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from tripgen.generation.graph.config import GenerationGraphConfig
from tripgen.prompts.variables import UserPreferences


def make_preferences(**overrides) -> UserPreferences:
    data = {
        "interests": ["concerts", "localCulture"],
        "musicProfile": "fado and jazz",
        "timeframe": "June 2025",
        "otherPreferences": None,
    }
    data.update(overrides)
    return UserPreferences.model_validate(data)


def make_config(**overrides) -> GenerationGraphConfig:
    values = {"prompt_id": "pmpt_test", "persist_min_wait": 0.0, "persist_max_wait": 0.0}
    values.update(overrides)
    return GenerationGraphConfig(**values)


def make_bundle(image_url: Optional[str] = None) -> Dict[str, Any]:
    event = {
        "title": "Fado in Alfama",
        "fullDescription": "Traditional fado in a small tavern.",
        "shortDescription": "Live fado",
        "interestType": "localCulture",
        "dateRange": {"startDate": "2025-06-12", "endDate": "2025-06-12"},
    }
    if image_url:
        event["imageUrl"] = image_url
    return {
        "title": "Lisbon Nights",
        "tripDescription": "Music and culture in Lisbon.",
        "city": "Lisbon",
        "dateRange": {"startDate": "2025-06-12", "endDate": "2025-06-14"},
        "keyEvents": [event],
        "minorEvents": [],
    }


def message_item(text: str) -> Dict[str, Any]:
    return {"type": "message", "role": "assistant", "content": [{"type": "output_text", "text": text}]}


def final_message_events(
    response_id: str, text: str, summary: Optional[str] = "**Finding events**\n\nLooking at venues."
) -> List[Dict[str, Any]]:
    """created, optional summary, message item, completed."""
    events: List[Dict[str, Any]] = [
        {"type": "response.created", "response": {"id": response_id, "status": "in_progress"}},
    ]
    if summary:
        events.append({"type": "response.reasoning_summary_part.done", "part": {"type": "summary_text", "text": summary}})
    item = message_item(text)
    events.append({"type": "response.output_item.added", "output_index": 0, "item": item})
    events.append(
        {"type": "response.completed", "response": {"id": response_id, "status": "completed", "output": [item]}}
    )
    return _numbered(events)


def function_call_events(response_id: str, calls: List[Tuple[str, str, str]]) -> List[Dict[str, Any]]:
    """
    created, then per call an output item followed by its arguments in two
    deltas, then completed without an output list.
    """
    events: List[Dict[str, Any]] = [
        {"type": "response.created", "response": {"id": response_id, "status": "in_progress"}},
    ]
    for index, (call_id, name, arguments) in enumerate(calls):
        events.append(
            {
                "type": "response.output_item.added",
                "output_index": index,
                "item": {"type": "function_call", "call_id": call_id, "name": name, "arguments": ""},
            }
        )
        middle = len(arguments) // 2
        for delta in (arguments[:middle], arguments[middle:]):
            events.append({"type": "response.function_call_arguments.delta", "output_index": index, "delta": delta})
    events.append({"type": "response.completed", "response": {"id": response_id, "status": "completed"}})
    return _numbered(events)


def failed_events(response_id: str, message: str) -> List[Dict[str, Any]]:
    return _numbered(
        [
            {"type": "response.created", "response": {"id": response_id, "status": "in_progress"}},
            {
                "type": "response.failed",
                "response": {"id": response_id, "status": "failed", "error": {"message": message}},
            },
        ]
    )


def bundles_text(bundles: List[Dict[str, Any]]) -> str:
    return json.dumps({"bundles": bundles})


def _numbered(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{**event, "sequence_number": seq} for seq, event in enumerate(events)]


class ScriptedProvider:
    """
    Replays one scripted event list per create() call; the last script repeats.

    Attributes:
        requests: ModelRequest objects received by create()
        resumes: (response_id, cursor) pairs received by resume()
    """

    def __init__(
        self,
        scripts: Optional[List[List[Dict[str, Any]]]] = None,
        resume_events: Optional[List[Dict[str, Any]]] = None,
        resume_error: Optional[Exception] = None,
    ):
        self.scripts = scripts or []
        self.resume_events = resume_events or []
        self.resume_error = resume_error
        self.requests = []
        self.resumes = []

    async def create(self, request):
        self.requests.append(request)
        script = self.scripts[min(len(self.requests), len(self.scripts)) - 1]
        for event in script:
            yield event

    async def resume(self, response_id, cursor):
        self.resumes.append((response_id, cursor))
        if self.resume_error is not None:
            raise self.resume_error
        for event in self.resume_events:
            yield event
