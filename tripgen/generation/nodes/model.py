"""
Model node for the generation workflow.

Submits the conversation to the model (or re-attaches to a running
response), consumes the event stream, forwards progress notifications and
decides the next phase from the terminal event.
"""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from tripgen.generation.errors import ResumeError
from tripgen.generation.events import (
    cursor_event,
    extract_summary_title,
    response_id_event,
    summary_event,
)
from tripgen.generation.nodes.context import RunContext
from tripgen.generation.provider import ModelRequest
from tripgen.generation.schemas import GenerationState


logger = logging.getLogger(__name__)

TERMINAL_EVENT_TYPES = ("response.completed", "response.failed", "response.incomplete")


def function_calls_in(output_items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [item for item in output_items if isinstance(item, dict) and item.get("type") == "function_call"]


def failure_message(event: Dict[str, Any]) -> str:
    """Provider-supplied failure reason, verbatim when present."""
    response = event.get("response") or {}
    if event.get("type") == "response.incomplete":
        reason = (response.get("incomplete_details") or {}).get("reason")
        return f"Response incomplete: {reason}" if reason else "Response incomplete"
    return (response.get("error") or {}).get("message") or "Response failed"


def make_call_model_node(ctx: RunContext):
    """Build the call_model node bound to one run."""

    async def call_model_node(state: GenerationState) -> Dict[str, Any]:
        _log = ctx.log_prefix("call_model")
        tool_rounds = state.get("tool_rounds", 0)
        resume = state.get("resume_from")
        tracked_response_id: Optional[str] = state.get("response_id")
        cursor: Optional[int] = state.get("cursor")

        # Drop events already delivered before a reconnect
        min_sequence: Optional[int] = None

        if resume:
            tracked_response_id = resume["response_id"]
            cursor = resume.get("cursor")
            min_sequence = cursor
            logger.info(
                f"{_log}Re-attaching to response | response_id={tracked_response_id}, cursor={cursor}"
            )
            await ctx.notify(response_id_event(tracked_response_id, cursor), _log)
            events: AsyncIterator[Dict[str, Any]] = ctx.provider.resume(tracked_response_id, cursor)
        else:
            conversation = state.get("conversation") or []
            logger.info(
                f"{_log}Submitting model request | round={tool_rounds + 1}, "
                f"input_items={len(conversation)}, stream={ctx.config.stream}, "
                f"background={ctx.config.background}"
            )
            request = ModelRequest(
                prompt_id=ctx.config.prompt_id,
                variables=state["prompt_variables"],
                input=list(conversation),
                background=ctx.config.background,
                stream=ctx.config.stream,
                reasoning_effort=ctx.config.reasoning_effort,
                reasoning_summary=ctx.config.reasoning_summary,
            )
            events = ctx.provider.create(request)

        started_at = ctx.timer.now()
        pending_items: Dict[int, Dict[str, Any]] = {}
        terminal: Optional[Dict[str, Any]] = None

        try:
            async for event in events:
                sequence = event.get("sequence_number")
                if min_sequence is not None and sequence is not None and sequence <= min_sequence:
                    continue

                event_response_id = (event.get("response") or {}).get("id")
                if event_response_id and event_response_id != tracked_response_id:
                    tracked_response_id = event_response_id
                    logger.info(f"{_log}Response ID: {tracked_response_id}")
                    await ctx.notify(response_id_event(tracked_response_id, sequence), _log)

                if sequence is not None:
                    cursor = sequence
                    await ctx.notify(cursor_event(sequence), _log)

                event_type = event.get("type")
                if event_type == "response.output_item.added":
                    pending_items[event.get("output_index", len(pending_items))] = dict(event.get("item") or {})

                elif event_type == "response.function_call_arguments.delta":
                    item = pending_items.get(event.get("output_index"))
                    if item is not None:
                        item["arguments"] = (item.get("arguments") or "") + (event.get("delta") or "")

                elif event_type == "response.reasoning_summary_part.done":
                    text = (event.get("part") or {}).get("text") or ""
                    if text:
                        title = extract_summary_title(text)
                        logger.info(f"{_log}Progress summary: {title}")
                        await ctx.record_summary(title, _log)
                        await ctx.notify(summary_event(title, sequence), _log)

                elif event_type in TERMINAL_EVENT_TYPES:
                    terminal = event
                    break

        except ResumeError as e:
            logger.error(f"{_log}{e}")
            return {
                "phase": "failed",
                "error": str(e),
                "clear_storage": True,
                "resume_from": None,
                "response_id": tracked_response_id,
                "cursor": cursor,
                "messages": [{"node": "call_model", "content": "Resume rejected"}],
            }

        except Exception as e:
            logger.exception(f"{_log}Model stream error: {e}")
            return {
                "phase": "failed",
                "error": str(e) or type(e).__name__,
                "resume_from": None,
                "response_id": tracked_response_id,
                "cursor": cursor,
                "messages": [{"node": "call_model", "content": f"Stream error: {e}"}],
            }

        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()

        ctx.timer.log_model_response(started_at)

        update: Dict[str, Any] = {
            "resume_from": None,
            "response_id": tracked_response_id,
            "cursor": cursor,
        }

        if terminal is None:
            logger.error(f"{_log}Stream ended without a terminal event")
            update.update(phase="failed", error="Response stream ended unexpectedly")
            return update

        if terminal["type"] != "response.completed":
            message = failure_message(terminal)
            logger.error(f"{_log}Response {tracked_response_id} failed: {message}")
            update.update(phase="failed", error=message)
            return update

        output = (terminal.get("response") or {}).get("output")
        if not output:
            output = [pending_items[index] for index in sorted(pending_items)]
        output_items = [item for item in output if isinstance(item, dict)]
        calls = function_calls_in(output_items)
        update["output_items"] = output_items

        if not calls:
            logger.info(f"{_log}Response completed with final message | output_items={len(output_items)}")
            update["phase"] = "extract"
            return update

        if tool_rounds >= ctx.config.max_tool_rounds:
            message = f"Maximum tool-call rounds ({ctx.config.max_tool_rounds}) exceeded"
            logger.error(f"{_log}{message} | pending_calls={len(calls)}")
            update.update(phase="failed", error=message)
            return update

        logger.info(f"{_log}Response requested {len(calls)} function call(s) | round={tool_rounds + 1}")
        update["phase"] = "tools"
        update["messages"] = [{"node": "call_model", "content": f"{len(calls)} function call(s)"}]
        return update

    return call_model_node
