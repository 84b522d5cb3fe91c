"""
Tool execution node for the generation workflow.

Runs every function call of the latest response, in order, and extends
the conversation with the response output followed by the tool outputs.
"""

import logging
from typing import Any, Dict

from tripgen.generation.nodes.context import RunContext
from tripgen.generation.nodes.model import function_calls_in
from tripgen.generation.schemas import GenerationState
from tripgen.tools.dispatcher import build_tool_output


logger = logging.getLogger(__name__)


def make_execute_tools_node(ctx: RunContext):
    """Build the execute_tools node bound to one run."""

    async def execute_tools_node(state: GenerationState) -> Dict[str, Any]:
        _log = ctx.log_prefix("execute_tools")
        output_items = state.get("output_items") or []
        calls = function_calls_in(output_items)
        tool_rounds = state.get("tool_rounds", 0) + 1

        logger.info(f"{_log}Executing {len(calls)} function call(s) | round={tool_rounds}")

        started_at = ctx.timer.now()
        tool_outputs = []
        for call in calls:
            result = await ctx.dispatcher.dispatch(call.get("name", ""), call.get("arguments"))
            if "error" in result:
                logger.warning(f"{_log}{call.get('name')} returned error: {result['error']}")
            tool_outputs.append(build_tool_output(call, result))
        ctx.timer.log_tool_calls(len(calls), started_at)

        # The model needs its full output (reasoning items included) ahead of the tool outputs
        return {
            "conversation": list(output_items) + tool_outputs,
            "tool_rounds": tool_rounds,
            "phase": "call_model",
            "messages": [
                {"node": "execute_tools", "content": f"Round {tool_rounds}: {len(calls)} tool output(s)"}
            ],
        }

    return execute_tools_node
