"""
Terminal nodes for the generation workflow.

extract_result turns the final message into bundles; fail records why the
run stopped. Both end the graph.
"""

import logging
from typing import Any, Dict

from tripgen.generation.extractor import assign_cover_images, extract_bundles, extract_message_text
from tripgen.generation.nodes.context import RunContext
from tripgen.generation.schemas import GenerationState
from tripgen.shared.contracts.bundle_output import find_contract_violations


logger = logging.getLogger(__name__)


def make_extract_result_node(ctx: RunContext):
    """Build the extract_result node bound to one run."""

    async def extract_result_node(state: GenerationState) -> Dict[str, Any]:
        _log = ctx.log_prefix("extract_result")

        text = extract_message_text(state.get("output_items") or [])
        bundles = extract_bundles(text)
        if bundles is None:
            # A run whose final text holds no bundles still completes, with none
            logger.warning(f"{_log}No bundles could be extracted, completing with an empty list")
            bundles = []

        assign_cover_images(bundles, ctx.rng)

        violations = find_contract_violations(bundles)
        if violations:
            logger.warning(f"{_log}{len(violations)} bundle(s) deviate from the output contract: {violations}")

        logger.info(f"{_log}Extracted {len(bundles)} bundle(s) -> END")
        return {
            "bundles": bundles,
            "phase": "completed",
            "messages": [{"node": "extract_result", "content": f"{len(bundles)} bundle(s)"}],
        }

    return extract_result_node


def make_fail_node(ctx: RunContext):
    """Build the fail node bound to one run."""

    async def fail_node(state: GenerationState) -> Dict[str, Any]:
        _log = ctx.log_prefix("fail")
        error = state.get("error") or "Response failed"
        logger.error(
            f"{_log}Generation failed | error={error}, tool_rounds={state.get('tool_rounds', 0)}, "
            f"clear_storage={state.get('clear_storage', False)} -> END"
        )
        return {
            "phase": "failed",
            "error": error,
            "messages": [{"node": "fail", "content": error}],
        }

    return fail_node
