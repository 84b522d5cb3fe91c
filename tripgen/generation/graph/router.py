"""
Routing logic for the generation graph.

Determines the node that follows a model response.
"""

import logging
from typing import Literal

from tripgen.generation.schemas import GenerationState


logger = logging.getLogger(__name__)


def route_after_model(
    state: GenerationState,
) -> Literal["execute_tools", "extract_result", "fail"]:
    """
    Determine the next node from the phase set by call_model.

    Routing logic:
    1. phase "tools" -> execute the requested function calls
    2. phase "extract" -> parse the final message
    3. anything else -> fail

    Args:
        state: Current generation state

    Returns:
        Name of the next node to execute
    """
    generation_id = state.get("generation_id", "unknown")
    phase = state.get("phase")
    rounds = state.get("tool_rounds", 0)
    _log = f"[generation={generation_id}] [graph=generation] [router=route_after_model] "

    if phase == "tools":
        logger.info(f"{_log}Routing to 'execute_tools' | phase={phase}, tool_rounds={rounds}")
        return "execute_tools"

    if phase == "extract":
        logger.info(f"{_log}Routing to 'extract_result' | phase={phase}, tool_rounds={rounds}")
        return "extract_result"

    logger.info(f"{_log}Routing to 'fail' | phase={phase}, error={state.get('error')}")
    return "fail"
