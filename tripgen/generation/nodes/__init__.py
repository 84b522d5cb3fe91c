"""Nodes for the generation graph."""

from tripgen.generation.nodes.context import RunContext
from tripgen.generation.nodes.model import make_call_model_node
from tripgen.generation.nodes.result import make_extract_result_node, make_fail_node
from tripgen.generation.nodes.tools import make_execute_tools_node

__all__ = [
    "RunContext",
    "make_call_model_node",
    "make_execute_tools_node",
    "make_extract_result_node",
    "make_fail_node",
]
