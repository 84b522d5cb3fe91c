"""
Graph construction for the generation workflow.

Builds and compiles the LangGraph model/tool loop for one run.
"""

from langgraph.graph import StateGraph, END

from tripgen.generation.graph.router import route_after_model
from tripgen.generation.nodes.context import RunContext
from tripgen.generation.nodes.model import make_call_model_node
from tripgen.generation.nodes.result import make_extract_result_node, make_fail_node
from tripgen.generation.nodes.tools import make_execute_tools_node
from tripgen.generation.schemas import GenerationState


def create_generation_graph(ctx: RunContext):
    """
    Create and compile the LangGraph workflow for one generation run.

    The graph structure is:
        Entry -> call_model -> route_after_model()
                                 ├→ "tools"   -> execute_tools -> call_model (loop)
                                 ├→ "extract" -> extract_result -> END
                                 └→ "failed"  -> fail -> END

    Args:
        ctx: Per-run dependencies the nodes are bound to

    Returns:
        Compiled LangGraph application ready for execution.
    """
    graph = StateGraph(GenerationState)

    # Add nodes
    graph.add_node("call_model", make_call_model_node(ctx))
    graph.add_node("execute_tools", make_execute_tools_node(ctx))
    graph.add_node("extract_result", make_extract_result_node(ctx))
    graph.add_node("fail", make_fail_node(ctx))

    # Set entry point
    graph.set_entry_point("call_model")

    # Add conditional routing after each model response
    graph.add_conditional_edges(
        "call_model",
        route_after_model,
        {
            "execute_tools": "execute_tools",
            "extract_result": "extract_result",
            "fail": "fail",
        },
    )

    # Tool outputs go back to the model
    graph.add_edge("execute_tools", "call_model")

    # Terminal nodes
    graph.add_edge("extract_result", END)
    graph.add_edge("fail", END)

    return graph.compile()
