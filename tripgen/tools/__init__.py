"""Model tool dispatch."""

from tripgen.tools.dispatcher import (
    ToolDispatcher,
    InvalidToolArguments,
    build_dispatcher,
    build_tool_output,
)

__all__ = ["ToolDispatcher", "InvalidToolArguments", "build_dispatcher", "build_tool_output"]
