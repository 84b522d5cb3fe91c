"""Graph wiring for the generation workflow."""

from tripgen.generation.graph.build import create_generation_graph
from tripgen.generation.graph.config import DEFAULT_CONFIG, GenerationGraphConfig, get_config
from tripgen.generation.graph.router import route_after_model

__all__ = [
    "create_generation_graph",
    "DEFAULT_CONFIG",
    "GenerationGraphConfig",
    "get_config",
    "route_after_model",
]
