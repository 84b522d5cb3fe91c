"""
Trip bundle generation.

Runs the hosted prompt against the user's preferences, executes the
model's tool calls, and extracts the resulting trip bundles.
"""

from tripgen.generation.orchestrator import GenerationOrchestrator, GenerationOutcome, ResumePoint
from tripgen.generation.graph.build import create_generation_graph
from tripgen.generation.schemas import GenerationState

__all__ = [
    "GenerationOrchestrator",
    "GenerationOutcome",
    "ResumePoint",
    "create_generation_graph",
    "GenerationState",
]
