"""
Tripgen: event-driven trip bundle generation service.

This package contains:
- shared/: Common infrastructure (LLM client, logging, contracts)
- fetchers/: External data lookups (event images, ticket search)
- prompts/: Prompt variables built from user preferences
- tools/: Dispatch of model function calls to fetchers
- generation/: Model/tool loop graph, orchestrator and HTTP routes
- store/: Generation record stores (memory, redis, postgres)
- client/: Polling client for the generation API
"""

from tripgen.generation.orchestrator import GenerationOrchestrator

__all__ = ["GenerationOrchestrator"]
