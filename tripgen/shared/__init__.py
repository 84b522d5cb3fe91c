"""
Shared infrastructure for the generation service.

Modules:
- llm: Async OpenAI client with retry logic
- logging: Structured JSON logging and run timing
- contracts: Trip bundle output contract
"""

from tripgen.shared.llm.client import get_cached_client, create_response
from tripgen.shared.logging.config import configure_logging, log_state_transition

__all__ = [
    "get_cached_client",
    "create_response",
    "configure_logging",
    "log_state_transition",
]
