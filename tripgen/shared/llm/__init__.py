"""LLM client utilities."""

from tripgen.shared.llm.client import (
    get_cached_client,
    create_response,
    retrieve_response,
    retrieve_response_stream,
)

__all__ = ["get_cached_client", "create_response", "retrieve_response", "retrieve_response_stream"]
