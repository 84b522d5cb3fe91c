"""
OpenAI client with retry logic.

Provides a cached async client instance and wrappers for Responses API
calls with automatic retries using tenacity.
"""

from typing import Any, Dict, Optional

import openai
from openai import AsyncOpenAI
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from tripgen.config import get_settings

# Module-level cache for the OpenAI client
_client: Optional[AsyncOpenAI] = None

# Transient failures worth retrying; 4xx responses are not
RETRYABLE_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def get_cached_client() -> AsyncOpenAI:
    """
    Returns a cached instance of the async OpenAI client.

    Uses the OPENAI_API_KEY setting for authentication.
    The client is created once and reused for all subsequent calls.
    """
    global _client
    if _client is None:
        api_key = get_settings().openai_api_key
        if not api_key:
            raise ValueError(
                "OPENAI_API_KEY environment variable is not set. "
                "Please set it to your OpenAI API key."
            )
        _client = AsyncOpenAI(api_key=api_key)
    return _client


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_ERRORS),
    reraise=True,
)
async def create_response(params: Dict[str, Any], client: Optional[AsyncOpenAI] = None) -> Any:
    """
    Call the Responses API create endpoint with automatic retries.

    Only the submission is retried. Once a stream has been returned,
    failures while iterating it surface to the caller.

    Args:
        params: Keyword arguments for `client.responses.create`
        client: Optional client instance. If not provided, uses cached client.

    Returns:
        A Response object, or an async event stream when params["stream"] is true.
    """
    if client is None:
        client = get_cached_client()
    return await client.responses.create(**params)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_ERRORS),
    reraise=True,
)
async def retrieve_response(response_id: str, client: Optional[AsyncOpenAI] = None) -> Any:
    """Fetch the current state of a stored response (used to poll background runs)."""
    if client is None:
        client = get_cached_client()
    return await client.responses.retrieve(response_id)


async def retrieve_response_stream(
    response_id: str,
    starting_after: Optional[int] = None,
    client: Optional[AsyncOpenAI] = None,
) -> Any:
    """
    Re-attach to the event stream of a stored (background) response.

    Args:
        response_id: Identifier of the response to re-attach to
        starting_after: Sequence number after which events are replayed.
            None replays from the beginning.
        client: Optional client instance. If not provided, uses cached client.

    Returns:
        Async event stream.

    Raises:
        openai.APIStatusError: If the provider rejects the request.
    """
    if client is None:
        client = get_cached_client()
    kwargs: Dict[str, Any] = {"stream": True}
    if starting_after is not None:
        kwargs["starting_after"] = starting_after
    return await client.responses.retrieve(response_id, **kwargs)
