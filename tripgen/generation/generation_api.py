"""
FastAPI endpoints for trip bundle generation.

Two variants are exposed:
- Polling: POST /api/generations starts a run in the background and
  GET /api/generations/{id} reports its progress and outcome.
- Streaming: GET /api/generate runs (or re-attaches to) a generation and
  streams its progress as server-sent events.
"""

import asyncio
import contextlib
import json
import logging
import uuid
from typing import Any, AsyncIterator, Dict, Optional

import httpx
from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from tripgen.config import get_settings
from tripgen.fetchers.opengraph import OpenGraphImageFetcher
from tripgen.fetchers.ticketmaster import TicketmasterClient
from tripgen.generation.errors import RecordPersistenceError
from tripgen.generation.events import USER_ERROR_MESSAGE, Notification, error_event
from tripgen.generation.graph.config import GenerationGraphConfig, get_config
from tripgen.generation.orchestrator import GenerationOrchestrator, ResumePoint
from tripgen.generation.provider import ModelProvider, OpenAIResponsesProvider
from tripgen.generation.schemas import CreateGenerationResponse, GenerationStatusResponse
from tripgen.prompts.variables import UserPreferences
from tripgen.store.base import GenerationStore
from tripgen.store.factory import build_store
from tripgen.tools.dispatcher import ToolDispatcher, build_dispatcher


logger = logging.getLogger(__name__)

# Create router for generation routes
router = APIRouter(prefix="/api", tags=["generation"])

# Seconds without a notification before a keepalive comment is sent
KEEPALIVE_SECONDS = 15

# Shared instances (created on first use)
_store: Optional[GenerationStore] = None
_http_client: Optional[httpx.AsyncClient] = None
_dispatcher: Optional[ToolDispatcher] = None


# ============================================================================
# Dependencies
# ============================================================================


async def get_store() -> GenerationStore:
    """Get or create the shared record store."""
    global _store
    if _store is None:
        _store = await build_store()
    return _store


def get_http_client() -> httpx.AsyncClient:
    """Get or create the shared HTTP client used by the fetchers."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=15.0)
    return _http_client


def get_dispatcher() -> ToolDispatcher:
    """Get or create the shared tool dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        settings = get_settings()
        client = get_http_client()
        ticketmaster = (
            TicketmasterClient(settings.ticketmaster_api_key, client)
            if settings.ticketmaster_api_key
            else None
        )
        _dispatcher = build_dispatcher(
            OpenGraphImageFetcher(settings.opengraph_api_key, client=client),
            ticketmaster=ticketmaster,
        )
    return _dispatcher


def get_provider() -> ModelProvider:
    """Model provider; rejects the request when no API key is configured."""
    if not get_settings().openai_api_key:
        logger.error("OpenAI API key not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="OpenAI API key not configured",
        )
    return OpenAIResponsesProvider()


def get_graph_config() -> GenerationGraphConfig:
    return get_config()


async def shutdown_resources() -> None:
    """Close the shared store and HTTP client."""
    global _store, _http_client, _dispatcher
    if _store is not None:
        await _store.close()
        _store = None
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
    _dispatcher = None


# ============================================================================
# Helpers
# ============================================================================


def _parse_preferences(raw: Any) -> UserPreferences:
    """Validate submitted preferences (a JSON string or an object)."""
    if raw is None or raw == "":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing preferences")
    try:
        if isinstance(raw, str):
            raw = json.loads(raw)
        return UserPreferences.model_validate(raw)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Invalid preferences: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid preferences: {e}",
        )


def _sse_frame(event: str, data: Dict[str, Any]) -> str:
    payload = json.dumps(data, ensure_ascii=False)
    lines = [f"event: {event}"]
    for line in payload.splitlines():
        lines.append(f"data: {line}")
    lines.append("")
    return "\n".join(lines) + "\n"


async def _stop_run(task: "asyncio.Task[None]", _log: str = "") -> None:
    """Cancel a local stream run and wait for it to unwind."""
    if task.done():
        return
    logger.info(f"{_log}Client disconnected, cancelling local run")
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


async def _run_in_background(
    orchestrator: GenerationOrchestrator, preferences: UserPreferences, generation_id: str
) -> None:
    _log = f"[generation={generation_id}] [api=generations] "
    try:
        await orchestrator.run(preferences, generation_id=generation_id)
    except RecordPersistenceError:
        # Already logged at CRITICAL by the orchestrator
        pass
    except Exception as e:
        logger.exception(f"{_log}Background run crashed: {e}")


# ============================================================================
# Polling variant
# ============================================================================


@router.post(
    "/generations",
    response_model=CreateGenerationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def create_generation(
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(...),
    store: GenerationStore = Depends(get_store),
    provider: ModelProvider = Depends(get_provider),
    dispatcher: ToolDispatcher = Depends(get_dispatcher),
    config: GenerationGraphConfig = Depends(get_graph_config),
) -> CreateGenerationResponse:
    """
    Start a generation in the background.

    Creates a pending record and schedules the run; the client polls
    GET /api/generations/{id} for progress.
    """
    preferences = _parse_preferences(payload.get("preferences"))
    generation_id = str(uuid.uuid4())
    _log = f"[generation={generation_id}] [api=generations] "

    record = await store.create(generation_id, preferences.model_dump(by_alias=True))
    orchestrator = GenerationOrchestrator(provider, dispatcher, store=store, config=config)
    background_tasks.add_task(_run_in_background, orchestrator, preferences, generation_id)

    logger.info(f"{_log}Generation submitted | interests={list(preferences.interests)}")
    return CreateGenerationResponse(generation_id=generation_id, status=record.status)


@router.get("/generations/{generation_id}", response_model=GenerationStatusResponse)
async def get_generation(
    generation_id: str,
    store: GenerationStore = Depends(get_store),
) -> GenerationStatusResponse:
    """Report the progress or outcome of a generation."""
    record = await store.get(generation_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Generation {generation_id} not found",
        )

    return GenerationStatusResponse(
        generation_id=record.id,
        status=record.status,
        summaries=record.progress_summaries,
        bundles=record.result if record.status == "completed" else None,
        error=USER_ERROR_MESSAGE if record.status == "failed" else None,
        detail=record.error if record.status == "failed" else None,
        created_at=record.created_at,
    )


# ============================================================================
# Streaming variant
# ============================================================================


@router.get("/generate")
async def stream_generation(
    preferences: Optional[str] = Query(default=None, description="JSON-encoded preferences"),
    response_id: Optional[str] = Query(default=None, alias="responseId"),
    cursor: Optional[int] = Query(default=None),
    provider: ModelProvider = Depends(get_provider),
    dispatcher: ToolDispatcher = Depends(get_dispatcher),
    config: GenerationGraphConfig = Depends(get_graph_config),
) -> StreamingResponse:
    """
    Run a generation and stream its progress as server-sent events.

    With responseId (and optionally cursor) the stream re-attaches to an
    existing provider response instead of starting a new one.

    Events: response_id, cursor, summary, completed, error.
    """
    parsed = _parse_preferences(preferences)
    resume = ResumePoint(response_id=response_id, cursor=cursor) if response_id else None
    generation_id = str(uuid.uuid4())
    _log = f"[generation={generation_id}] [api=generate] "

    orchestrator = GenerationOrchestrator(provider, dispatcher, config=config)
    queue: "asyncio.Queue[Optional[Notification]]" = asyncio.Queue()

    async def emit(notification: Notification) -> None:
        await queue.put(notification)

    async def runner() -> None:
        try:
            await orchestrator.run(parsed, generation_id=generation_id, emit=emit, resume=resume)
        except Exception as e:
            logger.exception(f"{_log}Stream run crashed: {e}")
            await queue.put(error_event(str(e)))
        finally:
            await queue.put(None)

    logger.info(f"{_log}Stream starting | resume={'yes' if resume else 'no'}")
    task = asyncio.create_task(runner())

    async def gen() -> AsyncIterator[str]:
        try:
            while True:
                try:
                    notification = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if notification is None:
                    break
                yield _sse_frame(notification.event, notification.data)
        finally:
            # The provider response keeps running in background mode
            await _stop_run(task, _log)

    return StreamingResponse(
        gen(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/health")
async def health_check():
    """Health check endpoint for generation routes."""
    return {"status": "healthy", "service": "generation"}
