"""
Generation orchestrator.

Runs the model/tool loop for one generation and owns its outcome: the
terminal record write happens exactly once per run, before the terminal
notification goes out.
"""

import asyncio
import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Optional

from langgraph.errors import GraphRecursionError
from tenacity import (
    AsyncRetrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tripgen.generation.errors import RecordPersistenceError
from tripgen.generation.events import Emitter, completed_event, error_event, safe_emit
from tripgen.generation.graph.build import create_generation_graph
from tripgen.generation.graph.config import DEFAULT_CONFIG, GenerationGraphConfig
from tripgen.generation.nodes.context import RunContext
from tripgen.generation.provider import ModelProvider
from tripgen.generation.schemas import GenerationState
from tripgen.prompts.variables import UserPreferences, format_prompt_variables
from tripgen.shared.logging.config import log_state_transition
from tripgen.shared.logging.timing import get_or_create_timer, remove_timer
from tripgen.store.base import (
    GenerationStore,
    RecordExistsError,
    RecordNotFoundError,
    TerminalStateError,
)
from tripgen.tools.dispatcher import ToolDispatcher


logger = logging.getLogger(__name__)


@dataclass
class ResumePoint:
    """Where a reconnecting client left off in a provider response."""

    response_id: str
    cursor: Optional[int] = None


@dataclass
class GenerationOutcome:
    """Terminal result of one run."""

    generation_id: str
    status: str
    bundles: List[Any] = field(default_factory=list)
    error: Optional[str] = None
    response_id: Optional[str] = None
    cursor: Optional[int] = None
    clear_storage: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"


def create_initial_state(
    generation_id: str,
    preferences: UserPreferences,
    resume: Optional[ResumePoint] = None,
) -> GenerationState:
    """Create initial graph state for a run."""
    return {
        # Identity and inputs
        "generation_id": generation_id,
        "prompt_variables": format_prompt_variables(preferences),
        # A resumed run starts with an empty conversation
        "conversation": [],
        "output_items": [],
        "response_id": None,
        "cursor": None,
        # Loop control
        "tool_rounds": 0,
        "phase": "call_model",
        "resume_from": {"response_id": resume.response_id, "cursor": resume.cursor} if resume else None,
        # Outcome
        "bundles": None,
        "error": None,
        "clear_storage": False,
        "messages": [],
    }


class GenerationOrchestrator:
    """
    Drives generation runs against a model provider.

    Args:
        provider: Model provider the graph submits requests to
        dispatcher: Tool dispatcher for the model's function calls
        store: Optional record store; without one, outcomes are not persisted
        config: Graph configuration (DEFAULT_CONFIG if not provided)
        rng: Random source for fallback cover images
    """

    def __init__(
        self,
        provider: ModelProvider,
        dispatcher: ToolDispatcher,
        store: Optional[GenerationStore] = None,
        config: Optional[GenerationGraphConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.provider = provider
        self.dispatcher = dispatcher
        self.store = store
        self.config = config or DEFAULT_CONFIG
        self.rng = rng or random.Random()

    async def _prepare_record(self, generation_id: str, preferences: UserPreferences, _log: str) -> None:
        """Make sure a record exists and is marked processing. Best-effort."""
        if self.store is None:
            return
        try:
            if await self.store.get(generation_id) is None:
                await self.store.create(generation_id, preferences.model_dump(by_alias=True))
        except RecordExistsError:
            pass
        except Exception as e:
            logger.warning(f"{_log}Could not create generation record: {e}")
        try:
            await self.store.mark_processing(generation_id)
        except Exception as e:
            logger.warning(f"{_log}Could not mark generation as processing: {e}")

    async def _persist_outcome(self, outcome: GenerationOutcome, _log: str) -> None:
        """
        Write the terminal outcome, retrying transient store failures.

        Raises:
            RecordPersistenceError: If the outcome could not be written
        """
        if self.store is None:
            return
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.persist_attempts),
                wait=wait_exponential(
                    multiplier=self.config.persist_min_wait,
                    min=self.config.persist_min_wait,
                    max=self.config.persist_max_wait,
                ),
                retry=retry_if_not_exception_type((TerminalStateError, RecordNotFoundError)),
                reraise=True,
            ):
                with attempt:
                    if outcome.succeeded:
                        await self.store.complete(outcome.generation_id, outcome.bundles)
                    else:
                        await self.store.fail(outcome.generation_id, outcome.error or "Response failed")
        except Exception as e:
            logger.critical(f"{_log}Failed to persist {outcome.status} outcome: {e}")
            raise RecordPersistenceError(outcome.generation_id, str(e)) from e

    async def run(
        self,
        preferences: UserPreferences,
        generation_id: Optional[str] = None,
        emit: Optional[Emitter] = None,
        resume: Optional[ResumePoint] = None,
    ) -> GenerationOutcome:
        """
        Run one generation to its terminal outcome.

        Args:
            preferences: User preferences the prompt is filled from
            generation_id: Record id; a new one is generated if not provided
            emit: Optional callback receiving progress notifications
            resume: Re-attach to an existing provider response instead of submitting

        Returns:
            GenerationOutcome (completed or failed)

        Raises:
            RecordPersistenceError: If the outcome could not be written to the store
        """
        generation_id = generation_id or str(uuid.uuid4())
        _log = f"[generation={generation_id}] [graph=generation] [run] "

        logger.info(
            f"{_log}Run starting | interests={list(preferences.interests)}, "
            f"resume={'yes' if resume else 'no'}, max_tool_rounds={self.config.max_tool_rounds}"
        )

        await self._prepare_record(generation_id, preferences, _log)

        timer = get_or_create_timer(generation_id)
        ctx = RunContext(
            generation_id=generation_id,
            provider=self.provider,
            dispatcher=self.dispatcher,
            config=self.config,
            timer=timer,
            store=self.store,
            emit=emit,
            rng=self.rng,
        )
        graph = create_generation_graph(ctx)
        initial_state = create_initial_state(generation_id, preferences, resume)

        try:
            final_state = await graph.ainvoke(
                initial_state, {"recursion_limit": self.config.recursion_limit}
            )
        except asyncio.CancelledError:
            logger.info(f"{_log}Run cancelled")
            remove_timer(generation_id)
            raise
        except GraphRecursionError as e:
            logger.error(f"{_log}Graph recursion limit hit: {e}")
            final_state = {
                **initial_state,
                "phase": "failed",
                "error": f"Maximum tool-call rounds ({self.config.max_tool_rounds}) exceeded",
            }
        except Exception as e:
            logger.exception(f"{_log}Unhandled error: {e}")
            final_state = {**initial_state, "phase": "failed", "error": str(e) or type(e).__name__}

        completed = final_state.get("phase") == "completed"
        outcome = GenerationOutcome(
            generation_id=generation_id,
            status="completed" if completed else "failed",
            bundles=list(final_state.get("bundles") or []) if completed else [],
            error=None if completed else (final_state.get("error") or "Response failed"),
            response_id=final_state.get("response_id"),
            cursor=final_state.get("cursor"),
            clear_storage=bool(final_state.get("clear_storage")),
        )

        log_state_transition(
            "run_completed" if completed else "run_failed",
            final_state,
            extra={"bundles": len(outcome.bundles), "error": outcome.error},
        )
        timer.log_summary(outcome.status)
        remove_timer(generation_id)

        try:
            await self._persist_outcome(outcome, _log)
        except RecordPersistenceError:
            await safe_emit(emit, error_event("Failed to save generation result"), _log)
            raise

        if outcome.succeeded:
            await safe_emit(emit, completed_event(outcome.response_id, outcome.cursor, outcome.bundles), _log)
        else:
            await safe_emit(emit, error_event(outcome.error, outcome.clear_storage), _log)

        logger.info(
            f"{_log}Run finished | status={outcome.status}, bundles={len(outcome.bundles)}, "
            f"error={outcome.error}"
        )
        return outcome
