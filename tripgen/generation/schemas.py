"""
Schemas for the generation workflow.

Defines the state schema for LangGraph and the API request/response models.
"""

from datetime import datetime
from typing import Any, Annotated, Dict, List, Literal, Optional, TypedDict
import operator

from pydantic import BaseModel, ConfigDict, Field

from tripgen.store.base import GenerationStatus


# =============================================================================
# LangGraph State Schema
# =============================================================================

Phase = Literal["call_model", "tools", "extract", "failed", "completed"]


class GenerationState(TypedDict):
    """
    State schema for the generation graph.

    One run alternates model responses and tool execution until the model
    returns a final message, the provider fails, or the round cap is hit.
    """

    # Identity and inputs
    generation_id: str
    prompt_variables: Dict[str, str]

    # Conversation sent back to the model (append-only)
    conversation: Annotated[List[dict], operator.add]

    # Latest model response
    output_items: List[dict]
    response_id: Optional[str]
    cursor: Optional[int]

    # Loop control
    tool_rounds: int
    phase: Phase

    # Set only for a run re-attaching to an existing response
    resume_from: Optional[dict]

    # Outcome
    bundles: Optional[List[Any]]
    error: Optional[str]
    clear_storage: bool

    # Tracking messages (node-level breadcrumbs for logs and tests)
    messages: Annotated[List[dict], operator.add]


# =============================================================================
# API Models
# =============================================================================


class CreateGenerationResponse(BaseModel):
    """Identifier of a newly submitted generation."""

    model_config = ConfigDict(populate_by_name=True)

    generation_id: str = Field(alias="generationId")
    status: GenerationStatus


class GenerationStatusResponse(BaseModel):
    """Current state of a generation, as polled by the client."""

    model_config = ConfigDict(populate_by_name=True)

    generation_id: str = Field(alias="generationId")
    status: GenerationStatus
    summaries: List[str] = Field(default_factory=list, description="Progress summaries so far")
    bundles: Optional[List[Any]] = Field(default=None, description="Bundles once completed")
    error: Optional[str] = Field(default=None, description="User-facing failure message once failed")
    detail: Optional[str] = Field(default=None, description="Provider failure reason once failed")
    created_at: datetime = Field(alias="createdAt")
