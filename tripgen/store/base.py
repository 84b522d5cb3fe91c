"""
Generation record store interface.

A record tracks one generation from submission to its terminal outcome.
Status only moves forward: pending -> processing -> completed | failed.
Once terminal, a record is never overwritten.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


GenerationStatus = Literal["pending", "processing", "completed", "failed"]

TERMINAL_STATUSES = ("completed", "failed")

DEFAULT_TTL = timedelta(hours=24)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Errors
# =============================================================================


class StoreError(Exception):
    """Base class for record store failures."""

    pass


class RecordExistsError(StoreError):
    """Raised when creating a record whose id is already taken."""

    pass


class RecordNotFoundError(StoreError):
    """Raised when a terminal write targets a missing record."""

    pass


class TerminalStateError(StoreError):
    """Raised when a terminal write targets a record that already has an outcome."""

    pass


# =============================================================================
# Record
# =============================================================================


class GenerationRecord(BaseModel):
    """Persisted state of one generation."""

    id: str
    status: GenerationStatus = "pending"
    preferences: Dict[str, Any]
    progress_summaries: List[str] = Field(default_factory=list)
    result: Optional[List[Any]] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def new(
        cls,
        generation_id: str,
        preferences: Dict[str, Any],
        ttl: timedelta = DEFAULT_TTL,
        now: Optional[datetime] = None,
    ) -> "GenerationRecord":
        now = now or utcnow()
        return cls(
            id=generation_id,
            preferences=preferences,
            created_at=now,
            updated_at=now,
            expires_at=now + ttl,
        )


# =============================================================================
# Interface
# =============================================================================


class GenerationStore(ABC):
    """
    Async store for generation records.

    Implementations must make complete/fail atomic with respect to each
    other: of two racing terminal writes, exactly one succeeds.
    """

    @abstractmethod
    async def create(self, generation_id: str, preferences: Dict[str, Any]) -> GenerationRecord:
        """Insert a pending record. Raises RecordExistsError if the id is taken."""

    @abstractmethod
    async def get(self, generation_id: str) -> Optional[GenerationRecord]:
        """Return the record, or None when missing or expired."""

    @abstractmethod
    async def mark_processing(self, generation_id: str) -> None:
        """Move a pending record to processing. No-op for any other state."""

    @abstractmethod
    async def append_summary(self, generation_id: str, text: str) -> None:
        """Append a progress summary. No-op on missing or terminal records."""

    @abstractmethod
    async def complete(self, generation_id: str, result: List[Any]) -> GenerationRecord:
        """
        Record a successful outcome.

        Raises:
            RecordNotFoundError: If the record does not exist
            TerminalStateError: If the record already has an outcome
        """

    @abstractmethod
    async def fail(self, generation_id: str, error: str) -> GenerationRecord:
        """
        Record a failed outcome.

        Raises:
            RecordNotFoundError: If the record does not exist
            TerminalStateError: If the record already has an outcome
        """

    @abstractmethod
    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Delete records past their expiry. Returns the number removed."""

    async def close(self) -> None:
        """Release backend resources."""
        return None
