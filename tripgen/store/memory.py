"""In-process record store for development and tests."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from tripgen.store.base import (
    DEFAULT_TTL,
    GenerationRecord,
    GenerationStore,
    RecordExistsError,
    RecordNotFoundError,
    TerminalStateError,
    utcnow,
)


logger = logging.getLogger(__name__)


class InMemoryGenerationStore(GenerationStore):
    """
    Dict-backed store guarded by an asyncio.Lock.

    Records live only as long as the process.
    """

    def __init__(self, ttl: timedelta = DEFAULT_TTL):
        self._ttl = ttl
        self._records: Dict[str, GenerationRecord] = {}
        self._lock = asyncio.Lock()

    async def create(self, generation_id: str, preferences: Dict[str, Any]) -> GenerationRecord:
        async with self._lock:
            if generation_id in self._records:
                raise RecordExistsError(f"Generation {generation_id} already exists")
            record = GenerationRecord.new(generation_id, preferences, ttl=self._ttl)
            self._records[generation_id] = record
            return record.model_copy(deep=True)

    async def get(self, generation_id: str) -> Optional[GenerationRecord]:
        record = self._records.get(generation_id)
        if record is None or record.expires_at <= utcnow():
            return None
        return record.model_copy(deep=True)

    async def mark_processing(self, generation_id: str) -> None:
        async with self._lock:
            record = self._records.get(generation_id)
            if record is not None and record.status == "pending":
                record.status = "processing"
                record.updated_at = utcnow()

    async def append_summary(self, generation_id: str, text: str) -> None:
        async with self._lock:
            record = self._records.get(generation_id)
            if record is None or record.is_terminal:
                return
            record.progress_summaries.append(text)
            record.updated_at = utcnow()

    async def _finish(self, generation_id: str, **changes: Any) -> GenerationRecord:
        async with self._lock:
            record = self._records.get(generation_id)
            if record is None:
                raise RecordNotFoundError(f"Generation {generation_id} not found")
            if record.is_terminal:
                raise TerminalStateError(
                    f"Generation {generation_id} is already {record.status}"
                )
            for key, value in changes.items():
                setattr(record, key, value)
            record.updated_at = utcnow()
            return record.model_copy(deep=True)

    async def complete(self, generation_id: str, result: List[Any]) -> GenerationRecord:
        return await self._finish(generation_id, status="completed", result=result)

    async def fail(self, generation_id: str, error: str) -> GenerationRecord:
        return await self._finish(generation_id, status="failed", error=error)

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        async with self._lock:
            expired = [gid for gid, record in self._records.items() if record.expires_at <= now]
            for gid in expired:
                del self._records[gid]
        if expired:
            logger.info(f"[store=memory] Swept {len(expired)} expired generation(s)")
        return len(expired)
