"""
Redis-backed record store.

Layout per generation (all keys share the record's TTL):
    tripgen:generation:{id}             record JSON (without summaries)
    tripgen:generation:{id}:summaries   list of progress summaries
    tripgen:generation:{id}:outcome     terminal status, claimed with SET NX

Expiry is delegated to Redis, so sweeping is a no-op.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from redis.asyncio import Redis

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

KEY_PREFIX = "tripgen:generation"


def _key(generation_id: str, *parts: str) -> str:
    return ":".join([KEY_PREFIX, generation_id, *parts])


class RedisGenerationStore(GenerationStore):
    """
    Record store on a redis.asyncio client.

    Terminal writes first claim the outcome key with SET NX; of two racing
    writers only the one that claims it updates the record. A claim whose
    record write fails is released again.
    """

    def __init__(self, redis: Redis, ttl: timedelta = DEFAULT_TTL):
        self._redis = redis
        self._ttl = ttl
        self._ttl_seconds = int(ttl.total_seconds())

    @classmethod
    def from_url(cls, url: str, ttl: timedelta = DEFAULT_TTL) -> "RedisGenerationStore":
        return cls(Redis.from_url(url, decode_responses=True), ttl=ttl)

    async def _load(self, generation_id: str) -> Optional[GenerationRecord]:
        raw = await self._redis.get(_key(generation_id))
        if raw is None:
            return None
        return GenerationRecord.model_validate_json(raw)

    async def _save(self, record: GenerationRecord) -> None:
        payload = record.model_dump_json(exclude={"progress_summaries"})
        await self._redis.set(_key(record.id), payload, keepttl=True)

    async def create(self, generation_id: str, preferences: Dict[str, Any]) -> GenerationRecord:
        record = GenerationRecord.new(generation_id, preferences, ttl=self._ttl)
        payload = record.model_dump_json(exclude={"progress_summaries"})
        created = await self._redis.set(_key(generation_id), payload, nx=True, ex=self._ttl_seconds)
        if not created:
            raise RecordExistsError(f"Generation {generation_id} already exists")
        return record

    async def get(self, generation_id: str) -> Optional[GenerationRecord]:
        record = await self._load(generation_id)
        if record is None:
            return None
        record.progress_summaries = list(await self._redis.lrange(_key(generation_id, "summaries"), 0, -1))
        return record

    async def mark_processing(self, generation_id: str) -> None:
        record = await self._load(generation_id)
        if record is None or record.status != "pending":
            return
        record.status = "processing"
        record.updated_at = utcnow()
        await self._save(record)

    async def append_summary(self, generation_id: str, text: str) -> None:
        try:
            record = await self._load(generation_id)
            if record is None or record.is_terminal:
                return
            summaries_key = _key(generation_id, "summaries")
            await self._redis.rpush(summaries_key, text)
            await self._redis.expire(summaries_key, self._ttl_seconds)
        except Exception as e:
            logger.warning(f"[store=redis] Failed to append summary for {generation_id}: {e}")

    async def _finish(self, generation_id: str, **changes: Any) -> GenerationRecord:
        record = await self._load(generation_id)
        if record is None:
            raise RecordNotFoundError(f"Generation {generation_id} not found")
        if record.is_terminal:
            raise TerminalStateError(f"Generation {generation_id} is already {record.status}")

        claimed = await self._redis.set(
            _key(generation_id, "outcome"), changes["status"], nx=True, ex=self._ttl_seconds
        )
        if not claimed:
            raise TerminalStateError(f"Generation {generation_id} already has an outcome")

        for key, value in changes.items():
            setattr(record, key, value)
        record.updated_at = utcnow()
        try:
            await self._save(record)
        except Exception:
            # Release the claim so a retried write can land
            await self._redis.delete(_key(generation_id, "outcome"))
            raise
        logger.info(f"[store=redis] Generation {generation_id} -> {record.status}")
        return await self.get(generation_id) or record

    async def complete(self, generation_id: str, result: List[Any]) -> GenerationRecord:
        return await self._finish(generation_id, status="completed", result=result)

    async def fail(self, generation_id: str, error: str) -> GenerationRecord:
        return await self._finish(generation_id, status="failed", error=error)

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        return 0

    async def close(self) -> None:
        await self._redis.aclose()
