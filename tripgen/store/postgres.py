"""
PostgreSQL-backed record store (asyncpg).

Terminal writes are a single conditional UPDATE ... RETURNING, so of two
racing writers exactly one matches the non-terminal row.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import asyncpg

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

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS generations (
    id                  TEXT PRIMARY KEY,
    status              TEXT NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'processing', 'completed', 'failed')),
    preferences         JSONB NOT NULL,
    progress_summaries  JSONB NOT NULL DEFAULT '[]'::jsonb,
    bundles             JSONB,
    error               TEXT,
    created_at          TIMESTAMPTZ NOT NULL,
    updated_at          TIMESTAMPTZ NOT NULL,
    expires_at          TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS generations_expires_at_idx ON generations (expires_at);
"""

_COLUMNS = "id, status, preferences, progress_summaries, bundles, error, created_at, updated_at, expires_at"


async def _init_connection(conn: asyncpg.Connection) -> None:
    # Encode/decode json & jsonb as Python objects automatically
    await conn.set_type_codec("json", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")
    await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


def _record_from_row(row: Any) -> GenerationRecord:
    return GenerationRecord(
        id=row["id"],
        status=row["status"],
        preferences=row["preferences"],
        progress_summaries=row["progress_summaries"] or [],
        result=row["bundles"],
        error=row["error"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        expires_at=row["expires_at"],
    )


class PostgresGenerationStore(GenerationStore):
    """Record store on an asyncpg connection pool."""

    def __init__(self, pool: Any, ttl: timedelta = DEFAULT_TTL):
        self._pool = pool
        self._ttl = ttl

    @classmethod
    async def connect(cls, dsn: str, ttl: timedelta = DEFAULT_TTL) -> "PostgresGenerationStore":
        """Create a pool and make sure the schema exists."""
        pool = await asyncpg.create_pool(dsn=dsn, init=_init_connection)
        store = cls(pool, ttl=ttl)
        await store.init_schema()
        return store

    async def init_schema(self) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)

    async def create(self, generation_id: str, preferences: Dict[str, Any]) -> GenerationRecord:
        record = GenerationRecord.new(generation_id, preferences, ttl=self._ttl)
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO generations (id, status, preferences, created_at, updated_at, expires_at)
                VALUES ($1, 'pending', $2, $3, $4, $5)
                ON CONFLICT (id) DO NOTHING
                RETURNING {_COLUMNS}
                """,
                generation_id,
                preferences,
                record.created_at,
                record.updated_at,
                record.expires_at,
            )
        if row is None:
            raise RecordExistsError(f"Generation {generation_id} already exists")
        return _record_from_row(row)

    async def get(self, generation_id: str) -> Optional[GenerationRecord]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM generations WHERE id = $1 AND expires_at > $2",
                generation_id,
                utcnow(),
            )
        return _record_from_row(row) if row is not None else None

    async def mark_processing(self, generation_id: str) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                "UPDATE generations SET status = 'processing', updated_at = $2 "
                "WHERE id = $1 AND status = 'pending'",
                generation_id,
                utcnow(),
            )

    async def append_summary(self, generation_id: str, text: str) -> None:
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(
                    "UPDATE generations "
                    "SET progress_summaries = progress_summaries || jsonb_build_array($2::text), updated_at = $3 "
                    "WHERE id = $1 AND status NOT IN ('completed', 'failed')",
                    generation_id,
                    text,
                    utcnow(),
                )
        except Exception as e:
            logger.warning(f"[store=postgres] Failed to append summary for {generation_id}: {e}")

    async def _finish(
        self, generation_id: str, status: str, bundles: Optional[List[Any]], error: Optional[str]
    ) -> GenerationRecord:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE generations
                SET status = $2, bundles = $3, error = $4, updated_at = $5
                WHERE id = $1 AND status NOT IN ('completed', 'failed')
                RETURNING {_COLUMNS}
                """,
                generation_id,
                status,
                bundles,
                error,
                utcnow(),
            )
            if row is None:
                current = await conn.fetchval("SELECT status FROM generations WHERE id = $1", generation_id)
                if current is None:
                    raise RecordNotFoundError(f"Generation {generation_id} not found")
                raise TerminalStateError(f"Generation {generation_id} is already {current}")
        logger.info(f"[store=postgres] Generation {generation_id} -> {status}")
        return _record_from_row(row)

    async def complete(self, generation_id: str, result: List[Any]) -> GenerationRecord:
        return await self._finish(generation_id, "completed", result, None)

    async def fail(self, generation_id: str, error: str) -> GenerationRecord:
        return await self._finish(generation_id, "failed", None, error)

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        async with self._pool.acquire() as conn:
            status = await conn.execute("DELETE FROM generations WHERE expires_at <= $1", now or utcnow())
        # asyncpg returns the command tag, e.g. "DELETE 3"
        removed = int(status.split()[-1]) if status else 0
        if removed:
            logger.info(f"[store=postgres] Swept {removed} expired generation(s)")
        return removed

    async def close(self) -> None:
        await self._pool.close()
