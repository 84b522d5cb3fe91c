"""Generation record stores."""

from tripgen.store.base import (
    GenerationRecord,
    GenerationStatus,
    GenerationStore,
    RecordExistsError,
    RecordNotFoundError,
    StoreError,
    TerminalStateError,
)
from tripgen.store.factory import build_store
from tripgen.store.memory import InMemoryGenerationStore
from tripgen.store.postgres import PostgresGenerationStore
from tripgen.store.redis_store import RedisGenerationStore

__all__ = [
    "GenerationRecord",
    "GenerationStatus",
    "GenerationStore",
    "RecordExistsError",
    "RecordNotFoundError",
    "StoreError",
    "TerminalStateError",
    "build_store",
    "InMemoryGenerationStore",
    "PostgresGenerationStore",
    "RedisGenerationStore",
]
