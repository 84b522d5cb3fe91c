"""Record store selection from settings."""

import logging
from datetime import timedelta
from typing import Optional

from tripgen.config import Settings, get_settings
from tripgen.store.base import GenerationStore, StoreError
from tripgen.store.memory import InMemoryGenerationStore
from tripgen.store.postgres import PostgresGenerationStore
from tripgen.store.redis_store import RedisGenerationStore


logger = logging.getLogger(__name__)


async def build_store(settings: Optional[Settings] = None) -> GenerationStore:
    """
    Create the record store named by GENERATION_STORE.

    Raises:
        StoreError: For an unknown backend or a postgres backend without DATABASE_URL
    """
    settings = settings or get_settings()
    ttl = timedelta(hours=settings.record_ttl_hours)
    backend = settings.generation_store.strip().lower()

    if backend == "memory":
        store: GenerationStore = InMemoryGenerationStore(ttl=ttl)
    elif backend == "redis":
        store = RedisGenerationStore.from_url(settings.redis_url, ttl=ttl)
    elif backend == "postgres":
        if not settings.database_url:
            raise StoreError("DATABASE_URL is required for the postgres generation store")
        store = await PostgresGenerationStore.connect(settings.database_url, ttl=ttl)
    else:
        raise StoreError(f"Unknown generation store backend: {settings.generation_store}")

    logger.info(f"Generation store ready | backend={backend}, ttl={settings.record_ttl_hours}h")
    return store
