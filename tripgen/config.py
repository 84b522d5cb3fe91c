"""
Service settings.

Reads environment variables (optionally from a .env file) once and exposes
them through a cached Settings instance.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """
    Environment-driven configuration for the generation service.

    Attributes:
        openai_api_key: Key for the hosted model provider
        openai_prompt_id: Identifier of the stored prompt template
        opengraph_api_key: Key for the image lookup API
        ticketmaster_api_key: Key for the ticket search API
        generation_store: Record store backend ("memory", "redis" or "postgres")
        redis_url: Connection URL for the redis backend
        database_url: DSN for the postgres backend
        record_ttl_hours: Horizon after which generation records may be reclaimed
        generation_stream: Whether model calls use streaming mode
        generation_background: Whether model calls run in provider background mode
        log_level: Root log level
        log_json: Emit JSON log lines instead of the pipe format
        log_file: Optional file receiving a copy of the log output
    """

    openai_api_key: Optional[str] = field(default_factory=lambda: os.environ.get("OPENAI_API_KEY"))
    openai_prompt_id: str = field(
        default_factory=lambda: os.environ.get(
            "OPENAI_PROMPT_ID", "pmpt_68b758d74f60819593d91d254518d4fc020955df32c90659"
        )
    )
    opengraph_api_key: Optional[str] = field(default_factory=lambda: os.environ.get("OPENGRAPH_API_KEY"))
    ticketmaster_api_key: Optional[str] = field(
        default_factory=lambda: os.environ.get("TICKETMASTER_API_KEY")
    )
    generation_store: str = field(default_factory=lambda: os.environ.get("GENERATION_STORE", "memory"))
    redis_url: str = field(default_factory=lambda: os.environ.get("REDIS_URL", "redis://localhost:6379/0"))
    database_url: Optional[str] = field(default_factory=lambda: os.environ.get("DATABASE_URL"))
    record_ttl_hours: int = field(default_factory=lambda: int(os.environ.get("RECORD_TTL_HOURS", "24")))
    generation_stream: bool = field(default_factory=lambda: _env_flag("GENERATION_STREAM", True))
    generation_background: bool = field(default_factory=lambda: _env_flag("GENERATION_BACKGROUND", True))
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))
    log_json: bool = field(default_factory=lambda: _env_flag("LOG_JSON", False))
    log_file: Optional[str] = field(default_factory=lambda: os.environ.get("LOG_FILE"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance to avoid repeated environment reads."""
    return Settings()
