"""
FastAPI application entry point.

Assembles the FastAPI app with the generation router.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tripgen.config import get_settings
from tripgen.generation.generation_api import get_store, router as generation_router, shutdown_resources
from tripgen.shared.logging.config import configure_logging


# ============================================================================
# Logging configuration (single source of truth for the service)
# ============================================================================
_settings = get_settings()
configure_logging(
    level=_settings.log_level.upper(),
    json_output=_settings.log_json,
    log_file=_settings.log_file,
)

# Quiet noisy third-party loggers
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("openai").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# Interval between sweeps of expired generation records
SWEEP_INTERVAL_SECONDS = 3600


async def _sweep_expired_records() -> None:
    while True:
        await asyncio.sleep(SWEEP_INTERVAL_SECONDS)
        try:
            store = await get_store()
            await store.sweep_expired()
        except Exception as e:
            logger.warning(f"Expired record sweep failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = asyncio.create_task(_sweep_expired_records())
    try:
        yield
    finally:
        sweeper.cancel()
        await shutdown_resources()


# Create FastAPI app
app = FastAPI(
    title="Tripgen",
    description="Event-driven trip bundle generation built with LangGraph",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(generation_router)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Tripgen",
        "version": "0.1.0",
        "endpoints": {
            "generations": "/api/generations",
            "stream": "/api/generate",
            "health": "/api/health",
        },
    }


@app.get("/health")
async def health():
    """Global health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
