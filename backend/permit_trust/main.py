"""FastAPI application entry point."""

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from permit_trust.api.v1 import events, health, notifications, permits, verification
from permit_trust.config import settings
from permit_trust.db import dispose_engine
from permit_trust.logging import setup_logging
from permit_trust.services.cache import ValidationCache, run_cache_sweeper
from permit_trust.services.events import EventBroadcaster, EventDispatcher
from permit_trust.services.tokens import TokenCodec
from permit_trust.utils.redis import create_redis_client

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)

# Time allowed for in-flight event publishes at shutdown
DISPATCH_DRAIN_TIMEOUT = 5.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    logger.info("Starting Permit Trust API", debug=settings.debug)

    redis = create_redis_client()
    broadcaster = EventBroadcaster(redis)
    dispatcher = EventDispatcher(broadcaster)
    cache = ValidationCache(settings.validation_cache_ttl, max_entries=settings.validation_cache_max_entries)

    app.state.redis = redis
    app.state.broadcaster = broadcaster
    app.state.dispatcher = dispatcher
    app.state.validation_cache = cache
    app.state.token_codec = TokenCodec.from_settings()

    sweeper = asyncio.create_task(run_cache_sweeper(cache), name="validation-cache-sweeper")
    logger.info("Event bus and validation cache initialized", redis_url=settings.redis_url)

    yield

    # Shutdown
    logger.info("Shutting down Permit Trust API")
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await dispatcher.drain(timeout=DISPATCH_DRAIN_TIMEOUT)
    await redis.aclose()
    await dispose_engine()
    logger.info("Redis and database connections closed")


app = FastAPI(
    title="Permit Trust API",
    description="Document numbers, signed permit tokens, scan audit trail and live dashboard events",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(verification.router, prefix="/api/v1", tags=["verification"])
app.include_router(permits.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1", tags=["notifications"])
app.include_router(events.router, prefix="/api/v1", tags=["events"])
