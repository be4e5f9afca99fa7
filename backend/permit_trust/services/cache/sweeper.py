"""Periodic active cleanup of the validation cache."""

import asyncio

import structlog

from permit_trust.services.cache.validation_cache import ValidationCache

logger = structlog.get_logger(__name__)


async def run_cache_sweeper(cache: ValidationCache, *, interval: float | None = None) -> None:
    """Sweep ``cache`` every ``interval`` seconds (defaults to its TTL) until cancelled."""
    period = interval if interval is not None else cache.ttl
    logger.info("Validation cache sweeper started", interval=period)
    while True:
        await asyncio.sleep(period)
        cache.sweep()
