"""Shared async Redis client factory."""

from redis.asyncio import Redis

from permit_trust.config import settings


def create_redis_client(url: str | None = None) -> Redis:
    """Create the async Redis client used for the pub/sub bus.

    Created once in the application lifespan and closed on shutdown.
    """
    return Redis.from_url(url or settings.redis_url, decode_responses=True)
