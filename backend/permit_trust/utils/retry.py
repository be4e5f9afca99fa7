"""Shared retry utilities using tenacity."""

from dataclasses import dataclass

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)


@dataclass
class RetryConfig:
    """Configuration for retries with exponential backoff."""

    max_attempts: int = 3
    min_wait: float = 0.2
    max_wait: float = 1.0
    multiplier: float = 0.2


def get_bus_retrying(config: RetryConfig | None = None) -> AsyncRetrying:
    """Get configured AsyncRetrying for transient Redis connection errors.

    Usage:
        async for attempt in get_bus_retrying():
            with attempt:
                await redis.publish(channel, payload)

    Args:
        config: Optional retry configuration. Uses defaults if not provided.

    Returns:
        AsyncRetrying instance that re-raises the last error once attempts run out.
    """
    cfg = config or RetryConfig()
    return AsyncRetrying(
        retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError, OSError)),
        stop=stop_after_attempt(cfg.max_attempts),
        wait=wait_exponential(
            multiplier=cfg.multiplier,
            min=cfg.min_wait,
            max=cfg.max_wait,
        ),
        reraise=True,
    )
