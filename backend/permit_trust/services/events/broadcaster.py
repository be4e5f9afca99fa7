"""Publish/subscribe fan-out of events over Redis.

Publishers push each event once per audience channel. Every open stream
holds its own pub/sub handle on one channel, so a slow or dead client
never affects publishers or other clients.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from datetime import UTC, datetime

import structlog
from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from permit_trust.config import settings
from permit_trust.services.auth.identity import Identity
from permit_trust.services.events.channels import channel_for
from permit_trust.services.events.events import BaseEvent, ConnectedEvent, HeartbeatEvent
from permit_trust.services.events.sse import EventStream
from permit_trust.utils.retry import RetryConfig, get_bus_retrying

logger = structlog.get_logger(__name__)

# Quick retries, short waits: publishing runs after the business commit
PUBLISH_RETRY_CONFIG = RetryConfig(max_attempts=3, min_wait=0.2, max_wait=1.0)

# Upper bound on how long a stream waits before re-checking for disconnect
POLL_INTERVAL = 1.0

DisconnectCheck = Callable[[], Awaitable[bool]]


class EventBroadcaster:
    """Publishes events to scope channels and opens per-connection subscriptions.

    Usage:
        broadcaster = EventBroadcaster(redis)
        await broadcaster.publish(ScanRecordedEvent(...))

        subscription = await broadcaster.subscribe("reviewer", identity=identity)
        async for frame in subscription.frames(request.is_disconnected):
            ...
    """

    def __init__(
        self,
        redis: Redis,
        *,
        heartbeat_interval: float | None = None,
        retry_ms: int | None = None,
        retry_config: RetryConfig = PUBLISH_RETRY_CONFIG,
    ):
        self.redis = redis
        self.heartbeat_interval = heartbeat_interval if heartbeat_interval is not None else settings.heartbeat_interval
        self.retry_ms = retry_ms if retry_ms is not None else settings.stream_retry_ms
        self.retry_config = retry_config

    async def publish(self, event: BaseEvent, *, scopes: Sequence[str] | None = None) -> int:
        """Publish ``event`` to its scopes (or the given ``scopes``).

        Retries transient connection errors, then logs and swallows: a
        notification that cannot be delivered must not undo or fail the
        state change it announces.

        Returns:
            Total number of subscribers that received the event (0 on failure).
        """
        channels = [channel_for(scope) for scope in scopes] if scopes is not None else event.get_channels()
        message = event.to_message()
        delivered = 0
        try:
            for channel in channels:
                async for attempt in get_bus_retrying(self.retry_config):
                    with attempt:
                        if attempt.retry_state.attempt_number > 1:
                            logger.warning(
                                "Retrying event publish",
                                channel=channel,
                                attempt=attempt.retry_state.attempt_number,
                            )
                        delivered += int(await self.redis.publish(channel, message))
        except Exception as e:
            # Log and swallow - delivery is best-effort relative to the committed change
            logger.error("Failed to publish event", error=str(e), type=event.type, channels=channels)
            return 0

        logger.info("Published event", type=event.type, channels=channels, receivers=delivered)
        return delivered

    async def subscribe(self, scope: str, *, identity: Identity) -> "Subscription":
        """Open a subscription on ``scope``'s channel for one stream connection.

        Never raises on bus failure: the subscription comes back degraded
        (``live`` is False) and only sends heartbeats.
        """
        subscription = Subscription(
            self.redis,
            scope,
            identity=identity,
            heartbeat_interval=self.heartbeat_interval,
            retry_ms=self.retry_ms,
        )
        await subscription.open()
        return subscription


class Subscription:
    """One stream connection's hold on a scope channel.

    ``close()`` may be reached from the stream's own error path, from
    client disconnect and from server shutdown; unsubscribe and release
    happen exactly once.
    """

    def __init__(
        self,
        redis: Redis,
        scope: str,
        *,
        identity: Identity,
        heartbeat_interval: float,
        retry_ms: int,
    ):
        self.redis = redis
        self.scope = scope
        self.channel = channel_for(scope)
        self.identity = identity
        self.heartbeat_interval = heartbeat_interval
        self.retry_ms = retry_ms
        self._pubsub: PubSub | None = None
        self._closed = False
        self._close_lock = asyncio.Lock()

    @property
    def live(self) -> bool:
        return self._pubsub is not None

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(self.channel)
        except (RedisError, OSError) as e:
            logger.warning(
                "Event bus unavailable, stream degraded to heartbeats only",
                channel=self.channel,
                error=str(e),
            )
            await self._release(pubsub)
            return
        self._pubsub = pubsub
        logger.info("Stream subscribed", channel=self.channel, user_id=self.identity.user_id)

    def _connected_frame(self) -> str:
        event = ConnectedEvent(
            scope=self.scope,
            user_id=self.identity.user_id,
            role=self.identity.role.value,
            live=self.live,
        )
        return EventStream.frame(event.to_message())

    @staticmethod
    def _heartbeat_frame() -> str:
        return EventStream.frame(HeartbeatEvent(timestamp=datetime.now(UTC)).to_message())

    async def _next_message(self, timeout: float) -> str | None:
        if self._pubsub is None:
            await asyncio.sleep(timeout)
            return None
        message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=timeout)
        if message is None or message.get("type") != "message":
            return None
        data = message["data"]
        return data.decode("utf-8", "ignore") if isinstance(data, bytes) else str(data)

    async def frames(self, is_disconnected: DisconnectCheck | None = None) -> AsyncIterator[str]:
        """Yield SSE frames until the client disconnects or the subscription fails.

        Order: reconnect hint, ``connected`` acknowledgment, then every
        message published to the scope interleaved with heartbeats.
        Cleanup runs when the generator finishes, fails or is closed.
        """
        loop = asyncio.get_running_loop()
        try:
            yield EventStream.retry(self.retry_ms)
            yield self._connected_frame()

            next_heartbeat = loop.time() + self.heartbeat_interval
            while not self._closed:
                if is_disconnected is not None and await is_disconnected():
                    logger.debug("Stream client disconnected", channel=self.channel)
                    break

                wait = max(0.0, min(next_heartbeat - loop.time(), POLL_INTERVAL))
                data = await self._next_message(wait)
                if data is not None:
                    yield EventStream.frame(data)

                if loop.time() >= next_heartbeat:
                    yield self._heartbeat_frame()
                    next_heartbeat = loop.time() + self.heartbeat_interval
        except (RedisError, OSError) as e:
            # Close the stream so the client reconnects instead of hanging
            logger.warning("Stream subscription failed, closing", channel=self.channel, error=str(e))
        finally:
            await self.close()

    async def close(self) -> None:
        """Unsubscribe and release the bus handle. Idempotent."""
        async with self._close_lock:
            if self._closed:
                return
            self._closed = True
            pubsub, self._pubsub = self._pubsub, None

        if pubsub is not None:
            try:
                await pubsub.unsubscribe(self.channel)
            except (RedisError, OSError) as e:
                logger.debug("Unsubscribe failed during close", channel=self.channel, error=str(e))
            await self._release(pubsub)
        logger.info("Stream closed", channel=self.channel, user_id=self.identity.user_id)

    @staticmethod
    async def _release(pubsub: PubSub) -> None:
        try:
            await pubsub.aclose()
        except (RedisError, OSError) as e:
            logger.debug("Releasing pub/sub connection failed", error=str(e))
