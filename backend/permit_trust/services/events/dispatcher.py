"""Fire-and-forget event delivery for business operations."""

import asyncio
from collections.abc import Sequence
from typing import Any

import structlog

from permit_trust.services.events.broadcaster import EventBroadcaster
from permit_trust.services.events.events import BaseEvent
from permit_trust.utils.background_tasks import BackgroundTasks

logger = structlog.get_logger(__name__)


class EventDispatcher:
    """Schedules publishes without making the caller wait for the bus.

    Services call ``dispatch`` only after their transaction has committed,
    so an event never announces a change that was rolled back.
    """

    def __init__(self, broadcaster: EventBroadcaster):
        self.broadcaster = broadcaster
        self._tasks = BackgroundTasks()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, event: BaseEvent, *, scopes: Sequence[str] | None = None) -> asyncio.Task[Any]:
        """Publish ``event`` in the background and return the scheduled task."""
        logger.debug("Dispatching event", type=event.type)
        return self._tasks.run(self.broadcaster.publish(event, scopes=scopes))

    async def drain(self, *, timeout: float = 5.0) -> None:
        """Wait for in-flight publishes at shutdown, cancelling stragglers."""
        await self._tasks.wait(timeout=timeout)
