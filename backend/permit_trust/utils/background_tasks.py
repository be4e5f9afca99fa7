"""Background task utilities for async fire-and-forget operations."""

import asyncio
from collections import defaultdict
from collections.abc import Awaitable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class BackgroundTasks:
    """Tracks fire-and-forget asyncio tasks for the lifetime of the application.

    Usage:
        bg = BackgroundTasks()
        bg.run(some_coroutine())
        ...
        await bg.wait(timeout=5)  # At shutdown

    Tasks are kept referenced until they finish so they cannot be garbage
    collected mid-flight. Failures are logged when the task completes and
    never propagate to the code that scheduled them.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._counters: dict[str, int] = defaultdict(int)

    def __len__(self) -> int:
        return len(self._tasks)

    def _task_key(self, coro: Awaitable[Any]) -> str:
        """Generate a human-readable key for the task."""
        # Prefer __qualname__ for methods
        name = getattr(coro, "__qualname__", None)
        if name:
            return str(name)

        # Fall back to code object name for coroutines
        code = getattr(coro, "cr_code", None)
        if code:
            return str(code.co_name)

        return "task"

    def run(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        """Schedule a coroutine as a background task and return immediately."""
        key = self._task_key(coro)
        self._counters[key] += 1
        name = f"bg:{key}:{self._counters[key]}"

        task: asyncio.Task[Any] = asyncio.create_task(coro, name=name)  # type: ignore[arg-type]
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Background task failed",
                task_name=task.get_name(),
                error=str(exc),
                exc_info=exc,
            )

    async def wait(self, *, timeout: float) -> None:
        """Wait for all pending background tasks to complete with timeout.

        If timeout is exceeded, remaining tasks are cancelled.
        Exceptions from tasks are logged but not raised.
        """
        if not self._tasks:
            return

        pending = list(self._tasks)
        try:
            await asyncio.wait_for(
                asyncio.gather(*pending, return_exceptions=True),
                timeout=timeout,
            )
        except TimeoutError:
            logger.warning(
                "Background tasks timed out, cancelling",
                timeout=timeout,
                pending=sum(1 for t in pending if not t.done()),
            )
            # Cancel remaining tasks
            for task in pending:
                if not task.done():
                    task.cancel()
            # Wait for cancellation to complete
            await asyncio.gather(*pending, return_exceptions=True)
