"""Short-TTL memoization of identity/session validation results."""

import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry:
    result: Any
    timestamp: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int
    oldest_age: float | None
    newest_age: float | None


class ValidationCache:
    """Key-to-result cache with lazy expiry.

    Freshness is checked when an entry is read, so an expired entry is
    never served even if ``sweep()`` has not run yet. Only successful
    results are stored; a failing ``compute_fn`` propagates and leaves the
    cache untouched. Two concurrent misses for the same key may both
    compute; the later write wins.

    The clock is injectable for tests (any monotonic float-seconds source).
    """

    def __init__(
        self,
        ttl: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 10_000,
    ):
        if ttl <= 0:
            raise ValueError("Cache TTL must be positive")
        if max_entries <= 0:
            raise ValueError("Cache size must be positive")
        self.ttl = ttl
        self.clock = clock
        self.max_entries = max_entries
        self._entries: dict[Hashable, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.is_fresh(self.clock())

    async def get_or_compute(
        self,
        key: Hashable,
        compute_fn: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        """Return the fresh cached result for ``key`` or compute and store a new one."""
        now = self.clock()
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(now):
            self._hits += 1
            result: T = entry.result
            return result

        self._misses += 1
        value = await compute_fn()
        self._store(key, value, ttl if ttl is not None else self.ttl)
        return value

    def _store(self, key: Hashable, value: Any, ttl: float) -> None:
        if key not in self._entries and len(self._entries) >= self.max_entries:
            self.sweep()
            if len(self._entries) >= self.max_entries:
                # Still full of fresh entries: drop the oldest (dicts keep insertion order)
                self._entries.pop(next(iter(self._entries)))
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(result=value, timestamp=self.clock(), ttl=ttl)

    def invalidate(self, key: Hashable) -> bool:
        """Drop ``key``. Returns whether an entry was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def sweep(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Swept validation cache", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    def stats(self) -> CacheStats:
        now = self.clock()
        ages = [now - entry.timestamp for entry in self._entries.values()]
        return CacheStats(
            size=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            oldest_age=max(ages) if ages else None,
            newest_age=min(ages) if ages else None,
        )
