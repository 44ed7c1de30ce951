"""In-memory analysis cache with lazy TTL expiry.

The cache is an explicitly constructed service owned by the server lifespan
(or by a test); there is no module-level instance. Entries are immutable
and replaced wholesale on every put. An ``asyncio.Lock`` serialises access
to the backing dict so a reader never observes a half-applied update.

Expired entries behave as absent on ``get``. ``cleanup_expired`` removes them
eagerly and is driven by the background scheduler.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from pagescope.models.cache import CacheEntry
from pagescope.models.analysis import PageAnalysis

log = structlog.get_logger()

DEFAULT_TTL = timedelta(minutes=10)
DEFAULT_MAX_ENTRIES = 256


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AnalysisCache:
    """TTL cache mapping normalized URLs to ``PageAnalysis`` results."""

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> PageAnalysis | None:
        """Return the cached analysis, or ``None`` on miss or expiry."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock(), self._ttl):
                del self._entries[key]
                log.debug("cache_entry_expired", key=key)
                return None
            return entry.payload

    async def put(self, key: str, value: PageAnalysis) -> None:
        """Store *value* under *key*, replacing any previous entry."""
        entry = CacheEntry(key=key, created_at=self._clock(), payload=value)
        async with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self._max_entries:
                # dicts keep insertion order and puts re-insert, so the
                # first key is the oldest entry
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                log.debug("cache_entry_evicted", key=oldest)
            self._entries[key] = entry

    async def cleanup_expired(self) -> int:
        """Delete every expired entry. Returns the number removed."""
        async with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now, self._ttl)]
            for key in expired:
                del self._entries[key]
        log.info("cache_cleanup_complete", deleted=len(expired), remaining=len(self._entries))
        return len(expired)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
