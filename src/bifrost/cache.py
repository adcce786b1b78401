"""In-memory response cache and refresh bookkeeping.

Both classes are plain synchronous containers. They are shared by every
Connector in the process and mutated only from the event loop thread, so
no locking is needed: a read-decide-mark sequence that contains no ``await``
cannot be interleaved with another task.

Entries are never evicted. Staleness only marks an entry for refresh; the
old value keeps being served until a refresh replaces it.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from bifrost.models.cache import CacheEntry, CacheLookup

if TYPE_CHECKING:
    from collections.abc import Callable

    from bifrost.models.cache import ResponseEnvelope

log = structlog.get_logger()

DEFAULT_TTL = timedelta(minutes=30)


def utcnow() -> datetime:
    return datetime.now(UTC)


class CacheStore:
    """Key → ResponseEnvelope map with TTL-based staleness."""

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get(self, key: str) -> CacheLookup | None:
        """Return the cached envelope and its staleness, or ``None`` if unseen."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        stale = (self._clock() - entry.inserted_at) > self._ttl
        return CacheLookup(value=entry.value, inserted_at=entry.inserted_at, stale=stale)

    def put(self, key: str, value: ResponseEnvelope) -> None:
        """Insert or overwrite an entry, stamped with the current time."""
        log.debug("cache_put", key=key, status=value.status)
        self._entries[key] = CacheEntry(value=value, inserted_at=self._clock())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class RefreshTracker:
    """Set of keys with an outstanding background refresh.

    Also remembers when a key's last refresh failed, so the Connector can
    optionally hold off retrying a failing upstream for a cooldown window.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._refreshing: set[str] = set()
        self._failed_at: dict[str, datetime] = {}

    def is_refreshing(self, key: str) -> bool:
        return key in self._refreshing

    def set_refreshing(self, key: str, refreshing: bool) -> None:
        """Add or remove the refresh marker for ``key``. Idempotent."""
        if refreshing:
            self._refreshing.add(key)
        else:
            self._refreshing.discard(key)

    def record_failure(self, key: str) -> None:
        self._failed_at[key] = self._clock()

    def clear_failure(self, key: str) -> None:
        self._failed_at.pop(key, None)

    def in_cooldown(self, key: str, cooldown: timedelta) -> bool:
        """True if the last refresh of ``key`` failed less than ``cooldown`` ago."""
        if cooldown <= timedelta(0):
            return False
        failed_at = self._failed_at.get(key)
        if failed_at is None:
            return False
        return (self._clock() - failed_at) < cooldown

    def __len__(self) -> int:
        return len(self._refreshing)
