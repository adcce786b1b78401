"""Stale-while-revalidate connector for the wiki API.

Per-call algorithm:

1. Merge the parameters with the query defaults and encode them, sorted by
   name, onto the upstream base URL. The resulting URL is the cache key.
2. Resolve through the Coalescer, then consult the CacheStore:

   - miss:                 await the fetch, store it, return its body
   - fresh hit:            return the cached body
   - stale, refreshing:    return the cached body
   - stale, not refreshing: mark the key refreshing, spawn a background
                            refresh, return the cached body

The stale branch marks the key before the resolving coroutine reaches its
first ``await``. Two tasks on the same event loop therefore can never both
decide to refresh the same key.
"""

from __future__ import annotations

import asyncio
import copy
import time
from datetime import timedelta
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import structlog

from bifrost.coalescer import Coalescer
from bifrost.config import DEFAULT_BASE_URL
from bifrost.errors import BifrostError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bifrost.cache import CacheStore, RefreshTracker
    from bifrost.protocols import FetchClientProtocol
    from bifrost.state import AppState

QUERY_DEFAULTS: dict[str, str] = {
    "action": "ask",
    "format": "json",
}


def build_cache_key(parameters: Mapping[str, str], base_url: str = DEFAULT_BASE_URL) -> str:
    """Return the canonical upstream URL for a parameter set.

    Caller values override the defaults. Parameters are sorted by name so
    that logically equal sets always map to the same key.
    """
    merged = {**QUERY_DEFAULTS, **parameters}
    return f"{base_url}?{urlencode(sorted(merged.items()))}"


class Connector:
    """Serves upstream responses from the shared cache, refreshing stale keys."""

    def __init__(
        self,
        store: CacheStore,
        tracker: RefreshTracker,
        fetch_client: FetchClientProtocol,
        *,
        base_url: str = DEFAULT_BASE_URL,
        refresh_timeout: float | None = None,
        failure_cooldown: timedelta = timedelta(0),
        refresh_tasks: set[asyncio.Task[None]] | None = None,
    ) -> None:
        self._store = store
        self._tracker = tracker
        self._fetch_client = fetch_client
        self._base_url = base_url
        self._refresh_timeout = refresh_timeout
        self._failure_cooldown = failure_cooldown
        self._coalescer: Coalescer[Any] = Coalescer()
        # Strong references; the event loop only keeps weak ones to tasks.
        self._refresh_tasks: set[asyncio.Task[None]] = (
            refresh_tasks if refresh_tasks is not None else set()
        )
        self._log = structlog.get_logger().bind(component="connector")

    @classmethod
    def from_state(cls, state: AppState) -> Connector:
        """Build a connector over the process-wide cache held by ``state``."""
        return cls(
            state.store,
            state.tracker,
            state.fetch_client,
            base_url=state.settings.upstream.base_url,
            refresh_timeout=state.settings.cache.refresh_timeout_seconds,
            failure_cooldown=timedelta(
                seconds=state.settings.cache.refresh_failure_cooldown_seconds
            ),
            refresh_tasks=state.refresh_tasks,
        )

    def canonical_key(self, parameters: Mapping[str, str]) -> str:
        return build_cache_key(parameters, self._base_url)

    async def get(self, parameters: Mapping[str, str]) -> Any:
        """Return the decoded JSON body for ``parameters``.

        Only a cache miss waits on the network. Fetch errors on that path
        propagate as FetchError subclasses and leave the cache untouched.
        Each caller receives its own copy of the body, so mutating it never
        changes the cached envelope or another caller's result.
        """
        key = self.canonical_key(parameters)
        self._log.debug("get_called", key=key)
        try:
            body = await self._coalescer.load(key, self._resolve)
        except BifrostError as exc:
            self._log.debug("get_failed", key=key, code=exc.code, message=exc.message)
            raise
        return copy.deepcopy(body)

    async def wait_for_refreshes(self) -> None:
        """Wait until every background refresh spawned so far has finished.

        Used at shutdown and in tests; request paths never call this.
        """
        while self._refresh_tasks:
            await asyncio.gather(*self._refresh_tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _resolve(self, key: str) -> Any:
        cached = self._store.get(key)

        if cached is None:
            self._log.info("cache_miss_fetching", key=key)
            envelope = await self._fetch_client.fetch_remote(key)
            self._store.put(key, envelope)
            return envelope.body

        if not cached.stale:
            self._log.debug("cache_hit", key=key, stale=False)
            return cached.value.body

        self._log.info("cache_hit", key=key, stale=True)

        if self._tracker.is_refreshing(key):
            self._log.debug("stale_refresh_skipped", key=key, reason="already_refreshing")
        elif self._tracker.in_cooldown(key, self._failure_cooldown):
            self._log.debug("stale_refresh_skipped", key=key, reason="failure_cooldown")
        else:
            # Must stay free of awaits: marking and spawning are one step.
            self._tracker.set_refreshing(key, True)
            task = asyncio.create_task(self._background_refresh(key))
            self._refresh_tasks.add(task)
            task.add_done_callback(self._refresh_tasks.discard)

        return cached.value.body

    async def _background_refresh(self, key: str) -> None:
        """Re-fetch a stale key. Fire-and-forget: all failures are logged."""
        log = self._log.bind(key=key)
        log.info("stale_refresh_started")
        started = time.perf_counter()
        try:
            envelope = await asyncio.wait_for(
                self._fetch_client.fetch_remote(key),
                timeout=self._refresh_timeout,
            )
            self._store.put(key, envelope)
            self._tracker.clear_failure(key)
            log.info(
                "stale_refresh_complete",
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        except TimeoutError:
            self._tracker.record_failure(key)
            log.warning("stale_refresh_timeout", timeout=self._refresh_timeout)
        except Exception:
            self._tracker.record_failure(key)
            log.warning("stale_refresh_failed", exc_info=True)
        finally:
            self._tracker.set_refreshing(key, False)
