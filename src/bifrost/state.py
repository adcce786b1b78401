"""Application state container.

AppState is created once at process start (inside the ``lifespan`` async
context manager) and shared by reference with every Connector. It replaces
a module-level cache singleton: whoever owns the lifespan owns the cache.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import asyncio

    import httpx

    from bifrost.cache import CacheStore, RefreshTracker
    from bifrost.config import Settings
    from bifrost.protocols import FetchClientProtocol


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    store: CacheStore
    tracker: RefreshTracker
    fetch_client: FetchClientProtocol
    http_client: httpx.AsyncClient | None = None
    # Background refreshes spawned by every connector; drained at shutdown
    refresh_tasks: set[asyncio.Task[None]] = field(default_factory=set)
