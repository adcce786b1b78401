"""Process wiring.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the ``lifespan`` async context manager
- Drain outstanding refreshes, then close the shared HTTP client
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from bifrost import __version__
from bifrost.cache import CacheStore, RefreshTracker
from bifrost.config import Settings
from bifrost.connector import Connector
from bifrost.fetcher import FetchClient, build_http_client
from bifrost.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

log = structlog.get_logger()


def setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr, stdout carries query results in the CLI
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the process lifetime."""
    settings = settings or Settings()
    setup_logging(settings)

    log.info("bifrost_starting", version=__version__, upstream=settings.upstream.base_url)

    http_client = build_http_client(settings.upstream)
    state = AppState(
        settings=settings,
        store=CacheStore(ttl=timedelta(minutes=settings.cache.ttl_minutes)),
        tracker=RefreshTracker(),
        fetch_client=FetchClient(http_client),
        http_client=http_client,
    )

    try:
        yield state
    finally:
        await drain_refreshes(state)
        await http_client.aclose()
        log.info("bifrost_stopping", cached_keys=len(state.store))


async def drain_refreshes(state: AppState) -> None:
    """Wait for every outstanding background refresh. Called at shutdown."""
    while state.refresh_tasks:
        await asyncio.gather(*state.refresh_tasks, return_exceptions=True)


async def run_query(state: AppState, parameters: dict[str, str]) -> object:
    """Run one query through a fresh connector over the shared cache.

    A stale hit returns at once; the refresh it spawns is tracked on
    ``state`` and drained by ``lifespan`` teardown.
    """
    return await Connector.from_state(state).get(parameters)
