"""Request coalescing for identical cache keys.

When several tasks ask for the same key before the first lookup has
resolved, only one resolution runs and every caller shares its outcome,
result or exception alike. Once it settles the key is forgotten, so the
next caller starts a fresh lookup and sees the current cache state.

Distinct keys are never batched together; each resolves independently.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Generic, TypeVar

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

log = structlog.get_logger()


class Coalescer(Generic[T]):
    """Deduplicates concurrent resolutions of the same key.

    Registration happens synchronously inside ``load`` before the caller
    awaits anything, so all callers scheduled in the same loop iteration
    see the pending task. No lock is needed on a single event loop.
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[T]] = {}

    def pending(self, key: str) -> bool:
        return key in self._pending

    async def load(self, key: str, resolve: Callable[[str], Awaitable[T]]) -> T:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(resolve(key))
            self._pending[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            log.debug("coalesced_request", key=key)

        # Shield so one cancelled waiter doesn't cancel the others' shared resolution
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[T]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        # Mark the exception retrieved even if every waiter was cancelled
        if not task.cancelled():
            task.exception()
