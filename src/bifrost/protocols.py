"""Protocol interfaces for swappable components.

The Connector and AppState reference these protocols, not the concrete
implementations, so tests can drive the Connector with an in-memory fake
upstream instead of a mocked HTTP transport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from bifrost.models.cache import ResponseEnvelope


class FetchClientProtocol(Protocol):
    """Interface for the upstream fetcher."""

    async def fetch_remote(self, url: str) -> ResponseEnvelope: ...
