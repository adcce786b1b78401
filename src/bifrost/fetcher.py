"""HTTP client for the upstream wiki API.

All network I/O goes through a single FetchClient instance shared across
connectors. The FetchClient receives an httpx.AsyncClient via constructor
injection; the lifespan owns the client lifecycle.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import httpx
import structlog

from bifrost.errors import DecodeError, NetworkError, UpstreamStatusError
from bifrost.models.cache import ResponseEnvelope

if TYPE_CHECKING:
    from bifrost.config import UpstreamSettings

log = structlog.get_logger()


def build_http_client(settings: UpstreamSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_keepalive_connections,
        ),
    )


class FetchClient:
    """Performs the remote GET for a fully-formed URL."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_remote(self, url: str) -> ResponseEnvelope:
        """Fetch ``url`` and capture status, headers and decoded JSON body.

        Raises NetworkError on transport failures, unusable URLs or a closed
        client, UpstreamStatusError on non-2xx responses and DecodeError
        when the body is not JSON. Never writes to the cache; callers decide
        what to do with the result.
        """
        started = time.perf_counter()

        if self._client.is_closed:
            raise NetworkError(f"HTTP client is closed; cannot fetch {url}")

        try:
            response = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NetworkError(f"Network error fetching {url}: {exc}") from exc

        if not response.is_success:
            raise UpstreamStatusError(
                f"HTTP {response.status_code} fetching {url}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise DecodeError(f"Malformed JSON body from {url}: {exc}") from exc

        log.info(
            "fetch_complete",
            url=url,
            status_code=response.status_code,
            content_length=len(response.content),
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return ResponseEnvelope(
            status=response.status_code,
            headers=dict(response.headers),
            body=body,
        )
