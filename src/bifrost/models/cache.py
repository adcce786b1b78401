from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ResponseEnvelope(BaseModel):
    """Full captured upstream response, not just the decoded body."""

    status: int
    headers: dict[str, str] = {}
    body: Any  # Decoded JSON payload


class CacheEntry(BaseModel):
    """Stored value for one cache key. Overwritten in place, never deleted."""

    value: ResponseEnvelope
    inserted_at: datetime


class CacheLookup(BaseModel):
    """Result of a CacheStore read."""

    value: ResponseEnvelope
    inserted_at: datetime
    stale: bool = False
