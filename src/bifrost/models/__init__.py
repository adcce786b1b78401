from __future__ import annotations

from bifrost.models.cache import CacheEntry, CacheLookup, ResponseEnvelope

__all__ = [
    "ResponseEnvelope",
    "CacheEntry",
    "CacheLookup",
]
