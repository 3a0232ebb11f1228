"""Response caching with targeted invalidation."""
from __future__ import annotations

from .cache import CachedResponse, MemoryResponseCache, ResponseCache, SQLResponseCache
from .coordinator import CacheCoordinator, cache_key, covers_partition
from .index import CacheKeyIndex

__all__ = [
    "CacheCoordinator",
    "CacheKeyIndex",
    "CachedResponse",
    "MemoryResponseCache",
    "ResponseCache",
    "SQLResponseCache",
    "cache_key",
    "covers_partition",
]
