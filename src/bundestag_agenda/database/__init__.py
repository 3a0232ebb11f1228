"""Persistence of week partitions and cached responses."""
from __future__ import annotations

from .models import Base, CachedResponseEntry, KeyValueEntry
from .partitions import PartitionStore
from .storage import KeyValueStore, MemoryKeyValueStore, SQLKeyValueStore, create_engine_for, create_storage

__all__ = [
    "Base",
    "CachedResponseEntry",
    "KeyValueEntry",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "PartitionStore",
    "SQLKeyValueStore",
    "create_engine_for",
    "create_storage",
]
