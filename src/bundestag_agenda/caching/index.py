"""Persisted side index of cache keys.

The response cache cannot enumerate its keys, so every key written to it is
also recorded here together with its expiry time. Targeted invalidation
walks this index; expired keys are dropped whenever a new key is added.
"""
from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional
import json
import logging

from ..database.storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

INDEX_KEY = "cache-keys"


class CacheKeyIndex:
    """Order-preserving mapping of cache keys to their expiry time."""

    def __init__(self, store: KeyValueStore, *, storage_key: str = INDEX_KEY) -> None:
        self._store = store
        self._storage_key = storage_key
        self._lock = asyncio.Lock()

    async def keys(self) -> List[str]:
        return list(await self._entries())

    async def add(self, key: str, expires_at: float, *, now: Optional[float] = None) -> bool:
        """Record ``key`` until ``expires_at``; returns ``False`` when it was already indexed.

        With ``now`` given, keys that expired before it are pruned.
        """

        async with self._lock:
            entries = await self._entries()
            if now is not None:
                expired = [name for name, deadline in entries.items() if deadline <= now and name != key]
                for name in expired:
                    del entries[name]
                if expired:
                    LOGGER.debug("Pruned %s expired keys from the cache index", len(expired))
            added = key not in entries
            entries[key] = expires_at
            await self._write(entries)
            return added

    async def remove(self, keys: Iterable[str]) -> None:
        doomed = set(keys)
        if not doomed:
            return
        async with self._lock:
            entries = await self._entries()
            await self._write({key: deadline for key, deadline in entries.items() if key not in doomed})

    async def clear(self) -> None:
        async with self._lock:
            await self._store.delete(self._storage_key)

    async def _entries(self) -> Dict[str, float]:
        raw = await self._store.get(self._storage_key)
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.error("Cache key index %s is not valid JSON; starting a new one", self._storage_key)
            return {}
        if not isinstance(payload, dict):
            LOGGER.error("Cache key index %s is not a mapping; starting a new one", self._storage_key)
            return {}
        entries: Dict[str, float] = {}
        for key, deadline in payload.items():
            try:
                entries[str(key)] = float(deadline)
            except (TypeError, ValueError):
                LOGGER.warning("Dropping cache index entry %s with unreadable expiry %r", key, deadline)
        return entries

    async def _write(self, entries: Dict[str, float]) -> None:
        await self._store.put(self._storage_key, json.dumps(entries, ensure_ascii=False))


__all__ = ["CacheKeyIndex", "INDEX_KEY"]
