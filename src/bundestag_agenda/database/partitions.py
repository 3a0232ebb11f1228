"""Week partitions of agenda items on top of the key-value store."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence
import json
import logging

from ..core.types import AgendaItem, PartitionKey
from ..errors import StoreCorruptionError
from .storage import KeyValueStore

LOGGER = logging.getLogger(__name__)

PARTITION_PREFIX = "agenda-"


def encode_items(items: Sequence[AgendaItem]) -> str:
    return json.dumps([item.to_dict() for item in items], ensure_ascii=False)


def decode_items(raw: str, *, key: str) -> List[AgendaItem]:
    """Decode a stored partition, raising :class:`StoreCorruptionError` on bad data."""

    if not raw.strip():
        return []
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StoreCorruptionError(f"Stored value is not JSON: {exc}", key=key) from exc
    if not isinstance(payload, list):
        raise StoreCorruptionError("Stored value is not a list of items", key=key)
    try:
        return [AgendaItem.from_dict(entry) for entry in payload]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise StoreCorruptionError(f"Stored item is invalid: {exc}", key=key) from exc


class PartitionStore:
    """Loads and saves the item list of one ``(year, week)`` pair."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @property
    def backend(self) -> KeyValueStore:
        return self._store

    async def load(self, key: PartitionKey) -> Optional[List[AgendaItem]]:
        """Return the stored items, or ``None`` when the partition is absent.

        A corrupt partition is logged and reported as absent so it gets
        fetched again.
        """

        raw = await self._store.get(key.storage_key)
        if raw is None:
            return None
        try:
            return decode_items(raw, key=key.storage_key)
        except StoreCorruptionError as exc:
            LOGGER.error("Ignoring corrupt partition: %s", exc)
            return None

    async def save(self, key: PartitionKey, items: Sequence[AgendaItem]) -> None:
        await self._store.put(key.storage_key, encode_items(items))

    async def keys(self) -> List[PartitionKey]:
        found: List[PartitionKey] = []
        for storage_key in await self._store.list(PARTITION_PREFIX):
            key = PartitionKey.from_storage_key(storage_key)
            if key is not None:
                found.append(key)
        return found

    async def non_empty_weeks(self, years: Sequence[int]) -> Dict[int, List[int]]:
        """Map each of ``years`` to the sorted weeks holding at least one item."""

        listing: Dict[int, List[int]] = {year: [] for year in years}
        for key in await self.keys():
            if key.year not in listing:
                continue
            items = await self.load(key)
            if items:
                listing[key.year].append(key.week)
        for weeks in listing.values():
            weeks.sort()
        return listing


__all__ = ["PartitionStore", "decode_items", "encode_items"]
