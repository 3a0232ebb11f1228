"""Change detection between a fresh scrape and the stored partition."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..core.types import AgendaItem, PartitionKey
from ..database.partitions import PartitionStore


@dataclass(slots=True)
class ReconcileResult:
    """Outcome of :func:`reconcile`."""

    changed: bool
    items: List[AgendaItem]
    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


def diff_items(
    previous: Optional[Sequence[AgendaItem]], new_items: Sequence[AgendaItem]
) -> ReconcileResult:
    """Compare ``new_items`` with ``previous`` without touching any store.

    Unchanged items keep the stored instance so their ``dtstamp`` survives.
    Vanished items are dropped: the new scrape replaces the partition.
    """

    by_uid: Dict[str, AgendaItem] = {item.uid: item for item in previous or ()}
    result = ReconcileResult(changed=previous is None, items=[])
    for item in new_items:
        prior = by_uid.get(item.uid)
        if prior is None:
            result.added.append(item.uid)
            result.items.append(item)
        elif prior != item:
            result.modified.append(item.uid)
            result.items.append(item)
        else:
            result.items.append(prior)
    seen = {item.uid for item in new_items}
    result.removed = [uid for uid in by_uid if uid not in seen]
    if result.added or result.modified or result.removed:
        result.changed = True
    return result


async def reconcile(
    partitions: PartitionStore, key: PartitionKey, new_items: Sequence[AgendaItem]
) -> ReconcileResult:
    """Persist ``new_items`` for ``key`` if they differ from what is stored."""

    previous = await partitions.load(key)
    result = diff_items(previous, new_items)
    if result.changed:
        await partitions.save(key, result.items)
    return result


__all__ = ["ReconcileResult", "diff_items", "reconcile"]
