"""Fetch, parse, reconcile and invalidate one week partition."""
from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from typing import Callable, Optional, Protocol
import logging

from ..caching import CacheCoordinator
from ..core.types import PartitionKey
from ..core.weeks import current_year_week
from ..database.partitions import PartitionStore
from ..errors import UpstreamUnavailable
from ..parsing import AgendaParser
from .reconcile import ReconcileResult, reconcile

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class AgendaSource(Protocol):
    async def fetch_agenda_page(self, year: int, week: int) -> str: ...


class IngestPipeline:
    """Complete workflow that brings one partition up to date.

    On-demand loads and the scheduled refresh share this class, so both go
    through the same parser and the same change detection.
    """

    def __init__(
        self,
        *,
        client: AgendaSource,
        partitions: PartitionStore,
        parser: Optional[AgendaParser] = None,
        cache: Optional[CacheCoordinator] = None,
        clock: Clock = utc_clock,
    ) -> None:
        self._client = client
        self._partitions = partitions
        self._parser = parser or AgendaParser()
        self._cache = cache
        self._clock = clock

    def today(self) -> date:
        return self._clock().date()

    def current_partition(self) -> PartitionKey:
        year, week = current_year_week(self.today())
        return PartitionKey(year, week)

    async def ingest(self, key: PartitionKey) -> ReconcileResult:
        """Scrape ``key`` and persist it if anything changed.

        :class:`UpstreamUnavailable` propagates to the caller.
        """

        markup = await self._client.fetch_agenda_page(key.year, key.week)
        items = await asyncio.to_thread(self._parser.parse, markup, now=self._clock())
        LOGGER.debug("Parsed %s agenda items for %s/%s", len(items), key.week, key.year)
        result = await reconcile(self._partitions, key, items)
        if result.changed:
            LOGGER.info(
                "Stored partition %s: %s added, %s modified, %s removed",
                key.storage_key,
                len(result.added),
                len(result.modified),
                len(result.removed),
            )
            if self._cache is not None:
                current = self.current_partition()
                await self._cache.invalidate_partition(
                    key.year, key.week, current=(current.year, current.week)
                )
        return result

    async def refresh_current_week(self) -> Optional[ReconcileResult]:
        """Scheduled run for the current week; upstream failures are logged and skipped."""

        key = self.current_partition()
        try:
            result = await self.ingest(key)
        except UpstreamUnavailable as exc:
            LOGGER.warning("Scheduled refresh of %s skipped: %s", key.storage_key, exc)
            return None
        if not result.changed:
            LOGGER.info("Scheduled refresh of %s: no changes", key.storage_key)
        return result


__all__ = ["AgendaSource", "IngestPipeline", "utc_clock"]
