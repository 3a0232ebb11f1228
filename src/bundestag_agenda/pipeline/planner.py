"""Resolve year/month/week/day requests into agenda items."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence
import logging

from ..core.types import AgendaItem, PartitionKey
from ..core.weeks import iso_week_number, weeks_in_month
from ..database.partitions import PartitionStore
from ..errors import FutureRangeError, InvalidQueryError
from .ingest import IngestPipeline

LOGGER = logging.getLogger(__name__)

WEEKS_IN_PAST_YEAR = 52
FUTURE_MESSAGE = "Keine Daten für zukünftige Wochen"


@dataclass(frozen=True, slots=True)
class AgendaQuery:
    """Parameters of an agenda request; ``None`` means "not given"."""

    year: Optional[int] = None
    week: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    status: Optional[str] = None


def filter_by_status(items: Sequence[AgendaItem], status: Optional[str]) -> List[AgendaItem]:
    """Case-sensitive substring filter on ``status``; items without status never match."""

    if not status:
        return list(items)
    return [item for item in items if item.status and status in item.status]


class QueryPlanner:
    """Expands a request into week partitions, loading missing ones on demand."""

    def __init__(
        self,
        *,
        partitions: PartitionStore,
        pipeline: IngestPipeline,
        earliest_year: int = 2020,
    ) -> None:
        self._partitions = partitions
        self._pipeline = pipeline
        self._earliest_year = earliest_year

    async def resolve(self, query: AgendaQuery) -> List[AgendaItem]:
        today = self._pipeline.current_partition()
        current_year, current_week = today.year, today.week
        year = query.year if query.year is not None else current_year
        if year < self._earliest_year:
            return []

        if query.week is not None:
            if (year, query.week) > (current_year, current_week):
                raise FutureRangeError(FUTURE_MESSAGE, {"year": year, "week": query.week})
            items = await self.load_week(PartitionKey(year, query.week))
        elif query.day is not None:
            if query.month is None:
                raise InvalidQueryError("Der Parameter 'day' erfordert 'month'.", {"day": query.day})
            items = await self._resolve_day(year, query.month, query.day)
        elif query.month is not None:
            items = await self._resolve_month(year, query.month, current_year, current_week)
        else:
            if year > current_year:
                raise FutureRangeError(FUTURE_MESSAGE, {"year": year})
            last_week = current_week if year == current_year else WEEKS_IN_PAST_YEAR
            items = await self.load_weeks(year, range(1, last_week + 1))

        return filter_by_status(items, query.status)

    async def load_week(self, key: PartitionKey) -> List[AgendaItem]:
        """Stored items of ``key``, scraping the week first when it is missing."""

        if key.year < self._earliest_year:
            return []
        items = await self._partitions.load(key)
        if items is not None:
            return items
        LOGGER.info("Partition %s missing, fetching from bundestag.de", key.storage_key)
        result = await self._pipeline.ingest(key)
        return result.items

    async def load_weeks(self, year: int, weeks: Sequence[int]) -> List[AgendaItem]:
        """Load several weeks concurrently and concatenate them in week order."""

        batches = await asyncio.gather(*(self.load_week(PartitionKey(year, week)) for week in weeks))
        return [item for batch in batches for item in batch]

    async def _resolve_month(
        self, year: int, month: int, current_year: int, current_week: int
    ) -> List[AgendaItem]:
        if not 1 <= month <= 12:
            raise InvalidQueryError("Ungültiger Monat.", {"month": month})
        today = self._pipeline.today()
        if (year, month) > (today.year, today.month):
            raise FutureRangeError(FUTURE_MESSAGE, {"year": year, "month": month})
        weeks = weeks_in_month(year, month)
        if year == current_year:
            weeks = [week for week in weeks if week <= current_week]
        return await self.load_weeks(year, weeks)

    async def _resolve_day(self, year: int, month: int, day: int) -> List[AgendaItem]:
        try:
            requested = date(year, month, day)
        except ValueError as exc:
            raise InvalidQueryError(f"Ungültiges Datum: {exc}", {"year": year, "month": month, "day": day}) from exc
        if requested > self._pipeline.today():
            raise FutureRangeError(FUTURE_MESSAGE, {"date": requested.isoformat()})
        items = await self.load_week(PartitionKey(year, iso_week_number(requested)))
        return [item for item in items if item.start.date() == requested]


__all__ = ["AgendaQuery", "QueryPlanner", "filter_by_status"]
