"""Edge-cache handling for rendered agenda responses."""
from __future__ import annotations

import time
from datetime import date
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit
import logging

from ..core.weeks import iso_week_number, weeks_in_month
from .cache import CachedResponse, Clock, ResponseCache
from .index import CacheKeyIndex

LOGGER = logging.getLogger(__name__)

LISTING_SEGMENT = "data-list"
KEY_PARAMETERS = ("year", "week", "month", "day", "status", "na", "naAlarm", "showSW")

Renderer = Callable[[], Awaitable[Tuple[bytes, str]]]


def _first_int(params: Dict[str, List[str]], name: str) -> Optional[int]:
    values = params.get(name)
    if not values or not values[0].strip():
        return None
    return int(values[0])


def cache_key(path: str, params: Mapping[str, object]) -> str:
    """Cache key of a request: its path plus the recognised parameters in fixed order.

    Unknown parameters, absent values and disabled flags do not change the key.
    """

    pairs = []
    for name in KEY_PARAMETERS:
        value = params.get(name)
        if value is None or value is False or value == "":
            continue
        pairs.append((name, "true" if value is True else str(value)))
    return f"{path}?{urlencode(pairs)}" if pairs else path


def is_listing_key(key: str) -> bool:
    return urlsplit(key).path.rstrip("/").endswith(LISTING_SEGMENT)


def covers_partition(key: str, year: int, week: int, *, current_year: int) -> bool:
    """Whether the agenda response cached under ``key`` includes ``(year, week)``.

    Requests without a ``week`` cover every week of their month or year.
    Keys whose parameters cannot be interpreted are treated as covering.
    """

    params = parse_qs(urlsplit(key).query)
    try:
        requested_year = _first_int(params, "year") or current_year
        requested_week = _first_int(params, "week")
        month = _first_int(params, "month")
        day = _first_int(params, "day")
        if requested_year != year:
            return False
        if requested_week is not None:
            return requested_week == week
        if month is not None and day is not None:
            return iso_week_number(date(year, month, day)) == week
        if month is not None:
            return week in weeks_in_month(year, month)
    except ValueError:
        return True
    return True


class CacheCoordinator:
    """Serves cached responses and invalidates them when partitions change.

    Cache keys come from :func:`cache_key`. Every stored key is added to a
    :class:`CacheKeyIndex` because the cache itself cannot be enumerated.
    """

    def __init__(
        self,
        cache: ResponseCache,
        index: CacheKeyIndex,
        *,
        agenda_max_age: int,
        data_list_max_age: int,
        enabled: bool = True,
        clock: Clock = time.time,
    ) -> None:
        self._cache = cache
        self._index = index
        self._agenda_max_age = agenda_max_age
        self._data_list_max_age = data_list_max_age
        self._enabled = enabled
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def get_or_render(
        self, key: str, render: Renderer, *, listing: bool = False
    ) -> Tuple[CachedResponse, bool]:
        """Return the cached response for ``key`` or render and store a new one.

        The second element of the result tells whether the cache was hit.
        """

        max_age = self._data_list_max_age if listing else self._agenda_max_age
        if self._enabled:
            cached = await self._cache.get(key)
            if cached is not None:
                return cached, True
        body, media_type = await render()
        if not self._enabled:
            return CachedResponse(body, media_type, 0, 0.0), False
        entry = await self._cache.put(key, body, media_type, max_age)
        await self._index.add(key, entry.expires_at, now=self._clock())
        return entry, False

    async def invalidate_partition(
        self, year: int, week: int, *, current: Tuple[int, int]
    ) -> List[str]:
        """Drop every cached response that includes ``(year, week)``.

        The data listing is dropped too, unless the changed week is the
        current one.
        """

        doomed: List[str] = []
        for key in await self._index.keys():
            if is_listing_key(key):
                if (year, week) != current:
                    doomed.append(key)
            elif covers_partition(key, year, week, current_year=current[0]):
                doomed.append(key)
        for key in doomed:
            await self._cache.delete(key)
        await self._index.remove(doomed)
        if doomed:
            LOGGER.info("Invalidated %s cached responses for %s/%s", len(doomed), week, year)
        return doomed

    async def purge(self) -> int:
        """Delete every indexed response and reset the index."""

        keys = await self._index.keys()
        for key in keys:
            await self._cache.delete(key)
        await self._index.clear()
        LOGGER.info("Purged %s cached responses", len(keys))
        return len(keys)


__all__ = ["CacheCoordinator", "KEY_PARAMETERS", "cache_key", "covers_partition", "is_listing_key"]
