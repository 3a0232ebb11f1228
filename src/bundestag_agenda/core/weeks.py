"""Calendar helpers for ISO week arithmetic."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import List, Tuple


def iso_week_number(day: date) -> int:
    """Return the ISO-8601 week number of ``day``.

    The date is moved to the Thursday of its week; the week number is the
    count of weeks between that Thursday and the start of the Thursday's year.
    """

    thursday = day + timedelta(days=3 - day.weekday())
    year_start = date(thursday.year, 1, 1)
    return (thursday - year_start).days // 7 + 1


def monday_of_iso_week(week: int, year: int) -> date:
    """Return the Monday of ISO ``week`` in ``year``.

    January 4th always lies in week 1, so the Monday of week 1 is the Monday
    on or before it. Week numbers past the end of the year roll over into the
    following year instead of raising.
    """

    january_fourth = date(year, 1, 4)
    week_one_monday = january_fourth - timedelta(days=january_fourth.weekday())
    return week_one_monday + timedelta(weeks=week - 1)


def weeks_in_month(year: int, month: int) -> List[int]:
    """ISO week numbers touching ``month``, in calendar order and without duplicates."""

    weeks: List[int] = []
    for day_number in range(1, calendar.monthrange(year, month)[1] + 1):
        week = iso_week_number(date(year, month, day_number))
        if week not in weeks:
            weeks.append(week)
    return weeks


def current_year_week(today: date) -> Tuple[int, int]:
    """The ``(year, week)`` pair the scheduled refresh stores today's agenda under.

    The year is the calendar year of ``today``, not its ISO year, so the
    days around New Year can pair a year with a week belonging to its neighbour.
    """

    return today.year, iso_week_number(today)


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the epoch, reading naive values as UTC."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


__all__ = [
    "current_year_week",
    "epoch_millis",
    "iso_week_number",
    "monday_of_iso_week",
    "weeks_in_month",
]
