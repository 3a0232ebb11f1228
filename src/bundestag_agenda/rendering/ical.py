"""iCalendar feed for agenda items.

Components are built with :mod:`icalendar`. Its serialisation folds at 75
octets, so the content lines are unfolded again and folded hard every 70
characters with CRLF plus one space. The document uses CRLF line endings
and ends with ``END:VCALENDAR``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from icalendar import Alarm, Calendar, Event, Timezone, TimezoneDaylight, TimezoneStandard, vDuration, vUri

from ..core.types import AgendaItem
from ..core.weeks import epoch_millis, monday_of_iso_week

FOLD_WIDTH = 70
CRLF = "\r\n"
ROLL_CALL_DURATION = timedelta(minutes=15)
ROLL_CALL_ALARM_TRIGGER = timedelta(minutes=-15)
REFRESH_INTERVAL = timedelta(minutes=15)
ROLL_CALL_LABEL = "Namentliche Abstimmung"
SESSION_WEEK_LABEL = "Sitzungswoche"
CALENDAR_COLOR = "#808080"


@dataclass(frozen=True, slots=True)
class CalendarOptions:
    """Optional derived events and feed metadata."""

    roll_calls: bool = False
    roll_call_alarm: bool = False
    session_weeks: bool = False
    timezone: str = "Europe/Berlin"
    uid_domain: str = "api.hutt.io"
    name: str = "Tagesordnung Bundestag"
    description: str = ""
    source_url: Optional[str] = None


def fold_line(line: str) -> str:
    """Cut ``line`` every 70 characters, continuing with CRLF and one space."""

    if len(line) <= FOLD_WIDTH:
        return line
    chunks = []
    while len(line) > FOLD_WIDTH:
        chunks.append(line[:FOLD_WIDTH])
        line = line[FOLD_WIDTH:]
    chunks.append(line)
    return (CRLF + " ").join(chunks)


def unfold(text: str) -> str:
    """Inverse of :func:`fold_line`."""

    return text.replace(CRLF + " ", "")


def plain_text(value: str) -> str:
    """Normalise every line break to ``\\n`` so that text values escape to ``\\n`` only."""

    return value.replace("\r\n", "\n").replace("\r", "\n")


def _berlin_timezone() -> Timezone:
    zone = Timezone()
    zone.add("tzid", "Europe/Berlin")
    standard = TimezoneStandard()
    standard.add("tzname", "CET")
    standard.add("dtstart", datetime(1970, 10, 25, 3, 0))
    standard.add("tzoffsetfrom", timedelta(hours=2))
    standard.add("tzoffsetto", timedelta(hours=1))
    standard.add("rrule", {"freq": "yearly", "bymonth": 10, "byday": "-1SU"})
    zone.add_component(standard)
    daylight = TimezoneDaylight()
    daylight.add("tzname", "CEST")
    daylight.add("dtstart", datetime(1970, 3, 29, 2, 0))
    daylight.add("tzoffsetfrom", timedelta(hours=1))
    daylight.add("tzoffsetto", timedelta(hours=2))
    daylight.add("rrule", {"freq": "yearly", "bymonth": 3, "byday": "-1SU"})
    zone.add_component(daylight)
    return zone


def _timezone_component(name: str) -> Timezone:
    if name == "Europe/Berlin":
        return _berlin_timezone()
    zone = Timezone()
    zone.add("tzid", name)
    return zone


class CalendarWriter:
    """Builds the feed as an :class:`icalendar.Calendar`; :meth:`render` serialises it."""

    def __init__(self, options: CalendarOptions, *, generated_at: Optional[datetime] = None) -> None:
        self._options = options
        self._generated_at = generated_at or datetime.now(timezone.utc)

    def render(self, items: Sequence[AgendaItem]) -> str:
        return serialize(self.build(items))

    def build(self, items: Sequence[AgendaItem]) -> Calendar:
        calendar = self._header()
        for item in items:
            calendar.add_component(self._item_event(item))
            if self._options.roll_calls and item.namentliche_abstimmung:
                calendar.add_component(self._roll_call_event(item))
        if self._options.session_weeks:
            for iso_year, iso_week in session_weeks(items):
                calendar.add_component(self._session_week_event(iso_year, iso_week))
        return calendar

    def _header(self) -> Calendar:
        options = self._options
        calendar = Calendar()
        calendar.add("version", "2.0")
        calendar.add("prodid", f"-//hutt.io//{options.uid_domain}/bt-to//")
        calendar.add("calscale", "GREGORIAN")
        calendar.add("method", "PUBLISH")
        calendar.add("color", CALENDAR_COLOR)
        calendar.add("x-apple-calendar-color", CALENDAR_COLOR)
        calendar.add("x-wr-calname", plain_text(options.name))
        if options.description:
            calendar.add("x-wr-caldesc", plain_text(options.description))
            calendar.add("description", plain_text(options.description))
        calendar.add("x-wr-timezone", options.timezone)
        calendar.add("refresh-interval", vDuration(REFRESH_INTERVAL), parameters={"VALUE": "DURATION"})
        calendar.add("x-published-ttl", vDuration(REFRESH_INTERVAL))
        if options.source_url:
            calendar.add("source", vUri(options.source_url), parameters={"VALUE": "URI"})
        calendar.add_component(_timezone_component(options.timezone))
        return calendar

    def _add_local(self, event: Event, name: str, moment: datetime) -> None:
        event.add(name, moment.replace(tzinfo=None), parameters={"TZID": self._options.timezone})

    def _item_event(self, item: AgendaItem) -> Event:
        event = Event()
        event.add("uid", item.uid)
        event.add("dtstamp", item.dtstamp.astimezone(timezone.utc))
        self._add_local(event, "dtstart", item.start)
        self._add_local(event, "dtend", item.end)
        event.add("summary", plain_text(item.summary))
        event.add("description", plain_text(item.beschreibung))
        if item.url:
            event.add("url", item.url)
        return event

    def _roll_call_event(self, item: AgendaItem) -> Event:
        label = f"{ROLL_CALL_LABEL}: {plain_text(item.summary)}"
        event = Event()
        event.add("uid", f"na-{item.uid}")
        event.add("dtstamp", item.dtstamp.astimezone(timezone.utc))
        self._add_local(event, "dtstart", item.end)
        self._add_local(event, "dtend", item.end + ROLL_CALL_DURATION)
        event.add("summary", label)
        event.add("description", plain_text(item.beschreibung))
        if item.url:
            event.add("url", item.url)
        if self._options.roll_call_alarm:
            alarm = Alarm()
            alarm.add("action", "DISPLAY")
            alarm.add("description", label)
            alarm.add("trigger", ROLL_CALL_ALARM_TRIGGER)
            event.add_component(alarm)
        return event

    def _session_week_event(self, iso_year: int, iso_week: int) -> Event:
        monday = monday_of_iso_week(iso_week, iso_year)
        event = Event()
        event.add("uid", session_week_uid(monday, self._options.uid_domain))
        event.add("dtstamp", self._generated_at.astimezone(timezone.utc))
        event.add("dtstart", monday)
        event.add("dtend", monday + timedelta(days=7))
        event.add("summary", SESSION_WEEK_LABEL)
        event.add("transp", "TRANSPARENT")
        return event


def serialize(calendar: Calendar) -> str:
    """Serialise ``calendar`` in insertion order with the 70-character fold."""

    raw = calendar.to_ical(sorted=False).decode("utf-8")
    lines = unfold(raw).split(CRLF)
    return CRLF.join(fold_line(line) for line in lines if line)


def session_weeks(items: Iterable[AgendaItem]) -> List[Tuple[int, int]]:
    """Distinct ISO ``(year, week)`` pairs of the item start dates, in first-seen order."""

    seen: Set[Tuple[int, int]] = set()
    ordered: List[Tuple[int, int]] = []
    for item in items:
        iso = item.start.isocalendar()
        pair = (iso[0], iso[1])
        if pair not in seen:
            seen.add(pair)
            ordered.append(pair)
    return ordered


def session_week_uid(monday: date, domain: str) -> str:
    midnight = datetime(monday.year, monday.month, monday.day)
    return f"{epoch_millis(midnight)}-{SESSION_WEEK_LABEL.lower()}-@{domain}"


def render_ical(
    items: Sequence[AgendaItem],
    options: Optional[CalendarOptions] = None,
    *,
    generated_at: Optional[datetime] = None,
) -> str:
    return CalendarWriter(options or CalendarOptions(), generated_at=generated_at).render(items)


__all__ = [
    "CalendarOptions",
    "CalendarWriter",
    "fold_line",
    "plain_text",
    "render_ical",
    "serialize",
    "session_weeks",
    "unfold",
]
