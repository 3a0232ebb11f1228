"""Turn conference-week markup into agenda items."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple
import logging
import re

from ..core.types import AgendaItem
from ..core.weeks import epoch_millis
from ..errors import MalformedItemError
from .markup import AgendaDocument, AgendaRow, ConferenceTable

LOGGER = logging.getLogger(__name__)

GERMAN_MONTHS = {
    "januar": 1,
    "februar": 2,
    "märz": 3,
    "april": 4,
    "mai": 5,
    "juni": 6,
    "juli": 7,
    "august": 8,
    "september": 9,
    "oktober": 10,
    "november": 11,
    "dezember": 12,
}

DEFAULT_DURATION = timedelta(minutes=15)
ROLL_CALL_PHRASE = "namentliche abstimmung"
DEFAULT_UID_DOMAIN = "api.hutt.io"
DEFAULT_ARTICLE_BASE_URL = "https://bundestag.de"

_DATE_PATTERN = re.compile(r"(?P<day>\d{1,2})\.?\s+(?P<month>[^\W\d_]+)\s+(?P<year>\d{4})")
_TIME_PATTERN = re.compile(r"(?P<hour>\d{1,2})[:.](?P<minute>\d{2})")
_WHITESPACE_RUN = re.compile(r"\s+")
_BARE_NUMBER = re.compile(r"^\d+$")


def normalize_top(label: str) -> str:
    """Prefix bare agenda numbers with ``TOP``.

    ``"5"`` becomes ``"TOP 5"``, ``"TOP 5, 6"`` becomes ``"TOP 5, TOP 6"``;
    labels such as ``"ZP 1"`` stay as they are.
    """

    if not label.strip():
        return ""
    parts = []
    for part in label.split(","):
        part = part.strip()
        parts.append(f"TOP {part}" if _BARE_NUMBER.match(part) else part)
    return ", ".join(parts)


def slugify(value: str) -> str:
    return _WHITESPACE_RUN.sub("-", value).lower()


def build_uid(start: datetime, thema: str, top: str, domain: str = DEFAULT_UID_DOMAIN) -> str:
    return f"{epoch_millis(start)}-{slugify(thema)}-{slugify(top)}@{domain}"


def compose_description(status: str, description: str) -> str:
    return f"Status: {status}\n\n{description}" if status else description


def is_roll_call(description: str) -> bool:
    """True when ``description`` ends with the roll-call vote marker."""

    tail = description.rstrip(" \t\r\n.:;!)").lower()
    return tail.endswith(ROLL_CALL_PHRASE)


def parse_conference_date(text: str) -> date:
    """Parse a German date header such as ``"17. Januar 2024"``."""

    match = _DATE_PATTERN.search(text)
    if not match:
        raise ValueError(f"Unrecognised conference date {text!r}")
    month = GERMAN_MONTHS.get(match.group("month").lower())
    if month is None:
        raise ValueError(f"Unknown month name in {text!r}")
    return date(int(match.group("year")), month, int(match.group("day")))


def parse_clock(text: Optional[str]) -> time:
    match = _TIME_PATTERN.search(text or "")
    if not match:
        raise ValueError(f"Unrecognised time {text!r}")
    return time(int(match.group("hour")), int(match.group("minute")))


def correct_end(start: datetime, end: datetime) -> datetime:
    """Apply the duration rules: parallel items get a default length, overnight items roll over."""

    if end == start:
        end = start + DEFAULT_DURATION
    if end <= start:
        end += timedelta(days=1)
    return end


class AgendaParser:
    """Parser for the ``conferenceweekDetail`` pages.

    Each conference day is a table whose rows form a sequence of boundary
    times: an item starts at its own row's time and ends at the next row's
    time, so the last row only terminates the day. A row that cannot be
    parsed is skipped with a warning while the rest of the page is kept.
    """

    def __init__(
        self,
        *,
        uid_domain: str = DEFAULT_UID_DOMAIN,
        article_base_url: str = DEFAULT_ARTICLE_BASE_URL,
    ) -> None:
        self._uid_domain = uid_domain
        self._article_base_url = article_base_url.rstrip("/")

    def parse(self, markup: str, *, now: Optional[datetime] = None) -> List[AgendaItem]:
        stamp = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        items: List[AgendaItem] = []
        for table in AgendaDocument(markup).tables():
            try:
                day = parse_conference_date(table.date_text)
            except ValueError as exc:
                LOGGER.warning("Skipping conference table: %s", exc)
                continue
            items.extend(self._parse_table(table, day, stamp))
        return items

    def _parse_table(self, table: ConferenceTable, day: date, stamp: datetime) -> List[AgendaItem]:
        rows = [row for row in table.rows() if row.has_time]
        items: List[AgendaItem] = []
        for current, following in zip(rows, rows[1:]):
            try:
                items.append(self._parse_row(current, following, day, stamp))
            except MalformedItemError as exc:
                LOGGER.warning("Skipping agenda row on %s: %s", day.isoformat(), exc)
        return items

    def _parse_row(
        self, row: AgendaRow, following: AgendaRow, day: date, stamp: datetime
    ) -> AgendaItem:
        start, end = self._row_times(row, following, day)
        top = normalize_top(row.top_text)
        thema = row.title
        status = row.status
        description = compose_description(status, row.description)
        return AgendaItem(
            start=start,
            end=end,
            top=top,
            thema=thema,
            beschreibung=description,
            status=status,
            url=self._article_url(row.article_path),
            namentliche_abstimmung=is_roll_call(description),
            uid=build_uid(start, thema, top, self._uid_domain),
            dtstamp=stamp,
        )

    @staticmethod
    def _row_times(row: AgendaRow, following: AgendaRow, day: date) -> Tuple[datetime, datetime]:
        try:
            start = datetime.combine(day, parse_clock(row.time_text))
            end = datetime.combine(day, parse_clock(following.time_text))
        except ValueError as exc:
            raise MalformedItemError(str(exc), row_index=row.index) from exc
        return start, correct_end(start, end)

    def _article_url(self, path: Optional[str]) -> Optional[str]:
        if not path:
            return None
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._article_base_url}/{path.lstrip('/')}"


def parse_agenda(markup: str, *, now: Optional[datetime] = None) -> List[AgendaItem]:
    """Parse ``markup`` with the default settings."""

    return AgendaParser().parse(markup, now=now)


__all__ = [
    "AgendaParser",
    "build_uid",
    "compose_description",
    "correct_end",
    "is_roll_call",
    "normalize_top",
    "parse_agenda",
    "parse_conference_date",
    "slugify",
]
