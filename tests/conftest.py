from __future__ import annotations

from datetime import datetime
from html import escape
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from bundestag_agenda.database import MemoryKeyValueStore
from bundestag_agenda.errors import UpstreamUnavailable


def agenda_row(
    time: str,
    top: str = "",
    title: str = "",
    description: str = "",
    status: str = "",
    url: Optional[str] = None,
) -> str:
    button = (
        f'<div class="bt-top-actions"><div><div><button data-url="{escape(url)}">Mehr</button></div></div></div>'
        if url
        else ""
    )
    return (
        "<tr>"
        f'<td data-th="Uhrzeit"><p>{time}</p></td>'
        f'<td data-th="TOP"><p>{top}</p></td>'
        '<td data-th="Thema"><div class="bt-documents-description">'
        f'<a class="bt-top-collapser" href="#">{title}</a>'
        f"<p>{description}</p>{button}</div></td>"
        f'<td data-th="Status/ Abstimmung"><p>{status}</p></td>'
        "</tr>"
    )


def closing_row(time: str) -> str:
    return f'<tr><td data-th="Uhrzeit"><p>{time}</p></td></tr>'


def agenda_table(date_text: str, rows: Sequence[str]) -> str:
    return (
        '<table class="table bt-table-data">'
        f'<caption><div class="bt-conference-title">{date_text} (150. Sitzung)</div></caption>'
        "<thead><tr><th>Uhrzeit</th><th>TOP</th><th>Thema</th><th>Status/ Abstimmung</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        "</table>"
    )


def agenda_page(*tables: str) -> str:
    return (
        "<!DOCTYPE html><html><head><title>Tagesordnung</title></head><body>"
        f'<div class="bt-standard-content">{"".join(tables)}</div>'
        "</body></html>"
    )


class FakeAgendaSource:
    """Serves canned markup per ``(year, week)`` and records every fetch."""

    def __init__(self, pages: Optional[Dict[Tuple[int, int], str]] = None, *, failing: bool = False):
        self.pages: Dict[Tuple[int, int], str] = dict(pages or {})
        self.failing = failing
        self.calls: List[Tuple[int, int]] = []

    async def fetch_agenda_page(self, year: int, week: int) -> str:
        self.calls.append((year, week))
        if self.failing:
            raise UpstreamUnavailable("bundestag.de nicht erreichbar", url="https://example.invalid")
        return self.pages.get((year, week), agenda_page())


class RecordingKeyValueStore(MemoryKeyValueStore):
    """Memory store that also remembers the order of writes."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.written_keys: List[str] = []

    async def put(self, key: str, value: str) -> None:
        self.written_keys.append(key)
        await super().put(key, value)


def fixed_clock(moment: datetime):
    def _now() -> datetime:
        return moment

    return _now


@pytest.fixture()
def week_three_page() -> str:
    """Two sitting days in ISO week 3 of 2024."""

    wednesday = agenda_table(
        "Mittwoch, 17. Januar 2024",
        [
            agenda_row("13:00", "1", "Befragung der Bundesregierung", "Fragestunde", "beraten", "/dokumente/textarchiv/2024/kw03-de-regierungsbefragung"),
            agenda_row("14:40", "2", "Fragestunde", "Drucksache 20/10000", "beraten"),
            closing_row("15:25"),
        ],
    )
    thursday = agenda_table(
        "Donnerstag, 18. Januar 2024",
        [
            agenda_row(
                "09:00",
                "3",
                "Haushaltsgesetz 2024",
                "Zweite Beratung<br>Drucksache 20/7800<br>namentliche Abstimmung",
                "angenommen",
            ),
            agenda_row("10:30", "ZP 1", "Aktuelle Stunde", "auf Verlangen der Fraktion", "abgeschlossen"),
            closing_row("11:30"),
        ],
    )
    return agenda_page(wednesday, thursday)
