"""Typed view on the table markup of a conference-week page.

The parser never touches BeautifulSoup objects directly; it works with
:class:`ConferenceTable` and :class:`AgendaRow`, which expose exactly the
pieces of the page the agenda is built from.
"""

from __future__ import annotations

from typing import Iterator, List, Optional
import re

from bs4 import BeautifulSoup
from bs4.element import NavigableString, Tag

TIME_COLUMN = "Uhrzeit"
TOP_COLUMN = "TOP"
TOPIC_COLUMN = "Thema"
STATUS_COLUMN = "Status/ Abstimmung"

_WHITESPACE = re.compile(r"[ \t\r\n\xa0]+")
_SPACE_AROUND_BREAK = re.compile(r" *\n *")


def _text_with_breaks(element: Tag) -> str:
    """Text content of ``element`` with ``<br>`` turned into newlines and all other tags dropped.

    Whitespace inside text nodes collapses the way a browser renders it, so
    line breaks in the page source do not leak into the result.
    """

    parts: List[str] = []
    for node in element.descendants:
        if isinstance(node, NavigableString):
            if type(node) is NavigableString:
                parts.append(_WHITESPACE.sub(" ", str(node)))
        elif isinstance(node, Tag) and node.name == "br":
            parts.append("\n")
    text = _SPACE_AROUND_BREAK.sub("\n", "".join(parts))
    return text.strip()


class AgendaRow:
    """One ``<tr>`` of a conference-day table."""

    def __init__(self, element: Tag, index: int) -> None:
        self._element = element
        self.index = index

    def _cell(self, column: str) -> Optional[Tag]:
        return self._element.find("td", attrs={"data-th": column})

    @property
    def has_time(self) -> bool:
        return self._cell(TIME_COLUMN) is not None

    @property
    def time_text(self) -> Optional[str]:
        cell = self._cell(TIME_COLUMN)
        return cell.get_text(strip=True) if cell is not None else None

    @property
    def top_text(self) -> str:
        cell = self._cell(TOP_COLUMN)
        return cell.get_text(" ", strip=True) if cell is not None else ""

    @property
    def title(self) -> str:
        cell = self._cell(TOPIC_COLUMN)
        if cell is None:
            return ""
        link = cell.select_one("a.bt-top-collapser")
        return link.get_text(" ", strip=True) if link is not None else ""

    @property
    def description(self) -> str:
        cell = self._cell(TOPIC_COLUMN)
        paragraph = cell.find("p") if cell is not None else None
        return _text_with_breaks(paragraph) if paragraph is not None else ""

    @property
    def article_path(self) -> Optional[str]:
        cell = self._cell(TOPIC_COLUMN)
        if cell is None:
            return None
        button = cell.select_one("div div div button[data-url]")
        if button is None:
            return None
        value = button.get("data-url")
        return value.strip() if isinstance(value, str) and value.strip() else None

    @property
    def status(self) -> str:
        cell = self._cell(STATUS_COLUMN)
        paragraph = cell.find("p") if cell is not None else None
        return _text_with_breaks(paragraph) if paragraph is not None else ""


class ConferenceTable:
    """A ``table.bt-table-data`` describing one sitting day."""

    def __init__(self, element: Tag) -> None:
        self._element = element

    @property
    def date_text(self) -> str:
        """Header text before the first parenthesis, e.g. ``"17. Januar 2024"``."""

        title = self._element.select_one("div.bt-conference-title")
        if title is None:
            return ""
        return title.get_text(" ", strip=True).split("(")[0].strip()

    def rows(self) -> List[AgendaRow]:
        body = self._element.find("tbody")
        container = body if isinstance(body, Tag) else self._element
        return [
            AgendaRow(row, index)
            for index, row in enumerate(container.find_all("tr", recursive=False))
        ]


class AgendaDocument:
    """Entry point: the parsed page and its conference-day tables."""

    def __init__(self, markup: str) -> None:
        self._soup = BeautifulSoup(markup, "html.parser")

    def tables(self) -> Iterator[ConferenceTable]:
        for element in self._soup.select("table.bt-table-data"):
            yield ConferenceTable(element)


__all__ = ["AgendaDocument", "AgendaRow", "ConferenceTable"]
