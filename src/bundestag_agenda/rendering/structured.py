"""JSON, XML and CSV renditions of agenda items."""
from __future__ import annotations

import csv
import io
import json
from typing import List, Sequence
from xml.etree import ElementTree

from ..core.types import AgendaItem

CSV_COLUMNS = ("Start", "Ende", "TOP", "Thema", "Beschreibung", "URL", "Status")
XML_FIELDS = (
    "start",
    "end",
    "top",
    "thema",
    "status",
    "beschreibung",
    "url",
    "namentliche_abstimmung",
    "uid",
    "dtstamp",
)


def render_json(items: Sequence[AgendaItem]) -> str:
    return json.dumps([item.to_dict() for item in items], ensure_ascii=False)


def parse_json(payload: str) -> List[AgendaItem]:
    """Read items back from :func:`render_json` output."""

    return [AgendaItem.from_dict(entry) for entry in json.loads(payload)]


def render_xml(items: Sequence[AgendaItem]) -> str:
    """``<agenda>`` with one ``<event>`` per item; empty fields are left out."""

    root = ElementTree.Element("agenda")
    for item in items:
        event = ElementTree.SubElement(root, "event")
        values = item.to_dict()
        for name in XML_FIELDS:
            value = values[name]
            if value is None or value == "":
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            ElementTree.SubElement(event, name).text = str(value)
    ElementTree.indent(root)
    body = ElementTree.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def render_csv(items: Sequence[AgendaItem]) -> str:
    """Comma separated rows; values with quotes, commas or newlines are quoted."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(CSV_COLUMNS)
    for item in items:
        values = item.to_dict()
        writer.writerow(
            [
                values["start"],
                values["end"],
                item.top,
                item.thema,
                item.beschreibung,
                item.url or "",
                item.status,
            ]
        )
    return buffer.getvalue()


__all__ = ["CSV_COLUMNS", "parse_json", "render_csv", "render_json", "render_xml"]
