"""Output formats for agenda items."""
from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

from ..core.types import AgendaItem
from .ical import CalendarOptions, fold_line, render_ical, unfold
from .structured import parse_json, render_csv, render_json, render_xml

MEDIA_TYPES: Dict[str, str] = {
    "ical": "text/calendar; charset=utf-8",
    "json": "application/json; charset=utf-8",
    "xml": "application/xml; charset=utf-8",
    "csv": "text/csv; charset=utf-8",
}

FORMAT_ALIASES: Dict[str, str] = {"ics": "ical"}


def render(
    fmt: str,
    items: Sequence[AgendaItem],
    calendar_options: Optional[CalendarOptions] = None,
) -> Tuple[str, str]:
    """Render ``items`` as ``fmt`` and return the body with its media type."""

    fmt = FORMAT_ALIASES.get(fmt, fmt)
    if fmt == "ical":
        body = render_ical(items, calendar_options)
    elif fmt == "json":
        body = render_json(items)
    elif fmt == "xml":
        body = render_xml(items)
    elif fmt == "csv":
        body = render_csv(items)
    else:
        raise ValueError(f"Unknown format {fmt!r}")
    return body, MEDIA_TYPES[fmt]


__all__ = [
    "CalendarOptions",
    "MEDIA_TYPES",
    "fold_line",
    "parse_json",
    "render",
    "render_csv",
    "render_ical",
    "render_json",
    "render_xml",
    "unfold",
]
