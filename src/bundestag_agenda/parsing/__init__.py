"""Parsing of the bundestag.de agenda markup."""
from __future__ import annotations

from .agenda import AgendaParser, build_uid, normalize_top, parse_agenda

__all__ = ["AgendaParser", "build_uid", "normalize_top", "parse_agenda"]
