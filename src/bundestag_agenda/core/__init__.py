"""Core domain entities and calendar helpers."""
from __future__ import annotations

from .types import AgendaItem, PartitionKey
from .weeks import iso_week_number, monday_of_iso_week, weeks_in_month

__all__ = ["AgendaItem", "PartitionKey", "iso_week_number", "monday_of_iso_week", "weeks_in_month"]
