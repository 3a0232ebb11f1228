"""Typed domain objects for the agenda service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def _format_utc(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_utc(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(slots=True)
class AgendaItem:
    """A single item of the plenary agenda.

    ``start`` and ``end`` are civil timestamps in the parliament's time zone
    without offset information. ``dtstamp`` records when the item was
    generated and does not take part in equality checks.
    """

    start: datetime
    end: datetime
    top: str
    thema: str
    beschreibung: str
    status: str = ""
    url: Optional[str] = None
    namentliche_abstimmung: bool = False
    uid: str = ""
    dtstamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)

    @property
    def summary(self) -> str:
        return f"{self.top}: {self.thema}" if self.top else self.thema

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(timespec="seconds"),
            "end": self.end.isoformat(timespec="seconds"),
            "top": self.top,
            "thema": self.thema,
            "beschreibung": self.beschreibung,
            "status": self.status,
            "url": self.url,
            "namentliche_abstimmung": self.namentliche_abstimmung,
            "uid": self.uid,
            "dtstamp": _format_utc(self.dtstamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgendaItem":
        """Rebuild an item from :meth:`to_dict` output.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` for data that does
        not describe an item.
        """

        start = datetime.fromisoformat(data["start"]).replace(tzinfo=None)
        end = datetime.fromisoformat(data["end"]).replace(tzinfo=None)
        dtstamp_raw = data.get("dtstamp")
        dtstamp = _parse_utc(dtstamp_raw) if dtstamp_raw else datetime.now(timezone.utc)
        return cls(
            start=start,
            end=end,
            top=str(data.get("top") or ""),
            thema=str(data.get("thema") or ""),
            beschreibung=str(data.get("beschreibung") or ""),
            status=str(data.get("status") or ""),
            url=data.get("url") or None,
            namentliche_abstimmung=bool(data.get("namentliche_abstimmung", False)),
            uid=str(data.get("uid") or ""),
            dtstamp=dtstamp,
        )


@dataclass(frozen=True, slots=True)
class PartitionKey:
    """Storage key of the items belonging to one ``(year, week)`` pair."""

    year: int
    week: int

    @property
    def storage_key(self) -> str:
        return f"agenda-{self.year}-{self.week}"

    @classmethod
    def from_storage_key(cls, key: str) -> Optional["PartitionKey"]:
        prefix, _, remainder = key.partition("-")
        if prefix != "agenda":
            return None
        year, _, week = remainder.partition("-")
        try:
            return cls(int(year), int(week))
        except ValueError:
            return None


__all__ = ["AgendaItem", "PartitionKey"]
