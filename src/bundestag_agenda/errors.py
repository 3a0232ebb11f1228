"""Exception hierarchy shared by all agenda components."""

from __future__ import annotations

from typing import Any, Dict, Optional


class AgendaError(Exception):
    """Base class for errors raised by the agenda service."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.context:
            details = ", ".join(f"{key}={value}" for key, value in self.context.items())
            return f"{base} ({details})"
        return base


class UpstreamUnavailable(AgendaError):
    """The bundestag.de agenda page could not be retrieved."""

    def __init__(self, message: str, *, url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message, {"url": url, "status": status_code})
        self.url = url
        self.status_code = status_code


class FutureRangeError(AgendaError):
    """The requested period has not started yet."""


class InvalidQueryError(AgendaError):
    """The combination of query parameters does not describe a valid period."""


class MalformedItemError(AgendaError):
    """A single agenda row could not be turned into an item."""

    def __init__(self, message: str, *, row_index: int) -> None:
        super().__init__(message, {"row": row_index})
        self.row_index = row_index


class StoreCorruptionError(AgendaError):
    """A persisted partition does not contain valid agenda data."""

    def __init__(self, message: str, *, key: str) -> None:
        super().__init__(message, {"key": key})
        self.key = key


__all__ = [
    "AgendaError",
    "FutureRangeError",
    "InvalidQueryError",
    "MalformedItemError",
    "StoreCorruptionError",
    "UpstreamUnavailable",
]
