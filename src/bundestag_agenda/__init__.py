"""Tagesordnung des Bundestages als iCal-, JSON-, XML- und CSV-API."""
from __future__ import annotations

from .caching import CacheCoordinator
from .clients import BundestagClient
from .config import AppConfig, load_config
from .core import AgendaItem, PartitionKey
from .database import MemoryKeyValueStore, PartitionStore, SQLKeyValueStore, create_storage
from .errors import AgendaError, FutureRangeError, InvalidQueryError, UpstreamUnavailable
from .parsing import AgendaParser, parse_agenda
from .pipeline import AgendaQuery, IngestPipeline, QueryPlanner
from .rendering import CalendarOptions, render
from .runtime import AppResources, create_resources

__all__ = [
    "AgendaError",
    "AgendaItem",
    "AgendaParser",
    "AgendaQuery",
    "AppConfig",
    "AppResources",
    "BundestagClient",
    "CacheCoordinator",
    "CalendarOptions",
    "FutureRangeError",
    "IngestPipeline",
    "InvalidQueryError",
    "MemoryKeyValueStore",
    "PartitionKey",
    "PartitionStore",
    "QueryPlanner",
    "SQLKeyValueStore",
    "UpstreamUnavailable",
    "create_resources",
    "create_storage",
    "load_config",
    "parse_agenda",
    "render",
]
