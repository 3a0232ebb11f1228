"""Application level helpers for assembling service dependencies."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo
import logging

from .caching import CacheCoordinator, CacheKeyIndex, MemoryResponseCache, ResponseCache, SQLResponseCache
from .clients import BundestagClient
from .config import AppConfig
from .database import KeyValueStore, MemoryKeyValueStore, PartitionStore, SQLKeyValueStore, create_storage
from .parsing import AgendaParser
from .pipeline import AgendaSource, IngestPipeline, QueryPlanner
from .rendering import CalendarOptions

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AppResources:
    """Container bundling the objects needed to serve requests."""

    config: AppConfig
    store: KeyValueStore
    partitions: PartitionStore
    cache: CacheCoordinator
    pipeline: IngestPipeline
    planner: QueryPlanner
    client: AgendaSource
    owns_client: bool = True

    def calendar_options(self, *, roll_calls: bool, roll_call_alarm: bool, session_weeks: bool) -> CalendarOptions:
        agenda = self.config.agenda
        return CalendarOptions(
            roll_calls=roll_calls,
            roll_call_alarm=roll_calls and roll_call_alarm,
            session_weeks=session_weeks,
            timezone=agenda.timezone,
            uid_domain=agenda.uid_domain,
            name=agenda.calendar_name,
            description=agenda.calendar_description,
            source_url=agenda.calendar_source_url,
        )

    async def close(self) -> None:
        if self.owns_client and isinstance(self.client, BundestagClient):
            await self.client.aclose()
        if isinstance(self.store, SQLKeyValueStore):
            self.store.dispose()


def make_clock(timezone_name: str) -> Callable[[], datetime]:
    zone = ZoneInfo(timezone_name)

    def _now() -> datetime:
        return datetime.now(zone)

    return _now


def create_resources(
    config: AppConfig,
    *,
    store: Optional[KeyValueStore] = None,
    response_cache: Optional[ResponseCache] = None,
    client: Optional[AgendaSource] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> AppResources:
    """Wire up stores, cache, client, parser and planner from ``config``.

    Explicitly passed collaborators take precedence, which is how tests swap
    in in-memory stores and fake upstream clients.
    """

    owns_client = client is None
    if store is None:
        if config.storage.backend == "memory":
            store = MemoryKeyValueStore()
        else:
            store = create_storage(config.storage.database_url, echo=config.storage.echo_sql)
    if response_cache is None:
        if isinstance(store, SQLKeyValueStore):
            response_cache = SQLResponseCache(store.engine)
        else:
            response_cache = MemoryResponseCache()
    upstream = config.upstream
    source: AgendaSource = client or BundestagClient(
        upstream.base_url,
        timeout=upstream.timeout,
        max_concurrency=upstream.max_concurrent_fetches,
        user_agent=upstream.user_agent,
    )
    cache = CacheCoordinator(
        response_cache,
        CacheKeyIndex(store),
        agenda_max_age=config.cache.agenda_max_age,
        data_list_max_age=config.cache.data_list_max_age,
        enabled=config.cache.enabled,
    )
    partitions = PartitionStore(store)
    parser = AgendaParser(
        uid_domain=config.agenda.uid_domain,
        article_base_url=upstream.article_base_url,
    )
    pipeline = IngestPipeline(
        client=source,
        partitions=partitions,
        parser=parser,
        cache=cache,
        clock=clock or make_clock(config.agenda.timezone),
    )
    planner = QueryPlanner(
        partitions=partitions,
        pipeline=pipeline,
        earliest_year=config.agenda.earliest_year,
    )
    LOGGER.debug("Assembled resources with %s store", type(store).__name__)
    return AppResources(
        config=config,
        store=store,
        partitions=partitions,
        cache=cache,
        pipeline=pipeline,
        planner=planner,
        client=source,
        owns_client=owns_client,
    )


__all__ = ["AppResources", "create_resources", "make_clock"]
