from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime
from zoneinfo import ZoneInfo

from bundestag_agenda.caching import CacheCoordinator, CacheKeyIndex, MemoryResponseCache
from bundestag_agenda.core.types import PartitionKey
from bundestag_agenda.database import PartitionStore
from bundestag_agenda.parsing import AgendaParser
from bundestag_agenda.pipeline import IngestPipeline
from conftest import FakeAgendaSource, RecordingKeyValueStore, fixed_clock

BERLIN = ZoneInfo("Europe/Berlin")
NOW = datetime(2024, 1, 18, 12, 0, tzinfo=BERLIN)
WEEK_URL = "/bt-to/json?year=2024&week=3"
LIST_URL = "/bt-to/data-list"


def _setup(source: FakeAgendaSource, clock=fixed_clock(NOW)):
    store = RecordingKeyValueStore()
    cache = MemoryResponseCache()
    coordinator = CacheCoordinator(cache, CacheKeyIndex(store), agenda_max_age=300, data_list_max_age=3600)
    pipeline = IngestPipeline(client=source, partitions=PartitionStore(store), cache=coordinator, clock=clock)
    return store, cache, coordinator, pipeline


async def _prime(coordinator: CacheCoordinator, key: str, *, listing: bool = False) -> None:
    async def _render():
        return b"[]", "application/json"

    await coordinator.get_or_render(key, _render, listing=listing)


def _agenda_writes(store: RecordingKeyValueStore):
    return [key for key in store.written_keys if key.startswith("agenda-")]


def test_current_partition_pairs_calendar_year_with_iso_week():
    source = FakeAgendaSource()
    _, _, _, pipeline = _setup(source, clock=fixed_clock(datetime(2021, 1, 1, 9, 0, tzinfo=BERLIN)))

    assert pipeline.current_partition() == PartitionKey(2021, 53)


def test_refresh_stores_changes_and_invalidates_cached_week(week_three_page):
    source = FakeAgendaSource({(2024, 3): week_three_page})
    store, cache, coordinator, pipeline = _setup(source)
    asyncio.run(_prime(coordinator, WEEK_URL))
    asyncio.run(_prime(coordinator, LIST_URL, listing=True))

    result = asyncio.run(pipeline.refresh_current_week())

    assert result is not None and result.changed
    assert len(result.items) == 4
    assert source.calls == [(2024, 3)]
    assert _agenda_writes(store) == ["agenda-2024-3"]
    assert WEEK_URL not in cache
    # the listing survives changes to the current week
    assert LIST_URL in cache


def test_refresh_with_identical_content_writes_nothing(week_three_page):
    source = FakeAgendaSource({(2024, 3): week_three_page})
    store, cache, coordinator, pipeline = _setup(source)
    asyncio.run(pipeline.refresh_current_week())
    asyncio.run(_prime(coordinator, WEEK_URL))
    writes_before = list(store.written_keys)

    result = asyncio.run(pipeline.refresh_current_week())

    assert result is not None and result.changed is False
    assert store.written_keys == writes_before
    assert WEEK_URL in cache


def test_refresh_skips_when_upstream_is_down(caplog):
    source = FakeAgendaSource(failing=True)
    store, _, _, pipeline = _setup(source)

    with caplog.at_level(logging.WARNING, logger="bundestag_agenda.pipeline.ingest"):
        result = asyncio.run(pipeline.refresh_current_week())

    assert result is None
    assert store.data == {}
    assert "skipped" in caplog.text


def test_ingest_of_past_week_drops_listing(week_three_page):
    source = FakeAgendaSource({(2023, 50): week_three_page})
    _, cache, coordinator, pipeline = _setup(source)
    asyncio.run(_prime(coordinator, LIST_URL, listing=True))

    asyncio.run(pipeline.ingest(PartitionKey(2023, 50)))

    assert LIST_URL not in cache


class ThreadRecordingParser(AgendaParser):
    def __init__(self):
        super().__init__()
        self.threads = []

    def parse(self, markup, *, now=None):
        self.threads.append(threading.get_ident())
        return super().parse(markup, now=now)


def test_parsing_runs_off_the_event_loop_thread(week_three_page):
    parser = ThreadRecordingParser()
    store = RecordingKeyValueStore()
    pipeline = IngestPipeline(
        client=FakeAgendaSource({(2024, 3): week_three_page}),
        partitions=PartitionStore(store),
        parser=parser,
        clock=fixed_clock(NOW),
    )

    result = asyncio.run(pipeline.ingest(PartitionKey(2024, 3)))

    assert len(result.items) == 4
    assert parser.threads and parser.threads[0] != threading.get_ident()
