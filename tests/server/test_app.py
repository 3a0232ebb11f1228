from __future__ import annotations

import asyncio
import json
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from bundestag_agenda.config import AppConfig, CacheConfig, MaintenanceConfig, ServerConfig, StorageConfig
from bundestag_agenda.database import MemoryKeyValueStore
from bundestag_agenda.runtime import create_resources
from bundestag_agenda.server import create_app
from conftest import FakeAgendaSource, agenda_page, agenda_row, agenda_table, closing_row, fixed_clock

NOW = datetime(2024, 1, 18, 12, 0, tzinfo=ZoneInfo("Europe/Berlin"))


def _config(**maintenance) -> AppConfig:
    return AppConfig(
        storage=StorageConfig(backend="memory"),
        server=ServerConfig(enable_scheduler=False, log_requests=True),
        maintenance=MaintenanceConfig(**maintenance),
    )


@pytest.fixture()
def source(week_three_page) -> FakeAgendaSource:
    return FakeAgendaSource({(2024, 3): week_three_page})


def _client(source: FakeAgendaSource, config: AppConfig = None):
    config = config or _config()
    store = MemoryKeyValueStore()
    resources = create_resources(config, store=store, client=source, clock=fixed_clock(NOW))
    return TestClient(create_app(config, resources=resources)), resources, store


def test_json_week_is_fetched_once_then_served_from_cache(source):
    client, _, store = _client(source)
    with client:
        first = client.get("/bt-to/json", params={"year": 2024, "week": 3})
        second = client.get("/bt-to/json", params={"year": 2024, "week": 3})

    assert first.status_code == 200
    assert first.headers["content-type"] == "application/json; charset=utf-8"
    assert first.headers["x-cache"] == "MISS"
    assert second.headers["x-cache"] == "HIT"
    assert second.headers["cache-control"] == "public, max-age=300"
    assert [item["top"] for item in first.json()] == ["TOP 1", "TOP 2", "TOP 3", "ZP 1"]
    assert source.calls == [(2024, 3)]
    assert "agenda-2024-3" in store.data


def test_future_week_is_a_bad_request(source):
    client, _, _ = _client(source)
    with client:
        response = client.get("/bt-to/ical", params={"year": 2024, "week": 4})

    assert response.status_code == 400
    assert response.text == "Keine Daten für zukünftige Wochen"
    assert source.calls == []


def test_day_without_month_is_a_bad_request(source):
    client, _, _ = _client(source)
    with client:
        response = client.get("/bt-to/json", params={"day": 3})

    assert response.status_code == 400


@pytest.mark.parametrize("params", [{"year": 0, "month": 1}, {"year": 0, "month": 1, "day": 1}])
def test_dates_before_the_archive_are_empty(source, params):
    client, _, _ = _client(source)
    with client:
        response = client.get("/bt-to/json", params=params)

    assert response.status_code == 200
    assert response.json() == []
    assert source.calls == []


def test_out_of_range_parameters_fail_validation(source):
    client, _, _ = _client(source)
    with client:
        assert client.get("/bt-to/json", params={"week": 60}).status_code == 422
        assert client.get("/bt-to/csv", params={"month": 13}).status_code == 422
        assert client.get("/bt-to/xml", params={"year": "zwei"}).status_code == 422


def test_unknown_path_is_not_found(source):
    client, _, _ = _client(source)
    with client:
        assert client.get("/bt-to/pdf").status_code == 404


def test_upstream_failure_is_a_bad_gateway():
    client, _, store = _client(FakeAgendaSource(failing=True))
    with client:
        response = client.get("/bt-to/json", params={"week": 3})

    assert response.status_code == 502
    assert store.data == {}


def test_ical_feed_with_roll_calls_and_session_weeks(source):
    client, _, _ = _client(source)
    with client:
        response = client.get("/bt-to/ical", params={"week": 3, "na": "true", "naAlarm": "true", "showSW": "true"})
        alias = client.get("/bt-to/ics", params={"week": 3})

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/calendar; charset=utf-8"
    body = response.text
    assert body.endswith("END:VCALENDAR")
    assert "UID:na-1705568400000-haushaltsgesetz-2024-top-3@api.hutt.io" in body
    assert "TRIGGER:-PT15M" in body
    assert "DTSTART;VALUE=DATE:20240115" in body
    assert alias.status_code == 200
    assert "UID:na-" not in alias.text
    assert "Sitzungswoche" not in alias.text


def test_csv_and_xml_formats(source):
    client, _, _ = _client(source)
    with client:
        csv_response = client.get("/bt-to/csv", params={"week": 3, "status": "angenommen"})
        xml_response = client.get("/bt-to/xml", params={"month": 1, "day": 18})

    assert csv_response.headers["content-type"] == "text/csv; charset=utf-8"
    lines = csv_response.text.split("\r\n")
    assert lines[0] == "Start,Ende,TOP,Thema,Beschreibung,URL,Status"
    assert lines[1].startswith("2024-01-18T09:00:00,2024-01-18T10:30:00,TOP 3,Haushaltsgesetz 2024,")
    assert xml_response.headers["content-type"] == "application/xml; charset=utf-8"
    assert xml_response.text.count("<event>") == 2


def test_data_list_reports_weeks_with_items(source):
    client, _, _ = _client(source)
    with client:
        client.get("/bt-to/json", params={"week": 3})
        first = client.get("/bt-to/data-list")
        second = client.get("/bt-to/data-list")

    assert first.json() == {"2024": [3], "2023": [], "2022": [], "2021": [], "2020": []}
    assert list(first.json()) == ["2024", "2023", "2022", "2021", "2020"]
    assert second.headers["x-cache"] == "HIT"
    assert second.headers["cache-control"] == "public, max-age=3600"


def test_refresh_with_new_content_invalidates_cached_week(source, week_three_page):
    client, resources, _ = _client(source)
    with client:
        assert client.get("/bt-to/json", params={"week": 3}).headers["x-cache"] == "MISS"
        assert client.get("/bt-to/json", params={"week": 3}).headers["x-cache"] == "HIT"

        source.pages[(2024, 3)] = agenda_page(
            agenda_table(
                "Freitag, 19. Januar 2024",
                [agenda_row("09:00", "7", "Erste Beratung", status="überwiesen"), closing_row("10:00")],
            )
        )
        result = asyncio.run(resources.pipeline.refresh_current_week())
        refreshed = client.get("/bt-to/json", params={"week": 3})

    assert result.changed is True
    assert refreshed.headers["x-cache"] == "MISS"
    assert [item["top"] for item in refreshed.json()] == ["TOP 7"]


def test_purge_redirects_to_documentation_when_disabled(source):
    client, _, _ = _client(source)
    with client:
        response = client.get("/bt-to/purge", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/bt-to/"


def test_purge_clears_cache_and_store(source):
    client, _, store = _client(source, _config(purge_cache=True, purge_store=True))
    with client:
        client.get("/bt-to/json", params={"week": 3})
        response = client.get("/bt-to/purge")
        after = client.get("/bt-to/json", params={"week": 3})

    assert response.status_code == 200
    summary = response.json()
    assert summary["cache_entries"] == 1
    assert summary["store_keys"] >= 1
    assert after.headers["x-cache"] == "MISS"
    assert source.calls == [(2024, 3), (2024, 3)]


def test_documentation_page_uses_the_prefix(source):
    client, _, _ = _client(source)
    with client:
        response = client.get("/bt-to/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert 'const prefix = "/bt-to";' in response.text
    assert "{{prefix}}" not in response.text


def test_disabled_cache_sends_no_cache_headers(source):
    config = AppConfig(
        storage=StorageConfig(backend="memory"),
        server=ServerConfig(enable_scheduler=False, log_requests=False),
        cache=CacheConfig(enabled=False),
    )
    client, _, _ = _client(source, config)
    with client:
        response = client.get("/bt-to/json", params={"week": 3})

    assert response.headers["x-cache"] == "MISS"
    assert "cache-control" not in response.headers
    assert json.loads(response.text)[0]["top"] == "TOP 1"


def test_unknown_and_reordered_parameters_share_one_cache_entry(source):
    client, _, store = _client(source)
    with client:
        first = client.get("/bt-to/json?year=2024&week=3")
        junk = [client.get(f"/bt-to/json?year=2024&week=3&x={n}") for n in range(50)]
        reordered = client.get("/bt-to/json?week=3&year=2024")

    assert first.headers["x-cache"] == "MISS"
    assert all(response.headers["x-cache"] == "HIT" for response in junk)
    assert reordered.headers["x-cache"] == "HIT"
    assert list(json.loads(store.data["cache-keys"])) == ["/bt-to/json?year=2024&week=3"]
