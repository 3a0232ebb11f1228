from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from bundestag_agenda.parsing import AgendaParser, normalize_top, parse_agenda
from bundestag_agenda.parsing.agenda import build_uid, is_roll_call, parse_conference_date
from conftest import agenda_page, agenda_row, agenda_table, closing_row

STAMP = datetime(2024, 1, 18, 7, 30, 12, 345678, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("5", "TOP 5"),
        ("TOP 5, 6", "TOP 5, TOP 6"),
        ("5, 6", "TOP 5, TOP 6"),
        ("ZP 1", "ZP 1"),
        ("", ""),
    ],
)
def test_normalize_top(raw, expected):
    assert normalize_top(raw) == expected


def test_parses_items_from_consecutive_rows(week_three_page):
    items = parse_agenda(week_three_page, now=STAMP)

    assert [item.top for item in items] == ["TOP 1", "TOP 2", "TOP 3", "ZP 1"]
    first = items[0]
    assert first.start == datetime(2024, 1, 17, 13, 0)
    assert first.end == datetime(2024, 1, 17, 14, 40)
    assert first.thema == "Befragung der Bundesregierung"
    assert first.status == "beraten"
    assert first.beschreibung == "Status: beraten\n\nFragestunde"
    assert first.url == "https://bundestag.de/dokumente/textarchiv/2024/kw03-de-regierungsbefragung"
    assert items[1].url is None
    assert items[1].end == datetime(2024, 1, 17, 15, 25)
    assert items[3].end == datetime(2024, 1, 18, 11, 30)


def test_generation_stamp_drops_microseconds(week_three_page):
    items = parse_agenda(week_three_page, now=STAMP)

    assert {item.dtstamp for item in items} == {datetime(2024, 1, 18, 7, 30, 12, tzinfo=timezone.utc)}


def test_uid_is_derived_from_start_topic_and_top(week_three_page):
    items = parse_agenda(week_three_page, now=STAMP)

    assert items[2].uid == "1705568400000-haushaltsgesetz-2024-top-3@api.hutt.io"
    assert build_uid(datetime(2024, 1, 18, 9, 0), "Haushaltsgesetz 2024", "TOP 3", "example.org") == (
        "1705568400000-haushaltsgesetz-2024-top-3@example.org"
    )


def test_line_breaks_survive_and_roll_call_is_detected(week_three_page):
    items = parse_agenda(week_three_page, now=STAMP)
    budget = items[2]

    assert budget.beschreibung == (
        "Status: angenommen\n\nZweite Beratung\nDrucksache 20/7800\nnamentliche Abstimmung"
    )
    assert budget.namentliche_abstimmung is True
    assert not any(item.namentliche_abstimmung for item in items if item is not budget)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Beratung\nNamentliche Abstimmung", True),
        ("Beratung – namentliche Abstimmung.", True),
        ("(namentliche Abstimmung)", True),
        ("namentliche Abstimmung über den Antrag", False),
        ("", False),
    ],
)
def test_is_roll_call(text, expected):
    assert is_roll_call(text) is expected


def test_parallel_items_get_default_duration():
    page = agenda_page(
        agenda_table(
            "Freitag, 19. Januar 2024",
            [
                agenda_row("09:00", "4", "Erste Beratung"),
                agenda_row("09:00", "5", "Überweisung im vereinfachten Verfahren"),
                closing_row("10:00"),
            ],
        )
    )

    items = parse_agenda(page, now=STAMP)

    assert items[0].start == datetime(2024, 1, 19, 9, 0)
    assert items[0].end == datetime(2024, 1, 19, 9, 15)
    assert items[1].end == datetime(2024, 1, 19, 10, 0)


def test_items_past_midnight_end_on_the_next_day():
    page = agenda_page(
        agenda_table(
            "Donnerstag, 14. März 2024",
            [agenda_row("23:20", "20", "Wehrbeauftragter"), closing_row("00:40")],
        )
    )

    (item,) = parse_agenda(page, now=STAMP)

    assert item.start == datetime(2024, 3, 14, 23, 20)
    assert item.end == datetime(2024, 3, 15, 0, 40)
    assert item.end > item.start


def test_malformed_row_is_skipped_and_logged(caplog):
    page = agenda_page(
        agenda_table(
            "Mittwoch, 17. Januar 2024",
            [
                agenda_row("13:00", "1", "Regierungsbefragung"),
                agenda_row("später", "2", "Fragestunde"),
                agenda_row("15:00", "3", "Aktuelle Stunde"),
                closing_row("16:00"),
            ],
        )
    )

    with caplog.at_level(logging.WARNING, logger="bundestag_agenda.parsing.agenda"):
        items = parse_agenda(page, now=STAMP)

    assert [item.top for item in items] == ["TOP 3"]
    assert "Skipping agenda row" in caplog.text


def test_table_with_unreadable_date_is_skipped(week_three_page, caplog):
    broken = agenda_table("Sondersitzung", [agenda_row("10:00", "1", "Vereidigung"), closing_row("11:00")])
    page = week_three_page.replace("</body>", f"{broken}</body>")

    with caplog.at_level(logging.WARNING, logger="bundestag_agenda.parsing.agenda"):
        items = parse_agenda(page, now=STAMP)

    assert len(items) == 4
    assert "Skipping conference table" in caplog.text


def test_page_without_tables_yields_nothing():
    assert parse_agenda(agenda_page(), now=STAMP) == []


def test_custom_uid_domain_and_article_base():
    page = agenda_page(
        agenda_table(
            "Mittwoch, 17. Januar 2024",
            [agenda_row("13:00", "1", "Befragung", url="dokumente/befragung"), closing_row("14:00")],
        )
    )
    parser = AgendaParser(uid_domain="bt.example", article_base_url="https://www.bundestag.de/")

    (item,) = parser.parse(page, now=STAMP)

    assert item.uid.endswith("@bt.example")
    assert item.url == "https://www.bundestag.de/dokumente/befragung"


def test_parse_conference_date_accepts_weekday_prefix():
    assert parse_conference_date("Mittwoch, 17. Januar 2024").isoformat() == "2024-01-17"
    assert parse_conference_date("1. März 2023").isoformat() == "2023-03-01"
    assert parse_conference_date("17 Januar 2024").isoformat() == "2024-01-17"
    with pytest.raises(ValueError):
        parse_conference_date("17. Brumaire 2024")
