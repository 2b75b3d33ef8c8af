"""
Tests for the sheet-backed repositories and database bootstrap.
"""
import asyncio
from datetime import datetime

import pytest

from packages.common.database import (
    LEDGER_HEADER,
    RULES_HEADER,
    ensure_database,
    find_database,
)
from packages.common.errors import DatabaseNotFoundError
from packages.common.ledger_repository import LedgerRepository
from packages.common.mapping_cache import MappingCacheRepository
from packages.common.rules_repository import RulesRepository
from packages.common.schemas.ticket import NameMapping, Rule, TOTAL_SENTINEL
from packages.common.settings_repository import SettingsRepository
from packages.domain.extraction.validator import parse_ticket_json
from tests.fakes import FakeStore, ticket_json


def test_settings_defaults_when_tab_is_empty():
    settings = asyncio.run(SettingsRepository(FakeStore(), "s").get_settings())

    assert settings.GMAIL_SEARCH_LABEL == "OmniTicket"
    assert settings.GMAIL_PROCESSED_LABEL == "OmniTicket/Procesado"
    assert settings.AI_API_KEY == ""
    assert settings.LAST_SYNC == "Nunca"


def test_settings_read_from_four_row_block(store):
    asyncio.run(SettingsRepository(store, "s").get_settings())
    assert ("read_range", "Settings!A1:B4") in store.calls


def test_settings_blank_values_fall_back_and_legacy_key_is_read():
    store = FakeStore({"Settings": [
        ["GMAIL_SEARCH_LABEL", "  "],
        ["GMAIL_PROCESSED_LABEL", "Hecho"],
        ["GEMINI_API_KEY", "legacy-key"],
        ["LAST_SYNC"],
    ]})

    settings = asyncio.run(SettingsRepository(store, "s").get_settings())

    assert settings.GMAIL_SEARCH_LABEL == "OmniTicket"
    assert settings.GMAIL_PROCESSED_LABEL == "Hecho"
    assert settings.AI_API_KEY == "legacy-key"
    assert settings.LAST_SYNC == "Nunca"


def test_update_last_sync_rewrites_its_row(store):
    stamp = asyncio.run(SettingsRepository(store, "s").update_last_sync(datetime(2024, 5, 1, 9, 30, 0)))

    assert stamp == "2024-05-01 09:30:00"
    assert store.tabs["Settings"][3] == ["LAST_SYNC", "2024-05-01 09:30:00"]
    assert ("write_range", "Settings!A4:B4") in store.calls


def test_update_ai_key_appends_when_key_missing():
    store = FakeStore({"Settings": [["GMAIL_SEARCH_LABEL", "OmniTicket"]]})

    asyncio.run(SettingsRepository(store, "s").update_ai_key(" sk-ant-123 "))

    assert store.tabs["Settings"][-1] == ["AI_API_KEY", "sk-ant-123"]


def test_ledger_append_writes_items_and_total_in_one_call(store):
    ticket = parse_ticket_json(ticket_json(total=4.3), ticket_id="t-1")

    written = asyncio.run(LedgerRepository(store, "s").append_ticket(ticket))

    assert written == 3
    assert [c for c in store.calls if c[0] == "append_rows"] == [("append_rows", "Gastos!A:I")]
    assert store.tabs["Gastos"][0] == LEDGER_HEADER
    assert store.tabs["Gastos"][-1][3] == TOTAL_SENTINEL


def test_ledger_reads_skip_header(store):
    ticket = parse_ticket_json(ticket_json(total=4.3), ticket_id="t-1")
    repo = LedgerRepository(store, "s")
    asyncio.run(repo.append_ticket(ticket))

    rows = asyncio.run(repo.fetch_line_items())
    history = asyncio.run(repo.fetch_history())

    assert len(rows) == 3
    assert [(h.id, h.total) for h in history] == [("t-1", 4.3)]


def test_ledger_history_date_window(store):
    store.tabs["Gastos"] += [
        ["a", "Dia", "2024-04-30", TOTAL_SENTINEL, "TOTAL", "", "", "", 3],
        ["b", "Lidl", "2024-05-15", TOTAL_SENTINEL, "TOTAL", "", "", "", 5],
        ["c", "Dia", "2024-06-01", TOTAL_SENTINEL, "TOTAL", "", "", "", 7],
    ]
    repo = LedgerRepository(store, "s")

    assert [h.id for h in asyncio.run(repo.fetch_history("2024-05-01", "2024-05-31"))] == ["b"]
    assert [h.id for h in asyncio.run(repo.fetch_history(start="2024-05-01"))] == ["c", "b"]


def test_rules_round_trip_with_default_category(store):
    repo = RulesRepository(store, "s")
    asyncio.run(repo.add_rule(Rule(pattern="coca", normalized="Coca-Cola", category="Bebidas")))
    store.tabs["Rules"].append([" leche ", "Leche"])

    rules = asyncio.run(repo.get_rules())

    assert store.tabs["Rules"][0] == RULES_HEADER
    assert [(r.pattern, r.normalized, r.category) for r in rules] == [
        ("coca", "Coca-Cola", "Bebidas"),
        ("leche", "Leche", "Otros"),
    ]


def test_mapping_cache_first_occurrence_wins():
    store = FakeStore({"Mapping_Cache": [
        ["LECHE", "Leche"],
        ["PAN"],
        ["LECHE", "Leche Entera"],
    ]})

    cache = asyncio.run(MappingCacheRepository(store, "s").get_cache())

    assert cache == {"LECHE": "Leche"}


def test_mapping_cache_append_keeps_existing_pairs():
    store = FakeStore({"Mapping_Cache": [["LECHE", "Leche"]]})
    repo = MappingCacheRepository(store, "s")

    total = asyncio.run(repo.append_mappings([NameMapping(original="PAN", simplified="Pan")]))

    assert total == 2
    assert store.tabs["Mapping_Cache"] == [["LECHE", "Leche"], ["PAN", "Pan"]]


def test_find_database_missing():
    with pytest.raises(DatabaseNotFoundError):
        asyncio.run(find_database(FakeStore(), "OmniTicket_DB"))


def test_ensure_database_creates_and_seeds_once():
    store = FakeStore()

    first = asyncio.run(ensure_database(store, "OmniTicket_DB"))
    second = asyncio.run(ensure_database(store, "OmniTicket_DB"))

    assert first == second
    assert len(store.created) == 1
    assert [tab["title"] for tab in store.created[0][1]] == ["Settings", "Gastos", "Rules", "Mapping_Cache"]
    assert store.tabs["Settings"][3] == ["LAST_SYNC", "Nunca"]
    assert store.tabs["Gastos"] == [LEDGER_HEADER]
    assert store.tabs["Rules"] == [RULES_HEADER]
    assert store.tabs["Mapping_Cache"] == []
