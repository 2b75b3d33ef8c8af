"""
Tests for three-tier name resolution (rules → cache → AI).
"""
import asyncio
import json

import pytest

from packages.common.errors import CollaboratorError, ModelError, ResolutionError
from packages.common.mapping_cache import MappingCacheRepository
from packages.common.rules_repository import RulesRepository
from packages.common.schemas.ticket import TOTAL_SENTINEL, Rule
from packages.domain.normalization.resolver import NameResolver, parse_normalization_response
from packages.domain.normalization.rules import apply_rule_or_mapping, match_rule
from tests.fakes import FakeModel, listed_names, simplify_all


def _resolver(model, store, batch_size=30):
    return NameResolver(
        model=model,
        cache_repository=MappingCacheRepository(store, "sheet-1"),
        rules_repository=RulesRepository(store, "sheet-1"),
        batch_size=batch_size,
    )


def test_rule_match_is_case_insensitive_substring():
    rules = [Rule(pattern="coca", normalized="Coca-Cola", category="Bebidas")]
    assert match_rule("COCA COLA ZERO 2L", rules).normalized == "Coca-Cola"
    assert match_rule("PEPSI", rules) is None


def test_first_matching_rule_wins_and_blank_pattern_never_matches():
    rules = [
        Rule(pattern="  ", normalized="Nada"),
        Rule(pattern="leche", normalized="Leche"),
        Rule(pattern="leche entera", normalized="Leche Entera"),
    ]
    assert match_rule("LECHE ENTERA 1L", rules).normalized == "Leche"


def test_apply_rule_or_mapping_precedence():
    rules = [Rule(pattern="coca", normalized="Coca-Cola", category="Bebidas")]
    mappings = {"COCA COLA ZERO": "Refresco", "YOG GRIEGO": "Yogur Griego"}

    assert apply_rule_or_mapping("COCA COLA ZERO", "Otros", rules, mappings) == ("Coca-Cola", "Bebidas")
    assert apply_rule_or_mapping("YOG GRIEGO", "Lácteos", rules, mappings) == ("Yogur Griego", "Lácteos")
    assert apply_rule_or_mapping("PAN", "", rules, mappings) == ("PAN", "Otros")
    assert apply_rule_or_mapping(TOTAL_SENTINEL, "TOTAL", rules, mappings) == (TOTAL_SENTINEL, "TOTAL")


def test_rule_hits_excluded_and_unknown_names_go_to_ai(store):
    model = FakeModel(handler=lambda p: json.dumps([{"original": "LECHE", "simplificado": "Leche"}]))
    rules = [Rule(pattern="coca", normalized="Coca-Cola", category="Bebidas")]

    result = asyncio.run(_resolver(model, store).resolve(["COCA COLA ZERO", "LECHE"], rules, {}))

    assert result == {"LECHE": "Leche"}
    assert listed_names(model.calls[0]["prompt"]) == ["LECHE"]
    assert store.tabs["Mapping_Cache"] == [["LECHE", "Leche"]]


def test_cache_hits_skip_the_model(store):
    model = FakeModel()
    cache = {"LECHE ENTERA HACENDADO 1L": "Leche Entera"}

    result = asyncio.run(_resolver(model, store).resolve(["LECHE ENTERA HACENDADO 1L"], [], cache))

    assert result == cache
    assert model.calls == []


def test_blank_and_sentinel_names_ignored(store):
    model = FakeModel()
    result = asyncio.run(_resolver(model, store).resolve(["", "   ", TOTAL_SENTINEL], [], {}))

    assert result == {}
    assert model.calls == []


def test_cached_sentinel_value_is_a_miss(store):
    model = FakeModel(handler=simplify_all)
    result = asyncio.run(_resolver(model, store).resolve(["PAN"], [], {"PAN": TOTAL_SENTINEL}))

    assert result == {"PAN": "pan"}
    assert len(model.calls) == 1


def test_names_are_trimmed_and_deduplicated(store):
    model = FakeModel(handler=simplify_all)
    result = asyncio.run(_resolver(model, store).resolve([" PAN ", "PAN", "HUEVOS"], [], {}))

    assert result == {"PAN": "pan", "HUEVOS": "huevos"}
    assert listed_names(model.calls[0]["prompt"]) == ["PAN", "HUEVOS"]


def test_single_batch_of_thirty(store):
    model = FakeModel(handler=simplify_all)
    names = [f"PRODUCTO {i:02d}" for i in range(45)]

    result = asyncio.run(_resolver(model, store).resolve(names, [], {}))

    assert len(model.calls) == 1
    assert listed_names(model.calls[0]["prompt"]) == names[:30]
    assert set(result) == set(names[:30])
    assert not set(result) & set(names[30:])


def test_second_pass_learns_the_rest(store):
    model = FakeModel(handler=simplify_all)
    resolver = _resolver(model, store, batch_size=30)
    names = [f"PRODUCTO {i:02d}" for i in range(45)]

    asyncio.run(resolver.normalize_products(names))
    second = asyncio.run(resolver.normalize_products(names))

    assert len(second) == 45
    assert listed_names(model.calls[1]["prompt"]) == names[30:]


def test_resolution_is_idempotent_once_cached(store):
    model = FakeModel(handler=simplify_all)
    resolver = _resolver(model, store)

    first = asyncio.run(resolver.normalize_products(["PAN", "HUEVOS"]))
    second = asyncio.run(resolver.normalize_products(["PAN", "HUEVOS"]))

    assert first == second
    assert len(model.calls) == 1


def test_learned_pairs_appended_to_existing_cache(store):
    store.tabs["Mapping_Cache"] = [["LECHE", "Leche"], ["LECHE", "Leche Duplicada"]]
    model = FakeModel(handler=simplify_all)

    result = asyncio.run(_resolver(model, store).normalize_products(["LECHE", "PAN"]))

    assert result == {"LECHE": "Leche", "PAN": "pan"}
    assert store.tabs["Mapping_Cache"] == [["LECHE", "Leche"], ["LECHE", "Leche Duplicada"], ["PAN", "pan"]]


def test_non_text_values_are_stringified(store):
    model = FakeModel(responses=[json.dumps([{"original": 7501, "simplificado": 12}])])
    result = asyncio.run(_resolver(model, store).resolve(["7501"], [], {}))
    assert result == {"7501": "12"}


def test_sentinel_pairs_never_stored(store):
    answer = [
        {"original": "PAN", "simplificado": TOTAL_SENTINEL},
        {"original": "HUEVOS", "simplificado": ""},
        {"original": "LECHE", "simplificado": "Leche"},
    ]
    model = FakeModel(responses=[json.dumps(answer)])

    result = asyncio.run(_resolver(model, store).resolve(["PAN", "HUEVOS", "LECHE"], [], {}))

    assert result == {"LECHE": "Leche"}
    assert store.tabs["Mapping_Cache"] == [["LECHE", "Leche"]]


def test_model_failure_raises_and_discards_cache_hits(store):
    model = FakeModel(responses=[ModelError("model", "overloaded", 529)])

    with pytest.raises(ResolutionError):
        asyncio.run(_resolver(model, store).resolve(["PAN", "LECHE"], [], {"LECHE": "Leche"}))

    assert store.tabs["Mapping_Cache"] == []


@pytest.mark.parametrize("answer", [
    "not json",
    json.dumps({"original": "PAN", "simplificado": "Pan"}),
    json.dumps([{"original": "PAN"}]),
    json.dumps(["PAN"]),
])
def test_malformed_answer_raises(store, answer):
    model = FakeModel(responses=[answer])
    with pytest.raises(ResolutionError):
        asyncio.run(_resolver(model, store).resolve(["PAN"], [], {}))


def test_cache_write_failure_raises(store):
    store.failures["write_range"] = CollaboratorError("sheets", "quota exceeded", 429)
    model = FakeModel(handler=simplify_all)

    with pytest.raises(ResolutionError):
        asyncio.run(_resolver(model, store).resolve(["PAN"], [], {}))


def test_parse_accepts_english_key():
    pairs = parse_normalization_response(json.dumps([{"original": "PAN", "simplified": "Pan"}]))
    assert [(p.original, p.simplified) for p in pairs] == [("PAN", "Pan")]


def test_normalize_products_loads_rules_from_store(store):
    store.tabs["Rules"].append(["coca", "Coca-Cola", "Bebidas"])
    model = FakeModel(handler=simplify_all)

    result = asyncio.run(_resolver(model, store).normalize_products(["COCA COLA", "PAN"]))

    assert result == {"PAN": "pan"}


def test_whitespace_pattern_matches_nothing():
    rules = [Rule(pattern="", normalized="Vacío"), Rule(pattern=" \t ", normalized="Espacios")]
    assert match_rule("PAN", rules) is None
    assert match_rule(" ", rules) is None


def test_rule_match_wins_over_cache_entry(store):
    model = FakeModel()
    rules = [Rule(pattern="coca", normalized="Coca-Cola", category="Bebidas")]
    cache = {"COCA COLA ZERO": "Refresco", "PAN": "Pan"}

    result = asyncio.run(_resolver(model, store).resolve(["COCA COLA ZERO", "PAN"], rules, cache))

    assert result == {"PAN": "Pan"}
    assert model.calls == []


def test_ai_answer_for_rule_matched_name_is_ignored(store):
    answer = [
        {"original": "COCA COLA ZERO", "simplificado": "Refresco"},
        {"original": "PAN", "simplificado": "Pan"},
    ]
    model = FakeModel(responses=[json.dumps(answer)])
    rules = [Rule(pattern="coca", normalized="Coca-Cola", category="Bebidas")]

    result = asyncio.run(_resolver(model, store).resolve(["COCA COLA ZERO", "PAN"], rules, {}))

    assert result == {"PAN": "Pan"}
    assert store.tabs["Mapping_Cache"] == [["PAN", "Pan"]]


def test_ai_answer_for_unrequested_names_is_ignored(store):
    answer = [
        {"original": "PAN", "simplificado": "Pan"},
        {"original": "LECHE", "simplificado": "Leche Nueva"},
        {"original": "HUEVOS", "simplificado": "Huevos"},
    ]
    model = FakeModel(responses=[json.dumps(answer)])

    result = asyncio.run(_resolver(model, store).resolve(["PAN", "LECHE"], [], {"LECHE": "Leche"}))

    assert result == {"PAN": "Pan", "LECHE": "Leche"}
    assert store.tabs["Mapping_Cache"] == [["PAN", "Pan"]]
