import copy
import logging
from types import SimpleNamespace

import pytest

from field_detection.errors import KnowledgeValidationError
from field_detection.knowledge import validator
from field_detection.knowledge import (
    KnowledgeBase,
    load_knowledge_base,
    validate_entry,
    validate_knowledge_map,
)


def test_base_knowledge_loads_in_declared_order(knowledge):
    categories = knowledge.categories
    assert categories[0] == "business_name"
    for expected in ("entity_type", "ein", "email", "phone", "agreement", "boolean"):
        assert expected in knowledge
    assert knowledge.label_for("ein") == "EIN/Tax ID"
    assert knowledge.label_for("made_up_thing") == "Made Up Thing"
    assert "entity_type" in knowledge.option_vocabulary
    assert "government" in knowledge.url_patterns


def test_merge_unions_lists_and_replaces_scalars(knowledge):
    merged = knowledge.merge(
        {
            "ein": {"patterns": ["tin\\s*number"], "keywords": ["Taxpayer"], "priority": 3},
            "clean_hands": {"patterns": ["clean\\s*hands"], "label": "Clean Hands"},
        }
    )
    ein = merged.get("ein")
    base_ein = knowledge.get("ein")
    assert ein.patterns[: len(base_ein.patterns)] == base_ein.patterns
    assert ein.patterns[-1] == "tin\\s*number"
    assert "taxpayer" in ein.keywords
    assert ein.priority == 3
    assert ein.validation == base_ein.validation
    assert merged.categories[-1] == "clean_hands"
    # original untouched
    assert "tin\\s*number" not in knowledge.get("ein").patterns
    assert "clean_hands" not in knowledge


def test_attributes_fold_into_keywords():
    entry = validate_entry("seller_permit", {"attributes": ["Seller"], "keywords": ["cdtfa", "seller"]})
    assert entry["keywords"] == ["seller", "cdtfa"]


@pytest.mark.parametrize(
    "overrides",
    [
        ["not", "a", "dict"],
        {"ein": "nope"},
        {"ein": {"patterns": "ein"}},
        {"ein": {"patterns": ["("]}},
        {"ein": {"priority": "high"}},
        {"ein": {"priority": True}},
        {"ein": {"keywords": [1, 2]}},
        {"": {"patterns": ["x"]}},
        {"ein": {"label": 5}},
    ],
)
def test_malformed_overrides_raise(overrides, knowledge):
    with pytest.raises(KnowledgeValidationError):
        knowledge.merge(overrides)


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        validate_knowledge_map({"x": {"patterns": ["["]}})


def test_bundled_invalid_regex_is_skipped(caplog):
    data = {"field_patterns": {"alpha": {"patterns": ["ok", "[broken"], "priority": 1}}}
    with caplog.at_level(logging.WARNING):
        kb = KnowledgeBase.from_dict(data)
    assert kb.get("alpha").patterns == ["ok"]
    assert "invalid regex" in caplog.text


def test_validation_result_is_cached():
    raw = {"alpha": {"patterns": ["a"]}}
    first = validate_knowledge_map(raw)
    second = validate_knowledge_map(copy.deepcopy(raw))
    assert first is second


def test_state_overrides_are_merged(knowledge):
    dc = load_knowledge_base("dc", base=knowledge)
    assert dc.state == "DC"
    assert "clean_hands" in dc
    assert "fein\\s*/\\s*ssn" in dc.get("ein").patterns
    assert dc.get("registered_agent").priority == 10
    assert "corponline" in dc.url_patterns["business_registration"]
    assert "corponline" not in knowledge.url_patterns["business_registration"]


def test_unknown_state_leaves_base_unchanged(knowledge):
    kb = load_knowledge_base("ZZ", base=knowledge)
    assert kb is knowledge


def test_caller_overrides_apply_after_state(knowledge):
    kb = load_knowledge_base("DC", {"clean_hands": {"priority": 1}}, base=knowledge)
    assert kb.get("clean_hands").priority == 1
    assert kb.get("clean_hands").label == "Clean Hands Certification"


def test_expired_cache_entries_are_swept(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(validator, "time", SimpleNamespace(time=lambda: clock[0]))
    validate_knowledge_map({"alpha": {"patterns": ["a"]}})
    assert len(validator._validation_cache) == 1

    clock[0] += validator._CACHE_TTL_SECONDS + 1
    validate_knowledge_map({"beta": {"patterns": ["b"]}})
    assert len(validator._validation_cache) == 1


def test_cache_size_is_bounded(monkeypatch):
    monkeypatch.setattr(validator, "_CACHE_MAX_ENTRIES", 3)
    first = {"c0": {"keywords": ["k"]}}
    validate_knowledge_map(first)
    for i in range(1, 5):
        validate_knowledge_map({f"c{i}": {"keywords": ["k"]}})
    assert len(validator._validation_cache) == 3
    assert validator._get_cache_key(first, True) not in validator._validation_cache
