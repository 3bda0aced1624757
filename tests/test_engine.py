import logging

import pytest

from field_detection import FieldDetectionEngine
from field_detection.dom import DomNode, parse_html
from field_detection.errors import InvalidInputError, KnowledgeValidationError, RecoverableScanError

from form_fixtures import (
    BUSINESS_FORM,
    BUSINESS_NAME_ROW,
    DC_CLEAN_HANDS,
    ENTITY_TYPE_FIELDSET,
    FORM_WITHOUT_BUSINESS_NAME,
    HIDDEN_ONLY,
    SECTIONED_FORM,
)


def _by_name(result):
    return {f.candidate.name: f for f in result.fields}


def test_business_form_is_recognised(engine):
    result = engine.detect_html(BUSINESS_FORM)
    fields = _by_name(result)
    assert fields["business_name"].category == "business_name"
    assert fields["ein"].category == "ein"
    assert fields["contact_email"].category == "email"
    assert fields["contact_email"].confidence >= 90
    assert result.is_business_form is True
    assert result.overall_confidence >= 50
    assert result.summary["totalFields"] == 6


def test_entity_type_radios_become_one_field(engine):
    result = engine.detect_html(ENTITY_TYPE_FIELDSET)
    assert len(result.fields) == 1
    group = result.fields[0]
    assert group.is_group
    assert group.category == "entity_type"
    assert group.confidence >= 85
    assert len(group.options) == 5
    assert [s.title for s in result.sections] == ["Entity Type"]


@pytest.mark.parametrize("html", ["", "<html><body></body></html>", HIDDEN_ONLY])
def test_empty_or_hidden_only_documents(engine, html):
    result = engine.detect_html(html)
    assert result.fields == []
    assert result.sections == []
    assert result.is_business_form is False
    assert result.overall_confidence == 0
    assert result.skipped_fields == []


def test_allow_listed_hidden_field_is_kept(engine):
    result = engine.detect_html(
        "<form><input type='hidden' name='csrf_token' value='x'>"
        "<input type='hidden' name='session_id' value='y'></form>"
    )
    assert [f.candidate.name for f in result.fields] == ["csrf_token"]


def test_two_passes_give_the_same_result(engine):
    root = parse_html(BUSINESS_FORM + ENTITY_TYPE_FIELDSET)
    first = engine.detect(root)
    second = engine.detect(root)
    assert first.to_dict() == second.to_dict()


def test_sections_partition_fields(engine):
    result = engine.detect_html(SECTIONED_FORM)
    assert [s.title for s in result.sections] == ["Business Information", "Contact Details"]
    seen = [id(f) for s in result.sections for f in s.fields]
    assert sorted(seen) == sorted(id(f) for f in result.fields)
    assert len(seen) == len(set(seen))
    for section in result.sections:
        for f in section.fields:
            assert f.section == section.title


def test_adding_a_business_name_raises_confidence(engine):
    without = engine.detect_html(FORM_WITHOUT_BUSINESS_NAME)
    with_name = engine.detect_html(
        FORM_WITHOUT_BUSINESS_NAME.replace("<form>", "<form>" + BUSINESS_NAME_ROW)
    )
    assert with_name.overall_confidence >= min(100, without.overall_confidence + 40)
    assert with_name.is_business_form is True
    assert without.is_business_form is False


@pytest.mark.parametrize("root", [None, "<form></form>", 42])
def test_invalid_roots_are_rejected(engine, root):
    with pytest.raises(InvalidInputError):
        engine.detect(root)


def test_detached_root_is_rejected(engine):
    with pytest.raises(InvalidInputError):
        engine.detect(DomNode("form"))


def test_subtree_of_a_document_is_accepted(engine):
    root = parse_html(BUSINESS_FORM)
    form = root.find_by_id("reg")
    result = engine.detect(form)
    assert len(result.fields) == 6


def test_recoverable_errors_skip_one_field(engine, monkeypatch, caplog):
    original = engine.classifier.classify

    def flaky(field, kb):
        if field.candidate.name == "ein":
            raise RecoverableScanError("label vanished", "input#ein")
        return original(field, kb)

    monkeypatch.setattr(engine.classifier, "classify", flaky)
    with caplog.at_level(logging.WARNING):
        result = engine.detect_html(BUSINESS_FORM)
    assert "ein" not in _by_name(result)
    assert len(result.fields) == 5
    assert [s.to_dict() for s in result.skipped_fields] == [
        {"ref": "input#ein", "reason": "label vanished"}
    ]
    assert "Skipping field input#ein" in caplog.text


def test_clean_hands_needs_dc_knowledge(engine):
    generic = engine.detect_html(DC_CLEAN_HANDS)
    assert generic.fields[0].category != "clean_hands"

    explicit = engine.detect_html(DC_CLEAN_HANDS, state_code="dc")
    assert explicit.detected_state == "DC"
    assert explicit.fields[0].category == "clean_hands"

    from_url = engine.detect_html(DC_CLEAN_HANDS, url="https://mybusiness.dc.gov/apply")
    assert from_url.detected_state == "DC"
    assert from_url.fields[0].category == "clean_hands"
    assert from_url.url_analysis["state"] == "DC"


def test_caller_overrides_add_categories(engine):
    html = "<form><label for='m'>Membership Number</label><input id='m' name='m'></form>"
    result = engine.detect_html(
        html, knowledge_overrides={"membership": {"patterns": ["membership\\s*number"], "priority": 5}}
    )
    assert result.fields[0].category == "membership"
    assert result.fields[0].confidence == 45


def test_invalid_overrides_raise(engine):
    with pytest.raises(KnowledgeValidationError):
        engine.detect_html(BUSINESS_FORM, knowledge_overrides={"ein": {"patterns": ["("]}})


def test_url_analysis_only_with_url(engine):
    assert engine.detect_html(BUSINESS_FORM).url_analysis is None
    result = engine.detect_html(BUSINESS_FORM, url="https://example.com/")
    assert result.url_analysis["score"] == 0


def test_result_serialises_with_section_indexes(engine):
    data = engine.detect_html(SECTIONED_FORM).to_dict()
    assert set(data) == {
        "fields",
        "sections",
        "overallConfidence",
        "isBusinessForm",
        "detectedState",
        "summary",
        "urlAnalysis",
        "skippedFields",
    }
    indexes = [i for s in data["sections"] for i in s["fieldIndexes"]]
    assert sorted(indexes) == list(range(len(data["fields"])))


def test_pass_summary_is_logged(engine, caplog):
    with caplog.at_level(logging.INFO, logger="field_detection.engine"):
        engine.detect_html(BUSINESS_FORM)
    records = [r for r in caplog.records if getattr(r, "summary", False)]
    assert len(records) == 1
    assert "6 fields" in records[0].getMessage()


def test_engine_defaults_load_from_config():
    engine = FieldDetectionEngine()
    assert "business_name" in engine.base_knowledge
    assert engine.settings.form.business_form_threshold == 50
