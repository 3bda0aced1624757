from field_detection.analyzer import SectionDetector
from field_detection.dom import parse_html
from field_detection.settings import SectionSettings

from form_fixtures import ENTITY_TYPE_FIELDSET, SECTIONED_FORM


def _titles(result):
    return [(s.title, [f.candidate.name for f in s.fields]) for s in result.sections]


def test_fields_attach_to_the_heading_above(engine):
    result = engine.detect_html(SECTIONED_FORM)
    assert _titles(result) == [
        ("Business Information", ["business_name", "dba"]),
        ("Contact Details", ["email", "phone"]),
    ]
    assert all(f.section for f in result.fields)


def test_legend_titles_its_fieldset(engine):
    result = engine.detect_html(ENTITY_TYPE_FIELDSET)
    assert [s.title for s in result.sections] == ["Entity Type"]


def test_no_headers_yields_single_default_section(engine):
    result = engine.detect_html("<form><input name='a'><input name='b'></form>")
    assert [(s.title, s.is_default, len(s.fields)) for s in result.sections] == [
        ("Form Fields", True, 2)
    ]


def test_fields_before_first_header_go_to_trailing_section(engine):
    html = (
        "<form><input name='early'>"
        "<h3>Owner</h3><input name='owner_name'></form>"
    )
    result = engine.detect_html(html)
    assert _titles(result) == [("Owner", ["owner_name"]), ("Additional Fields", ["early"])]


def test_gap_limit_leaves_far_fields_unassigned(engine):
    html = (
        "<h2>Business Information</h2>"
        "<input name='near'>"
        "<div style='height: 600px'></div>"
        "<input name='far'>"
    )
    result = engine.detect_html(html)
    assert _titles(result) == [
        ("Business Information", ["near"]),
        ("Additional Fields", ["far"]),
    ]


def test_page_title_headers_are_ignored(engine):
    html = (
        "<header><h2>Department of Licensing</h2></header>"
        "<h1>Business Registration Portal</h1>"
        "<div class='page-title'>Welcome</div>"
        "<input name='a'>"
    )
    result = engine.detect_html(html)
    assert [s.title for s in result.sections] == ["Form Fields"]


def test_heading_classes_and_role(engine):
    html = (
        "<div class='panel-heading'>Registered Agent</div><input name='agent_name'>"
        "<div role='heading'>Principal Office:</div><input name='office'>"
    )
    result = engine.detect_html(html)
    assert [s.title for s in result.sections] == ["Registered Agent", "Principal Office"]


def test_empty_headers_and_containers_with_fields_are_not_headers():
    root = parse_html(
        "<h2>   </h2><div class='form-section'><input name='x'></div><h4>Real</h4>"
    )
    headers = SectionDetector().find_headers(root)
    assert [SectionDetector.header_text(h) for h in headers] == ["Real"]


def test_sections_partition_fields(engine):
    html = SECTIONED_FORM + "<input name='trailing_a'>" + ENTITY_TYPE_FIELDSET
    result = engine.detect_html(html)
    seen = [id(f) for s in result.sections for f in s.fields]
    assert len(seen) == len(set(seen))
    assert set(seen) == {id(f) for f in result.fields}


def test_empty_field_set_has_no_sections():
    assert SectionDetector().detect(parse_html("<h2>Lonely</h2>"), []) == []


def test_custom_gap_setting(engine):
    detector = SectionDetector(SectionSettings(max_gap_px=10))
    html = "<h2>Tight</h2><p>spacer line</p><input name='a'>"
    result = engine.detect_html(html)
    sections = detector.detect(parse_html(html), result.fields)
    assert [s.title for s in sections] == ["Additional Fields"]
