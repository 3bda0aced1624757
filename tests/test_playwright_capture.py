import asyncio

import pytest

from field_detection import FieldDetectionEngine
from field_detection.dom import capture_dom_snapshot


def _serialized_page():
    return {
        "tag": "#document",
        "truncated": False,
        "children": [
            {
                "tag": "html",
                "attrs": {},
                "rect": {"x": 0, "y": 0, "width": 1280, "height": 400},
                "style": {"display": "block", "visibility": "visible", "opacity": "1"},
                "children": [
                    {
                        "tag": "label",
                        "attrs": {"for": "bn"},
                        "rect": {"x": 10, "y": 10, "width": 120, "height": 18},
                        "style": {"display": "block", "visibility": "visible", "opacity": "1"},
                        "children": [
                            {"tag": "#text", "text": "Business Name", "rect": {"x": 10, "y": 10, "width": 110, "height": 18}},
                        ],
                    },
                    {
                        "tag": "input",
                        "attrs": {"id": "bn", "name": "business_name", "type": "text"},
                        "rect": {"x": 10, "y": 32, "width": 240, "height": 24},
                        "style": {"display": "inline-block", "visibility": "visible", "opacity": "1"},
                        "value": "Acme LLC",
                        "checked": False,
                        "children": [],
                    },
                    {
                        "tag": "input",
                        "attrs": {"id": "em", "name": "contact", "type": "email"},
                        "rect": {"x": 10, "y": 70, "width": 240, "height": 24},
                        "style": {"display": "inline-block", "visibility": "visible", "opacity": "1"},
                        "value": "",
                        "children": [],
                    },
                    {
                        "tag": "input",
                        "attrs": {"id": "gone", "name": "gone", "type": "text"},
                        "rect": {"x": 0, "y": 0, "width": 0, "height": 0},
                        "style": {"display": "none", "visibility": "visible", "opacity": "1"},
                        "children": [],
                    },
                ],
            }
        ],
    }


class FakePage:
    def __init__(self, payload, url="https://corponline.dcra.dc.gov/BizEntity.aspx/NewBusinessEntity"):
        self.payload = payload
        self.url = url
        self.calls = []

    async def evaluate(self, script, arg=None):
        self.calls.append((script, arg))
        return self.payload


def test_capture_builds_snapshot_from_serialized_tree():
    page = FakePage(_serialized_page())
    root = asyncio.run(capture_dom_snapshot(page, max_nodes=500))
    assert root.is_document
    assert page.calls[0][1] == 500
    field = root.find_by_id("bn")
    assert field.value == "Acme LLC"
    assert field.rect.width == 240
    assert field.is_connected()
    assert not root.find_by_id("gone").is_rendered()


def test_capture_rejects_non_dict_payload():
    with pytest.raises(RuntimeError):
        asyncio.run(capture_dom_snapshot(FakePage(None)))


def test_truncated_capture_logs_warning(caplog):
    payload = _serialized_page()
    payload["truncated"] = True
    with caplog.at_level("WARNING"):
        asyncio.run(capture_dom_snapshot(FakePage(payload), max_nodes=3))
    assert "node limit" in caplog.text


def test_detect_page_uses_page_url(engine):
    page = FakePage(_serialized_page())
    result = asyncio.run(engine.detect_page(page))
    assert result.detected_state == "DC"
    assert result.url_analysis is not None
    categories = {f.label.text: f.category for f in result.fields}
    assert categories["Business Name"] == "business_name"
    assert [f.candidate.id for f in result.fields] == ["bn", "em"]
    email = next(f for f in result.fields if f.candidate.id == "em")
    assert email.category == "email"
    assert email.confidence >= 90
