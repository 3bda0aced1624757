import pytest

from config.manager import get_state_detection_table
from field_detection.analyzer import StateDetector, analyze_url
from field_detection.dom import parse_html


@pytest.fixture(scope="module")
def detector():
    return StateDetector(get_state_detection_table())


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://corponline.dcra.dc.gov/Home.aspx/Landing", "DC"),
        ("https://bizfileonline.sos.ca.gov/registration", "CA"),
        ("https://www.sunbiz.org/Filings", "FL"),
        ("https://sos.ga.gov/corporations", "GA"),
        ("https://www.nv.gov/business", "NV"),
        ("https://www.state.mn.us/forms", "MN"),
        ("https://portal.example.gov/or/apply", "OR"),
        ("https://business.texas.gov/start", "TX"),
        ("https://example.com/signup", None),
        ("", None),
        (None, None),
    ],
)
def test_state_from_url(detector, url, expected):
    assert detector.from_url(url) == expected


def test_unknown_two_letter_code_is_ignored(detector):
    assert detector.from_url("https://sos.zz.gov/") is None


def test_state_from_page_text(detector):
    root = parse_html("<h1>Florida Division of Corporations</h1><input name='x'>")
    assert detector.detect(url="https://example.com", root=root) == "FL"


def test_option_text_does_not_decide_the_state(detector):
    root = parse_html(
        "<select name='state'><option>District of Columbia</option>"
        "<option>Texas Secretary of State</option></select>"
    )
    assert detector.detect(root=root) is None


def test_url_wins_over_page_text(detector):
    root = parse_html("<p>California Secretary of State</p>")
    assert detector.detect(url="https://sunbiz.org/", root=root) == "FL"


def test_empty_table_detects_nothing():
    assert StateDetector().detect(url="https://sos.ca.gov/", root=None) is None


def test_registration_site_scores_high(detector):
    result = analyze_url(
        "https://bizfileonline.sos.ca.gov/registration/business-entity", detector=detector
    )
    assert result["score"] >= 60
    assert result["isLikelyRegistrationSite"] is True
    assert result["state"] == "CA"
    assert result["domain"] == "bizfileonline.sos.ca.gov"
    assert result["details"]["isGovernment"] is True
    assert "business_registration" in result["details"]["patterns"]
    assert any("State-specific" in r for r in result["reasons"])


def test_plain_site_scores_zero(detector):
    result = analyze_url("https://example.com/", detector=detector)
    assert result["score"] == 0
    assert result["isLikelyRegistrationSite"] is False
    assert result["reasons"] == []


def test_query_parameters_add_points():
    result = analyze_url("https://example.com/apply?filing=1&form=2")
    assert result["score"] == 10
    assert result["reasons"] == ["Business-related query parameters (10 points)"]


def test_business_terms_are_capped():
    result = analyze_url(
        "https://example.com/business/entity/llc/corporation/register/formation/tax/license"
    )
    assert result["score"] == 50


@pytest.mark.parametrize("url", ["", None, "not a url", "://missing-scheme"])
def test_bad_urls_never_raise(url):
    result = analyze_url(url)
    assert result["score"] == 0
    assert result["isLikelyRegistrationSite"] is False
    assert result["reasons"]
