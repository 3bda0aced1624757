"""Best-effort jurisdiction lookup and URL registration-likelihood scoring."""

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlparse

from ..dom.snapshot import DomNode

logger = logging.getLogger(__name__)

# Regexes capturing a 2-letter code or a compact state name from a URL
_URL_CODE_PATTERNS = [
    re.compile(r"(?<![a-z])sos\.([a-z]{2})\.", re.IGNORECASE),
    re.compile(r"\.([a-z]{2})\.gov(?![a-z])", re.IGNORECASE),
    re.compile(r"\.([a-z]{2})\.us(?![a-z])", re.IGNORECASE),
    re.compile(r"\.gov/([a-z]{2})/", re.IGNORECASE),
]
_HOST_LABEL = re.compile(r"[a-z]+")

TEXT_SKIP_TAGS = ("option", "script", "style")

DEFAULT_URL_PATTERNS: Dict[str, List[str]] = {
    "government": [r"\.gov(?![a-z])", r"\.us(?![a-z])", r"(?<![a-z])state\.", r"(?<![a-z])sos\.", r"secretary.*state"],
    "business_registration": ["business", "entity", "corporation", "llc", "register", "formation", "incorporate"],
    "tax": ["tax", "revenue", "irs", r"(?<![a-z])ein(?![a-z])"],
    "licensing": ["license", "permit", "certification"],
}
KEY_BUSINESS_TERMS = frozenset({"register", "business", "llc", "corporation", "incorporate"})
QUERY_TERMS = (
    "register", "entity", "business", "formation", "filing",
    "llc", "corporation", "corp", "type", "form",
)
REGISTRATION_SITE_THRESHOLD = 60


class StateDetector:
    """Static-table state lookup over the URL and then the page text."""

    def __init__(self, table: Optional[Dict[str, Any]] = None):
        table = table or {}
        self.states: List[Dict[str, Any]] = list(table.get("states", []))
        self.state_names: Dict[str, str] = {
            k.lower(): v.upper() for k, v in (table.get("state_names") or {}).items()
        }
        self.valid_codes = set(self.state_names.values()) | {
            str(s.get("code", "")).upper() for s in self.states
        }

    def _match_table(self, haystack: str) -> Optional[str]:
        for entry in self.states:
            for needle in entry.get("substrings", []):
                if needle.lower() in haystack:
                    return str(entry["code"]).upper()
        return None

    def from_url(self, url: Optional[str]) -> Optional[str]:
        if not url:
            return None
        lowered = url.lower()
        code = self._match_table(lowered)
        if code:
            return code

        for pattern in _URL_CODE_PATTERNS:
            m = pattern.search(lowered)
            if m and m.group(1).upper() in self.valid_codes:
                return m.group(1).upper()

        host = urlparse(lowered).hostname or ""
        for label in _HOST_LABEL.findall(host):
            if label in self.state_names:
                return self.state_names[label]
        return None

    def from_text(self, root: Optional[DomNode]) -> Optional[str]:
        if root is None:
            return None
        text = " ".join(root.text_content(skip_tags=TEXT_SKIP_TAGS).split()).lower()
        return self._match_table(text) if text else None

    def detect(self, url: Optional[str] = None, root: Optional[DomNode] = None) -> Optional[str]:
        """First match wins: URL table, URL patterns, then page text."""
        code = self.from_url(url)
        if code:
            logger.debug(f"State {code} detected from URL")
            return code
        code = self.from_text(root)
        if code:
            logger.debug(f"State {code} detected from page text")
        return code


def _government_score(domain: str, patterns: List[str]) -> int:
    score = 0
    for pattern in patterns:
        if re.search(pattern, domain, re.IGNORECASE):
            score = max(score, 30)
    if "state" in domain and ".us" in domain:
        score = max(score, 25)
    elif any(term in domain for term in ("county", "city", "municipal")):
        score = max(score, 20)
    return score


def _business_score(url: str, patterns: Dict[str, List[str]]) -> Dict[str, Any]:
    score = 0
    matches: List[str] = []
    groups: List[str] = []
    for group, weight in (("business_registration", 10), ("tax", 8), ("licensing", 5)):
        for pattern in patterns.get(group, []):
            if re.search(pattern, url, re.IGNORECASE):
                score += weight
                if group == "business_registration" and pattern in KEY_BUSINESS_TERMS:
                    score += 5
                if pattern not in matches:
                    matches.append(pattern)
                if group not in groups:
                    groups.append(group)
    if len(matches) >= 3:
        score += 15
    elif len(matches) >= 2:
        score += 8
    return {"score": min(score, 50), "matches": matches, "groups": groups}


def _query_score(query: str) -> int:
    if not query:
        return 0
    score = 0
    for key, value in parse_qsl(query, keep_blank_values=True):
        lowered_key, lowered_value = key.lower(), value.lower()
        score += 5 * sum(1 for term in QUERY_TERMS if term in lowered_key)
        score += 5 * sum(1 for term in QUERY_TERMS if term in lowered_value)
        if key in ("type", "entityType") and ("LLC" in value or "Corp" in value):
            score += 10
    return min(score, 20)


def analyze_url(
    url: Optional[str],
    url_patterns: Optional[Dict[str, List[str]]] = None,
    detector: Optional[StateDetector] = None,
) -> Dict[str, Any]:
    """Score how likely ``url`` is a government business-registration page.

    Never raises; unparseable input scores 0.
    """
    if not url:
        return {"score": 0, "isLikelyRegistrationSite": False, "reasons": ["Empty URL"],
                "domain": "", "state": None}
    try:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.hostname:
            raise ValueError("URL has no scheme or host")
        domain = parsed.hostname.lower()
        patterns = url_patterns or DEFAULT_URL_PATTERNS
        state = detector.from_url(url) if detector is not None else None

        score = 0
        reasons: List[str] = []
        gov = _government_score(domain, patterns.get("government", []))
        if gov:
            score += gov
            reasons.append(f"Government domain detected ({gov} points)")

        business = _business_score(url.lower(), patterns)
        if business["score"]:
            score += business["score"]
            reasons.append(f"Business registration patterns ({business['score']} points)")

        query = _query_score(parsed.query)
        if query:
            score += query
            reasons.append(f"Business-related query parameters ({query} points)")

        if state and gov:
            score += 10
            reasons.append("State-specific government site (10 points)")

        score = min(int(round(score)), 100)
        return {
            "score": score,
            "isLikelyRegistrationSite": score >= REGISTRATION_SITE_THRESHOLD,
            "reasons": reasons,
            "domain": domain,
            "state": state,
            "details": {
                "isGovernment": gov > 0,
                "businessTerms": business["matches"],
                "patterns": business["groups"],
            },
        }
    except Exception as e:
        logger.warning(f"URL analysis failed for {url!r}: {e}")
        return {"score": 0, "isLikelyRegistrationSite": False,
                "reasons": [f"Error analyzing URL: {e}"], "domain": "", "state": None}
