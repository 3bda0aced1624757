"""Multi-strategy label resolution for a single control.

Strategies run in a fixed order and each proposes (text, source, score).
Candidates are cleaned, filtered for validity, and the highest score wins;
an earlier strategy keeps its place on equal scores.
"""

import html
import logging
import re
from typing import Callable, Iterable, List, Optional, Tuple

from ..dom.snapshot import DomNode
from ..models import FieldCandidate, LabelCandidate
from ..settings import LabelSettings

logger = logging.getLogger(__name__)

SOURCE_NONE = "none"

BUTTON_WORDS = frozenset(
    {"submit", "cancel", "close", "ok", "yes", "no", "save", "delete", "next", "back", "continue"}
)

_SNAKE_IDENTIFIER = re.compile(r"^[a-z0-9]+(?:_[a-z0-9]+)+$")
_KEBAB_IDENTIFIER = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+){2,}$")
_BARE_NUMBER = re.compile(r"^[\d\s.,\-+#]+$")
_TRAILING_MARKERS = re.compile(
    r"(?:\s*(?:\((?:required|optional|mandatory|\*)\)|[:*]))+\s*$", re.IGNORECASE
)
_LEADING_ASTERISKS = re.compile(r"^\s*\*+\s*")
_INSTRUCTION_PREFIX = re.compile(
    r"^(?:please\s+)?(?:enter|provide|input|select|choose|specify|fill\s+in)\b\s*"
    r"(?:(?:your|the|a|an)\b\s*)?",
    re.IGNORECASE,
)
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

Proposal = Tuple[str, str, int]
Strategy = Callable[[], Iterable[Proposal]]

TABLE_CELL_TAGS = frozenset({"td", "th"})
TEXT_SKIP_TAGS = ("option", "script", "style", "select", "textarea")


def is_identifier_like(text: str) -> bool:
    return bool(_SNAKE_IDENTIFIER.match(text) or _KEBAB_IDENTIFIER.match(text))


def clean_label_text(text: Optional[str]) -> str:
    """Normalize raw label text (entities, whitespace, markers, prefixes)."""
    if not text:
        return ""
    cleaned = " ".join(html.unescape(text).split())
    cleaned = _TRAILING_MARKERS.sub("", cleaned)
    cleaned = _LEADING_ASTERISKS.sub("", cleaned)
    stripped = _INSTRUCTION_PREFIX.sub("", cleaned)
    if stripped:
        cleaned = stripped
    cleaned = _TRAILING_MARKERS.sub("", cleaned).strip()
    if cleaned and cleaned.islower() and not is_identifier_like(cleaned):
        cleaned = cleaned[0].upper() + cleaned[1:]
    return cleaned


def is_valid_label(text: str) -> bool:
    if not text or not (2 <= len(text) <= 100):
        return False
    if not any(ch.isalnum() for ch in text):
        return False
    if _BARE_NUMBER.match(text):
        return False
    if text.lower() in BUTTON_WORDS:
        return False
    if is_identifier_like(text):
        return False
    return True


def humanize_identifier(identifier: Optional[str]) -> str:
    """``business_name`` / ``businessName`` -> ``Business Name``."""
    if not identifier:
        return ""
    text = identifier.replace("[]", "")
    text = _CAMEL_BOUNDARY.sub(" ", text)
    text = re.sub(r"[_\-.\[\]:]+", " ", text)
    return " ".join(w.capitalize() for w in text.split())


class LabelResolver:
    def __init__(self, settings: Optional[LabelSettings] = None):
        self.settings = settings or LabelSettings()

    def sentinel(self) -> LabelCandidate:
        return LabelCandidate(self.settings.sentinel_label, SOURCE_NONE, 0)

    def resolve(self, candidate: FieldCandidate) -> LabelCandidate:
        """Best label for ``candidate``; the sentinel when nothing qualifies.

        A strategy that fails is logged and skipped; the others still run.
        """
        best: Optional[LabelCandidate] = None
        for text, source, score in self._collect(self._strategies(candidate), candidate.ref):
            cleaned = clean_label_text(text)
            if not is_valid_label(cleaned):
                continue
            if best is None or score > best.score:
                best = LabelCandidate(cleaned, source, score)

        if best is None:
            return self.sentinel()
        logger.debug(f"Label for {candidate.ref}: '{best.text}' via {best.source} ({best.score})")
        return best

    def resolve_option(self, candidate: FieldCandidate) -> str:
        """Label of one radio/checkbox inside a group, falling back to its value."""
        element = candidate.element
        strategies: List[Strategy] = [
            lambda: self._aria_label(element),
            lambda: self._labels_for(element),
            lambda: self._wrapping_label(element),
            lambda: self._labelled_by(element),
            lambda: self._following_text(element),
        ]

        best: Optional[Tuple[str, int]] = None
        for text, _source, score in self._collect(strategies, candidate.ref):
            cleaned = clean_label_text(text)
            # Short option texts such as "Yes"/"No" are legitimate here
            if not cleaned or not any(ch.isalnum() for ch in cleaned) or len(cleaned) > 100:
                continue
            if best is None or score > best[1]:
                best = (cleaned, score)
        if best is not None:
            return best[0]
        return candidate.value or humanize_identifier(candidate.id) or "on"

    @staticmethod
    def _collect(strategies: List[Strategy], ref: str) -> List[Proposal]:
        proposals: List[Proposal] = []
        for strategy in strategies:
            try:
                proposals.extend(strategy())
            except Exception as e:
                logger.debug(f"Label strategy failed for {ref}: {type(e).__name__}: {e}")
        return proposals

    # --- strategies -----------------------------------------------------

    def _strategies(self, candidate: FieldCandidate) -> List[Strategy]:
        element = candidate.element
        return [
            lambda: self._aria_label(element),
            lambda: self._labels_for(element),
            lambda: self._wrapping_label(element),
            lambda: self._labelled_by(element),
            lambda: self._nearby_dom_text(element),
            lambda: self._nearby_pixel_text(element),
            lambda: self._table_header(element),
            lambda: self._legend(element),
            lambda: self._attribute_text(candidate),
        ]

    @staticmethod
    def _attribute_text(candidate: FieldCandidate) -> List[Proposal]:
        proposals: List[Proposal] = []
        if candidate.placeholder:
            proposals.append((candidate.placeholder, "placeholder", 60))
        if candidate.title:
            proposals.append((candidate.title, "title", 55))
        humanized = humanize_identifier(candidate.name) or humanize_identifier(candidate.id)
        if humanized:
            proposals.append((humanized, "name", 20))
        return proposals

    def _aria_label(self, element: DomNode) -> List[Proposal]:
        value = element.get("aria-label")
        return [(value, "aria-label", 95)] if value else []

    def _labels_for(self, element: DomNode) -> List[Proposal]:
        element_id = element.id
        if not element_id:
            return []
        found = []
        for label in element.root.iter_elements({"label"}):
            if label.get("for") == element_id:
                score = 100 if not found else 95
                found.append((label.text_content(exclude=[element], skip_tags=TEXT_SKIP_TAGS), "label-for", score))
        return found

    def _wrapping_label(self, element: DomNode) -> List[Proposal]:
        label = element.parent.closest({"label"}) if element.parent else None
        if label is None:
            return []
        return [(label.text_content(exclude=[element], skip_tags=TEXT_SKIP_TAGS), "label-wrap", 90)]

    def _labelled_by(self, element: DomNode) -> List[Proposal]:
        ref = element.get("aria-labelledby")
        if not ref:
            return []
        parts = []
        for ref_id in ref.split():
            target = element.find_by_id(ref_id)
            if target is not None:
                parts.append(target.text_content(skip_tags=TEXT_SKIP_TAGS))
        text = " ".join(p.strip() for p in parts if p.strip())
        return [(text, "aria-labelledby", 85)] if text else []

    def _nearby_dom_text(self, element: DomNode) -> List[Proposal]:
        """Preceding text within a few ancestor levels.

        Stops at the first preceding sibling that holds another control;
        text before it belongs to that control.
        """
        depth = self.settings.nearby_search_depth
        limit = self.settings.nearby_sibling_limit
        proposals: List[Proposal] = []
        node = element
        for level in range(depth + 1):
            if node is None or node.is_document:
                break
            checked = 0
            for sibling in node.previous_sibling_nodes():
                if sibling.is_text:
                    if not sibling.text.strip():
                        continue
                    text = sibling.text
                else:
                    if sibling.contains_control():
                        return proposals
                    if sibling.tag == "label" and sibling.get("for") and sibling.get("for") != element.id:
                        continue
                    text = sibling.text_content(skip_tags=TEXT_SKIP_TAGS)
                    if not text.strip():
                        continue
                distance = level + checked
                proposals.append((text, "nearby-text", max(50, 80 - 10 * distance)))
                checked += 1
                if checked >= limit:
                    break
            node = node.parent
        return proposals

    def _nearby_pixel_text(self, element: DomNode) -> List[Proposal]:
        rect = element.rect
        if rect.is_empty():
            return []
        cx, cy = rect.center
        max_distance = self.settings.nearby_pixel_distance
        best: Optional[Tuple[float, str]] = None
        for node in element.root.iter():
            if not node.is_text or not node.text.strip() or node.rect.is_empty():
                continue
            if node.rect.top > rect.bottom:
                continue
            owner = node.parent
            if owner is not None and (
                element.contains(node)
                or owner.closest(TEXT_SKIP_TAGS) is not None
                or self._labels_other_control(owner, element)
            ):
                continue
            distance = node.rect.distance_to_point(cx, cy)
            if distance <= max_distance and (best is None or distance < best[0]):
                best = (distance, node.text)
        if best is None:
            return []
        return [(best[1], "nearby-pixel", int(round(60 - min(best[0] / 5, 10))))]

    @staticmethod
    def _labels_other_control(owner: DomNode, element: DomNode) -> bool:
        label = owner.closest({"label"})
        if label is None:
            return False
        target = label.get("for")
        if target:
            return target != element.id
        return not label.contains(element) and label.contains_control()

    def _table_header(self, element: DomNode) -> List[Proposal]:
        cell = element.closest(TABLE_CELL_TAGS)
        if cell is None:
            return []
        row = cell.closest({"tr"})
        table = row.closest({"table"}) if row is not None else None
        if row is None or table is None:
            return []
        # html.parser keeps stray wrappers between <tr> and its cells
        column = next((i for i, c in enumerate(self._cells(row)) if c is cell), None)
        if column is None:
            return []
        header_row = self._header_row(table)
        if header_row is None or header_row is row:
            return []
        header_cells = self._cells(header_row)
        if column >= len(header_cells):
            return []
        text = header_cells[column].text_content(skip_tags=TEXT_SKIP_TAGS)
        return [(text, "table-header", 70)] if text.strip() else []

    @staticmethod
    def _cells(row: DomNode) -> List[DomNode]:
        return [c for c in row.element_children if c.tag in TABLE_CELL_TAGS]

    def _header_row(self, table: DomNode) -> Optional[DomNode]:
        for thead in table.iter_elements({"thead"}):
            if thead.closest({"table"}) is table:
                for row in thead.iter_elements({"tr"}):
                    return row
        for row in table.iter_elements({"tr"}):
            if row.closest({"table"}) is not table:
                continue
            cells = self._cells(row)
            if cells and all(c.tag == "th" for c in cells):
                return row
            return None
        return None

    def _legend(self, element: DomNode) -> List[Proposal]:
        fieldset = element.closest({"fieldset"})
        if fieldset is None:
            return []
        for child in fieldset.element_children:
            if child.tag == "legend":
                return [(child.text_content(skip_tags=TEXT_SKIP_TAGS), "legend", 65)]
        return []

    @staticmethod
    def _following_text(element: DomNode) -> List[Proposal]:
        """Text after the control up to the next control or line break."""
        if element.parent is None:
            return []
        siblings = element.parent.children
        idx = next(i for i, c in enumerate(siblings) if c is element)
        parts = []
        for sibling in siblings[idx + 1:]:
            if sibling.is_element and (sibling.contains_control() or sibling.tag in ("br", "hr")):
                break
            if sibling.is_element and sibling.tag == "label" and sibling.get("for"):
                break
            parts.append(sibling.text if sibling.is_text else sibling.text_content(skip_tags=TEXT_SKIP_TAGS))
        text = " ".join(" ".join(parts).split())
        return [(text, "following-text", 75)] if text else []
