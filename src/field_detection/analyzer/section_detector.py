"""Assigns fields to the heading-like element above them."""

import logging
import math
from typing import List, Optional

from ..dom.snapshot import DomNode, document_positions
from ..models import ClassifiedField, Section
from ..settings import SectionSettings
from .label_resolver import TEXT_SKIP_TAGS

logger = logging.getLogger(__name__)

HEADER_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6", "legend"})
PAGE_CHROME_CLASSES = frozenset({"header", "page-header", "site-header"})
TITLE_CLASSES = frozenset({"logo", "site-title", "page-title"})


class SectionDetector:
    def __init__(self, settings: Optional[SectionSettings] = None):
        self.settings = settings or SectionSettings()

    def find_headers(self, root: DomNode) -> List[DomNode]:
        """Visible section headers ordered by (top, document order)."""
        heading_classes = set(self.settings.heading_classes)
        positions = document_positions(root)
        accepted: List[DomNode] = []
        for node in root.iter_elements():
            is_header = (
                node.tag in HEADER_TAGS
                or (node.get("role") or "").lower() == "heading"
                or any(c in heading_classes for c in node.class_list)
            )
            if not is_header:
                continue
            if any(a in accepted for a in node.ancestors()):
                continue
            if not node.is_rendered() or node.contains_control():
                continue
            text = self.header_text(node)
            if not text or self._is_page_title(node, text):
                continue
            accepted.append(node)
        accepted.sort(key=lambda n: (n.rect.top, positions.get(id(n), 0)))
        return accepted

    @staticmethod
    def header_text(node: DomNode) -> str:
        text = " ".join(node.text_content(skip_tags=TEXT_SKIP_TAGS).split())
        return text.rstrip(":").strip()

    @staticmethod
    def _is_page_title(node: DomNode, text: str) -> bool:
        lowered = text.lower()
        if node.tag == "h1" and "business" in lowered and "registration" in lowered:
            return True
        if any(c in TITLE_CLASSES for c in node.class_list):
            return True
        for ancestor in node.ancestors():
            if not ancestor.is_element:
                continue
            if ancestor.tag == "header" or any(c in PAGE_CHROME_CLASSES for c in ancestor.class_list):
                return True
        return False

    def detect(self, root: DomNode, fields: List[ClassifiedField]) -> List[Section]:
        """Partition ``fields`` into sections.

        Every field lands in exactly one section; fields no header captures
        go to a trailing default section.
        """
        if not fields:
            return []
        ordered = sorted(fields, key=lambda f: f.position)
        headers = self.find_headers(root)

        if not headers:
            section = Section(self.settings.default_section_title, ordered, is_default=True)
            self._stamp(section)
            return [section]

        assigned = set()
        sections: List[Section] = []
        max_gap = self.settings.max_gap_px
        for idx, header in enumerate(headers):
            header_bottom = header.rect.bottom
            next_top = headers[idx + 1].rect.top if idx + 1 < len(headers) else math.inf
            members = []
            for f in ordered:
                if id(f) in assigned:
                    continue
                top = f.rect.top
                if top >= header_bottom and top < next_top and top - header_bottom < max_gap:
                    members.append(f)
                    assigned.add(id(f))
            if members:
                section = Section(self.header_text(header), members, header=header)
                self._stamp(section)
                sections.append(section)

        leftovers = [f for f in ordered if id(f) not in assigned]
        if leftovers:
            trailing = Section(self.settings.trailing_section_title, leftovers, is_default=True)
            self._stamp(trailing)
            sections.append(trailing)

        logger.debug(
            f"Section detection: {len(headers)} headers, {len(sections)} sections, "
            f"{len(leftovers)} unassigned fields"
        )
        return sections

    @staticmethod
    def _stamp(section: Section) -> None:
        for f in section.fields:
            f.section = section.title
