"""DOM snapshot model and producers."""

from .html_loader import parse_html
from .playwright_capture import capture_dom_snapshot
from .snapshot import ComputedStyle, DomNode, Rect, common_ancestor, document_positions

__all__ = [
    "ComputedStyle",
    "DomNode",
    "Rect",
    "capture_dom_snapshot",
    "common_ancestor",
    "document_positions",
    "parse_html",
]
