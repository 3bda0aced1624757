"""Build a DOM snapshot from static HTML.

BeautifulSoup parses the markup; layout is estimated with a simple
top-to-bottom block flow so visibility and vertical-gap heuristics behave
sensibly without a browser.
"""

import logging
import re
from typing import Dict, Optional

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from .snapshot import ComputedStyle, DomNode, Rect, TEXT_TAG, DOCUMENT_TAG

logger = logging.getLogger(__name__)

LINE_HEIGHT = 24.0
PAGE_WIDTH = 1024.0
CHAR_WIDTH = 8.0
CONTROL_WIDTH = 200.0
TOGGLE_WIDTH = 16.0

# Subtrees the browser never lays out
NON_RENDERED_TAGS = frozenset(
    {"head", "script", "style", "template", "noscript", "title", "meta", "link", "base"}
)
LINE_TAGS = frozenset({"br", "hr"})
BOX_CONTROL_TAGS = frozenset({"input", "select", "textarea", "button"})

_STYLE_DECL = re.compile(r"\s*([a-zA-Z\-]+)\s*:\s*([^;]+)")
_PX_VALUE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(px)?\s*$")


def parse_inline_style(style: Optional[str]) -> Dict[str, str]:
    declarations: Dict[str, str] = {}
    if not style:
        return declarations
    for chunk in style.split(";"):
        m = _STYLE_DECL.match(chunk)
        if m:
            value = m.group(2).replace("!important", "").strip().lower()
            declarations[m.group(1).lower()] = value
    return declarations


def _px(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    m = _PX_VALUE.match(value)
    return float(m.group(1)) if m else None


def parse_html(html: str) -> DomNode:
    """Parse ``html`` into a document node with estimated layout."""
    soup = BeautifulSoup(html or "", "html.parser")
    document = DomNode(tag=DOCUMENT_TAG)
    for child in soup.children:
        _convert(child, document)
    _FlowLayout().run(document)
    logger.debug(f"Parsed HTML snapshot with {sum(1 for _ in document.iter())} nodes")
    return document


def _convert(source, parent: DomNode) -> None:
    if isinstance(source, (Comment, Doctype, Declaration, ProcessingInstruction)):
        return
    if isinstance(source, NavigableString):
        parent.append(DomNode(tag=TEXT_TAG, text=str(source)))
        return
    if not isinstance(source, Tag):
        return

    attrs: Dict[str, str] = {}
    for key, value in source.attrs.items():
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        attrs[key.lower()] = "" if value is None else str(value)

    node = parent.append(DomNode(tag=source.name.lower(), attrs=attrs))
    for child in source.children:
        _convert(child, node)
    _apply_live_state(node)


def _apply_live_state(node: DomNode) -> None:
    """Populate value/checked/selected the way a freshly loaded page reports them."""
    if node.tag == "input":
        node.value = node.attrs.get("value", "")
        node.checked = "checked" in node.attrs
    elif node.tag == "textarea":
        node.value = node.text_content()
    elif node.tag == "option":
        node.selected = "selected" in node.attrs
        node.value = node.attrs.get("value", node.text_content().strip())
    elif node.tag == "select":
        node.multiple = "multiple" in node.attrs
        options = list(node.iter_elements({"option"}))
        chosen = [o for o in options if o.selected]
        if not chosen and options and not node.multiple:
            options[0].selected = True
            chosen = [options[0]]
        node.value = chosen[0].value if chosen else ""


class _FlowLayout:
    """Assign rects and computed styles in one document-order walk."""

    def __init__(self):
        self.y = 0.0

    def run(self, document: DomNode) -> None:
        document.style = ComputedStyle()
        for child in document.children:
            self._place(child, "visible")
        rect = Rect()
        for child in document.children:
            rect = rect.union(child.rect)
        document.rect = rect

    def _collapse(self, node: DomNode, visibility: str) -> None:
        for n in node.iter():
            n.rect = Rect(0.0, self.y, 0.0, 0.0)
            if n.is_element:
                declared = parse_inline_style(n.attrs.get("style"))
                n.style = ComputedStyle(
                    display="none" if n is node else declared.get("display", "block"),
                    visibility=declared.get("visibility", visibility),
                    opacity=_opacity(declared.get("opacity")),
                )

    def _place(self, node: DomNode, inherited_visibility: str) -> None:
        if node.is_text:
            node.style = ComputedStyle(visibility=inherited_visibility)
            text = node.text.strip()
            if text:
                width = min(len(" ".join(text.split())) * CHAR_WIDTH, PAGE_WIDTH)
                node.rect = Rect(0.0, self.y, width, LINE_HEIGHT)
                self.y += LINE_HEIGHT
            else:
                node.rect = Rect(0.0, self.y, 0.0, 0.0)
            return

        declared = parse_inline_style(node.attrs.get("style"))
        visibility = declared.get("visibility", inherited_visibility)
        display = declared.get("display", "block")

        if (
            node.tag in NON_RENDERED_TAGS
            or display == "none"
            or "hidden" in node.attrs
            or (node.tag == "input" and node.input_type == "hidden")
        ):
            self._collapse(node, visibility)
            return

        node.style = ComputedStyle(
            display=display,
            visibility=visibility,
            opacity=_opacity(declared.get("opacity")),
        )

        if node.tag == "option":
            # Options render inside their select's box
            self._collapse(node, visibility)
            node.style.display = "block"
            return

        margin = _px(declared.get("margin-top"))
        if margin and margin > 0:
            self.y += margin
        start = self.y

        if node.tag in BOX_CONTROL_TAGS:
            width = TOGGLE_WIDTH if node.input_type in ("checkbox", "radio") else CONTROL_WIDTH
            height = LINE_HEIGHT * 2 if node.tag == "textarea" else LINE_HEIGHT
            node.rect = Rect(0.0, self.y, width, height)
            for child in node.children:
                for n in child.iter():
                    n.rect = Rect(0.0, self.y, 0.0, 0.0)
                    n.style = ComputedStyle(visibility=visibility)
            if node.tag == "select":
                for option in node.iter_elements({"option"}):
                    option.style = ComputedStyle(visibility=visibility)
            self.y += height
            return

        if node.tag in LINE_TAGS:
            width = PAGE_WIDTH if node.tag == "hr" else 0.0
            node.rect = Rect(0.0, self.y, width, LINE_HEIGHT if width else 0.0)
            self.y += LINE_HEIGHT
            return

        rect = Rect(0.0, start, 0.0, 0.0)
        for child in node.children:
            self._place(child, visibility)
            rect = rect.union(child.rect)

        height = _px(declared.get("height"))
        min_height = _px(declared.get("min-height"))
        floor = max(height or 0.0, min_height or 0.0)
        if floor > self.y - start:
            self.y = start + floor
            rect = Rect(0.0, start, PAGE_WIDTH, floor).union(rect)
        node.rect = rect


def _opacity(value: Optional[str]) -> float:
    if value is None:
        return 1.0
    try:
        return float(value)
    except ValueError:
        return 1.0
