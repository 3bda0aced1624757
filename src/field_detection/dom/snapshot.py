"""In-memory DOM snapshot read by a detection pass.

A snapshot is produced either by the static HTML loader or by the Playwright
capture script, and carries everything the analyzers need from the browser:
tag, attributes, text, layout rectangle, the few computed style values that
decide visibility, and live control state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

DOCUMENT_TAG = "#document"
TEXT_TAG = "#text"

CONTROL_TAGS = frozenset({"input", "select", "textarea"})


@dataclass
class Rect:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def center(self) -> tuple:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def union(self, other: "Rect") -> "Rect":
        if other.is_empty():
            return Rect(self.x, self.y, self.width, self.height)
        if self.is_empty():
            return Rect(other.x, other.y, other.width, other.height)
        left = min(self.left, other.left)
        top = min(self.top, other.top)
        return Rect(
            left,
            top,
            max(self.right, other.right) - left,
            max(self.bottom, other.bottom) - top,
        )

    def distance_to_point(self, px: float, py: float) -> float:
        """Euclidean distance from a point to the nearest point of this box."""
        dx = max(self.left - px, 0.0, px - self.right)
        dy = max(self.top - py, 0.0, py - self.bottom)
        return math.hypot(dx, dy)

    @classmethod
    def from_value(cls, value: Any) -> "Rect":
        if value is None:
            return cls()
        if isinstance(value, Rect):
            return value
        if isinstance(value, dict):
            return cls(
                float(value.get("x", 0) or 0),
                float(value.get("y", 0) or 0),
                float(value.get("width", 0) or 0),
                float(value.get("height", 0) or 0),
            )
        x, y, w, h = (float(v or 0) for v in value)
        return cls(x, y, w, h)


@dataclass
class ComputedStyle:
    display: str = "block"
    visibility: str = "visible"
    opacity: float = 1.0

    def hides(self) -> bool:
        return (
            self.display == "none"
            or self.visibility in ("hidden", "collapse")
            or self.opacity <= 0
        )


@dataclass(eq=False)
class DomNode:
    """One element, text run or the document itself.

    Nodes hash by identity so a pass can keep them in sets.
    """

    tag: str
    attrs: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: List["DomNode"] = field(default_factory=list, repr=False)
    parent: Optional["DomNode"] = field(default=None, repr=False)
    rect: Rect = field(default_factory=Rect)
    style: ComputedStyle = field(default_factory=ComputedStyle)
    value: Optional[str] = None
    checked: bool = False
    selected: bool = False
    multiple: bool = False

    # --- tree structure -------------------------------------------------

    @property
    def is_text(self) -> bool:
        return self.tag == TEXT_TAG

    @property
    def is_document(self) -> bool:
        return self.tag == DOCUMENT_TAG

    @property
    def is_element(self) -> bool:
        return not (self.is_text or self.is_document)

    def append(self, child: "DomNode") -> "DomNode":
        child.parent = self
        self.children.append(child)
        return child

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name, default)

    @property
    def id(self) -> str:
        return self.attrs.get("id", "") or ""

    @property
    def input_type(self) -> str:
        """Lower-cased control type (``text`` for inputs without one)."""
        if self.tag == "input":
            return (self.attrs.get("type") or "text").strip().lower() or "text"
        return self.tag

    @property
    def class_list(self) -> List[str]:
        return (self.attrs.get("class") or "").split()

    @property
    def element_children(self) -> List["DomNode"]:
        return [c for c in self.children if c.is_element]

    def iter(self) -> Iterator["DomNode"]:
        """Pre-order walk starting at this node (document order)."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_elements(self, tags: Optional[Iterable[str]] = None) -> Iterator["DomNode"]:
        wanted = frozenset(tags) if tags is not None else None
        for node in self.iter():
            if node is self or not node.is_element:
                continue
            if wanted is None or node.tag in wanted:
                yield node

    def ancestors(self) -> Iterator["DomNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def closest(
        self,
        tags: Optional[Iterable[str]] = None,
        predicate: Optional[Callable[["DomNode"], bool]] = None,
    ) -> Optional["DomNode"]:
        """Nearest element (self included) matching the tag set and/or predicate."""
        wanted = frozenset(tags) if tags is not None else None
        node: Optional[DomNode] = self
        while node is not None:
            if node.is_element:
                if (wanted is None or node.tag in wanted) and (
                    predicate is None or predicate(node)
                ):
                    return node
            node = node.parent
        return None

    def contains(self, other: "DomNode") -> bool:
        return other is self or any(a is self for a in other.ancestors())

    @property
    def root(self) -> "DomNode":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def is_connected(self) -> bool:
        return self.root.is_document

    def find_by_id(self, element_id: str) -> Optional["DomNode"]:
        """First element in the owning tree whose id equals ``element_id``."""
        if not element_id:
            return None
        for node in self.root.iter_elements():
            if node.attrs.get("id") == element_id:
                return node
        return None

    def previous_element_siblings(self) -> List["DomNode"]:
        """Element siblings before this node, nearest first."""
        if self.parent is None:
            return []
        siblings = self.parent.children
        idx = next(i for i, c in enumerate(siblings) if c is self)
        return [s for s in reversed(siblings[:idx]) if s.is_element]

    def previous_sibling_nodes(self) -> List["DomNode"]:
        """All siblings (text included) before this node, nearest first."""
        if self.parent is None:
            return []
        siblings = self.parent.children
        idx = next(i for i, c in enumerate(siblings) if c is self)
        return list(reversed(siblings[:idx]))

    def contains_control(self) -> bool:
        if self.tag in CONTROL_TAGS:
            return True
        return any(True for _ in self.iter_elements(CONTROL_TAGS))

    # --- text -----------------------------------------------------------

    def text_content(
        self,
        exclude: Sequence["DomNode"] = (),
        skip_tags: Iterable[str] = (),
    ) -> str:
        """Concatenated text of the subtree, leaving out excluded nodes and tags."""
        excluded = {id(n) for n in exclude}
        skipped = frozenset(skip_tags)
        parts: List[str] = []
        stack = [self]
        while stack:
            node = stack.pop()
            if id(node) in excluded or node.tag in skipped:
                continue
            if node.is_text:
                parts.append(node.text)
                continue
            stack.extend(reversed(node.children))
        return "".join(parts)

    # --- visibility -----------------------------------------------------

    def is_rendered(self) -> bool:
        """Non-empty box and no hiding style on the node or any ancestor."""
        if self.rect.is_empty():
            return False
        if self.style.hides():
            return False
        for ancestor in self.ancestors():
            if ancestor.is_element and (
                ancestor.style.display == "none" or ancestor.style.opacity <= 0
            ):
                return False
        return True

    # --- serialization --------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any], parent: Optional["DomNode"] = None) -> "DomNode":
        """Rebuild a tree from the serialized form produced by the capture script."""
        style = data.get("style") or {}
        node = cls(
            tag=str(data.get("tag", "")).lower(),
            attrs={str(k).lower(): "" if v is None else str(v) for k, v in (data.get("attrs") or {}).items()},
            text=data.get("text") or "",
            rect=Rect.from_value(data.get("rect")),
            style=ComputedStyle(
                display=str(style.get("display", "block")),
                visibility=str(style.get("visibility", "visible")),
                opacity=_to_float(style.get("opacity"), 1.0),
            ),
            value=data.get("value"),
            checked=bool(data.get("checked", False)),
            selected=bool(data.get("selected", False)),
            multiple=bool(data.get("multiple", False)),
        )
        if parent is not None:
            parent.append(node)
        for child in data.get("children") or []:
            cls.from_dict(child, node)
        return node


def _to_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def common_ancestor(nodes: Sequence[DomNode]) -> Optional[DomNode]:
    """Deepest node that contains every node in ``nodes``."""
    if not nodes:
        return None
    chain = [nodes[0]] + list(nodes[0].ancestors())
    for candidate in chain:
        if all(candidate.contains(n) for n in nodes[1:]):
            return candidate
    return None


def document_positions(root: DomNode) -> Dict[int, int]:
    """Map ``id(node)`` to its index in document order."""
    return {id(node): idx for idx, node in enumerate(root.iter())}
