"""Category knowledge used by the classifier.

The base map ships in ``config/knowledge/base_patterns.json``; jurisdiction
files under ``config/knowledge/states/`` and caller overrides are merged on
top: list fields are unioned, scalar fields replaced.
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Pattern, Tuple

from config.manager import get_base_knowledge, get_state_knowledge
from ..errors import KnowledgeValidationError
from .validator import validate_knowledge_map

logger = logging.getLogger(__name__)


def _union(base: List[str], extra: List[str]) -> List[str]:
    merged = list(base)
    for item in extra:
        if item not in merged:
            merged.append(item)
    return merged


@dataclass
class KnowledgeEntry:
    category: str
    patterns: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    priority: int = 0
    validation: Optional[str] = None
    label: Optional[str] = None
    compiled: List[Tuple[str, Pattern]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        self.compiled = [(p, re.compile(p)) for p in self.patterns]

    @property
    def display_label(self) -> str:
        return self.label or self.category.replace("_", " ").title()

    def merged_with(self, override: Dict[str, Any]) -> "KnowledgeEntry":
        return KnowledgeEntry(
            category=self.category,
            patterns=_union(self.patterns, override.get("patterns", [])),
            keywords=_union(self.keywords, override.get("keywords", [])),
            priority=override.get("priority", self.priority),
            validation=override.get("validation", self.validation),
            label=override.get("label", self.label),
        )

    @classmethod
    def from_normalized(cls, category: str, data: Dict[str, Any]) -> "KnowledgeEntry":
        return cls(
            category=category,
            patterns=list(data.get("patterns", [])),
            keywords=list(data.get("keywords", [])),
            priority=data.get("priority", 0),
            validation=data.get("validation"),
            label=data.get("label"),
        )


class KnowledgeBase:
    """Ordered category map plus option vocabularies and URL patterns.

    Iteration order is the order categories were first declared, which is
    also the classifier's tie-break order.
    """

    def __init__(
        self,
        entries: Dict[str, KnowledgeEntry],
        option_vocabulary: Optional[Dict[str, Any]] = None,
        url_patterns: Optional[Dict[str, List[str]]] = None,
        version: str = "",
        state: Optional[str] = None,
    ):
        self.entries = entries
        self.option_vocabulary = option_vocabulary or {}
        self.url_patterns = url_patterns or {}
        self.version = version
        self.state = state

    @classmethod
    def from_dict(cls, data: Dict[str, Any], strict: bool = False) -> "KnowledgeBase":
        if not isinstance(data, dict):
            raise KnowledgeValidationError("Knowledge data must be a dict")
        normalized = validate_knowledge_map(data.get("field_patterns", {}), strict=strict)
        entries = {
            category: KnowledgeEntry.from_normalized(category, entry)
            for category, entry in normalized.items()
        }
        return cls(
            entries,
            option_vocabulary=copy.deepcopy(data.get("option_vocabulary", {})),
            url_patterns=copy.deepcopy(data.get("url_patterns", {})),
            version=str(data.get("version", "")),
        )

    def __iter__(self) -> Iterator[KnowledgeEntry]:
        return iter(self.entries.values())

    def __contains__(self, category: str) -> bool:
        return category in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, category: str) -> Optional[KnowledgeEntry]:
        return self.entries.get(category)

    @property
    def categories(self) -> List[str]:
        return list(self.entries)

    def label_for(self, category: str) -> str:
        entry = self.entries.get(category)
        if entry is not None:
            return entry.display_label
        return category.replace("_", " ").title()

    def merge(self, overrides: Optional[Dict[str, Any]], strict: bool = True) -> "KnowledgeBase":
        """Return a new knowledge base with ``overrides`` applied.

        New categories are appended after the existing ones.
        """
        normalized = validate_knowledge_map(overrides, strict=strict)
        if not normalized:
            return self
        entries = dict(self.entries)
        for category, override in normalized.items():
            if category in entries:
                entries[category] = entries[category].merged_with(override)
            else:
                entries[category] = KnowledgeEntry.from_normalized(category, override)
        return KnowledgeBase(
            entries,
            option_vocabulary=self.option_vocabulary,
            url_patterns=self.url_patterns,
            version=self.version,
            state=self.state,
        )

    def with_state(self, state_code: str, state_data: Dict[str, Any]) -> "KnowledgeBase":
        """Apply a jurisdiction file (``field_overrides`` and ``url_patterns``)."""
        merged = self.merge(state_data.get("field_overrides", {}), strict=False)
        url_patterns = {k: list(v) for k, v in self.url_patterns.items()}
        for key, patterns in (state_data.get("url_patterns") or {}).items():
            url_patterns[key] = _union(url_patterns.get(key, []), list(patterns))
        return KnowledgeBase(
            merged.entries,
            option_vocabulary=self.option_vocabulary,
            url_patterns=url_patterns,
            version=self.version,
            state=state_code.upper(),
        )


def load_knowledge_base(
    state_code: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    base: Optional[KnowledgeBase] = None,
) -> KnowledgeBase:
    """Base knowledge, then jurisdiction overrides, then validated caller overrides.

    Args:
        state_code: two-letter jurisdiction code, if known
        overrides: caller-supplied category map (validated strictly)
        base: pre-built base map; loaded from the config directory when omitted

    Raises:
        KnowledgeValidationError: when ``overrides`` is malformed
    """
    kb = base if base is not None else KnowledgeBase.from_dict(get_base_knowledge())
    if state_code:
        state_data = get_state_knowledge(state_code)
        if state_data:
            kb = kb.with_state(state_code, state_data)
            logger.debug(f"Applied jurisdiction overrides for {state_code.upper()}")
    if overrides:
        kb = kb.merge(overrides, strict=True)
    return kb
