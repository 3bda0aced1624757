"""Weighted category scoring against the knowledge base."""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..knowledge.knowledge_base import KnowledgeBase, KnowledgeEntry
from ..models import OTHER_CATEGORY, ClassificationDetails, ClassifiedField
from ..settings import ClassificationSettings

logger = logging.getLogger(__name__)

_PLACEHOLDER_OPTION = re.compile(r"^(?:-+|select\b|choose\b|please\b|pick\b|none selected)", re.IGNORECASE)


@dataclass
class CategoryScore:
    category: str
    score: int = 0
    matched_patterns: List[str] = field(default_factory=list)
    matched_keywords: List[str] = field(default_factory=list)
    type_affinity: bool = False
    option_bias: int = 0


def build_corpus(f: ClassifiedField) -> str:
    """Lower-cased label + name + id + placeholder."""
    name = f.group_name or f.candidate.name
    parts = [f.label.text, name, f.candidate.id, f.candidate.placeholder]
    return " ".join(p for p in parts if p).lower()


class FieldClassifier:
    def __init__(self, settings: Optional[ClassificationSettings] = None):
        self.settings = settings or ClassificationSettings()

    def score_entry(
        self,
        entry: KnowledgeEntry,
        corpus: str,
        input_type: str = "",
        option_bias: int = 0,
    ) -> CategoryScore:
        s = self.settings
        result = CategoryScore(entry.category, option_bias=option_bias)
        result.matched_patterns = [p for p, rx in entry.compiled if rx.search(corpus)]
        result.matched_keywords = [k for k in entry.keywords if k and k in corpus]
        result.type_affinity = bool(input_type) and s.type_affinity.get(input_type) == entry.category

        has_evidence = bool(
            result.matched_patterns or result.matched_keywords or result.type_affinity or option_bias > 0
        )
        if not has_evidence:
            return result
        result.score = (
            s.pattern_weight * len(result.matched_patterns)
            + s.keyword_weight * len(result.matched_keywords)
            + entry.priority
            + (s.type_affinity_bonus if result.type_affinity else 0)
            + option_bias
        )
        return result

    def option_biases(self, f: ClassifiedField, kb: KnowledgeBase) -> Dict[str, int]:
        """Category bonuses suggested by the visible option texts of a select or group."""
        if not (f.is_group or f.candidate.tag == "select"):
            return {}
        options = f.options if f.is_group else f.candidate.options
        texts = []
        for opt in options:
            text = " ".join((opt.label or opt.value or "").split()).lower()
            if text and not _PLACEHOLDER_OPTION.match(text):
                texts.append(text)
        if not texts:
            return {}

        biases: Dict[str, int] = {}
        for category, vocab in kb.option_vocabulary.items():
            if category not in kb:
                continue
            bonus = int(vocab.get("bonus", 0))
            exclusive = vocab.get("exclusive_terms")
            if exclusive:
                allowed = {t.lower() for t in exclusive}
                if 2 <= len(texts) <= 3 and all(t in allowed for t in texts):
                    biases[category] = bonus
                continue
            terms = [t.lower() for t in vocab.get("terms", [])]
            hits = sum(1 for term in terms if any(term in text for text in texts))
            if hits >= int(vocab.get("min_matches", 1)):
                biases[category] = bonus
        return biases

    def classify(self, f: ClassifiedField, kb: KnowledgeBase) -> ClassifiedField:
        """Set ``category``, ``confidence`` and ``details`` on ``f`` in place."""
        corpus = build_corpus(f)
        if not f.is_group and f.input_type == "checkbox":
            winner = self._classify_checkbox(corpus, kb)
            if winner is not None:
                return self._apply(f, winner)

        biases = self.option_biases(f, kb)
        input_type = "" if f.is_group else f.input_type
        floor = self.settings.category_floor

        best: Optional[CategoryScore] = None
        best_affinity: Optional[CategoryScore] = None
        for entry in kb:
            scored = self.score_entry(entry, corpus, input_type, biases.get(entry.category, 0))
            if scored.score <= floor:
                continue
            if scored.type_affinity:
                if best_affinity is None or scored.score > best_affinity.score:
                    best_affinity = scored
            elif best is None or scored.score > best.score:
                best = scored

        winner = best_affinity or best
        return self._apply(f, winner)

    def _classify_checkbox(self, corpus: str, kb: KnowledgeBase) -> Optional[CategoryScore]:
        """Standalone checkboxes are agreements when the label says so, else booleans."""
        s = self.settings
        agreement = kb.get(s.agreement_category)
        boolean = kb.get(s.boolean_category)
        if agreement is None or boolean is None:
            return None
        scored = self.score_entry(agreement, corpus)
        if scored.matched_patterns or scored.matched_keywords:
            scored.score += s.checkbox_bonus
            return scored
        return CategoryScore(boolean.category, score=boolean.priority + s.checkbox_bonus)

    def _apply(self, f: ClassifiedField, winner: Optional[CategoryScore]) -> ClassifiedField:
        if winner is None:
            f.category = OTHER_CATEGORY
            f.confidence = 0
            f.details = ClassificationDetails()
        else:
            f.category = winner.category
            f.confidence = max(0, min(winner.score, 100))
            f.details = ClassificationDetails(
                matched_patterns=winner.matched_patterns,
                matched_keywords=winner.matched_keywords,
                score=winner.score,
                type_affinity=winner.type_affinity,
                option_bias=winner.option_bias,
            )
        logger.debug(
            f"Classified '{f.label.text}' ({f.candidate.ref}) as {f.category} ({f.confidence})"
        )
        return f
