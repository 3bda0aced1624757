"""Form-level verdict and summary."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models import ClassifiedField
from ..settings import FormSettings

logger = logging.getLogger(__name__)

BUSINESS_NAME = "business_name"
ENTITY_TYPE = "entity_type"


@dataclass
class FormVerdict:
    overall_confidence: int = 0
    is_business_form: bool = False
    summary: Dict[str, Any] = field(default_factory=dict)


class FormAggregator:
    def __init__(self, settings: Optional[FormSettings] = None):
        self.settings = settings or FormSettings()

    def _has_anchor(self, fields: List[ClassifiedField], category: str) -> bool:
        threshold = self.settings.anchor_confidence_threshold
        return any(f.category == category and f.confidence >= threshold for f in fields)

    def overall_confidence(self, fields: List[ClassifiedField]) -> int:
        s = self.settings
        total = len(fields)
        if total == 0:
            return 0
        classified = sum(1 for f in fields if f.is_classified)
        confidence = 0
        if self._has_anchor(fields, BUSINESS_NAME):
            confidence += s.business_name_bonus
        if self._has_anchor(fields, ENTITY_TYPE):
            confidence += s.entity_type_bonus
        if classified >= s.classified_count_minimum:
            confidence += s.classified_count_bonus
        if classified / total > s.classified_ratio_minimum:
            confidence += s.classified_ratio_bonus
        return min(100, confidence)

    def summarize(self, fields: List[ClassifiedField]) -> Dict[str, Any]:
        classified = [f for f in fields if f.is_classified]
        by_category = Counter(f.category for f in classified)
        by_type = Counter(f.group_type if f.is_group else f.input_type for f in fields)
        anchors = [
            c for c in (BUSINESS_NAME, ENTITY_TYPE) if self._has_anchor(fields, c)
        ]
        low = [
            f.label.text
            for f in classified
            if f.confidence < self.settings.low_confidence_threshold
        ]
        average = round(sum(f.confidence for f in classified) / len(classified)) if classified else 0
        return {
            "totalFields": len(fields),
            "classifiedFields": len(classified),
            "unclassifiedFields": len(fields) - len(classified),
            "requiredFields": sum(1 for f in fields if f.required),
            "groupedFields": sum(1 for f in fields if f.is_group),
            "byCategory": dict(by_category),
            "byType": dict(by_type),
            "averageConfidence": average,
            "anchorCategories": anchors,
            "lowConfidenceFields": low,
        }

    def aggregate(self, fields: List[ClassifiedField]) -> FormVerdict:
        confidence = self.overall_confidence(fields)
        verdict = FormVerdict(
            overall_confidence=confidence,
            is_business_form=confidence >= self.settings.business_form_threshold,
            summary=self.summarize(fields),
        )
        logger.debug(
            f"Form verdict: confidence={confidence}, business_form={verdict.is_business_form}"
        )
        return verdict
