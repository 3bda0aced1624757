"""Detector thresholds and weights.

Values come from ``config/detector_config.json`` and are validated through
pydantic so that out-of-range numbers fail loudly at load time.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from config.manager import get_detector_config

logger = logging.getLogger(__name__)


class ScannerSettings(BaseModel):
    important_hidden_tokens: List[str] = Field(default_factory=lambda: ["csrf", "token", "step"])
    excluded_input_types: List[str] = Field(
        default_factory=lambda: ["hidden", "submit", "button", "reset", "image"]
    )

    @field_validator("important_hidden_tokens", "excluded_input_types")
    @classmethod
    def _lower(cls, value: List[str]) -> List[str]:
        return [v.strip().lower() for v in value if v and v.strip()]


class LabelSettings(BaseModel):
    nearby_search_depth: int = Field(default=3, ge=0, le=10)
    nearby_sibling_limit: int = Field(default=3, ge=1, le=20)
    nearby_pixel_distance: float = Field(default=50.0, ge=0, le=1000)
    sentinel_label: str = Field(default="Unknown Field", min_length=1)


class SectionSettings(BaseModel):
    max_gap_px: float = Field(default=500.0, gt=0)
    default_section_title: str = "Form Fields"
    trailing_section_title: str = "Additional Fields"
    heading_classes: List[str] = Field(
        default_factory=lambda: [
            "section-title",
            "section-heading",
            "form-section",
            "form-header",
            "panel-heading",
            "card-header",
        ]
    )


class ClassificationSettings(BaseModel):
    pattern_weight: int = Field(default=40, ge=0, le=100)
    keyword_weight: int = Field(default=20, ge=0, le=100)
    type_affinity_bonus: int = Field(default=90, ge=0, le=100)
    category_floor: int = Field(default=0, ge=0, le=100)
    type_affinity: Dict[str, str] = Field(
        default_factory=lambda: {"email": "email", "tel": "phone"}
    )
    checkbox_bonus: int = Field(default=40, ge=0, le=100)
    agreement_category: str = "agreement"
    boolean_category: str = "boolean"


class FormSettings(BaseModel):
    business_form_threshold: int = Field(default=50, ge=0, le=100)
    anchor_confidence_threshold: int = Field(default=60, ge=0, le=100)
    business_name_bonus: int = Field(default=40, ge=0, le=100)
    entity_type_bonus: int = Field(default=30, ge=0, le=100)
    classified_count_bonus: int = Field(default=20, ge=0, le=100)
    classified_count_minimum: int = Field(default=3, ge=1)
    classified_ratio_bonus: int = Field(default=10, ge=0, le=100)
    classified_ratio_minimum: float = Field(default=0.3, ge=0, lt=1)
    low_confidence_threshold: int = Field(default=70, ge=0, le=100)


class DetectorSettings(BaseModel):
    scanner: ScannerSettings = Field(default_factory=ScannerSettings)
    labels: LabelSettings = Field(default_factory=LabelSettings)
    sections: SectionSettings = Field(default_factory=SectionSettings)
    classification: ClassificationSettings = Field(default_factory=ClassificationSettings)
    form: FormSettings = Field(default_factory=FormSettings)

    @model_validator(mode="after")
    def _check_affinity_targets(self) -> "DetectorSettings":
        for input_type, category in self.classification.type_affinity.items():
            if not input_type or not category:
                raise ValueError("type_affinity entries must map a non-empty type to a category")
        return self

    @classmethod
    def from_config(cls, raw: Optional[Dict[str, Any]]) -> "DetectorSettings":
        """Build settings from a parsed detector_config.json (unknown keys are ignored)."""
        return cls.model_validate(raw or {})


def load_settings(raw: Optional[Dict[str, Any]] = None) -> DetectorSettings:
    """Load settings from the config directory, falling back to defaults on bad input.

    An explicit ``raw`` mapping is validated strictly and errors propagate.
    """
    if raw is not None:
        return DetectorSettings.from_config(raw)
    try:
        return DetectorSettings.from_config(get_detector_config())
    except ValidationError as e:
        logger.warning(f"detector_config.json failed validation, using defaults: {e}")
        return DetectorSettings()
