"""Business-registration form field detection."""

from .dom import DomNode, capture_dom_snapshot, parse_html
from .engine import FieldDetectionEngine
from .errors import (
    DetectionError,
    InvalidInputError,
    KnowledgeValidationError,
    RecoverableScanError,
)
from .knowledge import KnowledgeBase, load_knowledge_base
from .models import (
    ClassifiedField,
    DetectionResult,
    FieldCandidate,
    GroupOption,
    LabelCandidate,
    Section,
)
from .settings import DetectorSettings, load_settings

__all__ = [
    "ClassifiedField",
    "DetectionError",
    "DetectionResult",
    "DetectorSettings",
    "DomNode",
    "FieldCandidate",
    "FieldDetectionEngine",
    "GroupOption",
    "InvalidInputError",
    "KnowledgeBase",
    "KnowledgeValidationError",
    "LabelCandidate",
    "RecoverableScanError",
    "Section",
    "capture_dom_snapshot",
    "load_knowledge_base",
    "load_settings",
    "parse_html",
]
