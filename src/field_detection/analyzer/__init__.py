"""Detection pipeline stages."""

from .dom_scanner import DomScanner
from .field_classifier import FieldClassifier, build_corpus
from .form_aggregator import FormAggregator, FormVerdict
from .group_aggregator import GroupAggregator, GroupPlan
from .label_resolver import LabelResolver, clean_label_text, humanize_identifier, is_valid_label
from .section_detector import SectionDetector
from .state_detector import StateDetector, analyze_url
from .ui_projector import project_for_ui

__all__ = [
    "DomScanner",
    "FieldClassifier",
    "FormAggregator",
    "FormVerdict",
    "GroupAggregator",
    "GroupPlan",
    "LabelResolver",
    "SectionDetector",
    "StateDetector",
    "analyze_url",
    "build_corpus",
    "clean_label_text",
    "humanize_identifier",
    "is_valid_label",
    "project_for_ui",
]
