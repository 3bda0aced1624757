"""
Field detection engine (orchestrator)
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from playwright.async_api import Frame, Page

from config.manager import get_state_detection_table
from .analyzer.dom_scanner import DomScanner
from .analyzer.field_classifier import FieldClassifier
from .analyzer.form_aggregator import FormAggregator
from .analyzer.group_aggregator import GroupAggregator, GroupPlan
from .analyzer.label_resolver import LabelResolver
from .analyzer.section_detector import SectionDetector
from .analyzer.state_detector import StateDetector, analyze_url
from .analyzer.ui_projector import project_for_ui
from .dom.html_loader import parse_html
from .dom.playwright_capture import capture_dom_snapshot
from .dom.snapshot import DomNode
from .errors import InvalidInputError, RecoverableScanError
from .knowledge.knowledge_base import KnowledgeBase, load_knowledge_base
from .models import ClassifiedField, DetectionResult, FieldCandidate, SkippedField
from .settings import DetectorSettings, load_settings

logger = logging.getLogger(__name__)


class FieldDetectionEngine:
    """Runs scan, label, group, classify, section and aggregate over one snapshot.

    The engine holds configuration only; every call to ``detect`` is an
    independent pass with its own processed-member set.
    """

    def __init__(
        self,
        settings: Optional[DetectorSettings] = None,
        knowledge_base: Optional[KnowledgeBase] = None,
        state_table: Optional[Dict[str, Any]] = None,
    ):
        self.settings = settings or load_settings()
        self._base_knowledge = knowledge_base
        self.state_detector = StateDetector(
            state_table if state_table is not None else get_state_detection_table()
        )

        self.scanner = DomScanner(self.settings.scanner)
        self.label_resolver = LabelResolver(self.settings.labels)
        self.group_aggregator = GroupAggregator(self.label_resolver)
        self.section_detector = SectionDetector(self.settings.sections)
        self.classifier = FieldClassifier(self.settings.classification)
        self.form_aggregator = FormAggregator(self.settings.form)

        logger.info("FieldDetectionEngine initialized")

    @property
    def base_knowledge(self) -> KnowledgeBase:
        if self._base_knowledge is None:
            self._base_knowledge = load_knowledge_base()
        return self._base_knowledge

    def knowledge_for(
        self, state_code: Optional[str], overrides: Optional[Dict[str, Any]] = None
    ) -> KnowledgeBase:
        return load_knowledge_base(state_code, overrides, base=self.base_knowledge)

    def detect(
        self,
        root: DomNode,
        url: Optional[str] = None,
        state_code: Optional[str] = None,
        knowledge_overrides: Optional[Dict[str, Any]] = None,
    ) -> DetectionResult:
        """Run one detection pass.

        Args:
            root: document (or subtree) snapshot to analyse
            url: page URL, used for state detection and URL analysis
            state_code: explicit jurisdiction; skips detection when given
            knowledge_overrides: caller category map merged over the knowledge base

        Raises:
            InvalidInputError: when ``root`` is missing, not a snapshot node, or detached
            KnowledgeValidationError: when ``knowledge_overrides`` is malformed
        """
        self._validate_root(root)
        started = time.time()

        detected_state = (state_code.strip().upper() if state_code else None) or (
            self.state_detector.detect(url, root)
        )
        knowledge = self.knowledge_for(detected_state, knowledge_overrides)

        candidates = self.scanner.scan(root)
        fields, skipped = self._analyze_fields(candidates, knowledge)
        sections = self.section_detector.detect(root, fields)
        verdict = self.form_aggregator.aggregate(fields)

        result = DetectionResult(
            fields=fields,
            sections=sections,
            overall_confidence=verdict.overall_confidence,
            is_business_form=verdict.is_business_form,
            detected_state=detected_state,
            summary=verdict.summary,
            url_analysis=analyze_url(url, knowledge.url_patterns, self.state_detector) if url else None,
            skipped_fields=skipped,
        )

        elapsed = time.time() - started
        logger.info(
            f"Detection pass: {len(fields)} fields, {verdict.summary.get('classifiedFields', 0)} classified, "
            f"confidence={verdict.overall_confidence}, business_form={verdict.is_business_form}, "
            f"state={detected_state or '-'} ({elapsed:.3f}s)",
            extra={"summary": True},
        )
        return result

    def detect_html(
        self,
        html: str,
        url: Optional[str] = None,
        state_code: Optional[str] = None,
        knowledge_overrides: Optional[Dict[str, Any]] = None,
    ) -> DetectionResult:
        return self.detect(parse_html(html), url, state_code, knowledge_overrides)

    async def detect_page(
        self,
        page_or_frame: Union[Page, Frame],
        state_code: Optional[str] = None,
        knowledge_overrides: Optional[Dict[str, Any]] = None,
    ) -> DetectionResult:
        """Capture a live Playwright page or frame and run a pass over it."""
        root = await capture_dom_snapshot(page_or_frame)
        url = getattr(page_or_frame, "url", None)
        return self.detect(root, url if isinstance(url, str) else None, state_code, knowledge_overrides)

    def project(self, result: DetectionResult, state_code: Optional[str] = None) -> Dict[str, Any]:
        return project_for_ui(result, self.knowledge_for(state_code or result.detected_state))

    # --- internals ------------------------------------------------------

    @staticmethod
    def _validate_root(root: Any) -> None:
        if root is None:
            raise InvalidInputError("root must not be None")
        if not isinstance(root, DomNode):
            raise InvalidInputError(f"root must be a DomNode, got {type(root).__name__}")
        if not root.is_connected():
            raise InvalidInputError("root is detached from its document")

    def _analyze_fields(
        self, candidates: List[FieldCandidate], knowledge: KnowledgeBase
    ) -> Tuple[List[ClassifiedField], List[SkippedField]]:
        group_of = self.group_aggregator.plan(candidates)
        processed = set()
        fields: List[ClassifiedField] = []
        skipped: List[SkippedField] = []

        for cand in candidates:
            if id(cand.element) in processed:
                continue
            plan = group_of.get(id(cand.element))
            if plan is not None:
                # Visiting any member consumes the whole group
                processed.update(id(m.element) for m in plan.members)
            else:
                processed.add(id(cand.element))

            try:
                field = self._analyze_one(cand, plan, knowledge)
            except RecoverableScanError as e:
                logger.warning(f"Skipping field {e.field_ref or cand.ref}: {e}")
                skipped.append(SkippedField(e.field_ref or cand.ref, str(e)))
                continue
            except Exception as e:
                logger.warning(f"Skipping field {cand.ref} after unexpected error: {e}")
                skipped.append(SkippedField(cand.ref, f"{type(e).__name__}: {e}"))
                continue
            fields.append(field)

        return fields, skipped

    def _analyze_one(
        self, cand: FieldCandidate, plan: Optional[GroupPlan], knowledge: KnowledgeBase
    ) -> ClassifiedField:
        if not cand.element.is_connected():
            raise RecoverableScanError("control detached during analysis", cand.ref)
        if plan is not None:
            field = self.group_aggregator.build(plan)
        else:
            field = ClassifiedField(candidate=cand, label=self.label_resolver.resolve(cand))
        return self.classifier.classify(field, knowledge)
