"""Enumerates the visible, interactive controls under a root node."""

import logging
from typing import List, Optional

from ..dom.snapshot import CONTROL_TAGS, DomNode
from ..models import FieldCandidate
from ..settings import ScannerSettings

logger = logging.getLogger(__name__)


class DomScanner:
    """Collects ``input``/``select``/``textarea`` candidates in document order."""

    def __init__(self, settings: Optional[ScannerSettings] = None):
        self.settings = settings or ScannerSettings()

    def scan(self, root: DomNode) -> List[FieldCandidate]:
        candidates: List[FieldCandidate] = []
        for position, node in enumerate(root.iter()):
            if not node.is_element or node.tag not in CONTROL_TAGS:
                continue
            try:
                if not self._is_interactive(node):
                    continue
                if not self._is_important_hidden(node) and not self.is_visible(node):
                    continue
                candidates.append(FieldCandidate.from_element(node, position))
            except Exception as e:
                logger.warning(f"Skipping unreadable control <{node.tag}> at {position}: {e}")
                continue

        logger.debug(f"DOM scan found {len(candidates)} candidate fields")
        return candidates

    def _is_interactive(self, node: DomNode) -> bool:
        if node.tag != "input":
            return True
        input_type = node.input_type
        if input_type not in self.settings.excluded_input_types:
            return True
        return self._is_important_hidden(node)

    def _is_important_hidden(self, node: DomNode) -> bool:
        if node.tag != "input" or node.input_type != "hidden":
            return False
        name = (node.get("name") or "").lower()
        return any(token in name for token in self.settings.important_hidden_tokens)

    @staticmethod
    def is_visible(node: DomNode) -> bool:
        return node.is_rendered()
