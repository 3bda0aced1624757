"""Presentation-friendly reshape of a detection result."""

from typing import Any, Dict, Optional

from ..knowledge.knowledge_base import KnowledgeBase
from ..models import DetectionResult


def project_for_ui(result: DetectionResult, knowledge: Optional[KnowledgeBase] = None) -> Dict[str, Any]:
    """Group fields by category and list sections with their sizes.

    Pure and read-only; categories appear in first-seen document order.
    """
    categories: Dict[str, Dict[str, Any]] = {}
    for f in result.fields:
        bucket = categories.get(f.category)
        if bucket is None:
            if knowledge is not None:
                label = knowledge.label_for(f.category)
            else:
                label = f.category.replace("_", " ").title()
            bucket = categories[f.category] = {"label": label, "fields": []}
        bucket["fields"].append(f.to_dict())

    return {
        "categories": categories,
        "sections": [{"title": s.title, "fieldCount": len(s.fields)} for s in result.sections],
        "summary": dict(result.summary),
    }
