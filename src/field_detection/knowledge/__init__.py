"""Category knowledge and override validation."""

from .knowledge_base import KnowledgeBase, KnowledgeEntry, load_knowledge_base
from .validator import clear_validation_cache, validate_entry, validate_knowledge_map

__all__ = [
    "KnowledgeBase",
    "KnowledgeEntry",
    "clear_validation_cache",
    "load_knowledge_base",
    "validate_entry",
    "validate_knowledge_map",
]
