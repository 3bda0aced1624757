"""Knowledge entry validation.

Normalizes category maps coming from bundled JSON files or from callers
before they are merged into a knowledge base. Caller overrides are checked
strictly; bundled files tolerate (and log) individual bad regexes.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple, TypedDict

from ..errors import KnowledgeValidationError

logger = logging.getLogger(__name__)

LIST_FIELDS = ("patterns", "keywords", "attributes")
SCALAR_FIELDS = ("priority", "validation", "label")


class KnowledgeEntryDict(TypedDict, total=False):
    """Shape of one category entry after normalization."""

    patterns: List[str]
    keywords: List[str]
    priority: int
    validation: str
    label: str


_ValidationCache = Dict[str, Tuple[Dict[str, KnowledgeEntryDict], float]]
_validation_cache: _ValidationCache = {}
_CACHE_TTL_SECONDS = 300
_CACHE_MAX_ENTRIES = 128


def _get_cache_key(raw: Dict[str, Any], strict: bool) -> Optional[str]:
    try:
        payload = json.dumps(raw, sort_keys=True)
    except TypeError:
        return None
    return hashlib.sha256(f"{int(strict)}:{payload}".encode()).hexdigest()


def _is_cache_valid(timestamp: float) -> bool:
    return (time.time() - timestamp) < _CACHE_TTL_SECONDS


def _store(cache_key: str, normalized: Dict[str, KnowledgeEntryDict]) -> None:
    """Insert after dropping expired entries; the oldest go first once full."""
    for key in [k for k, (_, ts) in _validation_cache.items() if not _is_cache_valid(ts)]:
        del _validation_cache[key]
    while len(_validation_cache) >= _CACHE_MAX_ENTRIES:
        del _validation_cache[next(iter(_validation_cache))]
    _validation_cache[cache_key] = (normalized, time.time())


def _ensure_str_list(value: Any, category: str, field_name: str) -> List[str]:
    if not isinstance(value, list):
        raise KnowledgeValidationError(
            f"'{category}.{field_name}' must be a list, got {type(value).__name__}"
        )
    items: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise KnowledgeValidationError(
                f"'{category}.{field_name}' entries must be strings, got {item!r}"
            )
        if item.strip():
            items.append(item)
    return items


def _check_patterns(patterns: List[str], category: str, strict: bool) -> List[str]:
    valid: List[str] = []
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as e:
            if strict:
                raise KnowledgeValidationError(
                    f"'{category}.patterns' contains an invalid regex {pattern!r}: {e}"
                ) from e
            logger.warning(f"Skipping invalid regex in '{category}': {pattern!r} ({e})")
            continue
        valid.append(pattern)
    return valid


def validate_entry(category: Any, raw: Any, strict: bool = True) -> KnowledgeEntryDict:
    """Validate and normalize one category entry.

    ``attributes`` is folded into ``keywords``; keywords are lower-cased.
    """
    if not isinstance(category, str) or not category.strip():
        raise KnowledgeValidationError(f"Category keys must be non-empty strings, got {category!r}")
    if not isinstance(raw, dict):
        raise KnowledgeValidationError(f"'{category}' entry must be a dict, got {type(raw).__name__}")

    entry: KnowledgeEntryDict = {}
    if "patterns" in raw:
        patterns = _ensure_str_list(raw["patterns"], category, "patterns")
        entry["patterns"] = _check_patterns(patterns, category, strict)

    keywords: List[str] = []
    for field_name in ("keywords", "attributes"):
        if field_name in raw:
            for kw in _ensure_str_list(raw[field_name], category, field_name):
                kw = kw.strip().lower()
                if kw not in keywords:
                    keywords.append(kw)
    if "keywords" in raw or "attributes" in raw:
        entry["keywords"] = keywords

    if "priority" in raw:
        priority = raw["priority"]
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise KnowledgeValidationError(
                f"'{category}.priority' must be an integer, got {priority!r}"
            )
        entry["priority"] = priority

    for field_name in ("validation", "label"):
        if field_name in raw and raw[field_name] is not None:
            if not isinstance(raw[field_name], str):
                raise KnowledgeValidationError(f"'{category}.{field_name}' must be a string")
            entry[field_name] = raw[field_name]  # type: ignore[literal-required]

    return entry


def validate_knowledge_map(raw: Any, strict: bool = True) -> Dict[str, KnowledgeEntryDict]:
    """Validate a category map (``category -> entry``), caching the normalized copy.

    Args:
        raw: the map to validate
        strict: raise on invalid regexes instead of skipping them

    Raises:
        KnowledgeValidationError: on any structural problem
    """
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise KnowledgeValidationError(
            f"Knowledge overrides must be a dict, got {type(raw).__name__}"
        )

    cache_key = _get_cache_key(raw, strict)
    if cache_key is not None and cache_key in _validation_cache:
        cached, ts = _validation_cache[cache_key]
        if _is_cache_valid(ts):
            return cached
        del _validation_cache[cache_key]

    normalized: Dict[str, KnowledgeEntryDict] = {}
    for category, entry in raw.items():
        normalized[category.strip() if isinstance(category, str) else category] = validate_entry(
            category, entry, strict=strict
        )

    if cache_key is not None:
        _store(cache_key, normalized)
    return normalized


def clear_validation_cache() -> None:
    _validation_cache.clear()
