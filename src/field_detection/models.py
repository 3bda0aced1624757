"""Result types produced by a detection pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .dom.snapshot import DomNode, Rect

OTHER_CATEGORY = "other"


@dataclass
class GroupOption:
    value: str
    label: str
    checked: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "label": self.label, "checked": self.checked}


@dataclass
class LabelCandidate:
    text: str
    source: str
    score: int


@dataclass(eq=False)
class FieldCandidate:
    """One interactive control found by the scanner."""

    element: DomNode
    tag: str
    input_type: str
    name: str = ""
    id: str = ""
    placeholder: str = ""
    title: str = ""
    required: bool = False
    value: str = ""
    checked: bool = False
    position: int = 0
    rect: Rect = field(default_factory=Rect)
    options: List[GroupOption] = field(default_factory=list)

    @classmethod
    def from_element(cls, element: DomNode, position: int) -> "FieldCandidate":
        attrs = element.attrs
        options: List[GroupOption] = []
        if element.tag == "select":
            for opt in element.iter_elements({"option"}):
                text = " ".join(opt.text_content().split())
                options.append(
                    GroupOption(
                        value=opt.value if opt.value is not None else opt.attrs.get("value", text),
                        label=text,
                        checked=opt.selected,
                    )
                )
        return cls(
            element=element,
            tag=element.tag,
            input_type=element.input_type,
            name=attrs.get("name", "") or "",
            id=attrs.get("id", "") or "",
            placeholder=attrs.get("placeholder", "") or "",
            title=attrs.get("title", "") or "",
            required="required" in attrs
            or (attrs.get("aria-required") or "").lower() == "true",
            value=element.value or "",
            checked=element.checked,
            position=position,
            rect=element.rect,
            options=options,
        )

    @property
    def ref(self) -> str:
        """Short human-readable reference used in logs and skip records."""
        if self.id:
            return f"{self.tag}#{self.id}"
        if self.name:
            return f"{self.tag}[name={self.name}]"
        return f"{self.tag}@{self.position}"


@dataclass
class ClassificationDetails:
    matched_patterns: List[str] = field(default_factory=list)
    matched_keywords: List[str] = field(default_factory=list)
    score: int = 0
    type_affinity: bool = False
    option_bias: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matchedPatterns": list(self.matched_patterns),
            "matchedKeywords": list(self.matched_keywords),
            "score": self.score,
            "typeAffinity": self.type_affinity,
            "optionBias": self.option_bias,
        }


@dataclass(eq=False)
class ClassifiedField:
    """A standalone control or a collapsed group, with its label and category."""

    candidate: FieldCandidate
    label: LabelCandidate
    category: str = OTHER_CATEGORY
    confidence: int = 0
    is_group: bool = False
    group_type: Optional[str] = None
    group_name: str = ""
    options: List[GroupOption] = field(default_factory=list)
    members: List[FieldCandidate] = field(default_factory=list)
    details: ClassificationDetails = field(default_factory=ClassificationDetails)
    section: Optional[str] = None

    @property
    def position(self) -> int:
        return self.candidate.position

    @property
    def rect(self) -> Rect:
        if not self.members:
            return self.candidate.rect
        rect = Rect()
        for member in self.members:
            rect = rect.union(member.rect)
        return rect

    @property
    def input_type(self) -> str:
        return self.candidate.input_type

    @property
    def required(self) -> bool:
        if self.members:
            return any(m.required for m in self.members)
        return self.candidate.required

    @property
    def value(self) -> str:
        if self.is_group:
            return ",".join(o.value for o in self.options if o.checked)
        return self.candidate.value

    @property
    def is_classified(self) -> bool:
        return self.category != OTHER_CATEGORY

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "label": self.label.text,
            "labelSource": self.label.source,
            "labelScore": self.label.score,
            "category": self.category,
            "confidence": self.confidence,
            "tag": self.candidate.tag,
            "type": self.input_type,
            "name": self.group_name or self.candidate.name,
            "id": self.candidate.id,
            "required": self.required,
            "value": self.value,
            "position": self.position,
            "isGroup": self.is_group,
            "section": self.section,
            "classification": self.details.to_dict(),
        }
        if self.is_group:
            data["groupType"] = self.group_type
            data["memberCount"] = len(self.members)
        if self.options:
            data["options"] = [o.to_dict() for o in self.options]
        return data


@dataclass
class Section:
    title: str
    fields: List[ClassifiedField] = field(default_factory=list)
    header: Optional[DomNode] = field(default=None, repr=False)
    is_default: bool = False

    def to_dict(self, index_of: Optional[Dict[int, int]] = None) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "title": self.title,
            "fieldCount": len(self.fields),
            "isDefault": self.is_default,
        }
        if index_of is not None:
            data["fieldIndexes"] = [index_of[id(f)] for f in self.fields]
        return data


@dataclass
class SkippedField:
    ref: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"ref": self.ref, "reason": self.reason}


@dataclass
class DetectionResult:
    fields: List[ClassifiedField] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)
    overall_confidence: int = 0
    is_business_form: bool = False
    detected_state: Optional[str] = None
    summary: Dict[str, Any] = field(default_factory=dict)
    url_analysis: Optional[Dict[str, Any]] = None
    skipped_fields: List[SkippedField] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        index_of = {id(f): i for i, f in enumerate(self.fields)}
        return {
            "fields": [f.to_dict() for f in self.fields],
            "sections": [s.to_dict(index_of) for s in self.sections],
            "overallConfidence": self.overall_confidence,
            "isBusinessForm": self.is_business_form,
            "detectedState": self.detected_state,
            "summary": self.summary,
            "urlAnalysis": self.url_analysis,
            "skippedFields": [s.to_dict() for s in self.skipped_fields],
        }
