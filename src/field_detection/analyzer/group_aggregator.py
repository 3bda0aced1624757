"""Collapses radio and checkbox groups into one logical field."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..dom.snapshot import DomNode, common_ancestor
from ..models import ClassifiedField, FieldCandidate, GroupOption, LabelCandidate
from .label_resolver import (
    LabelResolver,
    TEXT_SKIP_TAGS,
    clean_label_text,
    humanize_identifier,
    is_valid_label,
)

logger = logging.getLogger(__name__)

GROUP_CONTAINER_CLASSES = frozenset({"form-group", "field-group", "checkbox-group"})
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
GROUP_LABEL_TAGS = HEADING_TAGS | {"label", "legend", "p", "span", "div", "strong", "b", "dt"}


@dataclass
class GroupPlan:
    """Members of one group, in document order."""

    key: Tuple
    group_type: str
    name: str
    members: List[FieldCandidate] = field(default_factory=list)


def _is_group_container(node: DomNode) -> bool:
    if node.tag == "fieldset":
        return True
    if (node.get("role") or "").lower() == "group":
        return True
    return any(cls in GROUP_CONTAINER_CLASSES for cls in node.class_list)


class GroupAggregator:
    def __init__(self, label_resolver: LabelResolver):
        self.label_resolver = label_resolver

    def plan(self, candidates: List[FieldCandidate]) -> Dict[int, GroupPlan]:
        """Map ``id(element)`` of every grouped member to its group plan.

        Radios group by (form, name); checkboxes by a ``[]`` name or by the
        nearest fieldset/group container holding more than one checkbox.
        """
        groups: Dict[Tuple, GroupPlan] = {}
        loose_checkboxes: List[FieldCandidate] = []

        for cand in candidates:
            form = cand.element.closest({"form"})
            form_key = id(form) if form is not None else None
            if cand.input_type == "radio" and cand.name:
                key = ("radio", form_key, cand.name)
                groups.setdefault(key, GroupPlan(key, "radio", cand.name)).members.append(cand)
            elif cand.input_type == "checkbox":
                if cand.name.endswith("[]"):
                    key = ("checkbox", form_key, cand.name)
                    groups.setdefault(key, GroupPlan(key, "checkbox", cand.name)).members.append(cand)
                else:
                    loose_checkboxes.append(cand)

        self._plan_container_groups(loose_checkboxes, groups)

        by_member: Dict[int, GroupPlan] = {}
        for plan in groups.values():
            # A "[]" name qualifies alone; a container needs two or more members
            if plan.key[0] == "checkbox-container" and len(plan.members) < 2:
                continue
            for member in plan.members:
                by_member[id(member.element)] = plan
        return by_member

    def _plan_container_groups(
        self, checkboxes: List[FieldCandidate], groups: Dict[Tuple, GroupPlan]
    ) -> None:
        containers_of: Dict[int, List[DomNode]] = {}
        counts: Dict[int, int] = {}
        for cand in checkboxes:
            chain = [a for a in cand.element.ancestors() if a.is_element and _is_group_container(a)]
            containers_of[id(cand.element)] = chain
            for container in chain:
                counts[id(container)] = counts.get(id(container), 0) + 1

        for cand in checkboxes:
            for container in containers_of[id(cand.element)]:
                if counts[id(container)] > 1:
                    key = ("checkbox-container", id(container))
                    name = cand.name or container.id or ""
                    groups.setdefault(key, GroupPlan(key, "checkbox", name)).members.append(cand)
                    break

    def build(self, plan: GroupPlan) -> ClassifiedField:
        """One unclassified field standing for every member of ``plan``."""
        members = plan.members
        options = [
            GroupOption(
                value=m.value or "on",
                label=self.label_resolver.resolve_option(m),
                checked=m.checked,
            )
            for m in members
        ]
        label = self.group_label(plan)
        first = members[0]
        logger.debug(
            f"Group '{plan.name}' ({plan.group_type}, {len(members)} members) labelled '{label.text}'"
        )
        return ClassifiedField(
            candidate=first,
            label=label,
            is_group=True,
            group_type=plan.group_type,
            group_name=plan.name,
            options=options,
            members=list(members),
        )

    def group_label(self, plan: GroupPlan) -> LabelCandidate:
        """Legend, then preceding heading/label, then aria-labelledby, then name."""
        elements = [m.element for m in plan.members]
        ancestor = common_ancestor(elements)

        legend = self._legend_text(ancestor)
        if legend:
            return LabelCandidate(legend, "legend", 65)

        heading = self._preceding_heading(ancestor, elements)
        if heading:
            return LabelCandidate(heading, "group-heading", 80)

        ref = elements[0].get("aria-labelledby")
        if ref:
            parts = [elements[0].find_by_id(r) for r in ref.split()]
            text = clean_label_text(" ".join(p.text_content() for p in parts if p is not None))
            if is_valid_label(text):
                return LabelCandidate(text, "aria-labelledby", 85)

        humanized = humanize_identifier(plan.name)
        if is_valid_label(humanized):
            return LabelCandidate(humanized, "name", 20)
        return self.label_resolver.sentinel()

    @staticmethod
    def _legend_text(ancestor: Optional[DomNode]) -> str:
        if ancestor is None:
            return ""
        fieldset = ancestor.closest({"fieldset"})
        if fieldset is None:
            return ""
        for child in fieldset.element_children:
            if child.tag == "legend":
                text = clean_label_text(child.text_content(skip_tags=TEXT_SKIP_TAGS))
                if is_valid_label(text):
                    return text
        return ""

    def _preceding_heading(self, ancestor: Optional[DomNode], elements: List[DomNode]) -> str:
        if ancestor is None:
            return ""
        first = elements[0]
        # Children of the common ancestor that come before the first member
        before: List[DomNode] = []
        for child in ancestor.children:
            if child.contains(first):
                break
            before.append(child)
        for node in reversed(before):
            text = self._heading_text(node)
            if text:
                return text

        limit = self.label_resolver.settings.nearby_sibling_limit
        for sibling in ancestor.previous_element_siblings()[:limit]:
            text = self._heading_text(sibling)
            if text:
                return text
        return ""

    @staticmethod
    def _heading_text(node: DomNode) -> str:
        if node.is_text:
            text = clean_label_text(node.text)
            return text if is_valid_label(text) else ""
        if node.tag not in GROUP_LABEL_TAGS or node.contains_control():
            return ""
        text = clean_label_text(node.text_content(skip_tags=TEXT_SKIP_TAGS))
        return text if is_valid_label(text) else ""
