"""Overlay labels: the flat per-component view a canvas overlay draws."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from sketchgraph.models.extraction import SemanticComponent
from sketchgraph.models.responses import LabelCategory, OverlayLabel

_CATEGORY_MAP: dict[str, LabelCategory] = {
    "widget": "widget",
    "button": "shape",
    "input_field": "shape",
    "text_block": "text",
    "title": "text",
    "label": "text",
    "process_step": "diagram",
    "decision_point": "diagram",
    "connector": "diagram",
    "chart": "diagram",
    "container": "shape",
    "card": "shape",
}

# Substring fallback for roles the map does not name
_CATEGORY_KEYWORDS: tuple[tuple[tuple[str, ...], LabelCategory], ...] = (
    (("dropdown", "checkbox", "radio", "toggle", "slider"), "widget"),
    (("text", "title", "label"), "text"),
    (("decision", "process", "start_end"), "diagram"),
    (("panel", "modal", "sidebar", "header", "footer", "shape"), "shape"),
)

FALLBACK_LABEL_LENGTH = 20


def role_category(role: str) -> LabelCategory:
    if role in _CATEGORY_MAP:
        return _CATEGORY_MAP[role]
    for keywords, category in _CATEGORY_KEYWORDS:
        if any(k in role for k in keywords):
            return category
    return "unknown"


def fallback_label(component: SemanticComponent) -> str:
    """Component text (truncated) or, lacking text, its role in words."""
    text = component.metadata.visual_properties.text_content
    if text:
        if len(text) > FALLBACK_LABEL_LENGTH:
            return text[: FALLBACK_LABEL_LENGTH - 3] + "..."
        return text
    return component.role.value.replace("_", " ").lower()


def confidence_label(component: SemanticComponent) -> str:
    return f"{component.role.value.replace('_', ' ')} ({component.confidence * 100:.0f}%)"


def to_overlay_label(component: SemanticComponent, label: str) -> OverlayLabel:
    box = component.bounding_box
    return OverlayLabel(
        id=component.id,
        element_id=component.element_ids[0] if component.element_ids else component.id,
        label=label,
        confidence=component.confidence,
        category=role_category(component.role.value),
        x=box.x,
        y=box.y,
        width=box.width,
        height=box.height,
    )


def to_overlay_labels(
    components: Sequence[SemanticComponent],
    human_names: Mapping[str, str] | None = None,
) -> list[OverlayLabel]:
    names = human_names or {}
    return [to_overlay_label(c, names.get(c.id) or fallback_label(c)) for c in components]


def average_confidence(components: Sequence[SemanticComponent]) -> float:
    if not components:
        return 0.0
    return sum(c.confidence for c in components) / len(components)
