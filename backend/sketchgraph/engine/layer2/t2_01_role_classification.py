"""T2.01 — Role Classification.

Heuristic role per element from its kind, geometry, attached text and
structure. Rectangle rules are tried in order and the first match wins;
the "database" check only leaves a note, it has no role of its own.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from sketchgraph.engine.config import PipelineConfig
from sketchgraph.engine.context import (
    Connector,
    ContainerHierarchy,
    ElementGroups,
    NormalizedElement,
    PipelineContext,
    RoleAssignment,
    TextAttachment,
)
from sketchgraph.engine.registry import Layer, transform
from sketchgraph.models.extraction import ComponentRole

logger = logging.getLogger(__name__)


def _within(value: float, bounds: tuple[float, float]) -> bool:
    low, high = bounds
    return low < value < high


def rectangle_text(
    rect: NormalizedElement,
    attachments: Sequence[TextAttachment],
    elements: Mapping[str, NormalizedElement],
) -> str:
    """The rectangle's own label plus every text element attached to it."""
    parts = [rect.text] if rect.text else []
    for att in attachments:
        if att.attached_to == rect.id:
            text_el = elements.get(att.text_id)
            if text_el is not None and text_el.text:
                parts.append(text_el.text)
    return " ".join(parts)


def classify_rectangle(
    rect: NormalizedElement,
    hierarchy: ContainerHierarchy,
    attachments: Sequence[TextAttachment],
    connectors: Sequence[Connector],
    elements: Mapping[str, NormalizedElement],
    config: PipelineConfig,
) -> RoleAssignment:
    reasoning: list[str] = []
    box = rect.bbox
    aspect = box.aspect_ratio

    text = rectangle_text(rect, attachments, elements)
    has_text = bool(text)
    has_title = any(a.attached_to == rect.id and a.attachment_type == "title" for a in attachments)
    child_count = len(hierarchy.children_of(rect.id))
    rounded = rect.style.roundness > config.rounded_threshold
    in_flow = any(
        c.start_attachment.shape_id == rect.id or c.end_attachment.shape_id == rect.id
        for c in connectors
    )

    def assign(role: ComponentRole, confidence: float, *notes: str) -> RoleAssignment:
        return RoleAssignment(rect.id, role, confidence, tuple(reasoning) + notes)

    if (
        rounded
        and has_text
        and len(text) < config.button_max_text
        and _within(aspect, config.button_aspect_range)
    ):
        return assign(
            ComponentRole.BUTTON,
            0.9,
            "Rounded rectangle with short text",
            f"Aspect ratio {aspect:.1f} suitable for button",
        )

    if child_count > 1 and (has_title or has_text):
        notes = [f"Contains {child_count} elements"]
        if has_title:
            notes.append("Has title text")
        return assign(ComponentRole.CARD, 0.7, *notes)

    if in_flow and rounded:
        return assign(ComponentRole.PROCESS_STEP, 0.8, "Rounded rectangle with connectors (flow element)")

    if _within(aspect, config.circular_aspect_range) and box.area > config.database_min_area:
        lowered = text.lower()
        if "database" in lowered or "db" in lowered:
            reasoning.append("Square aspect ratio with database keywords")

    if child_count > 0:
        return assign(ComponentRole.CONTAINER, 0.8, f"Large container with {child_count} child elements")

    if box.area > config.large_rect_area:
        return assign(ComponentRole.CONTAINER, 0.6, "Large rectangle (default container)")

    return assign(ComponentRole.COMPONENT, 0.3, "Rectangle with unclear purpose")


def classify_ellipse(ellipse: NormalizedElement, config: PipelineConfig) -> RoleAssignment:
    box = ellipse.bbox
    if _within(box.aspect_ratio, config.circular_aspect_range):
        if box.area < config.radio_max_area:
            return RoleAssignment(ellipse.id, ComponentRole.RADIO_BUTTON, 0.7, ("Small circular shape",))
        return RoleAssignment(ellipse.id, ComponentRole.ICON, 0.6, ("Medium circular shape",))
    return RoleAssignment(ellipse.id, ComponentRole.COMPONENT, 0.5, ("Elliptical shape with unclear purpose",))


def classify_text(text: NormalizedElement, attachments: Mapping[str, TextAttachment]) -> RoleAssignment:
    att = attachments.get(text.id)
    kind = att.attachment_type if att else "standalone"
    if kind == "title":
        return RoleAssignment(text.id, ComponentRole.TITLE, 0.9, ("Text positioned as title",))
    if kind == "body":
        return RoleAssignment(text.id, ComponentRole.TEXT_BLOCK, 0.8, ("Text within container (body text)",))
    return RoleAssignment(text.id, ComponentRole.TEXT_BLOCK, 1.0, ("Standalone text element",))


def assign_roles(
    groups: ElementGroups,
    hierarchy: ContainerHierarchy,
    attachments: Sequence[TextAttachment],
    connectors: Sequence[Connector],
    config: PipelineConfig | None = None,
) -> tuple[RoleAssignment, ...]:
    config = config or PipelineConfig()
    elements = groups.by_id()
    by_text_id = {a.text_id: a for a in attachments}
    out: list[RoleAssignment] = []

    for rect in groups.rectangles:
        out.append(classify_rectangle(rect, hierarchy, attachments, connectors, elements, config))
    for diamond in groups.diamonds:
        out.append(
            RoleAssignment(diamond.id, ComponentRole.DECISION_POINT, 0.95, ("Diamond shape indicates decision point",))
        )
    for ellipse in groups.ellipses:
        out.append(classify_ellipse(ellipse, config))
    for text in groups.text:
        out.append(classify_text(text, by_text_id))
    for image in groups.images:
        out.append(RoleAssignment(image.id, ComponentRole.IMAGE_PLACEHOLDER, 1.0, ("Image element",)))
    for conn in connectors:
        out.append(
            RoleAssignment(conn.element_id, ComponentRole.CONNECTOR, conn.confidence, ("Line/arrow connecting shapes",))
        )

    return tuple(out)


@transform(
    id="T2.01",
    layer=Layer.SEMANTICS,
    dependencies=["T1.02", "T1.03"],
    description="Classify element roles from shape, text and structure",
)
def role_classification(ctx: PipelineContext) -> None:
    ctx.role_assignments = assign_roles(
        ctx.require_groups(),
        ctx.require_hierarchy(),
        ctx.text_attachments,
        ctx.connectors,
        ctx.config,
    )
    logger.debug("Roles: %d assigned", len(ctx.role_assignments))
