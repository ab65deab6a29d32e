"""T2.03 — Component Assembly.

One SemanticComponent per role assignment. A detected widget overrides the
classified role. Components below ``min_confidence`` are dropped and the rest
capped at ``max_components``, keeping the most confident in their original order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from sketchgraph.engine.config import ExtractionOptions, PipelineConfig
from sketchgraph.engine.context import (
    ContainerHierarchy,
    NormalizedElement,
    PipelineContext,
    RoleAssignment,
    TextAttachment,
    WidgetDetection,
)
from sketchgraph.engine.layer1.t1_01_containers import GROUP_PREFIX
from sketchgraph.engine.registry import Layer, transform
from sketchgraph.models.elements import ShapeKind
from sketchgraph.models.extraction import (
    ComponentBounds,
    ComponentMetadata,
    ComponentRole,
    InteractionPattern,
    LayoutContext,
    SemanticComponent,
    VisualProperties,
    WidgetInfo,
)

logger = logging.getLogger(__name__)

_STATEFUL = (ComponentRole.CHECKBOX, ComponentRole.TOGGLE)


def size_tier(area: float, config: PipelineConfig) -> str:
    if area > config.large_area:
        return "large"
    if area > config.medium_area:
        return "medium"
    return "small"


def layout_position(element: NormalizedElement, hierarchy: ContainerHierarchy) -> str:
    parent = hierarchy.parent_map.get(element.id)
    if parent is not None and not parent.startswith(GROUP_PREFIX):
        return "nested"
    if element.group_id:
        return "grouped"
    return "isolated"


def _widget_info(detection: WidgetDetection) -> WidgetInfo:
    config = detection.widget_metadata.config.model_dump(mode="json") if detection.widget_metadata else {}
    return WidgetInfo(
        widget_type=detection.widget_type.value,
        confidence=detection.confidence,
        detection_method=detection.detection_method,
        config=config,
    )


def build_component(
    assignment: RoleAssignment,
    element: NormalizedElement,
    hierarchy: ContainerHierarchy,
    has_attached_text: bool,
    detection: WidgetDetection | None,
    config: PipelineConfig,
) -> SemanticComponent:
    is_widget = detection is not None and detection.is_widget
    role = assignment.role
    box = element.bbox

    metadata = ComponentMetadata(
        visual_properties=VisualProperties(
            has_text=bool(element.text) or has_attached_text,
            text_content=element.text or None,
            has_shape=element.kind != ShapeKind.TEXT,
            shape_type=element.kind.value,
            size=size_tier(box.area, config),
        ),
        interaction_pattern=InteractionPattern(
            is_clickable=role == ComponentRole.BUTTON,
            is_input_field=role == ComponentRole.INPUT_FIELD,
            has_states=role in _STATEFUL,
            state_count=2 if role in _STATEFUL else None,
        ),
        layout_context=LayoutContext(position=layout_position(element, hierarchy)),
        semantic_hints=list(assignment.reasoning),
        widget_metadata=_widget_info(detection) if is_widget else None,
    )

    return SemanticComponent(
        id=element.id,
        element_ids=[element.id],
        role=ComponentRole.WIDGET if is_widget else role,
        confidence=assignment.confidence,
        bounding_box=ComponentBounds(x=box.x, y=box.y, width=box.width, height=box.height),
        metadata=metadata,
    )


def select_components(
    components: Sequence[SemanticComponent],
    options: ExtractionOptions,
) -> tuple[SemanticComponent, ...]:
    kept = [c for c in components if c.confidence >= options.min_confidence]
    if len(kept) <= options.max_components:
        return tuple(kept)
    ranked = sorted(range(len(kept)), key=lambda i: -kept[i].confidence)
    chosen = sorted(ranked[: max(options.max_components, 0)])
    return tuple(kept[i] for i in chosen)


def assemble_components(
    assignments: Sequence[RoleAssignment],
    elements: Mapping[str, NormalizedElement],
    hierarchy: ContainerHierarchy,
    attachments: Sequence[TextAttachment],
    detections: Sequence[WidgetDetection],
    options: ExtractionOptions,
    config: PipelineConfig | None = None,
) -> tuple[SemanticComponent, ...]:
    config = config or PipelineConfig()
    detection_by_id = {d.element_id: d for d in detections}
    with_text = {a.attached_to for a in attachments if a.attached_to}

    components = []
    for assignment in assignments:
        element = elements.get(assignment.element_id)
        if element is None:
            continue
        components.append(
            build_component(
                assignment,
                element,
                hierarchy,
                element.id in with_text,
                detection_by_id.get(element.id),
                config,
            )
        )
    return select_components(components, options)


@transform(
    id="T2.03",
    layer=Layer.SEMANTICS,
    dependencies=["T2.01", "T2.02"],
    description="Assemble semantic components, filter by confidence",
)
def component_assembly(ctx: PipelineContext) -> None:
    ctx.components = assemble_components(
        ctx.role_assignments,
        ctx.require_groups().by_id(),
        ctx.require_hierarchy(),
        ctx.text_attachments,
        ctx.widget_detections,
        ctx.options,
        ctx.config,
    )
    logger.debug("Components: %d of %d kept", len(ctx.components), len(ctx.role_assignments))
