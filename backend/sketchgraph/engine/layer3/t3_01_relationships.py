"""T3.01 — Relationship Analysis. Cost-gated.

Pairwise pass over components (i < j), recording each relation on both ends:
- spatial: dominant axis of the centre offset, within 150px
- containment: one box fully encloses the other (boundaries inclusive)
- functional: label validates a nearby input field, a button triggers an input field
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from sketchgraph.engine.config import PipelineConfig
from sketchgraph.engine.context import BoundingBox, PipelineContext
from sketchgraph.engine.registry import Layer, transform
from sketchgraph.models.extraction import (
    ComponentRelationship,
    ComponentRole,
    RelationshipType,
    SemanticComponent,
)
from sketchgraph.utils.geometry import pairwise_deltas

logger = logging.getLogger(__name__)

R = RelationshipType


def _box(component: SemanticComponent) -> BoundingBox:
    b = component.bounding_box
    return BoundingBox(b.x, b.y, b.width, b.height)


def spatial_relation(
    dx: float, dy: float, distance: float, config: PipelineConfig
) -> tuple[RelationshipType, RelationshipType, float] | None:
    horizon = config.spatial_threshold * config.spatial_horizon_factor
    if distance > horizon:
        return None
    confidence = max(0.5, 1 - distance / horizon)
    if abs(dx) > abs(dy):
        return (R.LEFT_OF, R.RIGHT_OF, confidence) if dx > 0 else (R.RIGHT_OF, R.LEFT_OF, confidence)
    return (R.ABOVE, R.BELOW, confidence) if dy > 0 else (R.BELOW, R.ABOVE, confidence)


def containment_relation(a: BoundingBox, b: BoundingBox) -> tuple[RelationshipType, RelationshipType] | None:
    if a.encloses(b):
        return R.CONTAINS, R.CONTAINED_BY
    if b.encloses(a):
        return R.CONTAINED_BY, R.CONTAINS
    return None


def analyze_relationships(
    components: Sequence[SemanticComponent],
    config: PipelineConfig | None = None,
) -> tuple[SemanticComponent, ...]:
    config = config or PipelineConfig()
    n = len(components)
    boxes = [_box(c) for c in components]
    centers = np.array([[b.center_x, b.center_y] for b in boxes], dtype=np.float64).reshape(-1, 2)
    dx, dy, dist = pairwise_deltas(centers)

    rels: list[list[ComponentRelationship]] = [[] for _ in range(n)]

    def link(i: int, j: int, forward: RelationshipType, backward: RelationshipType | None, confidence: float) -> None:
        rels[i].append(ComponentRelationship(type=forward, target_component_id=components[j].id, confidence=confidence))
        if backward is not None:
            rels[j].append(
                ComponentRelationship(type=backward, target_component_id=components[i].id, confidence=confidence)
            )

    for i in range(n):
        for j in range(i + 1, n):
            spatial = spatial_relation(float(dx[i, j]), float(dy[i, j]), float(dist[i, j]), config)
            if spatial is not None:
                link(i, j, spatial[0], spatial[1], spatial[2])

            contained = containment_relation(boxes[i], boxes[j])
            if contained is not None:
                link(i, j, contained[0], contained[1], 0.9)

            first, second = components[i].role, components[j].role
            if (
                first == ComponentRole.LABEL
                and second == ComponentRole.INPUT_FIELD
                and dist[i, j] < config.label_input_distance
            ):
                link(i, j, R.VALIDATES, R.VALIDATED_BY, 0.8)
            if first == ComponentRole.BUTTON and second == ComponentRole.INPUT_FIELD:
                link(i, j, R.TRIGGERS, None, 0.7)

    return tuple(c.model_copy(update={"relationships": rels[i]}) for i, c in enumerate(components))


@transform(
    id="T3.01",
    layer=Layer.RELATIONSHIPS,
    dependencies=["T2.03"],
    tags={"optional"},
    description="Pairwise spatial, containment and functional relationships",
)
def relationship_analysis(ctx: PipelineContext) -> None:
    ctx.components = analyze_relationships(ctx.components, ctx.config)
    total = sum(len(c.relationships) for c in ctx.components)
    logger.debug("Relationships: %d across %d components", total, len(ctx.components))
