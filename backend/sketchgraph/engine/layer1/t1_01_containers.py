"""T1.01 — Container Detection.

Large rectangles and ellipses claim the elements they enclose. An element is
enclosed when its centre lies inside the container or more than half of its
area overlaps it. Each element keeps the first claim in z-order; native
groups are layered on afterwards under synthetic ``group-<id>`` keys.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from types import MappingProxyType

from sketchgraph.engine.config import PipelineConfig
from sketchgraph.engine.context import (
    BoundingBox,
    ContainerHierarchy,
    ElementGroups,
    NormalizedElement,
    PipelineContext,
)
from sketchgraph.engine.registry import Layer, transform
from sketchgraph.utils.geometry import overlap_area

logger = logging.getLogger(__name__)

GROUP_PREFIX = "group-"


def _as_tuple(b: BoundingBox) -> tuple[float, float, float, float]:
    return (b.x, b.y, b.width, b.height)


def is_contained(element: NormalizedElement, container: NormalizedElement, overlap_ratio: float) -> bool:
    eb, cb = element.bbox, container.bbox
    if cb.contains_point(eb.center_x, eb.center_y):
        return True
    if eb.area <= 0:
        return False
    return overlap_area(_as_tuple(eb), _as_tuple(cb)) / eb.area > overlap_ratio


def _container_candidates(groups: ElementGroups, min_area: float) -> list[NormalizedElement]:
    candidates = [el for el in groups.rectangles + groups.ellipses if el.bbox.area > min_area]
    return sorted(candidates, key=lambda el: el.z_index)


def detect_containers(groups: ElementGroups, config: PipelineConfig | None = None) -> ContainerHierarchy:
    config = config or PipelineConfig()
    containers = _container_candidates(groups, config.container_min_area)
    testable: Sequence[NormalizedElement] = groups.containable

    containment: dict[str, tuple[str, ...]] = {}
    parents: dict[str, str] = {}

    for container in containers:
        contained = []
        for el in testable:
            if el.id == container.id or el.id in parents:
                continue
            # Only strictly smaller elements can be claimed, which keeps the
            # parent chain acyclic even when two boxes contain each other's centres.
            if el.bbox.area >= container.bbox.area:
                continue
            if is_contained(el, container, config.containment_overlap_ratio):
                contained.append(el.id)
                parents[el.id] = container.id
        if contained:
            containment[container.id] = tuple(contained)

    members_by_group: dict[str, list[str]] = {}
    for el in testable:
        if el.group_id:
            members_by_group.setdefault(el.group_id, []).append(el.id)

    for group_id, member_ids in members_by_group.items():
        key = f"{GROUP_PREFIX}{group_id}"
        containment[key] = tuple(member_ids)
        for member_id in member_ids:
            parents[member_id] = key

    return ContainerHierarchy(
        containers=tuple(containers),
        containment_map=MappingProxyType(containment),
        parent_map=MappingProxyType(parents),
    )


@transform(
    id="T1.01",
    layer=Layer.STRUCTURE,
    dependencies=["T0.01"],
    description="Detect containers, build parent/child hierarchy",
)
def container_detection(ctx: PipelineContext) -> None:
    ctx.hierarchy = detect_containers(ctx.require_groups(), ctx.config)
    logger.debug(
        "Containers: %d candidates, %d with children",
        len(ctx.hierarchy.containers),
        len(ctx.hierarchy.containment_map),
    )
