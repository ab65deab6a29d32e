"""T1.03 — Connector Analysis.

Arrows and lines become connectors when both endpoints snap to an attachment
point (centre, edge midpoint or corner) of a closed shape within 15px.
Arrows run start-to-end through their vertical midline; lines run corner to
corner and are bidirectional.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from sketchgraph.engine.config import PipelineConfig
from sketchgraph.engine.context import Connector, NormalizedElement, PipelineContext, ShapeAttachment
from sketchgraph.engine.registry import Layer, transform
from sketchgraph.models.elements import ShapeKind
from sketchgraph.utils.geometry import attachment_points

logger = logging.getLogger(__name__)

Point = tuple[float, float]


class _SnapTargets:
    """Every attachment point of every shape, flattened for vectorized lookup."""

    def __init__(self, shapes: Sequence[NormalizedElement]) -> None:
        self.labels: list[tuple[str, str]] = []
        coords: list[Point] = []
        for shape in shapes:
            b = shape.bbox
            for name, point in attachment_points((b.x, b.y, b.width, b.height)).items():
                self.labels.append((shape.id, name))
                coords.append(point)
        self.coords = np.array(coords, dtype=np.float64).reshape(-1, 2)

    def nearest(self, point: Point, threshold: float, exclude_id: str) -> ShapeAttachment | None:
        if len(self.coords) == 0:
            return None
        dist = np.hypot(self.coords[:, 0] - point[0], self.coords[:, 1] - point[1])
        for idx, (shape_id, _) in enumerate(self.labels):
            if shape_id == exclude_id:
                dist[idx] = np.inf
        best = int(np.argmin(dist))
        if not dist[best] < threshold:
            return None
        shape_id, name = self.labels[best]
        return ShapeAttachment(shape_id=shape_id, attachment_point=name, distance=float(dist[best]))


def arrow_endpoints(arrow: NormalizedElement) -> tuple[Point, Point]:
    b = arrow.bbox
    return (b.x, b.center_y), (b.right, b.center_y)


def line_endpoints(line: NormalizedElement) -> tuple[Point, Point]:
    b = line.bbox
    return (b.x, b.y), (b.right, b.bottom)


def _connect(
    element: NormalizedElement,
    endpoints: tuple[Point, Point],
    targets: _SnapTargets,
    threshold: float,
    direction: str,
    confidence: float,
) -> Connector | None:
    start = targets.nearest(endpoints[0], threshold, element.id)
    end = targets.nearest(endpoints[1], threshold, element.id)
    if start is None or end is None:
        return None
    return Connector(
        element_id=element.id,
        start_attachment=start,
        end_attachment=end,
        direction=direction,
        confidence=confidence,
        label=element.text or None,
    )


def analyze_connectors(
    arrows: Sequence[NormalizedElement],
    lines: Sequence[NormalizedElement],
    shapes: Sequence[NormalizedElement],
    config: PipelineConfig | None = None,
) -> tuple[Connector, ...]:
    config = config or PipelineConfig()
    targets = _SnapTargets([s for s in shapes if s.kind not in (ShapeKind.ARROW, ShapeKind.LINE)])
    connectors: list[Connector] = []

    for arrow in arrows:
        conn = _connect(arrow, arrow_endpoints(arrow), targets, config.snap_threshold, "start-to-end", 0.9)
        if conn is not None:
            connectors.append(conn)

    for line in lines:
        conn = _connect(line, line_endpoints(line), targets, config.snap_threshold, "bidirectional", 0.8)
        if conn is not None:
            connectors.append(conn)

    return tuple(connectors)


@transform(
    id="T1.03",
    layer=Layer.STRUCTURE,
    dependencies=["T1.01"],
    description="Snap arrows and lines to shapes as connectors",
)
def connector_analysis(ctx: PipelineContext) -> None:
    groups = ctx.require_groups()
    ctx.connectors = analyze_connectors(groups.arrows, groups.lines, groups.shapes, ctx.config)
    logger.debug(
        "Connectors: %d of %d arrows/lines snapped at both ends",
        len(ctx.connectors),
        len(groups.arrows) + len(groups.lines),
    )
