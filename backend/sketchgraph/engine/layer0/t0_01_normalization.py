"""T0.01 — Element Normalization.

Rotation-corrected bounding box, defaulted style and z-order for every raw
shape, bucketed by kind. Nothing downstream reads the raw shapes again.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sketchgraph.engine.context import (
    BoundingBox,
    ElementGroups,
    ElementStyle,
    NormalizedElement,
    PipelineContext,
)
from sketchgraph.engine.registry import Layer, transform
from sketchgraph.models.elements import RawShape, ShapeKind
from sketchgraph.utils.geometry import rotated_bounds

logger = logging.getLogger(__name__)

_DEFAULT_STYLE = ElementStyle()

_BUCKETS = {
    ShapeKind.RECTANGLE: "rectangles",
    ShapeKind.DIAMOND: "diamonds",
    ShapeKind.ELLIPSE: "ellipses",
    ShapeKind.ARROW: "arrows",
    ShapeKind.LINE: "lines",
    ShapeKind.TEXT: "text",
    ShapeKind.IMAGE: "images",
    ShapeKind.OTHER: "other",
}


def _style(raw: RawShape) -> ElementStyle:
    def pick(value, default):
        return default if value is None else value

    return ElementStyle(
        background_color=pick(raw.background_color, _DEFAULT_STYLE.background_color),
        stroke_color=pick(raw.stroke_color, _DEFAULT_STYLE.stroke_color),
        stroke_width=pick(raw.stroke_width, _DEFAULT_STYLE.stroke_width),
        roundness=pick(raw.roundness, _DEFAULT_STYLE.roundness),
        font_size=pick(raw.font_size, _DEFAULT_STYLE.font_size),
        opacity=pick(raw.opacity, _DEFAULT_STYLE.opacity),
    )


def normalize_element(raw: RawShape, z_index: int) -> NormalizedElement:
    x, y, w, h = rotated_bounds(raw.x, raw.y, raw.width, raw.height, raw.angle)
    return NormalizedElement(
        id=raw.id,
        kind=raw.kind,
        bbox=BoundingBox(x=x, y=y, width=w, height=h),
        style=_style(raw),
        angle=raw.angle,
        text=raw.text,
        group_id=raw.group_id,
        z_index=z_index,
    )


def normalize_elements(elements: Sequence[RawShape]) -> ElementGroups:
    buckets: dict[str, list[NormalizedElement]] = {name: [] for name in _BUCKETS.values()}
    for i, raw in enumerate(elements):
        buckets[_BUCKETS[raw.kind]].append(normalize_element(raw, i))
    return ElementGroups(**{name: tuple(items) for name, items in buckets.items()})


@transform(
    id="T0.01",
    layer=Layer.NORMALIZATION,
    description="Normalize bounding boxes and styles, bucket elements by kind",
)
def normalization(ctx: PipelineContext) -> None:
    ctx.groups = normalize_elements(ctx.elements)
    logger.debug(
        "Normalized %d elements (%d shapes, %d text, %d connectors)",
        len(ctx.elements),
        len(ctx.groups.shapes),
        len(ctx.groups.text),
        len(ctx.groups.arrows) + len(ctx.groups.lines),
    )
