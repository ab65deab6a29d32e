"""T1.02 — Text Attachment.

Every text element is attached to at most one closed shape:
- text inside a container shape is its title (upper 30% or large font) or body
- text sitting just above a shape (gap <= 20px, horizontally overlapping) titles it
- anything else is standalone
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sketchgraph.engine.config import PipelineConfig
from sketchgraph.engine.context import (
    BoundingBox,
    ContainerHierarchy,
    NormalizedElement,
    PipelineContext,
    TextAttachment,
)
from sketchgraph.engine.registry import Layer, transform
from sketchgraph.models.elements import ShapeKind
from sketchgraph.utils.geometry import horizontal_overlap

logger = logging.getLogger(__name__)


def horizontal_overlap_ratio(a: BoundingBox, b: BoundingBox) -> float:
    """Shared x-extent relative to the narrower of the two boxes."""
    narrower = min(a.width, b.width)
    if narrower <= 0:
        return 0.0
    shared = horizontal_overlap((a.x, a.y, a.width, a.height), (b.x, b.y, b.width, b.height))
    return shared / narrower


def is_title(text: NormalizedElement, container: NormalizedElement, config: PipelineConfig) -> bool:
    cb = container.bbox
    in_upper = cb.height > 0 and (text.bbox.center_y - cb.y) / cb.height < config.title_upper_fraction
    return in_upper or text.style.font_size > config.baseline_font_size


def find_attachment(
    text: NormalizedElement,
    shapes: Sequence[NormalizedElement],
    hierarchy: ContainerHierarchy,
    config: PipelineConfig,
) -> TextAttachment:
    parent_id = hierarchy.parent_map.get(text.id)
    if parent_id is not None:
        container = next((s for s in shapes if s.id == parent_id), None)
        if container is not None:
            return TextAttachment(
                text_id=text.id,
                attached_to=parent_id,
                attachment_type="title" if is_title(text, container, config) else "body",
                confidence=0.9,
            )

    text_bottom = text.bbox.bottom
    above = [s for s in shapes if s.id != text.id and s.kind != ShapeKind.TEXT]
    above.sort(key=lambda s: s.bbox.y - text_bottom)
    for shape in above:
        gap = shape.bbox.y - text_bottom
        if gap <= 0:
            continue
        if gap > config.title_gap:
            break
        if horizontal_overlap_ratio(text.bbox, shape.bbox) > config.title_horizontal_overlap:
            return TextAttachment(
                text_id=text.id,
                attached_to=shape.id,
                attachment_type="title",
                confidence=0.8,
            )

    return TextAttachment(text_id=text.id, attached_to=None, attachment_type="standalone", confidence=1.0)


def attach_text(
    texts: Sequence[NormalizedElement],
    shapes: Sequence[NormalizedElement],
    hierarchy: ContainerHierarchy,
    config: PipelineConfig | None = None,
) -> tuple[TextAttachment, ...]:
    config = config or PipelineConfig()
    return tuple(find_attachment(t, shapes, hierarchy, config) for t in texts)


@transform(
    id="T1.02",
    layer=Layer.STRUCTURE,
    dependencies=["T1.01"],
    description="Attach text to shapes as titles or body",
)
def text_attachment(ctx: PipelineContext) -> None:
    groups = ctx.require_groups()
    ctx.text_attachments = attach_text(groups.text, groups.shapes, ctx.require_hierarchy(), ctx.config)
    attached = sum(1 for a in ctx.text_attachments if a.attached_to)
    logger.debug("Text: %d/%d attached", attached, len(ctx.text_attachments))
