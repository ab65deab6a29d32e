"""T2.02 — Widget Detection.

Rectangles and text whose label names embedded content (map, video, iframe,
chart, calendar) are widget placeholders. Each match carries ready-to-store
widget metadata built from the label.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sketchgraph.engine.context import NormalizedElement, PipelineContext, WidgetDetection
from sketchgraph.engine.registry import Layer, transform
from sketchgraph.widgets.factory import build_widget, detect_widget_from_text

logger = logging.getLogger(__name__)


def detect_widget(element: NormalizedElement) -> WidgetDetection:
    result = detect_widget_from_text(element.text)
    if not result.is_widget or result.widget_type is None:
        return WidgetDetection(
            element_id=element.id,
            is_widget=False,
            confidence=0.0,
            detection_method="none",
            reasoning=result.reasoning,
        )

    text = (element.text or "").strip()
    metadata = build_widget(result.widget_type, element.id, text, element.bbox.width, element.bbox.height)
    return WidgetDetection(
        element_id=element.id,
        is_widget=True,
        confidence=result.confidence,
        detection_method=result.detection_method,
        reasoning=result.reasoning,
        widget_type=result.widget_type,
        widget_metadata=metadata,
    )


def detect_widgets(candidates: Sequence[NormalizedElement]) -> tuple[WidgetDetection, ...]:
    return tuple(detect_widget(el) for el in candidates)


@transform(
    id="T2.02",
    layer=Layer.SEMANTICS,
    dependencies=["T2.01"],
    description="Detect embedded-content widget placeholders from labels",
)
def widget_detection(ctx: PipelineContext) -> None:
    groups = ctx.require_groups()
    ctx.widget_detections = detect_widgets(groups.rectangles + groups.text)
    found = [d for d in ctx.widget_detections if d.is_widget]
    for d in found:
        logger.debug("Widget %s on %s (%.2f)", d.widget_type.value, d.element_id, d.confidence)
    logger.debug("Widgets: %d of %d candidates", len(found), len(ctx.widget_detections))
