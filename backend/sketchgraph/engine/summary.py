"""Aggregate statistics over extracted components."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from sketchgraph.models.extraction import ExtractionSummary, SemanticComponent

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5


def summarize_components(components: Sequence[SemanticComponent]) -> ExtractionSummary:
    roles = Counter(c.role.value for c in components)
    relationships = Counter(r.type.value for c in components for r in c.relationships)

    average = 0.0
    if components:
        average = sum(c.confidence for c in components) / len(components)

    high = sum(1 for c in components if c.confidence > HIGH_CONFIDENCE)
    medium = sum(1 for c in components if MEDIUM_CONFIDENCE < c.confidence <= HIGH_CONFIDENCE)

    return ExtractionSummary(
        total_components=len(components),
        component_breakdown=dict(roles),
        relationship_breakdown=dict(relationships),
        average_confidence=average,
        high_confidence_components=high,
        medium_confidence_components=medium,
        low_confidence_components=len(components) - high - medium,
    )
