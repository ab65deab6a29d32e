"""Pipeline configuration — extraction options and stage thresholds."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

AnalysisDepth = Literal["fast", "standard", "thorough"]


@dataclass(frozen=True)
class ExtractionOptions:
    """Caller-facing switches. Every field has a default."""

    min_confidence: float = 0.3
    enable_relationship_analysis: bool = True
    enable_token_optimization: bool = True
    enable_widget_detection: bool = True
    max_components: int = 100
    analysis_depth: AnalysisDepth = "standard"

    @classmethod
    def for_depth(cls, depth: AnalysisDepth, **overrides) -> "ExtractionOptions":
        """Preset for an analysis depth; explicit overrides win."""
        base = _DEPTH_PRESETS.get(depth, _DEPTH_PRESETS["standard"])
        return replace(base, **overrides)


_DEPTH_PRESETS: dict[str, ExtractionOptions] = {
    "fast": ExtractionOptions(
        min_confidence=0.5,
        enable_relationship_analysis=False,
        enable_token_optimization=False,
        max_components=50,
        analysis_depth="fast",
    ),
    "standard": ExtractionOptions(),
    "thorough": ExtractionOptions(
        min_confidence=0.2,
        max_components=200,
        analysis_depth="thorough",
    ),
}


@dataclass(frozen=True)
class PipelineConfig:
    """Thresholds used by the stages. Units are canvas pixels."""

    # Container detection
    container_min_area: float = 5000.0
    containment_overlap_ratio: float = 0.5

    # Text attachment
    title_upper_fraction: float = 0.3
    baseline_font_size: float = 16.0
    title_gap: float = 20.0
    title_horizontal_overlap: float = 0.5

    # Connector snapping
    snap_threshold: float = 15.0

    # Role classification
    rounded_threshold: float = 0.1
    button_max_text: int = 50
    button_aspect_range: tuple[float, float] = (1.5, 6.0)
    circular_aspect_range: tuple[float, float] = (0.8, 1.2)
    radio_max_area: float = 2000.0
    database_min_area: float = 10000.0
    large_rect_area: float = 20000.0

    # Size tiers for component metadata
    medium_area: float = 10000.0
    large_area: float = 50000.0

    # Relationship analysis
    spatial_threshold: float = 50.0
    spatial_horizon_factor: float = 3.0  # no spatial relation beyond threshold × factor
    label_input_distance: float = 100.0

    # Token estimation
    raw_chars_per_token: float = 4.0
    compact_chars_per_token: float = 3.5
    reduction_target: float = 70.0
    accuracy_ratio: float = 0.7
