"""Core extraction data model — the structured output of the pipeline."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field


class ComponentRole(str, enum.Enum):
    # UI elements
    BUTTON = "button"
    INPUT_FIELD = "input_field"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"
    RADIO_BUTTON = "radio_button"
    TOGGLE = "toggle"
    SLIDER = "slider"

    # Layout
    CARD = "card"
    MODAL = "modal"
    SIDEBAR = "sidebar"
    HEADER = "header"
    FOOTER = "footer"
    PANEL = "panel"
    TAB_CONTAINER = "tab_container"

    # Content
    TEXT_BLOCK = "text_block"
    TITLE = "title"
    LABEL = "label"
    ICON = "icon"
    IMAGE_PLACEHOLDER = "image_placeholder"

    # Navigation
    MENU = "menu"
    BREADCRUMB = "breadcrumb"
    PAGINATION = "pagination"
    NAVIGATION_BAR = "navigation_bar"

    # Data display
    TABLE = "table"
    LIST = "list"
    CHART = "chart"
    GRAPH = "graph"

    # Flow
    PROCESS_STEP = "process_step"
    DECISION_POINT = "decision_point"
    CONNECTOR = "connector"
    START_END = "start_end"

    # Embedded content placeholder
    WIDGET = "widget"

    CONTAINER = "container"
    COMPONENT = "component"
    UNKNOWN = "unknown"


class RelationshipType(str, enum.Enum):
    # Hierarchical
    CONTAINS = "contains"
    CONTAINED_BY = "contained_by"
    PARENT_OF = "parent_of"
    CHILD_OF = "child_of"

    # Functional
    TRIGGERS = "triggers"
    TRIGGERED_BY = "triggered_by"
    LINKS_TO = "links_to"
    LINKED_FROM = "linked_from"
    VALIDATES = "validates"
    VALIDATED_BY = "validated_by"

    # Layout
    ADJACENT_TO = "adjacent_to"
    ABOVE = "above"
    BELOW = "below"
    LEFT_OF = "left_of"
    RIGHT_OF = "right_of"
    ALIGNED_WITH = "aligned_with"

    # Flow
    FLOWS_TO = "flows_to"
    FLOWS_FROM = "flows_from"
    BRANCHES_TO = "branches_to"
    MERGES_WITH = "merges_with"

    # Data
    POPULATES = "populates"
    POPULATED_BY = "populated_by"
    FILTERS = "filters"
    FILTERED_BY = "filtered_by"


class ComponentRelationship(BaseModel):
    type: RelationshipType
    target_component_id: str
    confidence: float = 0.0
    metadata: dict[str, Any] | None = None


class ComponentBounds(BaseModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class VisualProperties(BaseModel):
    has_text: bool = False
    text_content: str | None = None
    has_shape: bool = True
    shape_type: str | None = None
    color_scheme: str | None = None
    size: str = "small"  # small, medium, large


class InteractionPattern(BaseModel):
    is_clickable: bool = False
    is_input_field: bool = False
    has_states: bool = False
    state_count: int | None = None


class LayoutContext(BaseModel):
    position: str = "isolated"  # isolated, grouped, nested
    alignment: str = "left"
    spacing: str = "normal"


class AnalysisMetadata(BaseModel):
    extraction_method: str = "pattern_matching"
    processing_time: float = 0.0
    version: str = "2.0.0"


class WidgetInfo(BaseModel):
    widget_type: str
    confidence: float = 0.0
    detection_method: str = "pattern"
    config: dict[str, Any] = Field(default_factory=dict)


class ComponentMetadata(BaseModel):
    visual_properties: VisualProperties = Field(default_factory=VisualProperties)
    interaction_pattern: InteractionPattern | None = None
    layout_context: LayoutContext = Field(default_factory=LayoutContext)
    semantic_hints: list[str] = Field(default_factory=list)
    analysis_metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)
    widget_metadata: WidgetInfo | None = None


class SemanticComponent(BaseModel):
    id: str
    element_ids: list[str] = Field(default_factory=list)
    role: ComponentRole = ComponentRole.UNKNOWN
    relationships: list[ComponentRelationship] = Field(default_factory=list)
    confidence: float = 0.0
    bounding_box: ComponentBounds = Field(default_factory=ComponentBounds)
    metadata: ComponentMetadata = Field(default_factory=ComponentMetadata)


class ExtractionSummary(BaseModel):
    total_components: int = 0
    component_breakdown: dict[str, int] = Field(default_factory=dict)
    relationship_breakdown: dict[str, int] = Field(default_factory=dict)
    average_confidence: float = 0.0
    high_confidence_components: int = 0  # > 0.8
    medium_confidence_components: int = 0  # 0.5 - 0.8
    low_confidence_components: int = 0  # <= 0.5


class TokenOptimization(BaseModel):
    original_token_count: int = 0
    optimized_token_count: int = 0
    reduction_percentage: float = 0.0
    compression_ratio: float = 1.0


class ExtractionResult(BaseModel):
    """Complete extraction output from the pipeline."""

    components: list[SemanticComponent] = Field(default_factory=list)
    summary: ExtractionSummary = Field(default_factory=ExtractionSummary)
    token_optimization: TokenOptimization = Field(default_factory=TokenOptimization)
    timestamp: int = 0  # epoch milliseconds
    processing_time: float = 0.0  # milliseconds
