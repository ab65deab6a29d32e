"""API response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from sketchgraph.models.extraction import ComponentBounds, ExtractionResult, SemanticComponent

LabelCategory = Literal["widget", "text", "shape", "diagram", "unknown"]


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    transforms_registered: int = 0
    llm_configured: bool = False


class WidgetErrorDetail(BaseModel):
    message: str
    code: str
    element_id: str | None = None
    widget_type: str | None = None


class ExtractResponse(ExtractionResult):
    widgets_stored: list[str] = Field(default_factory=list)
    widget_errors: list[WidgetErrorDetail] = Field(default_factory=list)


class OverlayLabel(BaseModel):
    id: str
    element_id: str
    label: str
    confidence: float
    category: LabelCategory = "unknown"
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class OverlayResult(BaseModel):
    labels: list[OverlayLabel] = Field(default_factory=list)
    confidence: float = 0.0


class LLMRelationshipView(BaseModel):
    type: str
    target: str
    confidence: float


class LLMComponentView(BaseModel):
    id: str
    role: str
    confidence: float
    bounds: ComponentBounds
    text: str | None = None
    relationships: list[LLMRelationshipView] = Field(default_factory=list)


class LLMExtraction(BaseModel):
    components: list[LLMComponentView] = Field(default_factory=list)
    token_savings: float = 0.0
    summary: str = ""


class TokenAnalysisResponse(BaseModel):
    element_count: int = 0
    raw_tokens: int = 0
    component_count: int = 0
    compact_tokens: int = 0
    absolute_reduction: int = 0
    reduction_percentage: float = 0.0
    compression_ratio: float = 1.0
    components_per_element: float = 0.0
    tokens_per_component: float = 0.0
    confidence_weighted_tokens: float = 0.0
    validation: dict[str, bool] = Field(default_factory=dict)
    report: str = ""
    raw_representation: str | None = None
    compact_representation: str | None = None


class SuggestedRelationship(BaseModel):
    source: str
    target: str
    type: str
    confidence: float = 0.8
    description: str = ""


class CompressionStats(BaseModel):
    token_reduction: float = 0.0
    compression_ratio: float = 1.0
    original_tokens: int = 0
    optimized_tokens: int = 0
    components_found: int = 0
    relationships_detected: int = 0
    processing_time: float = 0.0
    llm_enhanced: bool = False


class EnhancedExtractionResponse(BaseModel):
    local_components: list[SemanticComponent] = Field(default_factory=list)
    enhanced_components: list[SemanticComponent] = Field(default_factory=list)
    llm_relationships: list[SuggestedRelationship] = Field(default_factory=list)
    human_readable_names: dict[str, str] = Field(default_factory=dict)
    token_analysis: TokenAnalysisResponse = Field(default_factory=TokenAnalysisResponse)
    processing_time: float = 0.0  # milliseconds
    compression_achieved: float = 0.0
    labels: list[OverlayLabel] = Field(default_factory=list)
    confidence: float = 0.0
    llm_enhanced: bool = False
    stats: CompressionStats = Field(default_factory=CompressionStats)
    summary: str = ""


class WidgetDetectionResponse(BaseModel):
    is_widget: bool
    confidence: float = 0.0
    detection_method: str = "none"
    reasoning: list[str] = Field(default_factory=list)
    widget_type: str | None = None
    widget: dict[str, Any] | None = None
    stored: bool = False


class WidgetListResponse(BaseModel):
    widgets: dict[str, dict[str, Any]] = Field(default_factory=dict)
    count: int = 0


class SnapshotInfo(BaseModel):
    id: str
    timestamp: int
    operation: str
    element_id: str | None = None
    widget_count: int = 0


class SnapshotResponse(BaseModel):
    snapshot_id: str


class OperationResponse(BaseModel):
    ok: bool = True
    count: int = 0
