"""API request models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from sketchgraph.engine.config import ExtractionOptions
from sketchgraph.models.elements import RawShape, Viewport


class ExtractionOptionsModel(BaseModel):
    """Wire form of ``ExtractionOptions``; unset fields come from the depth preset."""

    analysis_depth: Literal["fast", "standard", "thorough"] = "standard"
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    enable_relationship_analysis: bool | None = None
    enable_token_optimization: bool | None = None
    enable_widget_detection: bool | None = None
    max_components: int | None = Field(default=None, ge=0)

    def to_options(self) -> ExtractionOptions:
        overrides = self.model_dump(exclude_none=True, exclude={"analysis_depth"})
        return ExtractionOptions.for_depth(self.analysis_depth, **overrides)


class ExtractRequest(BaseModel):
    elements: list[RawShape] = Field(default_factory=list, description="Drawing primitives on the canvas")
    viewport: Viewport = Field(default_factory=Viewport)
    options: ExtractionOptionsModel = Field(default_factory=ExtractionOptionsModel)
    store_widgets: bool = Field(default=True, description="Store metadata for detected widgets")


class EnhancedExtractRequest(BaseModel):
    elements: list[RawShape] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)
    options: ExtractionOptionsModel | None = None
    use_llm: bool = Field(default=True, description="Allow LLM enhancement when configured")


class TokenAnalyzeRequest(BaseModel):
    elements: list[RawShape] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)
    include_representations: bool = False


class WidgetDetectRequest(BaseModel):
    text: str = Field(..., description="Label text to test for widget patterns")
    element_id: str | None = Field(default=None, description="Store the widget on this element when given")
    width: float = 0.0
    height: float = 0.0


class WidgetUpdateRequest(BaseModel):
    updates: dict[str, Any] = Field(..., description="Partial widget fields; config is merged key by key")


class WidgetDuplicateRequest(BaseModel):
    target_id: str


class SnapshotRequest(BaseModel):
    operation: Literal["create", "update", "delete", "duplicate", "clear", "restore"] = "update"
    element_id: str | None = None


class WidgetImportRequest(BaseModel):
    data: str = Field(..., description="Output of the export endpoint")


class CleanupRequest(BaseModel):
    existing_element_ids: list[str] = Field(default_factory=list)
