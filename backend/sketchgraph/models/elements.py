"""Raw drawing primitives as supplied by the canvas collaborator."""

from __future__ import annotations

import enum
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ShapeKind(str, enum.Enum):
    RECTANGLE = "rectangle"
    DIAMOND = "diamond"
    ELLIPSE = "ellipse"
    ARROW = "arrow"
    LINE = "line"
    TEXT = "text"
    IMAGE = "image"
    OTHER = "other"


class RawShape(BaseModel):
    """One drawn primitive. Accepts Excalidraw's camelCase element keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str
    kind: ShapeKind = Field(default=ShapeKind.OTHER, alias="type")
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    angle: float = 0.0  # radians

    background_color: str | None = Field(default=None, alias="backgroundColor")
    stroke_color: str | None = Field(default=None, alias="strokeColor")
    stroke_width: float | None = Field(default=None, alias="strokeWidth")
    roundness: float | None = None
    font_size: float | None = Field(default=None, alias="fontSize")
    opacity: float | None = None

    text: str | None = None
    group_ids: tuple[str, ...] = Field(default=(), alias="groupIds")

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: Any) -> ShapeKind:
        if isinstance(value, ShapeKind):
            return value
        try:
            return ShapeKind(str(value).lower())
        except ValueError:
            return ShapeKind.OTHER

    @field_validator("roundness", mode="before")
    @classmethod
    def _coerce_roundness(cls, value: Any) -> float | None:
        # Excalidraw stores roundness as {"type": n}; any such object means rounded corners
        if isinstance(value, dict):
            return 1.0 if value else None
        return value

    @field_validator("x", "y", "width", "height", "angle", mode="before")
    @classmethod
    def _default_geometry(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("x", "y", "width", "height", "angle")
    @classmethod
    def _reject_non_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("geometry must be finite")
        return value

    @field_validator("group_ids", mode="before")
    @classmethod
    def _default_groups(cls, value: Any) -> Any:
        return () if value is None else value

    @property
    def group_id(self) -> str | None:
        """First group id; nested Excalidraw groups list the innermost first."""
        return self.group_ids[0] if self.group_ids else None


class Viewport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    min_x: float = Field(default=0.0, alias="minX")
    min_y: float = Field(default=0.0, alias="minY")
    max_x: float = Field(default=0.0, alias="maxX")
    max_y: float = Field(default=0.0, alias="maxY")
    width: float = 0.0
    height: float = 0.0
