"""Widget validation and storage errors."""

from __future__ import annotations

import enum

from sketchgraph.models.widgets import WidgetType


class WidgetErrorCode(str, enum.Enum):
    INVALID_METADATA = "INVALID_METADATA"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
    STORAGE_ERROR = "STORAGE_ERROR"
    PATTERN_MISMATCH = "PATTERN_MISMATCH"
    ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"
    DUPLICATE_ID = "DUPLICATE_ID"
    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"


class WidgetError(Exception):
    def __init__(
        self,
        message: str,
        code: WidgetErrorCode,
        element_id: str | None = None,
        widget_type: WidgetType | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.element_id = element_id
        self.widget_type = widget_type

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "code": self.code.value,
            "element_id": self.element_id,
            "widget_type": self.widget_type.value if self.widget_type else None,
        }
