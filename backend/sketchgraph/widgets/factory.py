"""Widget factory — detect embedded-content placeholders in text and build their metadata.

Detection walks an ordered pattern table and the first matching row wins:
bracketed markers (``[MAP: Paris]``), then ``TYPE: ...`` prefixes, then bare
keywords. Matchers only need a ``match(text)`` method, so lookups that are
not regular expressions can sit in the same table.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlparse

from pydantic import ValidationError

from sketchgraph.models.widgets import (
    CONFIG_CLASSES,
    DEFAULT_VIDEO_ASPECT,
    WidgetMetadata,
    WidgetType,
    widget_adapter,
)
from sketchgraph.utils.clock import now_ms
from sketchgraph.widgets.errors import WidgetError, WidgetErrorCode

logger = logging.getLogger(__name__)


class WidgetMatcher(Protocol):
    def match(self, text: str) -> bool: ...


@dataclass(frozen=True)
class RegexMatcher:
    pattern: re.Pattern[str]

    @classmethod
    def compile(cls, expression: str) -> "RegexMatcher":
        return cls(re.compile(expression, re.IGNORECASE))

    def match(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True)
class WidgetPattern:
    matcher: WidgetMatcher
    type: WidgetType
    confidence: float


def _bracket(name: str) -> RegexMatcher:
    return RegexMatcher.compile(rf"\[{name}(?:\s*:\s*([^[\]]+))?\]")


def _prefix(name: str) -> RegexMatcher:
    return RegexMatcher.compile(rf"^{name}\s*:\s*(.+)")


WIDGET_PATTERNS: tuple[WidgetPattern, ...] = (
    WidgetPattern(_bracket("MAP"), WidgetType.MAP, 0.95),
    WidgetPattern(_bracket("VIDEO"), WidgetType.VIDEO, 0.95),
    WidgetPattern(_bracket("IFRAME"), WidgetType.IFRAME, 0.9),
    WidgetPattern(_bracket("CHART"), WidgetType.CHART, 0.9),
    WidgetPattern(_bracket("CALENDAR"), WidgetType.CALENDAR, 0.9),
    WidgetPattern(_prefix("CHART"), WidgetType.CHART, 0.8),
    WidgetPattern(_prefix("MAP"), WidgetType.MAP, 0.8),
    WidgetPattern(_prefix("VIDEO"), WidgetType.VIDEO, 0.8),
    WidgetPattern(_prefix("IFRAME"), WidgetType.IFRAME, 0.8),
    WidgetPattern(_prefix("CALENDAR"), WidgetType.CALENDAR, 0.8),
    WidgetPattern(RegexMatcher.compile(r"(?:map|google\s*maps?|location)"), WidgetType.MAP, 0.7),
    WidgetPattern(RegexMatcher.compile(r"(?:youtube|vimeo|video)"), WidgetType.VIDEO, 0.8),
    WidgetPattern(RegexMatcher.compile(r"(?:embed|iframe|website)"), WidgetType.IFRAME, 0.7),
    WidgetPattern(RegexMatcher.compile(r"(?:chart|graph|plot|analytics)"), WidgetType.CHART, 0.75),
    WidgetPattern(RegexMatcher.compile(r"(?:calendar|schedule|events?)"), WidgetType.CALENDAR, 0.75),
)


@dataclass(frozen=True)
class DetectionResult:
    is_widget: bool
    confidence: float
    detection_method: str
    reasoning: tuple[str, ...]
    widget_type: WidgetType | None = None


def detect_widget_from_text(
    text: str | None,
    patterns: Sequence[WidgetPattern] = WIDGET_PATTERNS,
) -> DetectionResult:
    if not text or not text.strip():
        return DetectionResult(False, 0.0, "none", ("No text content to analyze",))

    cleaned = text.strip()
    for row in patterns:
        if row.matcher.match(cleaned):
            return DetectionResult(
                is_widget=True,
                confidence=row.confidence,
                detection_method="pattern",
                reasoning=(
                    f"Matched pattern for {row.type.value}",
                    f"Confidence: {row.confidence * 100:.1f}%",
                ),
                widget_type=row.type,
            )
    return DetectionResult(False, 0.0, "none", ("No widget patterns matched",))


# ── Config extractors ──

_COORDS = re.compile(r"(?:lat|latitude)[:\s]*(-?\d+\.?\d*)[,\s]+(?:lng|lon|longitude)[:\s]*(-?\d+\.?\d*)", re.I)
_ZOOM = re.compile(r"zoom[:\s]*(\d+)", re.I)
_MAP_STYLE = re.compile(r"(?:style|type)[:\s]*(\w+)", re.I)
_VIDEO_URL = re.compile(
    r"(?:https?://)?(?:www\.)?(?:youtube\.com/watch\?v=|youtu\.be/|vimeo\.com/)[^\s\]]*"
    r"|[^\s\[\]]*\.(?:mp4|webm|ogg|avi|mov)\b",
    re.I,
)
_START_TIME = re.compile(r"(?:start|t)[:\s]*(\d+)(?:[:\s]*(\d+))?", re.I)
_HTTP_URL = re.compile(r"https?://[^\s\]]+", re.I)
_CHART_TYPE = re.compile(r"(?:type|chart)[:\s]*(\w+)", re.I)
_DATA_URL = re.compile(r"(?:data|url)[:\s]*(https?://[^\s\]]+)", re.I)
_CALENDAR_VIEW = re.compile(r"(?:view|display)[:\s]*(\w+)", re.I)
_CALENDAR_URL = re.compile(r"(?:calendar|url)[:\s]*(https?://[^\s\]]+)", re.I)

_MAP_STYLES = {"roadmap", "satellite", "hybrid", "terrain"}
_CHART_TYPES = {"line", "bar", "pie", "scatter", "area"}
_CALENDAR_VIEWS = {"month", "week", "day"}


def extract_map_config(text: str) -> dict[str, Any]:
    config: dict[str, Any] = {}
    if m := _COORDS.search(text):
        config["center"] = {"latitude": float(m.group(1)), "longitude": float(m.group(2))}
    if m := _ZOOM.search(text):
        config["zoom"] = int(m.group(1))
    if (m := _MAP_STYLE.search(text)) and m.group(1).lower() in _MAP_STYLES:
        config["map_style"] = m.group(1).lower()
    return config


def extract_video_config(text: str) -> dict[str, Any]:
    config: dict[str, Any] = {}
    if m := _VIDEO_URL.search(text):
        url = m.group(0)
        if not urlparse(url).scheme:
            url = f"https://{url}"
        config["url"] = url
        lowered = url.lower()
        if "youtube" in lowered or "youtu.be" in lowered:
            config["provider"] = "youtube"
        elif "vimeo" in lowered:
            config["provider"] = "vimeo"
        else:
            config["provider"] = "direct"
    if re.search(r"autoplay", text, re.I):
        config["autoplay"] = True
    if m := _START_TIME.search(text):
        minutes = int(m.group(1))
        seconds = int(m.group(2)) if m.group(2) else 0
        config["start_time"] = minutes * 60 + seconds
    return config


def extract_iframe_config(text: str) -> dict[str, Any]:
    config: dict[str, Any] = {}
    if m := _HTTP_URL.search(text):
        config["url"] = m.group(0)
    if re.search(r"fullscreen", text, re.I):
        config["allow_fullscreen"] = True
    return config


def extract_chart_config(text: str) -> dict[str, Any]:
    config: dict[str, Any] = {}
    if (m := _CHART_TYPE.search(text)) and m.group(1).lower() in _CHART_TYPES:
        config["chart_type"] = m.group(1).lower()
    if m := _DATA_URL.search(text):
        config["data_url"] = m.group(1)
    return config


def extract_calendar_config(text: str) -> dict[str, Any]:
    config: dict[str, Any] = {}
    if (m := _CALENDAR_VIEW.search(text)) and m.group(1).lower() in _CALENDAR_VIEWS:
        config["default_view"] = m.group(1).lower()
    if m := _CALENDAR_URL.search(text):
        config["calendar_url"] = m.group(1)
    return config


CONFIG_EXTRACTORS: dict[WidgetType, Callable[[str], dict[str, Any]]] = {
    WidgetType.MAP: extract_map_config,
    WidgetType.VIDEO: extract_video_config,
    WidgetType.IFRAME: extract_iframe_config,
    WidgetType.CHART: extract_chart_config,
    WidgetType.CALENDAR: extract_calendar_config,
}


def default_config(widget_type: WidgetType) -> dict[str, Any]:
    return CONFIG_CLASSES[widget_type]().model_dump()


def extract_title(text: str) -> str:
    """Text with bracketed markers removed, capped at 50 chars."""
    cleaned = re.sub(r"\[[^\]]*\]", "", text).strip()
    return cleaned[:50] or "Widget"


def build_widget(
    widget_type: WidgetType,
    element_id: str,
    text: str,
    width: float = 0.0,
    height: float = 0.0,
) -> WidgetMetadata:
    """Metadata for a detected widget: defaults overlaid with whatever the text spells out."""
    config = default_config(widget_type)
    if widget_type is WidgetType.VIDEO:
        config["aspect_ratio"] = width / height if height > 0 else DEFAULT_VIDEO_ASPECT
    config.update(CONFIG_EXTRACTORS[widget_type](text))

    stamp = now_ms()
    return widget_adapter.validate_python(
        {
            "type": widget_type.value,
            "element_id": element_id,
            "title": extract_title(text),
            "description": f"Auto-detected {widget_type.value} widget",
            "created_at": stamp,
            "updated_at": stamp,
            "version": "1.0.0",
            "config": config,
        }
    )


def create_from_pattern(
    text: str,
    element_id: str,
    width: float = 0.0,
    height: float = 0.0,
) -> WidgetMetadata | None:
    detection = detect_widget_from_text(text)
    if not detection.is_widget or detection.widget_type is None:
        return None
    return build_widget(detection.widget_type, element_id, text.strip(), width, height)


def _widget_type(value: Any, element_id: str | None) -> WidgetType:
    if value is None or value == "":
        raise WidgetError("Widget type is required", WidgetErrorCode.INVALID_METADATA, element_id)
    try:
        return WidgetType(value)
    except ValueError:
        raise WidgetError(
            f"Unsupported widget type: {value}", WidgetErrorCode.UNSUPPORTED_TYPE, element_id
        ) from None


def create_from_metadata(metadata: Mapping[str, Any], element_id: str) -> WidgetMetadata:
    """Complete a partial metadata mapping, filling defaults for whatever is missing."""
    widget_type = _widget_type(metadata.get("type"), element_id)
    stamp = now_ms()
    data = {
        "type": widget_type.value,
        "element_id": element_id,
        "title": metadata.get("title") or f"{widget_type.value} widget",
        "description": metadata.get("description") or f"{widget_type.value} widget",
        "created_at": metadata.get("created_at") or stamp,
        "updated_at": stamp,
        "version": metadata.get("version") or "1.0.0",
        "config": metadata.get("config") or default_config(widget_type),
    }
    try:
        return widget_adapter.validate_python(data)
    except ValidationError as e:
        raise WidgetError(
            f"Invalid widget metadata: {e.error_count()} field error(s)",
            WidgetErrorCode.INVALID_METADATA,
            element_id,
            widget_type,
        ) from e


def _is_absolute_url(url: str) -> bool:
    parsed = urlparse(url)
    return bool(parsed.scheme and parsed.netloc)


def widget_problems(widget: WidgetMetadata) -> list[str]:
    """Reasons a widget may not be stored; empty when it is valid."""
    problems = []
    if not widget.element_id:
        problems.append("Widget metadata must have an element_id")
    if widget.created_at <= 0:
        problems.append("Widget metadata must have a valid created_at timestamp")
    if not widget.version:
        problems.append("Widget metadata must have a version")

    if widget.type == WidgetType.MAP.value and not 1 <= widget.config.zoom <= 20:
        problems.append("Map widget must have valid zoom level (1-20)")
    if widget.type == WidgetType.VIDEO.value:
        if not widget.config.url:
            problems.append("Video widget must have a URL")
        elif not _is_absolute_url(widget.config.url):
            problems.append("Video widget must have a valid URL")
    return problems


def validate_metadata(data: Any) -> bool:
    """Loose check of an untrusted mapping: parses and carries a usable config."""
    if not isinstance(data, Mapping):
        return False
    try:
        widget = widget_adapter.validate_python(data)
    except ValidationError:
        return False
    if not widget.element_id or widget.created_at <= 0:
        return False
    if widget.type in (WidgetType.VIDEO.value, WidgetType.IFRAME.value):
        return bool(widget.config.url)
    if widget.type == WidgetType.MAP.value:
        return widget.config.zoom > 0
    return True
