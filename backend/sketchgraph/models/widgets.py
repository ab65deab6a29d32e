"""Widget placeholder metadata — one typed config per embedded-content kind."""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class WidgetType(str, enum.Enum):
    MAP = "map"
    VIDEO = "video"
    IFRAME = "iframe"
    CHART = "chart"
    CALENDAR = "calendar"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ── Supporting types ──


class GeoPoint(_Frozen):
    latitude: float
    longitude: float


class MapMarker(_Frozen):
    id: str
    latitude: float
    longitude: float
    title: str | None = None
    description: str | None = None
    icon: str | None = None
    color: str | None = None


class CalendarEvent(_Frozen):
    id: str
    title: str
    start: str  # ISO date
    end: str
    all_day: bool = False
    color: str | None = None
    description: str | None = None


# ── Per-type configuration ──

# San Francisco
DEFAULT_MAP_CENTER = GeoPoint(latitude=37.7749, longitude=-122.4194)
DEFAULT_VIDEO_ASPECT = 16 / 9


class MapConfig(_Frozen):
    center: GeoPoint = DEFAULT_MAP_CENTER
    zoom: int = 10
    map_style: Literal["roadmap", "satellite", "hybrid", "terrain"] = "roadmap"
    markers: tuple[MapMarker, ...] = ()
    show_controls: bool = True
    allow_zoom: bool = True
    allow_pan: bool = True


class VideoConfig(_Frozen):
    url: str = ""
    provider: Literal["youtube", "vimeo", "direct", "unknown"] = "unknown"
    autoplay: bool = False
    loop: bool = False
    muted: bool = False
    controls: bool = True
    start_time: int | None = None  # seconds
    end_time: int | None = None
    poster_url: str | None = None
    aspect_ratio: float = DEFAULT_VIDEO_ASPECT


class IframeConfig(_Frozen):
    url: str = ""
    allow_fullscreen: bool = True
    sandbox: tuple[str, ...] = ("allow-same-origin", "allow-scripts")
    title: str | None = None


class ChartConfig(_Frozen):
    chart_type: Literal["line", "bar", "pie", "scatter", "area"] = "line"
    data_url: str | None = None
    data: Any = None
    options: dict[str, Any] = Field(default_factory=dict)


class CalendarConfig(_Frozen):
    calendar_url: str | None = None
    default_view: Literal["month", "week", "day"] = "month"
    show_weekends: bool = True
    time_zone: str = "UTC"
    events: tuple[CalendarEvent, ...] = ()


# ── Metadata variants ──


class _WidgetBase(_Frozen):
    element_id: str
    title: str | None = None
    description: str | None = None
    created_at: int = 0  # epoch milliseconds
    updated_at: int = 0
    version: str = "1.0.0"


class MapWidget(_WidgetBase):
    type: Literal["map"] = "map"
    config: MapConfig = Field(default_factory=MapConfig)


class VideoWidget(_WidgetBase):
    type: Literal["video"] = "video"
    config: VideoConfig = Field(default_factory=VideoConfig)


class IframeWidget(_WidgetBase):
    type: Literal["iframe"] = "iframe"
    config: IframeConfig = Field(default_factory=IframeConfig)


class ChartWidget(_WidgetBase):
    type: Literal["chart"] = "chart"
    config: ChartConfig = Field(default_factory=ChartConfig)


class CalendarWidget(_WidgetBase):
    type: Literal["calendar"] = "calendar"
    config: CalendarConfig = Field(default_factory=CalendarConfig)


WidgetMetadata = Annotated[
    Union[MapWidget, VideoWidget, IframeWidget, ChartWidget, CalendarWidget],
    Field(discriminator="type"),
]

widget_adapter: TypeAdapter[WidgetMetadata] = TypeAdapter(WidgetMetadata)

CONFIG_CLASSES: dict[WidgetType, type[_Frozen]] = {
    WidgetType.MAP: MapConfig,
    WidgetType.VIDEO: VideoConfig,
    WidgetType.IFRAME: IframeConfig,
    WidgetType.CHART: ChartConfig,
    WidgetType.CALENDAR: CalendarConfig,
}


class WidgetStorageSnapshot(BaseModel):
    id: str
    timestamp: int
    data: dict[str, WidgetMetadata] = Field(default_factory=dict)
    operation: Literal["create", "update", "delete", "duplicate", "clear", "restore"] = "update"
    element_id: str | None = None
