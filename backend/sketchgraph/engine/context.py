"""PipelineContext — the state object flowing through all transforms.

Each stage writes its own result slot and never edits what an earlier stage
produced. Stage results are frozen dataclasses (tuples and read-only mappings
inside). The relationship pass swaps ``components`` for enriched copies
rather than touching the assembled ones.
"""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from sketchgraph.engine.config import ExtractionOptions, PipelineConfig
from sketchgraph.models.elements import RawShape, ShapeKind, Viewport
from sketchgraph.models.extraction import (
    ComponentRole,
    SemanticComponent,
    TokenOptimization,
)
from sketchgraph.models.widgets import WidgetMetadata, WidgetType


# ── Stage 1 ──


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def aspect_ratio(self) -> float:
        if self.height <= 0:
            return 0.0
        return self.width / self.height

    def contains_point(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def encloses(self, other: "BoundingBox") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and self.right >= other.right
            and self.bottom >= other.bottom
        )


@dataclass(frozen=True)
class ElementStyle:
    background_color: str = "transparent"
    stroke_color: str = "#000000"
    stroke_width: float = 1.0
    roundness: float = 0.0
    font_size: float = 16.0
    opacity: float = 1.0


@dataclass(frozen=True)
class NormalizedElement:
    id: str
    kind: ShapeKind
    bbox: BoundingBox
    style: ElementStyle
    angle: float = 0.0
    text: str | None = None
    group_id: str | None = None
    z_index: int = 0


@dataclass(frozen=True)
class ElementGroups:
    """Normalized elements bucketed by kind, each bucket in z-order."""

    rectangles: tuple[NormalizedElement, ...] = ()
    diamonds: tuple[NormalizedElement, ...] = ()
    ellipses: tuple[NormalizedElement, ...] = ()
    arrows: tuple[NormalizedElement, ...] = ()
    lines: tuple[NormalizedElement, ...] = ()
    text: tuple[NormalizedElement, ...] = ()
    images: tuple[NormalizedElement, ...] = ()
    other: tuple[NormalizedElement, ...] = ()

    @property
    def shapes(self) -> tuple[NormalizedElement, ...]:
        """Closed shapes that text and connectors can attach to."""
        return self.rectangles + self.diamonds + self.ellipses

    @property
    def containable(self) -> tuple[NormalizedElement, ...]:
        return self.rectangles + self.diamonds + self.ellipses + self.text + self.images + self.other

    def all(self) -> Iterator[NormalizedElement]:
        yield from self.rectangles
        yield from self.diamonds
        yield from self.ellipses
        yield from self.arrows
        yield from self.lines
        yield from self.text
        yield from self.images
        yield from self.other

    def by_id(self) -> Mapping[str, NormalizedElement]:
        return MappingProxyType({el.id: el for el in self.all()})

    def __len__(self) -> int:
        return sum(1 for _ in self.all())


# ── Stage 2 ──


@dataclass(frozen=True)
class ContainerHierarchy:
    containers: tuple[NormalizedElement, ...] = ()
    # container id (or synthetic "group-<id>") → child ids
    containment_map: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    # child id → container id
    parent_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def children_of(self, container_id: str) -> tuple[str, ...]:
        return self.containment_map.get(container_id, ())

    def ancestors(self, element_id: str) -> list[str]:
        """Parent chain from nearest to root."""
        chain: list[str] = []
        seen = {element_id}
        current = self.parent_map.get(element_id)
        while current is not None and current not in seen:
            chain.append(current)
            seen.add(current)
            current = self.parent_map.get(current)
        return chain


# ── Stage 3 ──


@dataclass(frozen=True)
class TextAttachment:
    text_id: str
    attached_to: str | None
    attachment_type: str  # title, body, annotation, standalone
    confidence: float


# ── Stage 4 ──


@dataclass(frozen=True)
class ShapeAttachment:
    shape_id: str
    attachment_point: str
    distance: float


@dataclass(frozen=True)
class Connector:
    element_id: str
    start_attachment: ShapeAttachment
    end_attachment: ShapeAttachment
    direction: str  # bidirectional, start-to-end, end-to-start
    confidence: float
    label: str | None = None


# ── Stage 5 ──


@dataclass(frozen=True)
class RoleAssignment:
    element_id: str
    role: ComponentRole
    confidence: float
    reasoning: tuple[str, ...] = ()


# ── Stage 6 ──


@dataclass(frozen=True)
class WidgetDetection:
    element_id: str
    is_widget: bool
    confidence: float
    detection_method: str  # metadata, pattern, none
    reasoning: tuple[str, ...] = ()
    widget_type: WidgetType | None = None
    widget_metadata: WidgetMetadata | None = None


@dataclass
class PipelineContext:
    """Shared state flowing through the entire pipeline."""

    # Input snapshot
    elements: tuple[RawShape, ...] = ()
    viewport: Viewport = field(default_factory=Viewport)
    options: ExtractionOptions = field(default_factory=ExtractionOptions)
    config: PipelineConfig = field(default_factory=PipelineConfig)
    started_at: float = field(default_factory=time.perf_counter)

    # --- Stage results ---
    groups: ElementGroups | None = None
    hierarchy: ContainerHierarchy | None = None
    text_attachments: tuple[TextAttachment, ...] = ()
    connectors: tuple[Connector, ...] = ()
    role_assignments: tuple[RoleAssignment, ...] = ()
    widget_detections: tuple[WidgetDetection, ...] = ()
    components: tuple[SemanticComponent, ...] = ()
    token_optimization: TokenOptimization | None = None

    # --- Pipeline metadata ---
    completed_transforms: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def num_elements(self) -> int:
        return len(self.elements)

    def require_groups(self) -> ElementGroups:
        if self.groups is None:
            raise RuntimeError("elements have not been normalized")
        return self.groups

    def require_hierarchy(self) -> ContainerHierarchy:
        if self.hierarchy is None:
            raise RuntimeError("container hierarchy has not been built")
        return self.hierarchy
