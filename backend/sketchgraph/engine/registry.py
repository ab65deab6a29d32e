"""Stage registry — each pipeline stage is a plain function registered via decorator.

Usage:
    @transform(id="T1.02", layer=Layer.STRUCTURE, dependencies=["T1.01"])
    def text_attachment(ctx: PipelineContext) -> None:
        ctx.text_attachments = attach_text(...)

A new stage is one module under a layer package; ``load_transforms`` finds it.
"""

from __future__ import annotations

import enum
import heapq
import importlib
import logging
import pkgutil
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from sketchgraph.engine.context import PipelineContext

logger = logging.getLogger(__name__)

_LAYER_PACKAGES = ("layer0", "layer1", "layer2", "layer3", "layer4")


class Layer(enum.IntEnum):
    NORMALIZATION = 0
    STRUCTURE = 1
    SEMANTICS = 2
    RELATIONSHIPS = 3
    OPTIMIZATION = 4


@dataclass
class TransformSpec:
    id: str
    layer: Layer
    fn: Callable[["PipelineContext"], None]
    dependencies: list[str] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)
    description: str = ""

    @property
    def optional(self) -> bool:
        """Optional stages record their failure and let the run continue."""
        return "optional" in self.tags

    @property
    def sort_key(self) -> tuple[int, str]:
        return (int(self.layer), self.id)


class TransformRegistry:
    def __init__(self) -> None:
        self._specs: dict[str, TransformSpec] = {}

    def register(self, spec: TransformSpec) -> None:
        if spec.id in self._specs:
            raise ValueError(f"Duplicate transform ID: {spec.id}")
        self._specs[spec.id] = spec
        logger.debug("Registered %s in layer %s", spec.id, spec.layer.name)

    def get(self, transform_id: str) -> TransformSpec:
        return self._specs[transform_id]

    def get_layer(self, layer: Layer) -> list[TransformSpec]:
        return sorted((s for s in self._specs.values() if s.layer == layer), key=lambda s: s.id)

    def all(self) -> list[TransformSpec]:
        return sorted(self._specs.values(), key=lambda s: s.sort_key)

    def resolve_order(self, requested_ids: set[str] | None = None) -> list[TransformSpec]:
        """Dependency order over the requested stages (all when None).

        Ties break on (layer, id). A dependency outside the requested set is
        ignored rather than pulled back in, so a gated-off stage stays off.
        """
        selected = {
            tid: spec
            for tid, spec in self._specs.items()
            if requested_ids is None or tid in requested_ids
        }

        waiting_on: dict[str, int] = {}
        dependents: dict[str, list[str]] = defaultdict(list)
        for tid, spec in selected.items():
            inside = [dep for dep in spec.dependencies if dep in selected]
            waiting_on[tid] = len(inside)
            for dep in inside:
                dependents[dep].append(tid)

        ready = [selected[tid].sort_key for tid, n in waiting_on.items() if n == 0]
        heapq.heapify(ready)
        ordered: list[TransformSpec] = []
        while ready:
            _, tid = heapq.heappop(ready)
            ordered.append(selected[tid])
            for child in dependents[tid]:
                waiting_on[child] -= 1
                if waiting_on[child] == 0:
                    heapq.heappush(ready, selected[child].sort_key)

        if len(ordered) != len(selected):
            stuck = sorted(tid for tid, n in waiting_on.items() if n > 0)
            raise ValueError(f"Circular dependency detected among: {stuck}")
        return ordered

    @property
    def count(self) -> int:
        return len(self._specs)


_registry = TransformRegistry()


def get_registry() -> TransformRegistry:
    return _registry


def load_transforms() -> TransformRegistry:
    """Import every layer module so the @transform decorators fire. Idempotent."""
    for layer_name in _LAYER_PACKAGES:
        package = importlib.import_module(f"sketchgraph.engine.{layer_name}")
        for _, module_name, _ in pkgutil.iter_modules(package.__path__):
            importlib.import_module(f"{package.__name__}.{module_name}")
    return _registry


def transform(
    *,
    id: str,
    layer: Layer,
    dependencies: list[str] | None = None,
    tags: set[str] | None = None,
    description: str = "",
):
    """Register the decorated function as pipeline stage ``id``."""

    def decorator(fn: Callable[["PipelineContext"], None]):
        _registry.register(
            TransformSpec(
                id=id,
                layer=layer,
                fn=fn,
                dependencies=list(dependencies or ()),
                tags=set(tags or ()),
                description=description,
            )
        )
        return fn

    return decorator
