"""Pipeline orchestrator — runs transforms in dependency order with adaptive gating."""

from __future__ import annotations

import logging
import time
from collections.abc import Generator, Iterable, Mapping
from typing import Any

from sketchgraph.engine.config import ExtractionOptions, PipelineConfig
from sketchgraph.engine.context import PipelineContext
from sketchgraph.engine.registry import TransformRegistry, TransformSpec, get_registry, load_transforms
from sketchgraph.engine.summary import summarize_components
from sketchgraph.engine.tokens import estimate_token_savings
from sketchgraph.models.elements import RawShape, Viewport
from sketchgraph.models.extraction import ExtractionResult

logger = logging.getLogger(__name__)

WIDGET_DETECTION = "T2.02"
RELATIONSHIP_ANALYSIS = "T3.01"
TOKEN_ESTIMATION = "T4.01"


class PipelineError(RuntimeError):
    """A core stage failed; the extraction cannot produce a result."""

    def __init__(self, transform_id: str, message: str) -> None:
        super().__init__(f"{transform_id}: {message}")
        self.transform_id = transform_id


class Pipeline:
    """Orchestrates the transform pipeline."""

    def __init__(
        self,
        registry: TransformRegistry | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self.registry = registry or get_registry()
        self.config = config or PipelineConfig()

    def run(self, ctx: PipelineContext) -> PipelineContext:
        """Run the full pipeline on the given context."""
        start = time.perf_counter()
        ordered = self._plan(ctx)

        for spec in ordered:
            t0 = time.perf_counter()
            self._execute(spec, ctx)
            elapsed = (time.perf_counter() - t0) * 1000
            logger.debug("  %s completed in %.1fms", spec.id, elapsed)

        total = (time.perf_counter() - start) * 1000
        logger.info(
            "Pipeline complete: %d/%d transforms in %.0fms",
            len(ctx.completed_transforms),
            len(ordered),
            total,
        )
        return ctx

    def run_streaming(self, ctx: PipelineContext) -> Generator[dict[str, Any], None, None]:
        """Run the pipeline, yielding a progress dict after each transform.

        The caller's ``ctx`` is mutated in-place, so after the generator is
        exhausted the context contains all results (same as ``run()``).
        A core stage failure is reported as an "error" event and then raised.
        """
        ordered = self._plan(ctx)
        total = len(ordered)

        for i, spec in enumerate(ordered):
            event = {
                "transform_id": spec.id,
                "description": spec.description,
                "layer": spec.layer.name,
                "index": i,
                "total": total,
                "elapsed_ms": 0.0,
                "status": "running",
                "error": "",
            }
            yield event

            t0 = time.perf_counter()
            try:
                self._execute(spec, ctx)
            except PipelineError as e:
                yield {**event, "status": "error", "error": str(e)}
                raise

            failed = spec.id in ctx.errors
            yield {
                **event,
                "elapsed_ms": round((time.perf_counter() - t0) * 1000, 1),
                "status": "error" if failed else "ok",
                "error": ctx.errors.get(spec.id, ""),
            }

    def _plan(self, ctx: PipelineContext) -> list[TransformSpec]:
        skip_ids = self._adaptive_gate(ctx)
        requested = {s.id for s in self.registry.all()} - skip_ids
        ordered = self.registry.resolve_order(requested)
        logger.info(
            "Pipeline: %d transforms queued (%d skipped) for %d elements",
            len(ordered),
            len(skip_ids),
            ctx.num_elements,
        )
        return ordered

    def _execute(self, spec: TransformSpec, ctx: PipelineContext) -> None:
        try:
            spec.fn(ctx)
        except Exception as e:
            if not spec.optional:
                logger.error("  %s FAILED: %s", spec.id, e)
                ctx.errors[spec.id] = str(e)
                raise PipelineError(spec.id, str(e)) from e
            ctx.errors[spec.id] = str(e)
            logger.warning("  %s FAILED (optional, continuing): %s", spec.id, e)
            return
        ctx.completed_transforms.add(spec.id)

    def _adaptive_gate(self, ctx: PipelineContext) -> set[str]:
        """Determine which transforms to skip based on the extraction options.

        - Widget detection off skips the widget detector
        - Relationship analysis off skips the pairwise relationship pass
        - Token optimization off skips the renderings; the result then
          carries the cheap per-component estimate
        """
        skip: set[str] = set()
        opts = ctx.options

        if not opts.enable_widget_detection:
            skip.add(WIDGET_DETECTION)
        if not opts.enable_relationship_analysis:
            skip.add(RELATIONSHIP_ANALYSIS)
        if not opts.enable_token_optimization:
            skip.add(TOKEN_ESTIMATION)

        return skip


def create_pipeline(config: PipelineConfig | None = None) -> Pipeline:
    """Factory function for creating a pipeline instance."""
    load_transforms()
    return Pipeline(config=config)


def coerce_shapes(elements: Iterable[RawShape | Mapping[str, Any]]) -> tuple[RawShape, ...]:
    return tuple(el if isinstance(el, RawShape) else RawShape.model_validate(el) for el in elements)


def build_context(
    elements: Iterable[RawShape | Mapping[str, Any]],
    viewport: Viewport | Mapping[str, Any] | None = None,
    options: ExtractionOptions | None = None,
    config: PipelineConfig | None = None,
) -> PipelineContext:
    shapes = coerce_shapes(elements)
    if viewport is None:
        viewport = Viewport()
    elif not isinstance(viewport, Viewport):
        viewport = Viewport.model_validate(viewport)
    return PipelineContext(
        elements=shapes,
        viewport=viewport,
        options=options or ExtractionOptions(),
        config=config or PipelineConfig(),
    )


def build_result(ctx: PipelineContext) -> ExtractionResult:
    """Assemble the caller-facing result from a finished context."""
    components = list(ctx.components)
    token_optimization = ctx.token_optimization
    if token_optimization is None:
        token_optimization = estimate_token_savings(components, ctx.num_elements)

    return ExtractionResult(
        components=components,
        summary=summarize_components(components),
        token_optimization=token_optimization,
        timestamp=int(time.time() * 1000),
        processing_time=round((time.perf_counter() - ctx.started_at) * 1000, 2),
    )


def run_extraction(
    elements: Iterable[RawShape | Mapping[str, Any]],
    viewport: Viewport | Mapping[str, Any] | None = None,
    options: ExtractionOptions | None = None,
    config: PipelineConfig | None = None,
) -> ExtractionResult:
    """Extract semantic components from a scene of drawing primitives."""
    ctx = build_context(elements, viewport, options, config)
    create_pipeline(ctx.config).run(ctx)
    return build_result(ctx)
