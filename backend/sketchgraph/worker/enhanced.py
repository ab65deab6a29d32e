"""Local extraction plus optional LLM enhancement, with fallback to the local result."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from sketchgraph.config import settings
from sketchgraph.engine.config import ExtractionOptions
from sketchgraph.engine.pipeline import coerce_shapes
from sketchgraph.engine.tokens import analyze_tokens, describe_analysis
from sketchgraph.llm.client import llm_configured
from sketchgraph.llm.enhancer import EnhancementResult, SemanticEnhancer
from sketchgraph.models.extraction import SemanticComponent
from sketchgraph.models.responses import CompressionStats, EnhancedExtractionResponse
from sketchgraph.worker.labels import average_confidence, to_overlay_labels
from sketchgraph.worker.manager import Elements, ExtractionWorker, ViewportLike

logger = logging.getLogger(__name__)

# Local pass feeding the enhancer keeps more low-confidence candidates
ENHANCEMENT_BASE_OPTIONS = {"min_confidence": 0.3, "max_components": 50, "analysis_depth": "standard"}


class EnhancedExtractionManager:
    def __init__(
        self,
        worker: ExtractionWorker,
        enhancer: SemanticEnhancer | None = None,
        llm_available: Callable[[], bool] = llm_configured,
    ) -> None:
        self.worker = worker
        self.enhancer = enhancer or SemanticEnhancer()
        self._llm_available = llm_available
        self.min_components = settings.enhancement_min_components
        self.max_components = settings.enhancement_max_components

    async def extract_local(
        self,
        elements: Elements,
        viewport: ViewportLike = None,
        options: ExtractionOptions | None = None,
    ) -> EnhancedExtractionResponse:
        start = time.perf_counter()
        shapes = coerce_shapes(elements)
        if options is None:
            result = await self.worker.extract_thorough(shapes, viewport)
        else:
            result = await self.worker.extract(shapes, viewport, options)
        return self._assemble(shapes, result.components, None, start)

    async def extract_with_enhancement(
        self,
        elements: Elements,
        viewport: ViewportLike = None,
        **overrides,
    ) -> EnhancedExtractionResponse:
        """Local pass, then the enhancer; any enhancer failure leaves the local components in place."""
        start = time.perf_counter()
        shapes = coerce_shapes(elements)
        local = await self.worker.extract_thorough(shapes, viewport, **{**ENHANCEMENT_BASE_OPTIONS, **overrides})
        logger.info("Local extraction: %d components", len(local.components))
        enhancement = await self._enhance(local.components)
        return self._assemble(shapes, local.components, enhancement, start)

    async def extract_smart(
        self,
        elements: Elements,
        viewport: ViewportLike = None,
        **overrides,
    ) -> EnhancedExtractionResponse:
        """Enhance only when a model is configured and the component count is inside the cost window."""
        start = time.perf_counter()
        shapes = coerce_shapes(elements)
        local = await self.worker.extract_thorough(shapes, viewport, **{**ENHANCEMENT_BASE_OPTIONS, **overrides})

        if not self.should_enhance(len(local.components)):
            logger.info("Smart mode: local extraction only (%d components)", len(local.components))
            return self._assemble(shapes, local.components, None, start)

        logger.info("Smart mode: enhancing %d components", len(local.components))
        enhancement = await self._enhance(local.components)
        return self._assemble(shapes, local.components, enhancement, start)

    def should_enhance(self, component_count: int) -> bool:
        return self._llm_available() and self.min_components <= component_count <= self.max_components

    async def _enhance(self, components: Sequence[SemanticComponent]) -> EnhancementResult | None:
        try:
            result = await self.enhancer.enhance(components)
        except Exception as e:
            logger.warning("LLM enhancement failed, using local results: %s", e)
            return None
        if components and not result.enhanced_batches:
            logger.warning("No enhancement batch succeeded, using local results")
            return None
        return result

    def _assemble(
        self,
        shapes,
        local: Sequence[SemanticComponent],
        enhancement: EnhancementResult | None,
        start: float,
    ) -> EnhancedExtractionResponse:
        components = enhancement.enhanced_components if enhancement else list(local)
        names = enhancement.human_readable_names if enhancement else {}
        analysis = analyze_tokens(shapes, components)

        response = EnhancedExtractionResponse(
            local_components=list(local),
            enhanced_components=components,
            llm_relationships=enhancement.relationships if enhancement else [],
            human_readable_names=names,
            token_analysis=describe_analysis(analysis),
            processing_time=(time.perf_counter() - start) * 1000,
            compression_achieved=(
                enhancement.compression_achieved if enhancement else analysis.reduction_percentage
            ),
            labels=to_overlay_labels(components, names),
            confidence=average_confidence(components),
            llm_enhanced=enhancement is not None,
        )
        response.stats = self.get_compression_stats(response)
        response.summary = self.generate_summary(response)
        logger.info(
            "Extraction complete: %.1f%% token reduction in %.0fms",
            response.token_analysis.reduction_percentage,
            response.processing_time,
        )
        return response

    @staticmethod
    def get_compression_stats(result: EnhancedExtractionResponse) -> CompressionStats:
        tokens = result.token_analysis
        return CompressionStats(
            token_reduction=tokens.reduction_percentage,
            compression_ratio=tokens.compression_ratio,
            original_tokens=tokens.raw_tokens,
            optimized_tokens=tokens.compact_tokens,
            components_found=len(result.enhanced_components),
            relationships_detected=len(result.llm_relationships),
            processing_time=result.processing_time,
            llm_enhanced=result.llm_enhanced,
        )

    def generate_summary(self, result: EnhancedExtractionResponse) -> str:
        stats = self.get_compression_stats(result)
        parts = [
            f"Found {stats.components_found} semantic components",
            f"{stats.token_reduction:.1f}% token reduction achieved",
        ]
        if stats.relationships_detected > 0:
            parts.append(f"{stats.relationships_detected} relationships detected")
        if stats.llm_enhanced:
            parts.append("Enhanced with LLM analysis")
        parts.append(f"Processed in {stats.processing_time:.0f}ms")
        return " • ".join(parts)

    def status(self) -> dict:
        return {
            **self.worker.status(),
            "llm_configured": self._llm_available(),
            "enhancement_window": [self.min_components, self.max_components],
        }
