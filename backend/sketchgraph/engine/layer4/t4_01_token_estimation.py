"""T4.01 — Token Estimation.

Measures the raw scene against the compact component rendering.
"""

from __future__ import annotations

import logging

from sketchgraph.engine.context import PipelineContext
from sketchgraph.engine.registry import Layer, transform
from sketchgraph.engine.tokens import analyze_tokens

logger = logging.getLogger(__name__)


@transform(
    id="T4.01",
    layer=Layer.OPTIMIZATION,
    dependencies=["T2.03", "T3.01"],
    tags={"optional"},
    description="Estimate raw vs compact token counts",
)
def token_estimation(ctx: PipelineContext) -> None:
    analysis = analyze_tokens(ctx.elements, ctx.components, ctx.config)
    ctx.token_optimization = analysis.to_optimization()
    logger.debug(
        "Tokens: %d raw → %d compact (%.1f%% reduction)",
        analysis.raw_tokens,
        analysis.compact_tokens,
        analysis.reduction_percentage,
    )
