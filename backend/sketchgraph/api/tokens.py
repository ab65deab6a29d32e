"""Token accounting endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sketchgraph.dependencies import get_worker
from sketchgraph.engine.samples import sample_elements
from sketchgraph.engine.tokens import analyze_tokens, describe_analysis
from sketchgraph.models.requests import TokenAnalyzeRequest
from sketchgraph.models.responses import TokenAnalysisResponse
from sketchgraph.worker.manager import ExtractionWorker

router = APIRouter(prefix="/tokens")


@router.post("/analyze", response_model=TokenAnalysisResponse)
async def analyze(
    req: TokenAnalyzeRequest,
    worker: ExtractionWorker = Depends(get_worker),
) -> TokenAnalysisResponse:
    result = await worker.extract(req.elements, req.viewport)
    analysis = analyze_tokens(req.elements, result.components)
    return describe_analysis(analysis, include_representations=req.include_representations)


@router.get("/sample", response_model=TokenAnalysisResponse)
async def sample(worker: ExtractionWorker = Depends(get_worker)) -> TokenAnalysisResponse:
    """Token analysis of the built-in login-form scene."""
    elements = sample_elements()
    result = await worker.extract(elements)
    return describe_analysis(analyze_tokens(elements, result.components), include_representations=True)
