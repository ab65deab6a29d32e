"""Health check + meta endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sketchgraph.dependencies import get_extraction_manager
from sketchgraph.engine.registry import get_registry
from sketchgraph.llm.client import llm_configured
from sketchgraph.models.responses import HealthResponse
from sketchgraph.worker.enhanced import EnhancedExtractionManager

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="0.1.0",
        transforms_registered=get_registry().count,
        llm_configured=llm_configured(),
    )


@router.get("/status")
async def status(manager: EnhancedExtractionManager = Depends(get_extraction_manager)) -> dict:
    return manager.status()


@router.get("/prompts")
async def prompts() -> dict[str, str]:
    from sketchgraph.llm.prompts import get_all_templates

    return get_all_templates()
