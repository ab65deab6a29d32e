"""POST /api/extract — component extraction, streamed or enhanced on request."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Sequence

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from sketchgraph.dependencies import get_extraction_manager, get_widget_storage, get_worker
from sketchgraph.engine.pipeline import PipelineError, build_context, build_result, create_pipeline
from sketchgraph.models.extraction import SemanticComponent
from sketchgraph.models.requests import EnhancedExtractRequest, ExtractRequest
from sketchgraph.models.responses import EnhancedExtractionResponse, ExtractResponse, WidgetErrorDetail
from sketchgraph.widgets.errors import WidgetError
from sketchgraph.widgets.factory import create_from_metadata
from sketchgraph.widgets.storage import WidgetStorage
from sketchgraph.worker.enhanced import EnhancedExtractionManager
from sketchgraph.worker.manager import ExtractionWorker

logger = logging.getLogger(__name__)

router = APIRouter()


_SENTINEL = object()  # marks end of queue


def store_detected_widgets(
    storage: WidgetStorage, components: Sequence[SemanticComponent]
) -> tuple[list[str], list[WidgetErrorDetail]]:
    """Persist the widget metadata carried by widget components; failures are reported, not raised."""
    stored: list[str] = []
    errors: list[WidgetErrorDetail] = []
    for comp in components:
        info = comp.metadata.widget_metadata
        if info is None or not comp.element_ids:
            continue
        element_id = comp.element_ids[0]
        try:
            widget = create_from_metadata(
                {
                    "type": info.widget_type,
                    "title": comp.metadata.visual_properties.text_content,
                    "description": f"Auto-detected {info.widget_type} widget",
                    "config": info.config,
                },
                element_id,
            )
            storage.set(element_id, widget)
        except WidgetError as e:
            logger.warning("Could not store widget for %s: %s", element_id, e)
            errors.append(WidgetErrorDetail(**e.to_dict()))
            continue
        stored.append(element_id)
    return stored, errors


@router.post("/extract", response_model=ExtractResponse)
async def extract(
    req: ExtractRequest,
    worker: ExtractionWorker = Depends(get_worker),
    storage: WidgetStorage = Depends(get_widget_storage),
) -> ExtractResponse:
    result = await worker.extract(req.elements, req.viewport, req.options.to_options())

    stored: list[str] = []
    errors: list[WidgetErrorDetail] = []
    if req.store_widgets:
        stored, errors = store_detected_widgets(storage, result.components)

    return ExtractResponse(**result.model_dump(), widgets_stored=stored, widget_errors=errors)


async def _stream_extract(req: ExtractRequest, storage: WidgetStorage) -> AsyncGenerator[str, None]:
    """Drive pipeline.run_streaming() in a thread, yielding SSE events as they arrive."""
    ctx = build_context(req.elements, req.viewport, req.options.to_options())
    pipeline = create_pipeline(ctx.config)
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def _run_pipeline() -> None:
        """Sync pipeline in thread — pushes progress dicts onto the async queue."""
        try:
            for progress in pipeline.run_streaming(ctx):
                loop.call_soon_threadsafe(queue.put_nowait, progress)
        except PipelineError as e:
            loop.call_soon_threadsafe(queue.put_nowait, e)
        finally:
            loop.call_soon_threadsafe(queue.put_nowait, _SENTINEL)

    # Start pipeline in a thread so the event loop stays free to flush SSE
    loop.run_in_executor(None, _run_pipeline)

    failure: PipelineError | None = None
    while True:
        item = await queue.get()
        if item is _SENTINEL:
            break
        if isinstance(item, PipelineError):
            failure = item
            continue
        yield f"event: progress\ndata: {json.dumps(item)}\n\n"

    if failure is not None:
        data = json.dumps({"type": "error", "message": str(failure), "transform_id": failure.transform_id})
        yield f"event: error\ndata: {data}\n\n"
        return

    result = build_result(ctx)
    stored: list[str] = []
    errors: list[WidgetErrorDetail] = []
    if req.store_widgets:
        stored, errors = store_detected_widgets(storage, result.components)
    response = ExtractResponse(**result.model_dump(), widgets_stored=stored, widget_errors=errors)

    result_data = response.model_dump(mode="json")
    result_data["transforms_completed"] = len(ctx.completed_transforms)
    result_data["errors"] = ctx.errors
    yield f"event: result\ndata: {json.dumps(result_data)}\n\n"

    yield f"event: done\ndata: {json.dumps({'type': 'done'})}\n\n"


@router.post("/extract/stream")
async def extract_stream(
    req: ExtractRequest,
    storage: WidgetStorage = Depends(get_widget_storage),
) -> StreamingResponse:
    return StreamingResponse(
        _stream_extract(req, storage),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/extract/enhanced", response_model=EnhancedExtractionResponse)
async def extract_enhanced(
    req: EnhancedExtractRequest,
    manager: EnhancedExtractionManager = Depends(get_extraction_manager),
) -> EnhancedExtractionResponse:
    if not req.use_llm:
        options = req.options.to_options() if req.options else None
        return await manager.extract_local(req.elements, req.viewport, options)

    overrides = {}
    if req.options is not None:
        overrides = req.options.model_dump(exclude_none=True)
    return await manager.extract_smart(req.elements, req.viewport, **overrides)
