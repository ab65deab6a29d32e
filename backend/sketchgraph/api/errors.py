"""Map domain errors onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sketchgraph.engine.pipeline import PipelineError
from sketchgraph.widgets.errors import WidgetError, WidgetErrorCode
from sketchgraph.worker.errors import (
    ExtractionTimeoutError,
    ExtractionWorkerError,
    QueueFullError,
)

logger = logging.getLogger(__name__)

_WIDGET_STATUS = {
    WidgetErrorCode.ELEMENT_NOT_FOUND: 404,
    WidgetErrorCode.DUPLICATE_ID: 409,
    WidgetErrorCode.SERIALIZATION_ERROR: 400,
}


def widget_status(error: WidgetError) -> int:
    return _WIDGET_STATUS.get(error.code, 422)


def worker_status(error: ExtractionWorkerError) -> int:
    if isinstance(error, ExtractionTimeoutError):
        return 504
    if isinstance(error, QueueFullError):
        return 429
    return 503


async def _widget_error(request: Request, exc: WidgetError) -> JSONResponse:
    return JSONResponse(status_code=widget_status(exc), content={"detail": exc.to_dict()})


async def _worker_error(request: Request, exc: ExtractionWorkerError) -> JSONResponse:
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=worker_status(exc),
        content={"detail": {"message": str(exc), "error": type(exc).__name__, "message_id": exc.message_id}},
    )


async def _pipeline_error(request: Request, exc: PipelineError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"detail": {"message": str(exc), "transform_id": exc.transform_id}},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WidgetError, _widget_error)
    app.add_exception_handler(ExtractionWorkerError, _worker_error)
    app.add_exception_handler(PipelineError, _pipeline_error)
