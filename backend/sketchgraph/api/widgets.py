"""Widget metadata endpoints backed by the shared widget storage."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response

from sketchgraph.dependencies import get_widget_storage
from sketchgraph.models.requests import (
    CleanupRequest,
    SnapshotRequest,
    WidgetDetectRequest,
    WidgetDuplicateRequest,
    WidgetImportRequest,
    WidgetUpdateRequest,
)
from sketchgraph.models.responses import (
    OperationResponse,
    SnapshotInfo,
    SnapshotResponse,
    WidgetDetectionResponse,
    WidgetListResponse,
)
from sketchgraph.models.widgets import WidgetType
from sketchgraph.widgets.errors import WidgetError, WidgetErrorCode
from sketchgraph.widgets.factory import build_widget, create_from_metadata, detect_widget_from_text
from sketchgraph.widgets.storage import WidgetStorage

router = APIRouter(prefix="/widgets", tags=["widgets"])


def _not_found(element_id: str) -> WidgetError:
    return WidgetError(f"No widget on element {element_id}", WidgetErrorCode.ELEMENT_NOT_FOUND, element_id)


@router.get("", response_model=WidgetListResponse)
async def list_widgets(
    widget_type: WidgetType | None = Query(default=None, alias="type"),
    storage: WidgetStorage = Depends(get_widget_storage),
) -> WidgetListResponse:
    widgets = storage.get_by_type(widget_type) if widget_type else storage.get_all()
    return WidgetListResponse(
        widgets={k: v.model_dump(mode="json") for k, v in widgets.items()},
        count=len(widgets),
    )


@router.get("/stats")
async def stats(storage: WidgetStorage = Depends(get_widget_storage)) -> dict[str, Any]:
    return storage.get_statistics()


@router.get("/history", response_model=list[SnapshotInfo])
async def history(storage: WidgetStorage = Depends(get_widget_storage)) -> list[SnapshotInfo]:
    return [
        SnapshotInfo(
            id=s.id,
            timestamp=s.timestamp,
            operation=s.operation,
            element_id=s.element_id,
            widget_count=len(s.data),
        )
        for s in storage.get_history()
    ]


@router.post("/snapshots", response_model=SnapshotResponse)
async def save_snapshot(
    req: SnapshotRequest | None = None,
    storage: WidgetStorage = Depends(get_widget_storage),
) -> SnapshotResponse:
    req = req or SnapshotRequest()
    return SnapshotResponse(snapshot_id=storage.save_snapshot(req.operation, req.element_id))


@router.post("/snapshots/{snapshot_id}/restore", response_model=OperationResponse)
async def restore_snapshot(
    snapshot_id: str,
    storage: WidgetStorage = Depends(get_widget_storage),
) -> OperationResponse:
    if not storage.restore_snapshot(snapshot_id):
        raise HTTPException(status_code=404, detail=f"Snapshot {snapshot_id} not found")
    return OperationResponse(ok=True, count=storage.count())


@router.get("/export")
async def export(storage: WidgetStorage = Depends(get_widget_storage)) -> Response:
    return Response(content=storage.serialize(), media_type="application/json")


@router.post("/import", response_model=OperationResponse)
async def import_widgets(
    req: WidgetImportRequest,
    storage: WidgetStorage = Depends(get_widget_storage),
) -> OperationResponse:
    if not storage.deserialize(req.data):
        raise WidgetError("Failed to deserialize widget storage", WidgetErrorCode.SERIALIZATION_ERROR)
    return OperationResponse(ok=True, count=storage.count())


@router.post("/cleanup", response_model=OperationResponse)
async def cleanup(
    req: CleanupRequest,
    storage: WidgetStorage = Depends(get_widget_storage),
) -> OperationResponse:
    return OperationResponse(ok=True, count=storage.cleanup_deleted_elements(req.existing_element_ids))


@router.post("/detect", response_model=WidgetDetectionResponse)
async def detect(
    req: WidgetDetectRequest,
    storage: WidgetStorage = Depends(get_widget_storage),
) -> WidgetDetectionResponse:
    detection = detect_widget_from_text(req.text)
    response = WidgetDetectionResponse(
        is_widget=detection.is_widget,
        confidence=detection.confidence,
        detection_method=detection.detection_method,
        reasoning=list(detection.reasoning),
        widget_type=detection.widget_type.value if detection.widget_type else None,
    )
    if detection.widget_type is None:
        return response

    element_id = req.element_id or "preview"
    widget = build_widget(detection.widget_type, element_id, req.text.strip(), req.width, req.height)
    response.widget = widget.model_dump(mode="json")
    if req.element_id:
        storage.set(req.element_id, widget)
        response.stored = True
    return response


@router.get("/{element_id}")
async def get_widget(element_id: str, storage: WidgetStorage = Depends(get_widget_storage)) -> dict[str, Any]:
    widget = storage.get(element_id)
    if widget is None:
        raise _not_found(element_id)
    return widget.model_dump(mode="json")


@router.put("/{element_id}")
async def put_widget(
    element_id: str,
    metadata: dict[str, Any] = Body(...),
    storage: WidgetStorage = Depends(get_widget_storage),
) -> dict[str, Any]:
    """Create or replace; missing fields are filled with defaults for the widget type."""
    widget = create_from_metadata(metadata, element_id)
    storage.set(element_id, widget)
    return storage.get(element_id).model_dump(mode="json")


@router.patch("/{element_id}")
async def patch_widget(
    element_id: str,
    req: WidgetUpdateRequest,
    storage: WidgetStorage = Depends(get_widget_storage),
) -> dict[str, Any]:
    if not storage.has(element_id):
        raise _not_found(element_id)
    if not storage.update(element_id, req.updates):
        raise WidgetError(
            f"Rejected update for widget on {element_id}", WidgetErrorCode.INVALID_METADATA, element_id
        )
    return storage.get(element_id).model_dump(mode="json")


@router.delete("/{element_id}", response_model=OperationResponse)
async def delete_widget(element_id: str, storage: WidgetStorage = Depends(get_widget_storage)) -> OperationResponse:
    if not storage.delete(element_id):
        raise _not_found(element_id)
    return OperationResponse(ok=True, count=storage.count())


@router.post("/{element_id}/duplicate")
async def duplicate_widget(
    element_id: str,
    req: WidgetDuplicateRequest,
    storage: WidgetStorage = Depends(get_widget_storage),
) -> dict[str, Any]:
    if storage.has(req.target_id):
        raise WidgetError(
            f"Element {req.target_id} already has a widget", WidgetErrorCode.DUPLICATE_ID, req.target_id
        )
    if not storage.duplicate(element_id, req.target_id):
        raise _not_found(element_id)
    return storage.get(req.target_id).model_dump(mode="json")
