"""Widget storage — in-memory widget metadata keyed by element id, with snapshot history.

The live mapping is never edited in place: every mutation builds a new dict
and swaps it in. Widgets cross the storage boundary as deep copies in both
directions, so no caller holds a reference to a stored object and a snapshot
only has to keep a reference to the mapping it saw. Restoring one is a swap
back. History is a bounded FIFO; the oldest snapshot falls off first.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import deque
from collections.abc import Iterable, Mapping
from itertools import count
from typing import Any

from pydantic import ValidationError

from sketchgraph.models.widgets import (
    WidgetMetadata,
    WidgetStorageSnapshot,
    WidgetType,
    widget_adapter,
)
from sketchgraph.utils.clock import now_ms
from sketchgraph.widgets.errors import WidgetError, WidgetErrorCode
from sketchgraph.widgets.factory import widget_problems

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"
EXPORTED_SNAPSHOTS = 10


class WidgetStorage:
    """Versioned in-memory store of widget metadata."""

    def __init__(self, max_history: int = 50) -> None:
        self._widgets: dict[str, WidgetMetadata] = {}
        self._snapshots: deque[WidgetStorageSnapshot] = deque(maxlen=max_history)
        self._ids = count(1)
        self._lock = threading.RLock()

    # ── Core operations ──

    def set(self, element_id: str, metadata: WidgetMetadata) -> None:
        stored = metadata.model_copy(deep=True, update={"element_id": element_id, "updated_at": now_ms()})
        problems = widget_problems(stored)
        if problems:
            raise WidgetError(
                f"Failed to set widget metadata: {'; '.join(problems)}",
                WidgetErrorCode.STORAGE_ERROR,
                element_id,
                WidgetType(metadata.type),
            )

        with self._lock:
            self.save_snapshot("update", element_id)
            self._widgets = {**self._widgets, element_id: stored}
        logger.debug("Widget %s stored for element %s", stored.type, element_id)

    def get(self, element_id: str) -> WidgetMetadata | None:
        widget = self._widgets.get(element_id)
        return widget.model_copy(deep=True) if widget is not None else None

    def has(self, element_id: str) -> bool:
        return element_id in self._widgets

    def delete(self, element_id: str) -> bool:
        with self._lock:
            if element_id not in self._widgets:
                return False
            self.save_snapshot("delete", element_id)
            self._widgets = {k: v for k, v in self._widgets.items() if k != element_id}
        logger.debug("Widget deleted for element %s", element_id)
        return True

    def clear(self) -> None:
        with self._lock:
            self.save_snapshot("clear")
            self._widgets = {}

    # ── Lifecycle ──

    def duplicate(self, source_id: str, target_id: str) -> bool:
        with self._lock:
            source = self._widgets.get(source_id)
            if source is None:
                return False
            stamp = now_ms()
            copy = source.model_copy(
                deep=True,
                update={"element_id": target_id, "created_at": stamp, "updated_at": stamp},
            )
            self.save_snapshot("duplicate", target_id)
            self._widgets = {**self._widgets, target_id: copy}
        logger.debug("Widget duplicated from %s to %s", source_id, target_id)
        return True

    def update(self, element_id: str, updates: Mapping[str, Any]) -> bool:
        """Merge partial fields into a stored widget; ``config`` is merged key by key."""
        with self._lock:
            existing = self._widgets.get(element_id)
            if existing is None:
                return False

            merged = existing.model_dump()
            for key, value in updates.items():
                if key == "config" and isinstance(value, Mapping):
                    merged["config"] = {**merged["config"], **value}
                else:
                    merged[key] = value
            merged["element_id"] = element_id
            merged["updated_at"] = now_ms()

            try:
                updated = widget_adapter.validate_python(merged)
            except ValidationError as e:
                logger.warning("Rejected update for widget %s: %s", element_id, e)
                return False
            problems = widget_problems(updated)
            if problems:
                logger.warning("Rejected update for widget %s: %s", element_id, "; ".join(problems))
                return False

            self.save_snapshot("update", element_id)
            self._widgets = {**self._widgets, element_id: updated}
        return True

    # ── Queries ──

    def get_all(self) -> dict[str, WidgetMetadata]:
        return {k: v.model_copy(deep=True) for k, v in self._widgets.items()}

    def get_by_type(self, widget_type: WidgetType) -> dict[str, WidgetMetadata]:
        return {k: v.model_copy(deep=True) for k, v in self._widgets.items() if v.type == widget_type.value}

    def count(self) -> int:
        return len(self._widgets)

    # ── History ──

    def save_snapshot(self, operation: str = "update", element_id: str | None = None) -> str:
        with self._lock:
            stamp = now_ms()
            snapshot_id = f"snapshot-{next(self._ids)}-{stamp}"
            # model_construct keeps a reference to the current mapping instead of copying it
            self._snapshots.append(
                WidgetStorageSnapshot.model_construct(
                    id=snapshot_id,
                    timestamp=stamp,
                    data=self._widgets,
                    operation=operation,
                    element_id=element_id,
                )
            )
        return snapshot_id

    def restore_snapshot(self, snapshot_id: str) -> bool:
        with self._lock:
            snapshot = next((s for s in self._snapshots if s.id == snapshot_id), None)
            if snapshot is None:
                logger.warning("Snapshot %s not found", snapshot_id)
                return False
            self.save_snapshot("restore")
            self._widgets = snapshot.data
        logger.info("Restored widgets to snapshot %s (%s)", snapshot_id, snapshot.operation)
        return True

    def get_history(self) -> list[WidgetStorageSnapshot]:
        return [s.model_copy(deep=True) for s in self._snapshots]

    # ── Element lifecycle sync ──

    def sync_with_element_update(self, element_id: str, element_data: Mapping[str, Any]) -> bool:
        """Follow a canvas edit of the element a widget sits on."""
        widget = self._widgets.get(element_id)
        if widget is None:
            return False
        updates: dict[str, Any] = {}
        text = element_data.get("text")
        if text and text != widget.title:
            updates["title"] = text
        return self.update(element_id, updates)

    def cleanup_deleted_elements(self, existing_element_ids: Iterable[str]) -> int:
        existing = set(existing_element_ids)
        orphans = [eid for eid in self._widgets if eid not in existing]
        for eid in orphans:
            self.delete(eid)
        if orphans:
            logger.info("Cleaned up %d orphaned widgets", len(orphans))
        return len(orphans)

    # ── Serialization ──

    def _export(self) -> dict[str, Any]:
        return {
            "version": EXPORT_VERSION,
            "widgets": {k: v.model_dump(mode="json") for k, v in self._widgets.items()},
            "snapshots": [
                {
                    "id": s.id,
                    "timestamp": s.timestamp,
                    "data": {k: v.model_dump(mode="json") for k, v in s.data.items()},
                    "operation": s.operation,
                    "element_id": s.element_id,
                }
                for s in list(self._snapshots)[-EXPORTED_SNAPSHOTS:]
            ],
            "metadata": {
                "createdAt": now_ms(),
                "totalWidgets": len(self._widgets),
                "supportedTypes": [t.value for t in WidgetType],
            },
        }

    def serialize(self) -> str:
        try:
            return json.dumps(self._export(), indent=2)
        except (TypeError, ValueError) as e:
            raise WidgetError("Failed to serialize widget storage", WidgetErrorCode.SERIALIZATION_ERROR) from e

    def deserialize(self, data: str) -> bool:
        """Replace the whole store from ``serialize`` output. Leaves state untouched on failure."""
        try:
            parsed = json.loads(data)
            if not isinstance(parsed, dict) or not parsed.get("version") or "widgets" not in parsed:
                raise ValueError("Invalid serialization format")
            widgets = {
                eid: widget_adapter.validate_python(meta) for eid, meta in dict(parsed["widgets"]).items()
            }
            snapshots = None
            if isinstance(parsed.get("snapshots"), list):
                snapshots = [WidgetStorageSnapshot.model_validate(s) for s in parsed["snapshots"]]
        except (ValueError, TypeError) as e:
            # pydantic's ValidationError and json's JSONDecodeError are both ValueErrors
            logger.warning("Failed to deserialize widget storage: %s", e)
            return False

        with self._lock:
            self.save_snapshot("clear")
            self._widgets = widgets
            if snapshots is not None:
                self._snapshots = deque(snapshots, maxlen=self._snapshots.maxlen)
        logger.info("Deserialized %d widgets", len(widgets))
        return True

    # ── Monitoring ──

    def get_statistics(self) -> dict[str, Any]:
        widgets = list(self._widgets.values())
        by_type = {t.value: 0 for t in WidgetType}
        for w in widgets:
            by_type[w.type] += 1

        now = now_ms()
        oldest = min(widgets, key=lambda w: w.created_at, default=None)
        newest = max(widgets, key=lambda w: w.created_at, default=None)
        return {
            "total_widgets": len(widgets),
            "widgets_by_type": by_type,
            "average_age_ms": sum(now - w.created_at for w in widgets) / len(widgets) if widgets else 0.0,
            "oldest_widget": oldest.element_id if oldest else None,
            "newest_widget": newest.element_id if newest else None,
            "snapshot_count": len(self._snapshots),
            "memory_usage": len(self.serialize()) * 2,
        }
