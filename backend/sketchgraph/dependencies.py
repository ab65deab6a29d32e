"""FastAPI dependency injection."""

from __future__ import annotations

from functools import lru_cache

from sketchgraph.config import settings
from sketchgraph.widgets.storage import WidgetStorage
from sketchgraph.worker.enhanced import EnhancedExtractionManager
from sketchgraph.worker.manager import ExtractionWorker


@lru_cache(maxsize=1)
def get_widget_storage() -> WidgetStorage:
    return WidgetStorage(max_history=settings.widget_snapshot_history)


@lru_cache(maxsize=1)
def get_worker() -> ExtractionWorker:
    return ExtractionWorker()


@lru_cache(maxsize=1)
def get_extraction_manager() -> EnhancedExtractionManager:
    return EnhancedExtractionManager(get_worker())


def shutdown_worker() -> None:
    if get_worker.cache_info().currsize:
        get_worker().shutdown()
        get_worker.cache_clear()
        get_extraction_manager.cache_clear()
