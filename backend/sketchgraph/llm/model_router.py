"""Task → model selection. Cheap model for per-batch enrichment, mid-tier for whole-scene reasoning."""

from __future__ import annotations

from sketchgraph.config import settings

_TASK_MODEL_MAP = {
    "enhance": "cheap",
    "relationships": "mid",
}


def get_model_for_task(task: str) -> str:
    tier = _TASK_MODEL_MAP.get(task, "cheap")
    if tier == "cheap":
        return settings.model_cheap
    return settings.model_mid
