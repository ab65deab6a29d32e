"""LLM semantic enhancement of extracted components.

Components are batched by spatial proximity, each batch is sent to the model
once, and the JSON answer refines roles, adds human-readable names and
suggests relationships. A batch that fails keeps its original components;
the enhancer never drops a component.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from sketchgraph.config import settings
from sketchgraph.llm import client
from sketchgraph.llm.prompts import get_prompt_template
from sketchgraph.models.extraction import ComponentRole, RelationshipType, SemanticComponent
from sketchgraph.models.responses import SuggestedRelationship

logger = logging.getLogger(__name__)

# (prompt, task, max_tokens) -> response text
Completer = Callable[[str, str, int], Awaitable[str]]

ENHANCED_METHOD = "ml_classification"
ENHANCED_VERSION = "3.0.0"
BATCH_RELATIONSHIP_CONFIDENCE = 0.8
GLOBAL_RELATIONSHIP_CONFIDENCE = 0.7
MAX_GLOBAL_RELATIONSHIPS = 5

_ROLE_MAP: dict[str, ComponentRole] = {
    "button": ComponentRole.BUTTON,
    "input": ComponentRole.INPUT_FIELD,
    "input_field": ComponentRole.INPUT_FIELD,
    "text_input": ComponentRole.INPUT_FIELD,
    "dropdown": ComponentRole.DROPDOWN,
    "select": ComponentRole.DROPDOWN,
    "checkbox": ComponentRole.CHECKBOX,
    "radio": ComponentRole.RADIO_BUTTON,
    "toggle": ComponentRole.TOGGLE,
    "switch": ComponentRole.TOGGLE,
    "card": ComponentRole.CARD,
    "container": ComponentRole.CONTAINER,
    "modal": ComponentRole.MODAL,
    "dialog": ComponentRole.MODAL,
    "sidebar": ComponentRole.SIDEBAR,
    "header": ComponentRole.HEADER,
    "navigation": ComponentRole.NAVIGATION_BAR,
    "nav": ComponentRole.NAVIGATION_BAR,
    "title": ComponentRole.TITLE,
    "heading": ComponentRole.TITLE,
    "text": ComponentRole.TEXT_BLOCK,
    "label": ComponentRole.LABEL,
    "icon": ComponentRole.ICON,
    "image": ComponentRole.IMAGE_PLACEHOLDER,
    "chart": ComponentRole.CHART,
    "graph": ComponentRole.CHART,
    "table": ComponentRole.TABLE,
    "list": ComponentRole.LIST,
    "menu": ComponentRole.MENU,
    "widget": ComponentRole.WIDGET,
    "decision": ComponentRole.DECISION_POINT,
    "process": ComponentRole.PROCESS_STEP,
    "step": ComponentRole.PROCESS_STEP,
}

_RELATIONSHIP_MAP: dict[str, RelationshipType] = {
    "contains": RelationshipType.CONTAINS,
    "contained_by": RelationshipType.CONTAINED_BY,
    "triggers": RelationshipType.TRIGGERS,
    "validates": RelationshipType.VALIDATES,
    "links_to": RelationshipType.LINKS_TO,
    "flows_to": RelationshipType.FLOWS_TO,
    "above": RelationshipType.ABOVE,
    "below": RelationshipType.BELOW,
    "left_of": RelationshipType.LEFT_OF,
    "right_of": RelationshipType.RIGHT_OF,
    "adjacent": RelationshipType.ADJACENT_TO,
    "aligned": RelationshipType.ALIGNED_WITH,
    "populates": RelationshipType.POPULATES,
    "filters": RelationshipType.FILTERS,
}

_SEPARATORS = re.compile(r"[_\s-]+")


def _normalize(name: Any) -> str:
    return _SEPARATORS.sub("_", str(name).lower())


def map_role(name: Any) -> ComponentRole | None:
    if not name:
        return None
    return _ROLE_MAP.get(_normalize(name))


def map_relationship_type(name: Any) -> RelationshipType:
    if not name:
        return RelationshipType.ADJACENT_TO
    return _RELATIONSHIP_MAP.get(_normalize(name), RelationshipType.ADJACENT_TO)


@dataclass(frozen=True)
class EnhancementOptions:
    enable_relationship_detection: bool = True
    max_components_per_batch: int = 8
    proximity_threshold: float = 200.0  # pixels between component centres
    timeout_s: float = 10.0
    batch_max_tokens: int = 600
    global_max_tokens: int = 400

    @classmethod
    def fast(cls) -> "EnhancementOptions":
        """Larger batches and no whole-scene relationship pass."""
        return cls(
            enable_relationship_detection=False,
            max_components_per_batch=settings.enhancement_batch_size,
            timeout_s=settings.enhancement_timeout_s,
        )


@dataclass
class EnhancementResult:
    enhanced_components: list[SemanticComponent] = field(default_factory=list)
    relationships: list[SuggestedRelationship] = field(default_factory=list)
    human_readable_names: dict[str, str] = field(default_factory=dict)
    compression_achieved: float = 0.0
    processing_time: float = 0.0  # milliseconds
    tokens_saved: int = 0
    enhanced_batches: int = 0


@dataclass
class _BatchOutcome:
    components: list[SemanticComponent]
    relationships: list[SuggestedRelationship]
    names: dict[str, str]


# ── Batching ──


def group_spatially(components: Sequence[SemanticComponent], threshold: float) -> list[list[SemanticComponent]]:
    """Greedy proximity groups: each unclaimed component seeds a group of its unclaimed neighbours."""
    if not components:
        return []
    centers = np.array(
        [
            [c.bounding_box.x + c.bounding_box.width / 2, c.bounding_box.y + c.bounding_box.height / 2]
            for c in components
        ],
        dtype=np.float64,
    )
    claimed = np.zeros(len(components), dtype=bool)
    groups = []
    for i in range(len(components)):
        if claimed[i]:
            continue
        near = np.hypot(*(centers - centers[i]).T) <= threshold
        members = np.flatnonzero(near & ~claimed)
        claimed[members] = True
        groups.append([components[j] for j in members])
    return groups


def create_batches(
    components: Sequence[SemanticComponent], max_per_batch: int, threshold: float
) -> list[list[SemanticComponent]]:
    size = max(1, max_per_batch)
    batches = []
    for group in group_spatially(components, threshold):
        batches.extend(group[i : i + size] for i in range(0, len(group), size))
    return batches


# ── Token accounting ──


def estimate_component_tokens(components: Sequence[SemanticComponent]) -> int:
    total = 0
    for comp in components:
        total += 20 + 3 + 8  # overhead, role, bounds
        total += sum(math.ceil(len(h) / 4) for h in comp.metadata.semantic_hints)
        text = comp.metadata.visual_properties.text_content
        if text:
            total += math.ceil(len(text) / 4)
    return total


def compression_achieved(original: Sequence[SemanticComponent], enhanced: Sequence[SemanticComponent]) -> float:
    before = estimate_component_tokens(original)
    if before == 0:
        return 0.0
    return (before - estimate_component_tokens(enhanced)) / before * 100


# ── Response handling ──


def parse_json_payload(text: str) -> dict[str, Any]:
    """The outermost JSON object in a model response; tolerates fences and stray prose."""
    start, end = text.find("{"), text.rfind("}")
    if start < 0 or end <= start:
        raise ValueError("No JSON object in model response")
    payload = json.loads(text[start : end + 1])
    if not isinstance(payload, dict):
        raise ValueError("Model response is not a JSON object")
    return payload


def _summaries(components: Sequence[SemanticComponent]) -> list[dict[str, Any]]:
    return [
        {
            "id": c.id,
            "role": c.role.value,
            "position": f"{c.bounding_box.x:g},{c.bounding_box.y:g}",
            "size": f"{c.bounding_box.width:g}x{c.bounding_box.height:g}",
            "text": c.metadata.visual_properties.text_content or "",
            "confidence": round(c.confidence, 3),
        }
        for c in components
    ]


def _relationship(
    entry: Mapping[str, Any], default_confidence: float, use_stated: bool = True
) -> SuggestedRelationship | None:
    source, target = entry.get("source"), entry.get("target")
    if not source or not target:
        return None
    confidence = entry.get("confidence") if use_stated else None
    return SuggestedRelationship(
        source=str(source),
        target=str(target),
        type=map_relationship_type(entry.get("type")).value,
        confidence=float(confidence) if isinstance(confidence, (int, float)) else default_confidence,
        description=str(entry.get("description") or ""),
    )


def apply_enhancements(payload: Mapping[str, Any], originals: Sequence[SemanticComponent]) -> _BatchOutcome:
    """Merge one batch answer into the batch's components."""
    by_id = {
        e["id"]: e
        for e in payload.get("enhancedComponents") or []
        if isinstance(e, Mapping) and e.get("id")
    }

    components = []
    names: dict[str, str] = {}
    for original in originals:
        hints = original.metadata.semantic_hints
        entry = by_id.get(original.id)
        if entry is None:
            components.append(
                original.model_copy(
                    update={"metadata": original.metadata.model_copy(update={"semantic_hints": hints[:1]})}
                )
            )
            continue

        importance = entry.get("importance")
        importance = float(importance) if isinstance(importance, (int, float)) else 0.0
        description = entry.get("description")
        analysis = original.metadata.analysis_metadata.model_copy(
            update={"extraction_method": ENHANCED_METHOD, "version": ENHANCED_VERSION}
        )
        metadata = original.metadata.model_copy(
            update={
                "semantic_hints": [str(description)] if description else hints[:1],
                "analysis_metadata": analysis,
            }
        )
        components.append(
            original.model_copy(
                update={
                    "role": map_role(entry.get("enhancedRole")) or original.role,
                    "confidence": max(original.confidence, min(importance, 1.0)),
                    "metadata": metadata,
                }
            )
        )
        if entry.get("humanName"):
            names[original.id] = str(entry["humanName"])

    relationships = [
        rel
        for rel in (
            _relationship(r, BATCH_RELATIONSHIP_CONFIDENCE, use_stated=False)
            for r in payload.get("relationships") or []
            if isinstance(r, Mapping)
        )
        if rel is not None
    ]
    return _BatchOutcome(components, relationships, names)


# ── Enhancer ──


class SemanticEnhancer:
    """Runs enhancement batches against a completion function (Claude by default)."""

    def __init__(self, options: EnhancementOptions | None = None, completer: Completer | None = None) -> None:
        self.options = options or EnhancementOptions.fast()
        self._complete = completer or client.complete

    async def enhance(self, components: Sequence[SemanticComponent]) -> EnhancementResult:
        start = time.perf_counter()
        opts = self.options
        batches = create_batches(components, opts.max_components_per_batch, opts.proximity_threshold)
        logger.info("Enhancing %d components in %d batches", len(components), len(batches))

        result = EnhancementResult()
        for i, batch in enumerate(batches):
            try:
                outcome = await self._process_batch(batch)
            except Exception as e:
                logger.warning("Enhancement batch %d/%d failed, keeping originals: %s", i + 1, len(batches), e)
                result.enhanced_components.extend(batch)
                continue
            result.enhanced_batches += 1
            result.enhanced_components.extend(outcome.components)
            result.relationships.extend(outcome.relationships)
            result.human_readable_names.update(outcome.names)

        if opts.enable_relationship_detection and len(result.enhanced_components) > 1:
            result.relationships.extend(await self._global_relationships(result.enhanced_components))

        result.compression_achieved = compression_achieved(components, result.enhanced_components)
        result.tokens_saved = estimate_component_tokens(components) - estimate_component_tokens(
            result.enhanced_components
        )
        result.processing_time = (time.perf_counter() - start) * 1000
        logger.info(
            "Enhancement complete: %.1f%% compression in %.0fms",
            result.compression_achieved,
            result.processing_time,
        )
        return result

    async def _process_batch(self, batch: Sequence[SemanticComponent]) -> _BatchOutcome:
        prompt = get_prompt_template("enhance").format(components=json.dumps(_summaries(batch), indent=2))
        text = await asyncio.wait_for(
            self._complete(prompt, "enhance", self.options.batch_max_tokens), self.options.timeout_s
        )
        return apply_enhancements(parse_json_payload(text), batch)

    async def _global_relationships(self, components: Sequence[SemanticComponent]) -> list[SuggestedRelationship]:
        summary = [
            {
                "id": c.id,
                "role": c.role.value,
                "name": c.metadata.visual_properties.text_content or f"{c.role.value}_{c.id[-4:]}",
                "x": c.bounding_box.x,
                "y": c.bounding_box.y,
                "width": c.bounding_box.width,
                "height": c.bounding_box.height,
            }
            for c in components
        ]
        prompt = get_prompt_template("relationships").format(
            components=json.dumps(summary, indent=2), max_relationships=MAX_GLOBAL_RELATIONSHIPS
        )
        try:
            text = await asyncio.wait_for(
                self._complete(prompt, "relationships", self.options.global_max_tokens), self.options.timeout_s
            )
            payload = parse_json_payload(text)
        except Exception as e:
            logger.warning("Global relationship detection failed: %s", e)
            return []

        found = [
            _relationship(r, GLOBAL_RELATIONSHIP_CONFIDENCE)
            for r in payload.get("relationships") or []
            if isinstance(r, Mapping)
        ]
        return [r for r in found if r is not None][:MAX_GLOBAL_RELATIONSHIPS]
