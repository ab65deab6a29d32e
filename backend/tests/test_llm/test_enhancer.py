"""Tests for the LLM semantic enhancer, driven by a scripted completer."""

import asyncio
import json

import pytest

from sketchgraph.config import settings
from sketchgraph.llm import client
from sketchgraph.llm.enhancer import (
    EnhancementOptions,
    SemanticEnhancer,
    apply_enhancements,
    compression_achieved,
    create_batches,
    estimate_component_tokens,
    group_spatially,
    map_relationship_type,
    map_role,
    parse_json_payload,
)
from sketchgraph.llm.model_router import get_model_for_task
from sketchgraph.llm.prompts import get_all_templates, get_prompt_template, get_system_prompt
from sketchgraph.models.extraction import (
    ComponentBounds,
    ComponentMetadata,
    ComponentRole,
    RelationshipType,
    SemanticComponent,
    VisualProperties,
)


def _comp(id, x=0, y=0, role=ComponentRole.COMPONENT, confidence=0.3, text=None, hints=("first", "second")):
    return SemanticComponent(
        id=id,
        element_ids=[id],
        role=role,
        confidence=confidence,
        bounding_box=ComponentBounds(x=x, y=y, width=20, height=20),
        metadata=ComponentMetadata(
            visual_properties=VisualProperties(has_text=bool(text), text_content=text),
            semantic_hints=list(hints),
        ),
    )


class ScriptedCompleter:
    """Answers each task from a script and records every call."""

    def __init__(self, enhance=None, relationships=None):
        self.answers = {"enhance": enhance, "relationships": relationships}
        self.calls = []

    async def __call__(self, prompt, task, max_tokens):
        self.calls.append((task, prompt, max_tokens))
        answer = self.answers[task]
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(prompt)
        return answer


# ── Mapping ──


@pytest.mark.parametrize(
    "name, role",
    [
        ("button", ComponentRole.BUTTON),
        ("Text Input", ComponentRole.INPUT_FIELD),
        ("nav", ComponentRole.NAVIGATION_BAR),
        ("dialog", ComponentRole.MODAL),
        ("heading", ComponentRole.TITLE),
        ("graph", ComponentRole.CHART),
    ],
)
def test_map_role(name, role):
    assert map_role(name) == role


def test_unknown_role_maps_to_none():
    assert map_role("spaceship") is None
    assert map_role(None) is None


def test_map_relationship_type():
    assert map_relationship_type("contained by") == RelationshipType.CONTAINED_BY
    assert map_relationship_type("LEFT-OF") == RelationshipType.LEFT_OF
    assert map_relationship_type("orbits") == RelationshipType.ADJACENT_TO
    assert map_relationship_type(None) == RelationshipType.ADJACENT_TO


# ── Batching ──


def test_group_spatially():
    comps = [_comp("a", 0, 0), _comp("b", 100, 0), _comp("c", 1000, 0), _comp("d", 100, 100)]
    groups = group_spatially(comps, 200)
    assert [[c.id for c in g] for g in groups] == [["a", "b", "d"], ["c"]]
    assert group_spatially([], 200) == []


def test_create_batches_splits_large_groups():
    comps = [_comp(f"c{i}", i * 10, 0) for i in range(7)]
    batches = create_batches(comps, max_per_batch=3, threshold=200)
    assert [len(b) for b in batches] == [3, 3, 1]
    assert [c.id for b in batches for c in b] == [c.id for c in comps]


# ── Token accounting ──


def test_estimate_component_tokens():
    # 31 fixed + ceil(5/4) + ceil(6/4) for the hints + ceil(7/4) for the text
    assert estimate_component_tokens([_comp("a", text="Sign up")]) == 31 + 2 + 2 + 2
    assert estimate_component_tokens([]) == 0


def test_compression_achieved():
    before = [_comp("a", hints=("a long hint that costs tokens",) * 3)]
    after = [_comp("a", hints=("short",))]
    assert compression_achieved(before, after) > 0
    assert compression_achieved([], []) == 0.0


# ── Response parsing ──


def test_parse_json_payload_tolerates_fences():
    text = 'Here you go:\n```json\n{"enhancedComponents": []}\n```'
    assert parse_json_payload(text) == {"enhancedComponents": []}


@pytest.mark.parametrize("text", ["no json at all", "} backwards {", "{broken"])
def test_parse_json_payload_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_json_payload(text)


def test_apply_enhancements_merges_known_ids():
    originals = [_comp("a", confidence=0.3), _comp("b", confidence=0.9)]
    payload = {
        "enhancedComponents": [
            {"id": "a", "enhancedRole": "button", "humanName": "Save", "description": "Saves the form", "importance": 0.85},
            {"id": "b", "enhancedRole": "spaceship", "importance": 0.2},
            {"id": "ghost", "enhancedRole": "button"},
        ],
        "relationships": [
            {"source": "a", "target": "b", "type": "triggers", "confidence": 0.1},
            {"source": "a"},
        ],
    }
    outcome = apply_enhancements(payload, originals)
    a, b = outcome.components

    assert a.role == ComponentRole.BUTTON
    assert a.confidence == 0.85
    assert a.metadata.semantic_hints == ["Saves the form"]
    assert a.metadata.analysis_metadata.extraction_method == "ml_classification"
    assert a.metadata.analysis_metadata.version == "3.0.0"

    assert b.role == ComponentRole.COMPONENT
    assert b.confidence == 0.9
    assert b.metadata.semantic_hints == ["first"]

    assert outcome.names == {"a": "Save"}
    (rel,) = outcome.relationships
    assert (rel.source, rel.target, rel.type, rel.confidence) == ("a", "b", "triggers", 0.8)


def test_apply_enhancements_importance_is_capped():
    outcome = apply_enhancements({"enhancedComponents": [{"id": "a", "importance": 7}]}, [_comp("a")])
    assert outcome.components[0].confidence == 1.0


def test_unanswered_components_keep_one_hint():
    outcome = apply_enhancements({}, [_comp("a")])
    assert outcome.components[0].metadata.semantic_hints == ["first"]
    assert outcome.components[0].role == ComponentRole.COMPONENT


# ── Enhancer ──


def _batch_answer(prompt):
    ids = [c["id"] for c in json.loads(prompt.split("Components:\n", 1)[1].split("\n\nProvide", 1)[0])]
    return json.dumps(
        {
            "enhancedComponents": [{"id": i, "humanName": f"Name {i}", "importance": 0.5} for i in ids],
            "relationships": [],
        }
    )


def test_enhance_covers_every_component():
    comps = [_comp("a", 0, 0), _comp("b", 50, 0), _comp("far", 2000, 2000)]
    completer = ScriptedCompleter(enhance=_batch_answer)
    enhancer = SemanticEnhancer(EnhancementOptions(enable_relationship_detection=False), completer)

    result = asyncio.run(enhancer.enhance(comps))

    assert [c.id for c in result.enhanced_components] == ["a", "b", "far"]
    assert result.human_readable_names == {"a": "Name a", "b": "Name b", "far": "Name far"}
    assert result.enhanced_batches == 2
    assert [task for task, _, _ in completer.calls] == ["enhance", "enhance"]
    assert completer.calls[0][2] == 600


def test_failed_batch_keeps_originals():
    comps = [_comp("a"), _comp("b", 50, 0)]
    enhancer = SemanticEnhancer(
        EnhancementOptions(enable_relationship_detection=False),
        ScriptedCompleter(enhance=RuntimeError("rate limited")),
    )
    result = asyncio.run(enhancer.enhance(comps))

    assert result.enhanced_components == comps
    assert result.enhanced_batches == 0
    assert result.human_readable_names == {}


def test_slow_batch_times_out():
    async def slow(prompt, task, max_tokens):
        await asyncio.sleep(1)
        return "{}"

    enhancer = SemanticEnhancer(EnhancementOptions(timeout_s=0.01, enable_relationship_detection=False), slow)
    result = asyncio.run(enhancer.enhance([_comp("a")]))
    assert result.enhanced_batches == 0
    assert [c.id for c in result.enhanced_components] == ["a"]


def test_global_relationships_are_capped_and_default_confidence():
    many = [{"source": "a", "target": "b", "type": "above"} for _ in range(8)]
    completer = ScriptedCompleter(
        enhance='{"enhancedComponents": []}',
        relationships=json.dumps({"relationships": many}),
    )
    enhancer = SemanticEnhancer(EnhancementOptions(), completer)
    result = asyncio.run(enhancer.enhance([_comp("a"), _comp("b", 50, 0)]))

    assert len(result.relationships) == 5
    assert all(r.confidence == 0.7 and r.type == "above" for r in result.relationships)
    assert completer.calls[-1][0] == "relationships"
    assert "max 5" in completer.calls[-1][1]


def test_global_relationship_failure_is_not_fatal():
    completer = ScriptedCompleter(enhance=_batch_answer, relationships="not json")
    result = asyncio.run(SemanticEnhancer(EnhancementOptions(), completer).enhance([_comp("a"), _comp("b", 50, 0)]))
    assert result.relationships == []
    assert result.enhanced_batches == 1


def test_single_component_skips_global_pass():
    completer = ScriptedCompleter(enhance=_batch_answer)
    asyncio.run(SemanticEnhancer(EnhancementOptions(), completer).enhance([_comp("a")]))
    assert [task for task, _, _ in completer.calls] == ["enhance"]


def test_fast_options_follow_settings():
    options = EnhancementOptions.fast()
    assert not options.enable_relationship_detection
    assert options.max_components_per_batch == settings.enhancement_batch_size
    assert options.timeout_s == settings.enhancement_timeout_s


# ── Prompts, routing and client ──


def test_prompt_templates_format_cleanly():
    prompt = get_prompt_template("enhance").format(components="[]")
    assert '"enhancedComponents"' in prompt
    rel = get_prompt_template("relationships").format(components="[]", max_relationships=5)
    assert "(max 5)" in rel
    assert set(get_all_templates()) == {"enhance", "relationships"}
    assert "JSON" in get_system_prompt("enhance")


def test_model_routing():
    assert get_model_for_task("enhance") == settings.model_cheap
    assert get_model_for_task("relationships") == settings.model_mid
    assert get_model_for_task("anything-else") == settings.model_cheap


def test_complete_requires_an_api_key(monkeypatch):
    monkeypatch.setattr(settings, "anthropic_api_key", "")
    assert not client.llm_configured()
    with pytest.raises(client.LLMNotConfiguredError):
        asyncio.run(client.complete("hello"))


def test_llm_configured_reads_settings(monkeypatch):
    monkeypatch.setattr(settings, "anthropic_api_key", "sk-test")
    assert client.llm_configured()
