"""Tests for Layer 3: pairwise relationship analysis."""

import pytest

from sketchgraph.engine.config import ExtractionOptions, PipelineConfig
from sketchgraph.engine.layer3.t3_01_relationships import analyze_relationships, spatial_relation
from sketchgraph.engine.pipeline import run_extraction
from sketchgraph.engine.registry import get_registry
from sketchgraph.models.extraction import (
    ComponentBounds,
    ComponentRole,
    RelationshipType,
    SemanticComponent,
)

R = RelationshipType


def _comp(id, x, y, w=20, h=20, role=ComponentRole.COMPONENT):
    return SemanticComponent(
        id=id,
        element_ids=[id],
        role=role,
        confidence=0.5,
        bounding_box=ComponentBounds(x=x, y=y, width=w, height=h),
    )


def _rels(component):
    return {(r.type, r.target_component_id): r.confidence for r in component.relationships}


def test_relationship_stage_is_optional():
    assert get_registry().get("T3.01").optional


def test_horizontal_neighbours_are_left_and_right():
    a, b = analyze_relationships([_comp("a", 0, 0), _comp("b", 30, 0)])

    assert _rels(a) == {(R.LEFT_OF, "b"): pytest.approx(0.8)}
    assert _rels(b) == {(R.RIGHT_OF, "a"): pytest.approx(0.8)}


def test_vertical_neighbours_are_above_and_below():
    a, b = analyze_relationships([_comp("a", 0, 60), _comp("b", 0, 0)])

    assert _rels(a) == {(R.BELOW, "b"): pytest.approx(0.6)}
    assert _rels(b) == {(R.ABOVE, "a"): pytest.approx(0.6)}


def test_spatial_confidence_has_a_floor_and_a_horizon():
    a, b, c = analyze_relationships([_comp("a", 0, 0), _comp("b", 140, 0), _comp("c", 400, 0)])

    assert _rels(a)[(R.LEFT_OF, "b")] == 0.5
    assert not any(target == "c" for _, target in _rels(a))
    assert c.relationships == []


def test_spatial_relation_ties_go_vertical():
    forward, backward, _ = spatial_relation(10.0, 10.0, 14.1, PipelineConfig())
    assert (forward, backward) == (R.ABOVE, R.BELOW)


def test_containment_is_inclusive_and_recorded_both_ways():
    outer, inner = analyze_relationships([_comp("outer", 0, 0, 100, 100), _comp("inner", 0, 0, 50, 50)])

    assert _rels(outer)[(R.CONTAINS, "inner")] == 0.9
    assert _rels(inner)[(R.CONTAINED_BY, "outer")] == 0.9


def test_label_validates_nearby_input():
    label, field = analyze_relationships(
        [
            _comp("label", 0, 0, role=ComponentRole.LABEL),
            _comp("field", 0, 40, role=ComponentRole.INPUT_FIELD),
        ]
    )
    assert _rels(label)[(R.VALIDATES, "field")] == 0.8
    assert _rels(field)[(R.VALIDATED_BY, "label")] == 0.8


def test_button_triggers_input_one_way():
    button, field = analyze_relationships(
        [
            _comp("button", 0, 0, role=ComponentRole.BUTTON),
            _comp("field", 1000, 0, role=ComponentRole.INPUT_FIELD),
        ]
    )
    assert _rels(button) == {(R.TRIGGERS, "field"): 0.7}
    assert field.relationships == []


def test_input_components_are_not_mutated():
    original = [_comp("a", 0, 0), _comp("b", 30, 0)]
    analyze_relationships(original)
    assert all(c.relationships == [] for c in original)


def test_single_and_empty_inputs():
    assert analyze_relationships([]) == ()
    (only,) = analyze_relationships([_comp("a", 0, 0)])
    assert only.relationships == []


def test_sample_scene_relationship_breakdown(sample_elements):
    result = run_extraction(sample_elements)

    card = next(c for c in result.components if c.id == "element-4")
    contained = {r.target_component_id for r in card.relationships if r.type == R.CONTAINS}
    assert contained == {"element-1", "element-2", "element-3", "element-5"}
    assert result.summary.relationship_breakdown["contains"] >= 4


def test_disabled_analysis_leaves_components_bare(flowchart):
    options = ExtractionOptions(enable_relationship_analysis=False)
    result = run_extraction(flowchart, options=options)
    assert all(c.relationships == [] for c in result.components)
    assert result.summary.relationship_breakdown == {}
