"""Tests for Layer 0 transforms."""

import math

import pytest
from pydantic import ValidationError

from sketchgraph.engine.context import BoundingBox, ElementStyle
from sketchgraph.engine.layer0.t0_01_normalization import normalize_element, normalize_elements
from sketchgraph.engine.registry import Layer, get_registry
from sketchgraph.models.elements import RawShape, ShapeKind
from sketchgraph.utils.geometry import rotated_bounds


def test_layer0_registers_normalization():
    ids = {s.id for s in get_registry().get_layer(Layer.NORMALIZATION)}
    assert ids == {"T0.01"}


def test_unrotated_box_is_unchanged(shape):
    el = normalize_element(RawShape.model_validate(shape("a", x=10, y=20, width=100, height=50)), 0)
    assert el.bbox == BoundingBox(10.0, 20.0, 100.0, 50.0)


def test_quarter_turn_swaps_extents(shape):
    raw = RawShape.model_validate(shape("a", width=100, height=50, angle=math.pi / 2))
    el = normalize_element(raw, 0)
    assert el.bbox == BoundingBox(-50.0, 0.0, 50.0, 100.0)
    assert el.angle == pytest.approx(math.pi / 2)


@pytest.mark.parametrize("angle", [0.3, 1.0, 2.5, 4.0, 5.5])
def test_rotated_bounds_never_shrink(angle):
    _, _, w, h = rotated_bounds(10.0, 20.0, 120.0, 40.0, angle)
    assert w * h >= 120.0 * 40.0 - 1e-6


@pytest.mark.parametrize(
    "angle, extents",
    [(0.0, (120.0, 40.0)), (math.pi / 2, (40.0, 120.0)), (math.pi, (120.0, 40.0)), (3 * math.pi / 2, (40.0, 120.0))],
)
def test_quarter_turns_keep_the_area(angle, extents):
    _, _, w, h = rotated_bounds(10.0, 20.0, 120.0, 40.0, angle)
    assert (w, h) == pytest.approx(extents)
    assert w * h == pytest.approx(120.0 * 40.0)


def test_negative_extents_are_folded(shape):
    el = normalize_element(RawShape.model_validate(shape("a", x=100, y=100, width=-40, height=-20)), 0)
    assert el.bbox == BoundingBox(60.0, 80.0, 40.0, 20.0)


def test_missing_style_gets_defaults(shape):
    el = normalize_element(RawShape.model_validate(shape("a")), 3)
    assert el.style == ElementStyle()
    assert el.z_index == 3


def test_style_and_roundness_are_read(shape):
    raw = RawShape.model_validate(
        shape("a", strokeColor="#ff0000", fontSize=24, roundness={"type": 3}, groupIds=["g1", "outer"])
    )
    el = normalize_element(raw, 0)
    assert el.style.stroke_color == "#ff0000"
    assert el.style.font_size == 24
    assert el.style.roundness == 1.0
    assert el.group_id == "g1"


def test_unknown_kind_falls_into_other(shape):
    raw = RawShape.model_validate(shape("a", type="freedraw"))
    assert raw.kind == ShapeKind.OTHER


def test_non_finite_geometry_is_rejected(shape):
    with pytest.raises(ValidationError):
        RawShape.model_validate(shape("a", x=float("nan")))


def test_buckets_keep_z_order(flowchart):
    groups = normalize_elements([RawShape.model_validate(el) for el in flowchart])

    assert [el.id for el in groups.rectangles] == ["start", "step", "note"]
    assert [el.id for el in groups.diamonds] == ["check"]
    assert [el.id for el in groups.arrows] == ["arrow-1", "arrow-2"]
    assert [el.z_index for el in groups.rectangles] == [0, 4, 5]
    assert len(groups) == 6
    assert {el.id for el in groups.shapes} == {"start", "step", "note", "check"}
