"""Tests for the transform registry."""

import pytest

from sketchgraph.engine.context import PipelineContext
from sketchgraph.engine.registry import Layer, TransformRegistry, TransformSpec, get_registry


def _noop(ctx: PipelineContext) -> None:
    pass


def test_register_and_get():
    reg = TransformRegistry()
    spec = TransformSpec(id="T0.01", layer=Layer.NORMALIZATION, fn=_noop)
    reg.register(spec)
    assert reg.get("T0.01") is spec
    assert reg.count == 1


def test_duplicate_id_rejected():
    reg = TransformRegistry()
    reg.register(TransformSpec(id="T0.01", layer=Layer.NORMALIZATION, fn=_noop))
    with pytest.raises(ValueError, match="Duplicate"):
        reg.register(TransformSpec(id="T0.01", layer=Layer.NORMALIZATION, fn=_noop))


def test_get_layer():
    reg = TransformRegistry()
    reg.register(TransformSpec(id="T0.01", layer=Layer.NORMALIZATION, fn=_noop))
    reg.register(TransformSpec(id="T1.01", layer=Layer.STRUCTURE, fn=_noop))
    layer0 = reg.get_layer(Layer.NORMALIZATION)
    assert len(layer0) == 1
    assert layer0[0].id == "T0.01"


def test_resolve_order_with_deps():
    reg = TransformRegistry()
    reg.register(TransformSpec(id="T1.02", layer=Layer.STRUCTURE, fn=_noop, dependencies=["T1.01"]))
    reg.register(TransformSpec(id="T1.01", layer=Layer.STRUCTURE, fn=_noop))
    ids = [s.id for s in reg.resolve_order()]
    assert ids.index("T1.01") < ids.index("T1.02")


def test_resolve_order_does_not_pull_in_gated_dependencies():
    reg = TransformRegistry()
    reg.register(TransformSpec(id="T2.03", layer=Layer.SEMANTICS, fn=_noop))
    reg.register(TransformSpec(id="T3.01", layer=Layer.RELATIONSHIPS, fn=_noop, dependencies=["T2.03"]))
    reg.register(TransformSpec(id="T4.01", layer=Layer.OPTIMIZATION, fn=_noop, dependencies=["T3.01"]))
    ids = [s.id for s in reg.resolve_order({"T2.03", "T4.01"})]
    assert ids == ["T2.03", "T4.01"]


def test_resolve_order_detects_cycles():
    reg = TransformRegistry()
    reg.register(TransformSpec(id="A", layer=Layer.STRUCTURE, fn=_noop, dependencies=["B"]))
    reg.register(TransformSpec(id="B", layer=Layer.STRUCTURE, fn=_noop, dependencies=["A"]))
    with pytest.raises(ValueError, match="Circular"):
        reg.resolve_order()


def test_optional_tag():
    spec = TransformSpec(id="T3.01", layer=Layer.RELATIONSHIPS, fn=_noop, tags={"optional"})
    assert spec.optional
    assert not TransformSpec(id="T0.01", layer=Layer.NORMALIZATION, fn=_noop).optional


def test_default_registry_is_a_dag_over_all_stages():
    reg = get_registry()
    ids = [s.id for s in reg.resolve_order()]
    assert ids == ["T0.01", "T1.01", "T1.02", "T1.03", "T2.01", "T2.02", "T2.03", "T3.01", "T4.01"]
