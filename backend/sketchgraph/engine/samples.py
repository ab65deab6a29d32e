"""A small login-form scene used for demos and token-reduction checks."""

from __future__ import annotations

from typing import Any

from sketchgraph.models.elements import RawShape


def _shape(id: str, type: str, x: float, y: float, width: float, height: float, **style: Any) -> dict[str, Any]:
    return {
        "id": id,
        "type": type,
        "x": x,
        "y": y,
        "width": width,
        "height": height,
        "strokeColor": "#000000",
        "backgroundColor": "transparent",
        "strokeWidth": 1,
        "opacity": 1,
        "angle": 0,
        "text": "",
        **style,
    }


SAMPLE_ELEMENTS: tuple[dict[str, Any], ...] = (
    _shape("element-1", "rectangle", 100, 100, 200, 50, backgroundColor="#ffffff", strokeWidth=2, text="Submit Button"),
    _shape("element-2", "rectangle", 100, 50, 200, 30, strokeColor="#666666"),
    _shape("element-3", "text", 110, 60, 180, 20, text="Email Address"),
    _shape("element-4", "rectangle", 50, 20, 300, 200, strokeColor="#cccccc", backgroundColor="#f9f9f9"),
    _shape("element-5", "text", 60, 30, 280, 25, strokeColor="#333333", text="Login Form"),
)


def sample_elements() -> tuple[RawShape, ...]:
    return tuple(RawShape.model_validate(el) for el in SAMPLE_ELEMENTS)
