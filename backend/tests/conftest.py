"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from sketchgraph.engine.registry import load_transforms
from sketchgraph.engine.samples import SAMPLE_ELEMENTS

load_transforms()


def _shape(id: str, type: str = "rectangle", x: float = 0, y: float = 0, width: float = 100, height: float = 50, **extra: Any) -> dict[str, Any]:
    return {"id": id, "type": type, "x": x, "y": y, "width": width, "height": height, **extra}


# Left to right: step → decision → step, joined by arrows, plus a loose box below
FLOWCHART = [
    _shape("start", "rectangle", 0, 0, 120, 40, roundness={"type": 3}),
    _shape("arrow-1", "arrow", 120, 10, 80, 20),
    _shape("check", "diamond", 200, -30, 100, 100, text="Valid?"),
    _shape("arrow-2", "arrow", 300, 10, 100, 20),
    _shape("step", "rectangle", 400, 0, 120, 40, roundness={"type": 3}),
    _shape("note", "rectangle", 0, 200, 120, 40),
]

# A signup card with a rounded button and a map widget placeholder
SIGNUP_CARD = [
    _shape("card", "rectangle", 0, 0, 400, 300),
    _shape("card-title", "text", 20, 10, 200, 24, text="Create account"),
    _shape("submit", "rectangle", 20, 230, 150, 40, roundness={"type": 3}, text="Sign up"),
    _shape("where", "rectangle", 200, 60, 180, 120, text="[MAP: lat: 48.85, lng: 2.35 zoom: 12]"),
    _shape("hint", "text", 500, 500, 120, 20, text="Terms apply"),
]


@pytest.fixture
def shape():
    """Factory for raw element dicts in the canvas wire format."""
    return _shape


@pytest.fixture
def sample_elements() -> list[dict[str, Any]]:
    return [dict(el) for el in SAMPLE_ELEMENTS]


@pytest.fixture
def flowchart() -> list[dict[str, Any]]:
    return [dict(el) for el in FLOWCHART]


@pytest.fixture
def signup_card() -> list[dict[str, Any]]:
    return [dict(el) for el in SIGNUP_CARD]
