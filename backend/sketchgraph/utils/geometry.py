"""Leaf-node geometry helpers. No engine imports.

Boxes are plain ``(x, y, width, height)`` tuples with a top-left origin.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from shapely.geometry import box as shapely_box

Box = tuple[float, float, float, float]

_SNAP_EPS = 1e-12


def rotation_matrix(angle: float) -> NDArray[np.float64]:
    """2x2 rotation matrix, with float noise snapped so quarter turns are exact."""
    c, s = np.cos(angle), np.sin(angle)
    m = np.array([[c, -s], [s, c]], dtype=np.float64)
    m[np.abs(m) < _SNAP_EPS] = 0.0
    return m


def rotated_bounds(x: float, y: float, width: float, height: float, angle: float) -> Box:
    """Axis-aligned box of a rectangle rotated about its top-left corner.

    Negative extents are folded, so the result always has width, height >= 0.
    """
    corners = np.array(
        [[0.0, 0.0], [width, 0.0], [width, height], [0.0, height]],
        dtype=np.float64,
    )
    if angle:
        corners = corners @ rotation_matrix(angle).T
    xmin, ymin = corners.min(axis=0)
    xmax, ymax = corners.max(axis=0)
    return (float(x + xmin), float(y + ymin), float(xmax - xmin), float(ymax - ymin))


def overlap_area(a: Box, b: Box) -> float:
    """Intersection area of two boxes."""
    pa = shapely_box(a[0], a[1], a[0] + a[2], a[1] + a[3])
    pb = shapely_box(b[0], b[1], b[0] + b[2], b[1] + b[3])
    return float(pa.intersection(pb).area)


def horizontal_overlap(a: Box, b: Box) -> float:
    """Length of the shared x-interval of two boxes (0 when disjoint)."""
    left = max(a[0], b[0])
    right = min(a[0] + a[2], b[0] + b[2])
    return max(0.0, right - left)


def attachment_points(b: Box) -> dict[str, tuple[float, float]]:
    """Centre, edge midpoints and corners of a box."""
    x, y, w, h = b
    return {
        "center": (x + w / 2, y + h / 2),
        "top": (x + w / 2, y),
        "bottom": (x + w / 2, y + h),
        "left": (x, y + h / 2),
        "right": (x + w, y + h / 2),
        "top-left": (x, y),
        "top-right": (x + w, y),
        "bottom-left": (x, y + h),
        "bottom-right": (x + w, y + h),
    }


def pairwise_deltas(centers: NDArray[np.float64]) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """(dx, dy, distance) matrices where ``dx[i, j] = x_j - x_i``."""
    if len(centers) == 0:
        empty = np.zeros((0, 0), dtype=np.float64)
        return empty, empty, empty
    dx = centers[None, :, 0] - centers[:, None, 0]
    dy = centers[None, :, 1] - centers[:, None, 1]
    return dx, dy, np.hypot(dx, dy)
