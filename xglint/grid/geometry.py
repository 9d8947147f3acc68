from __future__ import annotations

"""Planar polygon geometry: signed area and centroid.

The polygon is given as parallel coordinate sequences and is implicitly
closed (the edge from the last vertex back to the first is included).

Winding order is the caller's obligation: counter-clockwise polygons have a
positive area, clockwise ones a negative area. :func:`is_ccw` is provided for
callers that want to check.

See Surveyor's Formula: http://www.maa.org/pubs/Calc_articles/ma063.pdf
"""

from typing import Callable, Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

__all__ = [
    "area_of_polygon",
    "area_of_proj_polygon",
    "polygon_centroid",
    "is_ccw",
    "Transform",
]

# transform(x, y) -> (x', y'); must accept NumPy arrays
Transform = Callable[[ArrayLike, ArrayLike], Tuple[ArrayLike, ArrayLike]]


def _as_xy(
    xs: Sequence[float] | NDArray[np.float64], ys: Sequence[float] | NDArray[np.float64]
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if x.shape != y.shape or x.ndim != 1:
        raise ValueError(
            f"Polygon coordinates must be 1-D and of equal length, got {x.shape} / {y.shape}"
        )
    return x, y


def _cross_terms(
    x: NDArray[np.float64], y: NDArray[np.float64]
) -> NDArray[np.float64]:
    """``x_i*y_{i+1} - x_{i+1}*y_i`` for every edge, wrap-around included."""
    x1 = np.roll(x, -1)
    y1 = np.roll(y, -1)
    return x * y1 - x1 * y


def area_of_polygon(xs, ys) -> float:
    """Signed area of a polygon (surveyor's formula)."""
    x, y = _as_xy(xs, ys)
    if x.size < 3:
        return 0.0
    return float(0.5 * _cross_terms(x, y).sum())


def area_of_proj_polygon(xs, ys, transform: Transform) -> float:
    """Signed area after projecting every vertex through *transform*.

    Each vertex is transformed exactly once (one vectorised call).
    """
    x, y = _as_xy(xs, ys)
    if x.size < 3:
        return 0.0
    px, py = transform(x, y)
    return area_of_polygon(np.asarray(px, dtype=float), np.asarray(py, dtype=float))


def polygon_centroid(xs, ys) -> tuple[float, float]:
    """Centre of gravity of a planar polygon.

    NOTE: does NOT work correctly for lon/lat coordinates; project first.
    http://stackoverflow.com/questions/5271583/center-of-gravity-of-a-polygon
    """
    x, y = _as_xy(xs, ys)
    area = area_of_polygon(x, y)
    if area == 0.0:
        raise ValueError("Centroid undefined for a degenerate (zero-area) polygon")

    cross = _cross_terms(x, y)
    cx = float(((x + np.roll(x, -1)) * cross).sum())
    cy = float(((y + np.roll(y, -1)) * cross).sum())

    fact = 1.0 / (6.0 * area)
    return cx * fact, cy * fact


def is_ccw(xs, ys) -> bool:
    """True if the polygon winds counter-clockwise (positive signed area)."""
    return area_of_polygon(xs, ys) > 0.0
