from __future__ import annotations

"""Projection helpers for *xglint.grid*.

Exposes :class:`Proj2`, a one-directional transform between geographic
longitude/latitude (degrees) and the planar coordinates of a PROJ
projection string such as ``"+proj=stere +lon_0=-39 +lat_0=90 +lat_ts=71
+ellps=WGS84"``.
"""

from enum import Enum
from functools import lru_cache
from typing import Tuple

import numpy as np
from numpy.typing import ArrayLike
from pyproj import CRS, Transformer

__all__ = ["Proj2"]


@lru_cache(maxsize=None)
def _get_transformer(sproj: str, ll2xy: bool) -> Transformer:
    if not sproj or not sproj.strip():
        raise ValueError("Projection string must not be empty")
    proj = CRS.from_user_input(sproj)
    # lon/lat on the projection's own datum
    ll = proj.geodetic_crs
    if ll is None:
        raise ValueError(f"Projection {sproj!r} has no geodetic CRS")
    if ll2xy:
        return Transformer.from_crs(ll, proj, always_xy=True)
    return Transformer.from_crs(proj, ll, always_xy=True)


class Proj2:
    """Transform between lon/lat and projected XY in one fixed direction."""

    class Direction(str, Enum):
        LL2XY = "LL2XY"
        XY2LL = "XY2LL"

    def __init__(self, sproj: str, direction: "Proj2.Direction | str") -> None:
        self.sproj = sproj
        self.direction = Proj2.Direction(direction)
        self._transformer = _get_transformer(
            sproj, self.direction is Proj2.Direction.LL2XY
        )

    def transform(self, x: ArrayLike, y: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
        xo, yo = self._transformer.transform(x, y)
        return np.asarray(xo), np.asarray(yo)

    __call__ = transform

    def __repr__(self) -> str:
        return f"Proj2({self.sproj!r}, {self.direction.value})"
