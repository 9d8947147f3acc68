from __future__ import annotations

"""Constructors for regular (structured) grids.

Cells of a grid built from ``nx + 1`` x-boundaries and ``ny + 1``
y-boundaries are numbered ``i + j*nx`` and carry ``(i, j)`` as their native
address; vertices are numbered ``ix + iy*(nx + 1)``. Every polygon winds
counter-clockwise.
"""

import logging
from typing import Callable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .entities import Cell, Vertex
from .enums import Coordinates, GridType, Parameterization
from .grid_obj import Grid

logger = logging.getLogger(__name__)

__all__ = ["xy_boundaries", "make_xy_grid", "make_lonlat_grid"]

CellFilter = Callable[[int, int], bool]


def xy_boundaries(x0: float, x1: float, dx: float) -> NDArray[np.float64]:
    """Cell boundaries from *x0* to *x1* (inclusive) every *dx*."""
    if dx <= 0:
        raise ValueError(f"Spacing must be positive, got {dx}")
    if x1 <= x0:
        raise ValueError(f"Upper bound {x1} must exceed lower bound {x0}")
    n = int(round((x1 - x0) / dx))
    return x0 + dx * np.arange(n + 1, dtype=float)


def _check_boundaries(name: str, b: NDArray[np.float64]) -> None:
    if b.ndim != 1 or b.size < 2:
        raise ValueError(f"{name} boundaries need at least two values")
    if np.any(np.diff(b) <= 0):
        raise ValueError(f"{name} boundaries must be strictly increasing")


def _fill_rectilinear(
    grid: Grid,
    xb: NDArray[np.float64],
    yb: NDArray[np.float64],
    include: CellFilter | None,
) -> Grid:
    nx = xb.size - 1
    ny = yb.size - 1

    # Only realize the vertices that some realized cell needs
    needed: set[int] = set()
    cells: list[Cell] = []
    for j in range(ny):
        for i in range(nx):
            if include is not None and not include(i, j):
                continue
            v00 = i + j * (nx + 1)
            v10 = v00 + 1
            v11 = v10 + (nx + 1)
            v01 = v00 + (nx + 1)
            corners = [v00, v10, v11, v01]
            needed.update(corners)
            cells.append(Cell(corners, index=i + j * nx, i=i, j=j))

    for iy, y in enumerate(yb):
        for ix, x in enumerate(xb):
            vix = ix + iy * (nx + 1)
            if vix in needed:
                grid.add_vertex(Vertex(float(x), float(y), vix))

    for cell in cells:
        grid.add_cell(cell)

    grid.set_ncells_full(nx * ny)
    grid.set_nvertices_full((nx + 1) * (ny + 1))
    grid.compute_native_areas()

    logger.info(
        f"Built {grid.name or 'grid'}: {grid.ncells_realized()} of "
        f"{grid.ncells_full()} cells realized"
    )
    return grid


def make_xy_grid(
    xb: ArrayLike,
    yb: ArrayLike,
    *,
    sproj: str,
    name: str = "",
    parameterization: Parameterization | str = Parameterization.L0,
    include: CellFilter | None = None,
) -> Grid:
    """Planar rectangular grid with cell boundaries *xb* × *yb* (metres).

    *include(i, j)* selects which cells are realized; the full extents are
    still those of the complete grid.
    """
    xb = np.asarray(xb, dtype=float)
    yb = np.asarray(yb, dtype=float)
    _check_boundaries("x", xb)
    _check_boundaries("y", yb)

    grid = Grid(
        name=name,
        type=GridType.XY,
        coordinates=Coordinates.XY,
        parameterization=parameterization,
        sproj=sproj,
    )
    return _fill_rectilinear(grid, xb, yb, include)


def make_lonlat_grid(
    lonb: ArrayLike,
    latb: ArrayLike,
    *,
    name: str = "",
    parameterization: Parameterization | str = Parameterization.L0,
    include: CellFilter | None = None,
) -> Grid:
    """Longitude/latitude grid with cell boundaries *lonb* × *latb* (degrees).

    Stored ``area`` is in square degrees; use :py:meth:`Grid.get_proj_areas`
    for areas on a projection.
    """
    lonb = np.asarray(lonb, dtype=float)
    latb = np.asarray(latb, dtype=float)
    _check_boundaries("lon", lonb)
    _check_boundaries("lat", latb)
    if latb[0] < -90.0 or latb[-1] > 90.0:
        raise ValueError("Latitude boundaries must lie within [-90, 90]")

    grid = Grid(
        name=name,
        type=GridType.LONLAT,
        coordinates=Coordinates.LONLAT,
        parameterization=parameterization,
    )
    return _fill_rectilinear(grid, lonb, latb, include)
