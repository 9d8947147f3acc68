"""
Global pytest fixtures for xglint unit tests.
Provide small hand-built grids and an exchange-grid helper.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from xglint.grid import Cell, Coordinates, Grid, GridType, Parameterization, Vertex

STERE = "+proj=stere +lon_0=-39 +lat_0=90 +lat_ts=71.0 +ellps=WGS84"


def make_exgrid(overlaps: list[tuple[int, int, float]]) -> Grid:
    """EXCHANGE grid with one (dummy square) cell per ``(i1, i2, area)``."""
    ex = Grid(name="exchange", type=GridType.EXCHANGE, coordinates="XY", sproj=STERE)
    for n, (i1, i2, area) in enumerate(overlaps):
        s = math.sqrt(area)
        ex.add_cell_xy(
            [(n, 0.0), (n + s, 0.0), (n + s, s), (n, s)], i=i1, j=i2, area=area
        )
    return ex


def assert_grids_equal(a: Grid, b: Grid) -> None:
    assert a.name == b.name
    assert a.type is b.type
    assert a.coordinates is b.coordinates
    assert a.parameterization is b.parameterization
    assert a.sproj == b.sproj
    assert a.ncells_full() == b.ncells_full()
    assert a.nvertices_full() == b.nvertices_full()

    va, vb = a.vertices_sorted(), b.vertices_sorted()
    assert [v.index for v in va] == [v.index for v in vb]
    assert [v.xy for v in va] == [v.xy for v in vb]

    ca, cb = a.cells_sorted(), b.cells_sorted()
    assert [c.index for c in ca] == [c.index for c in cb]
    assert [c.ijk for c in ca] == [c.ijk for c in cb]
    assert [c.vertices for c in ca] == [c.vertices for c in cb]
    assert np.allclose(
        [c.area for c in ca], [c.area for c in cb], equal_nan=True
    )


@pytest.fixture
def square_grid() -> Grid:
    """One unit square cell, counter-clockwise."""
    grid = Grid(name="square", type=GridType.XY, coordinates=Coordinates.XY, sproj=STERE)
    grid.add_cell_xy([(0, 0), (1, 0), (1, 1), (0, 1)])
    grid.compute_native_areas()
    return grid


@pytest.fixture
def strip_grid() -> Grid:
    """Two unit squares sharing the edge x = 1."""
    grid = Grid(name="strip", type=GridType.XY, coordinates="XY", sproj=STERE)
    for xy in [(0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1)]:
        grid.add_vertex(Vertex(*xy))
    grid.add_cell(Cell([0, 1, 4, 3], i=0, j=0, area=2.0))
    grid.add_cell(Cell([1, 2, 5, 4], i=1, j=0, area=3.0))
    return grid


@pytest.fixture
def l1_triangle_grid() -> Grid:
    """Vertex-centred ice grid made of one triangle."""
    grid = Grid(
        name="tri",
        type=GridType.GENERIC,
        coordinates=Coordinates.XY,
        parameterization=Parameterization.L1,
        sproj=STERE,
    )
    grid.add_cell_xy([(0, 0), (3, 0), (0, 2)])
    grid.compute_native_areas()
    return grid


@pytest.fixture
def exgrid_factory():
    return make_exgrid


@pytest.fixture
def grids_equal():
    return assert_grids_equal
