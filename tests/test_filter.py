"""Tests for Grid.filter_cells."""

import numpy as np

from xglint.grid import make_xy_grid

STERE = "+proj=stere +lon_0=-39 +lat_0=90 +lat_ts=71.0 +ellps=WGS84"


def _referenced(grid) -> set[int]:
    return {ix for cell in grid.cells.values() for ix in cell.vertices}


def test_keep_one_cell_of_strip(strip_grid):
    strip_grid.filter_cells(lambda ix: ix == 1)

    assert list(strip_grid.cells) == [1]
    assert set(strip_grid.vertices) == {1, 2, 4, 5}
    assert strip_grid.ncells_full() == 2
    assert strip_grid.nvertices_full() == 6
    assert strip_grid.max_realized_cell_index == 1
    assert strip_grid.max_realized_vertex_index == 5


def test_filter_everything_out(strip_grid):
    strip_grid.filter_cells(lambda ix: False)

    assert strip_grid.ncells_realized() == 0
    assert strip_grid.nvertices_realized() == 0
    assert strip_grid.ncells_full() == 2
    assert strip_grid.nvertices_full() == 6
    assert strip_grid.max_realized_cell_index == -1


def test_full_counts_survive_repeated_filtering(strip_grid):
    strip_grid.filter_cells(lambda ix: ix == 1)
    strip_grid.filter_cells(lambda ix: ix == 0)
    assert strip_grid.ncells_realized() == 0
    assert strip_grid.ncells_full() == 2


def test_filter_keeps_vertex_objects(strip_grid):
    before = strip_grid.get_vertex(2)
    strip_grid.filter_cells(lambda ix: ix == 1)
    assert strip_grid.get_vertex(2) is before
    assert strip_grid.get_cell(1).area == 3.0


def test_random_filter_leaves_no_dangling_or_orphans():
    rng = np.random.default_rng(42)
    xb = np.arange(6.0)
    yb = np.arange(5.0)
    for _ in range(10):
        grid = make_xy_grid(xb, yb, sproj=STERE)
        keep = set(rng.choice(grid.ncells_full(), size=7, replace=False).tolist())

        grid.filter_cells(lambda ix: ix in keep)

        assert set(grid.cells) == keep
        refs = _referenced(grid)
        assert refs <= set(grid.vertices)
        assert set(grid.vertices) == refs
        assert grid.ncells_full() == 20
        assert grid.nvertices_full() == 30


def test_keep_first_cell_of_strip(strip_grid):
    strip_grid.filter_cells(lambda ix: ix == 0)

    assert list(strip_grid.cells) == [0]
    coords = {v.xy for v in strip_grid.vertices.values()}
    assert coords == {(0, 0), (1, 0), (1, 1), (0, 1)}
    assert strip_grid.ncells_full() == 2
