"""Round-trip and validation tests for the netCDF grid codec."""

import netCDF4 as nc
import numpy as np
import pytest

from xglint.errors import DanglingReferenceError, SchemaError
from xglint.grid import Cell, Grid, GridType, Parameterization, Vertex, make_xy_grid
from xglint.io import (
    grid_from_dataset,
    grid_to_dataset,
    read_grid_nc,
    write_grid_nc,
    write_grids_nc,
)
from xglint.io.grid_nc import netcdf_define, read_from_netcdf

STERE = "+proj=stere +lon_0=-39 +lat_0=90 +lat_ts=71.0 +ellps=WGS84"


def _sparse_grid() -> Grid:
    """Cells and vertices with gaps in their indices, inserted out of order."""
    grid = Grid(
        name="sparse",
        type=GridType.GENERIC,
        coordinates="XY",
        parameterization=Parameterization.L1,
        sproj=STERE,
    )
    grid.add_vertex(Vertex(1.0, 1.0, index=7))
    grid.add_vertex(Vertex(0.0, 0.0, index=2))
    grid.add_vertex(Vertex(1.0, 0.0, index=4))
    grid.add_vertex(Vertex(0.0, 1.0, index=9))
    grid.add_cell(Cell([2, 4, 7, 9], index=11, i=3, j=4, k=5))
    grid.add_cell(Cell([2, 4, 7], index=1, i=0, j=0))
    grid.compute_native_areas()
    grid.set_ncells_full(40)
    grid.set_nvertices_full(50)
    return grid


def test_netcdf_round_trip(tmp_path, grids_equal):
    grid = _sparse_grid()
    path = write_grid_nc(grid, tmp_path / "grid.nc")

    back = read_grid_nc(path)

    grids_equal(grid, back)
    assert back.get_cell(11).vertices == [2, 4, 7, 9]
    assert back.get_cell(1).ijk == (0, 0, -1)


def test_round_trip_through_grid_methods(tmp_path, grids_equal):
    grid = make_xy_grid(
        np.arange(4.0), np.arange(3.0), sproj=STERE, name="xy", include=lambda i, j: j == 1
    )
    grid.to_netcdf(tmp_path / "xy.nc", vname="ice")
    grids_equal(grid, Grid.from_netcdf(tmp_path / "xy.nc", vname="ice"))


def test_xarray_round_trip(grids_equal):
    grid = _sparse_grid()
    ds = grid.to_xarray("g")

    assert "g.cells.vertex_refs" in ds
    assert ds["g.info"].attrs["parameterization"] == "L1"
    assert ds["g.info"].attrs["cells.num_full"] == 40
    assert list(ds["g.cells.vertex_refs_start"].values) == [0, 3, 7]

    grids_equal(grid, Grid.from_dataset(ds, "g"))


def test_lonlat_grid_has_no_projection_attribute(tmp_path, grids_equal):
    grid = Grid(name="ll")
    grid.add_cell_xy([(0, 0), (10, 0), (10, 10)])
    grid.compute_native_areas()
    path = write_grid_nc(grid, tmp_path / "ll.nc")

    with nc.Dataset(path) as ds:
        attrs = ds.variables["grid.info"].ncattrs()
    assert "projection" not in attrs
    assert "type.comment" in attrs
    grids_equal(grid, read_grid_nc(path))


def test_empty_name_is_omitted(tmp_path):
    grid = Grid()
    grid.add_cell_xy([(0, 0), (1, 0), (1, 1)])
    ds = grid_to_dataset(grid)
    assert "name" not in ds["grid.info"].attrs
    assert grid_from_dataset(ds).name == ""


def test_empty_grid_round_trip(tmp_path, grids_equal):
    grid = Grid(name="empty", coordinates="XY", sproj=STERE)
    grid.set_ncells_full(5)
    path = write_grid_nc(grid, tmp_path / "empty.nc")
    back = read_grid_nc(path)
    grids_equal(grid, back)
    assert back.ncells_realized() == 0


def test_several_grids_in_one_file(tmp_path, strip_grid, square_grid, grids_equal):
    path = write_grids_nc(
        tmp_path / "two.nc", {"strip": strip_grid, "square": square_grid}
    )
    with nc.Dataset(path) as ds:
        grids_equal(strip_grid, read_from_netcdf(ds, "strip"))
        grids_equal(square_grid, read_from_netcdf(ds, "square"))


def test_writer_runs_once(tmp_path, square_grid):
    with nc.Dataset(tmp_path / "once.nc", "w") as ds:
        write = netcdf_define(ds, square_grid, "grid")
        write()
        with pytest.raises(RuntimeError):
            write()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_grid_nc(tmp_path / "nope.nc")


def test_missing_variable_raises_schema_error(tmp_path, square_grid):
    ds = grid_to_dataset(square_grid).drop_vars("grid.cells.area")
    with pytest.raises(SchemaError, match="cells.area"):
        grid_from_dataset(ds)

    path = write_grid_nc(square_grid, tmp_path / "grid.nc")
    with pytest.raises(SchemaError):
        read_grid_nc(path, vname="other")


def test_missing_attribute_raises_schema_error(square_grid):
    ds = grid_to_dataset(square_grid)
    del ds["grid.info"].attrs["cells.num_full"]
    with pytest.raises(SchemaError, match="cells.num_full"):
        grid_from_dataset(ds)


def test_bad_tag_raises_schema_error(square_grid):
    ds = grid_to_dataset(square_grid)
    ds["grid.info"].attrs["parameterization"] = "L7"
    with pytest.raises(SchemaError):
        grid_from_dataset(ds)


def test_dangling_vertex_reference(square_grid):
    ds = grid_to_dataset(square_grid)
    ds["grid.cells.vertex_refs"].values[2] = 99
    with pytest.raises(DanglingReferenceError) as excinfo:
        grid_from_dataset(ds)
    assert excinfo.value.cell_index == 0
    assert excinfo.value.vertex_index == 99


def test_malformed_vertex_refs_start(strip_grid):
    ds = grid_to_dataset(strip_grid)
    ds["grid.cells.vertex_refs_start"].values[-1] = 3
    with pytest.raises(SchemaError, match="malformed"):
        grid_from_dataset(ds)


def test_filtered_grid_round_trip(tmp_path, grids_equal):
    grid = make_xy_grid(np.arange(5.0), np.arange(4.0), sproj=STERE, name="sub")
    grid.filter_cells(lambda ix: ix in (1, 6, 11))
    path = write_grid_nc(grid, tmp_path / "sub.nc")

    back = read_grid_nc(path)

    grids_equal(grid, back)
    assert sorted(back.cells) == [1, 6, 11]
    assert back.ncells_full() == 12
    assert back.nvertices_full() == 20
    area = back.get_native_areas()
    assert np.isnan(area[0])
    assert np.isclose(area[6], 1.0)


def test_l1_grid_round_trip_keeps_ndata(tmp_path, l1_triangle_grid, grids_equal):
    l1_triangle_grid.set_nvertices_full(10)
    path = write_grid_nc(l1_triangle_grid, tmp_path / "l1.nc")

    back = read_grid_nc(path)

    grids_equal(l1_triangle_grid, back)
    assert back.parameterization is Parameterization.L1
    assert back.ndata() == 10


def test_vertex_count_comment_uses_dimension_name(tmp_path, square_grid):
    path = write_grid_nc(square_grid, tmp_path / "grid.nc", vname="ice")
    with nc.Dataset(path) as ds:
        attrs = ds.variables["ice.info"].ncattrs()
        assert "ice.vertices.num_realized" in ds.dimensions
    assert "ice.vertices.num_realized.comment" in attrs

    ds = grid_to_dataset(square_grid, "g")
    assert "g.vertices.num_realized.comment" in ds["g.info"].attrs
    assert ds["g.vertices.xy"].attrs["comment"]


@pytest.mark.parametrize("fmt", ["NETCDF3_CLASSIC", "NETCDF4_CLASSIC"])
def test_classic_formats(tmp_path, square_grid, grids_equal, fmt):
    path = write_grid_nc(square_grid, tmp_path / "classic.nc", format=fmt)
    grids_equal(square_grid, read_grid_nc(path))

    empty = Grid(coordinates="XY", sproj=STERE)
    with pytest.raises(ValueError, match="empty"):
        write_grid_nc(empty, tmp_path / "empty.nc", format=fmt)


def test_file_with_short_extent_raises_schema_error(strip_grid):
    ds = grid_to_dataset(strip_grid)
    ds["grid.info"].attrs["cells.num_full"] = 1
    with pytest.raises(SchemaError, match="ncells_full"):
        grid_from_dataset(ds)


def test_negative_cell_index_raises_schema_error(strip_grid):
    ds = grid_to_dataset(strip_grid)
    ds["grid.cells.index"].values[0] = -1
    with pytest.raises(SchemaError, match=">= 0"):
        grid_from_dataset(ds)
