"""
Read and write :class:`~xglint.grid.Grid` objects as netCDF.

One grid occupies a set of variables sharing a caller-chosen prefix
``<vname>`` (usually ``"grid"``):

============================== ===================== ==========================
variable                       shape                 content
============================== ===================== ==========================
``<vname>.info``               (one,)                metadata in attributes
``<vname>.vertices.index``     (nvertices,)          vertex index
``<vname>.vertices.xy``        (nvertices, two)      vertex coordinates
``<vname>.cells.index``        (ncells,)             cell index
``<vname>.cells.ijk``          (ncells, three)       native (i, j, k) address
``<vname>.cells.area``         (ncells,)             native-coordinate area
``<vname>.cells.vertex_refs``  (nrefs,)              vertex indices, cell order
``<vname>.cells.vertex_refs_start`` (ncells + 1,)    offsets into vertex_refs
============================== ===================== ==========================

Cell ``k`` uses ``vertex_refs[vertex_refs_start[k]:vertex_refs_start[k+1]]``.

Writing is two-phase, as netCDF wants every dimension and variable defined
before data is stored: :func:`netcdf_define` creates the schema and returns a
writer closure which stores the values when called.
"""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol

import netCDF4 as nc
import numpy as np
import xarray as xr

from ..errors import SchemaError
from ..grid.entities import Cell, Vertex
from ..grid.enums import Coordinates, GridType, Parameterization
from ..grid.grid_obj import Grid

logger = logging.getLogger(__name__)

__all__ = [
    "FORMAT_VERSION",
    "netcdf_define",
    "netcdf_write",
    "read_from_netcdf",
    "write_grid_nc",
    "write_grids_nc",
    "read_grid_nc",
    "grid_to_dataset",
    "grid_from_dataset",
]

FORMAT_VERSION = 1

# Self-documenting schema: attribute / variable -> comment
_COMMENTS = {
    "type": "The overall type of grid (GENERIC, XY, LONLAT or EXCHANGE). "
    "Controls which native address fields of the cells are meaningful.",
    "coordinates": "The coordinate system used to represent grid vertices. "
    "May be either XY or LONLAT (longitude comes before latitude). Note that "
    "this is different from info:type; a GENERIC grid, for example, could be "
    "expressed in either XY or LONLAT coordinates.",
    "parameterization": "Indicates how values are interpolated between grid "
    "points. Most finite difference models will use L0 (one value per cell), "
    "while finite element models would use L1 (one value per vertex).",
    "projection": "If info:coordinates = XY, the PROJ string used to convert "
    "local XY coordinates to LONLAT coordinates on the surface of the earth.",
    "cells.num_full": "The total theoretical number of grid cells (polygons) "
    "in this grid. Depending on info:parameterization, either cells or "
    "vertices will correspond to the dimensionality of the grid's vector space.",
    "vertices.num_full": "The total theoretical number of vertices (of "
    "polygons) on this grid.",
    "vertices.num_realized": "The number of 'realized' vertices in this grid. "
    "Only the outlines of realized cells are computed and stored; not all "
    "cells need to be realized. For example, a GCM grid prepared for use with "
    "ice models only needs the cells close to the relevant ice sheets.",
    "vertices.index": "For grids that index on vertices (eg, L1): the index "
    "used to identify each realized vertex in vectors representing fields on "
    "the grid.",
    "vertices.xy": "x/y (or lon/lat) coordinates of each realized vertex, "
    "in the coordinate system given by info:coordinates.",
    "cells.index": "For grids that index on cells (eg, L0): the index used to "
    "identify each realized cell in vectors representing fields on the grid.",
    "cells.ijk": "OPTIONAL: Up to 3 dimensions can be used to assign a "
    "'real-world' index to each grid cell. If info:type = EXCHANGE, then i "
    "and j are the indices of the two overlapping source cells.",
    "cells.area": "Area of each cell in its native coordinate system.",
    "cells.vertex_refs": "Vertex indices of every cell's polygon, "
    "concatenated in cell order.",
    "cells.vertex_refs_start": "Start of each cell's slice of "
    "cells.vertex_refs; the final entry is the total number of references.",
}


def _wrap(text: str) -> str:
    return "\n".join(textwrap.wrap(text, width=72))


def _get_or_add_dim(ds: nc.Dataset, name: str, size: int) -> Any:
    if name in ds.dimensions:
        return ds.dimensions[name]
    return ds.createDimension(name, size)


def _info_attrs(grid: Grid, vname: str) -> dict[str, Any]:
    """Attributes of ``<vname>.info``, each followed by its comment."""
    attrs: dict[str, Any] = {"version": np.int32(FORMAT_VERSION)}
    if grid.name:  # omitted when empty
        attrs["name"] = grid.name

    def put(key: str, value: Any) -> None:
        attrs[key] = value
        attrs[f"{key}.comment"] = _wrap(_COMMENTS[key])

    put("type", grid.type.value)
    put("coordinates", grid.coordinates.value)
    put("parameterization", grid.parameterization.value)
    if grid.coordinates is Coordinates.XY:
        put("projection", grid.sproj)
    put("cells.num_full", np.int32(grid.ncells_full()))
    put("vertices.num_full", np.int32(grid.nvertices_full()))
    attrs[f"{vname}.vertices.num_realized.comment"] = _wrap(
        _COMMENTS["vertices.num_realized"]
    )
    return attrs


def _grid_arrays(grid: Grid) -> dict[str, np.ndarray]:
    """Flatten *grid* into the arrays stored on disk (sorted by index)."""
    vertices = grid.vertices_sorted()
    cells = grid.cells_sorted()

    nrefs = sum(len(c) for c in cells)
    refs = np.empty(nrefs, dtype="i4")
    start = np.empty(len(cells) + 1, dtype="i4")
    ivref = 0
    for i, cell in enumerate(cells):
        start[i] = ivref
        refs[ivref : ivref + len(cell)] = cell.vertices
        ivref += len(cell)
    # sentinel for polygon index bounds
    start[len(cells)] = ivref

    return {
        "vertices.index": np.array([v.index for v in vertices], dtype="i4"),
        "vertices.xy": np.array([(v.x, v.y) for v in vertices], dtype="f8").reshape(
            -1, 2
        ),
        "cells.index": np.array([c.index for c in cells], dtype="i4"),
        "cells.ijk": np.array([c.ijk for c in cells], dtype="i4").reshape(-1, 3),
        "cells.area": np.array([c.area for c in cells], dtype="f8"),
        "cells.vertex_refs": refs,
        "cells.vertex_refs_start": start,
    }


# -----------------------------------------------------------------------------
# netCDF4: define / write
# -----------------------------------------------------------------------------


def netcdf_define(ds: nc.Dataset, grid: Grid, vname: str) -> Callable[[], None]:
    """Define dimensions and variables for *grid* in *ds*.

    Returns a closure that writes the data; call it exactly once, after every
    object sharing the file has been defined.
    """
    grid.validate()
    logger.debug(f"netcdf_define({vname}): {grid!r}")

    nrefs = sum(len(c) for c in grid.cells.values())
    # zero-length dims are unlimited; classic files allow only one of those
    if ds.data_model != "NETCDF4" and 0 in (
        grid.nvertices_realized(),
        grid.ncells_realized(),
        nrefs,
    ):
        raise ValueError(
            f"Grid {vname!r} has empty vertex or cell tables, which the "
            f"{ds.data_model} format cannot store; use format='NETCDF4'"
        )

    _get_or_add_dim(ds, "one", 1)
    info = ds.createVariable(f"{vname}.info", "i4", ("one",))
    for key, value in _info_attrs(grid, vname).items():
        info.setncattr(key, value)

    nvert = f"{vname}.vertices.num_realized"
    ncell = f"{vname}.cells.num_realized"
    ncell1 = f"{vname}.cells.num_realized_plus1"
    nvref = f"{vname}.cells.num_vertex_refs"
    ds.createDimension(nvert, grid.nvertices_realized())
    ds.createDimension(ncell, grid.ncells_realized())
    ds.createDimension(ncell1, grid.ncells_realized() + 1)
    ds.createDimension(nvref, nrefs)
    _get_or_add_dim(ds, "two", 2)
    _get_or_add_dim(ds, "three", 3)

    layout = {
        "vertices.index": ("i4", (nvert,)),
        "vertices.xy": ("f8", (nvert, "two")),
        "cells.index": ("i4", (ncell,)),
        "cells.ijk": ("i4", (ncell, "three")),
        "cells.area": ("f8", (ncell,)),
        "cells.vertex_refs": ("i4", (nvref,)),
        "cells.vertex_refs_start": ("i4", (ncell1,)),
    }
    for key, (dtype, dims) in layout.items():
        var = ds.createVariable(f"{vname}.{key}", dtype, dims)
        var.setncattr("comment", _wrap(_COMMENTS[key]))

    done = False

    def write() -> None:
        nonlocal done
        if done:
            raise RuntimeError(f"Grid {vname!r} has already been written")
        done = True
        netcdf_write(ds, grid, vname)

    return write


def netcdf_write(ds: nc.Dataset, grid: Grid, vname: str) -> None:
    """Store the values of *grid* into variables made by :func:`netcdf_define`."""
    logger.debug(f"netcdf_write({vname})")
    for key, arr in _grid_arrays(grid).items():
        if arr.size == 0:  # zero-length dims are unlimited in netCDF4
            continue
        ds.variables[f"{vname}.{key}"][:] = arr


def write_grids_nc(
    path: str | Path,
    grids: Mapping[str, Grid],
    *,
    format: str = "NETCDF4",
) -> Path:
    """Write several grids (keyed by vname) into one new netCDF file.

    Every grid is defined before any data is written. The file is closed on
    every exit path.
    """
    path = Path(path)
    with nc.Dataset(path, "w", format=format) as ds:
        logger.info(f"Defining netCDF file {path}")
        writers = [netcdf_define(ds, grid, vname) for vname, grid in grids.items()]

        logger.info(f"Writing to netCDF file: {path}")
        for write in writers:
            write()
    return path


def write_grid_nc(
    grid: Grid,
    path: str | Path,
    vname: str = "grid",
    *,
    format: str = "NETCDF4",
) -> Path:
    """Write *grid* to a new netCDF file under the prefix *vname*."""
    return write_grids_nc(path, {vname: grid}, format=format)


# -----------------------------------------------------------------------------
# Decoding (shared by netCDF4 and xarray sources)
# -----------------------------------------------------------------------------


class _Source(Protocol):
    def array(self, name: str) -> np.ndarray: ...
    def attrs(self, name: str) -> Mapping[str, Any]: ...


class _NcSource:
    def __init__(self, ds: nc.Dataset) -> None:
        self.ds = ds

    def _var(self, name: str) -> Any:
        if name not in self.ds.variables:
            raise SchemaError(f"Variable {name!r} not found in netCDF file")
        return self.ds.variables[name]

    def array(self, name: str) -> np.ndarray:
        var = self._var(name)
        if var.size == 0:
            return np.empty(var.shape, dtype=var.dtype)
        return np.ma.getdata(var[:])

    def attrs(self, name: str) -> Mapping[str, Any]:
        var = self._var(name)
        return {key: var.getncattr(key) for key in var.ncattrs()}


class _XarraySource:
    def __init__(self, ds: xr.Dataset) -> None:
        self.ds = ds

    def _var(self, name: str) -> xr.DataArray:
        if name not in self.ds.variables:
            raise SchemaError(f"Variable {name!r} not found in dataset")
        return self.ds[name]

    def array(self, name: str) -> np.ndarray:
        return np.asarray(self._var(name).values)

    def attrs(self, name: str) -> Mapping[str, Any]:
        return self._var(name).attrs


def _attr(attrs: Mapping[str, Any], vname: str, key: str) -> Any:
    try:
        value = attrs[key]
    except KeyError:
        raise SchemaError(f"Attribute {vname}.info:{key} not found") from None
    # netCDF may hand back one-element arrays
    if isinstance(value, np.ndarray):
        value = value.item() if value.size == 1 else value.tolist()
    return value


def _shaped(src: _Source, name: str, ncols: int | None, dtype: str) -> np.ndarray:
    arr = np.asarray(src.array(name))
    if ncols is None:
        if arr.ndim != 1:
            raise SchemaError(f"{name}: expected 1-D array, got shape {arr.shape}")
    else:
        if arr.size == 0:
            arr = arr.reshape(0, ncols)
        if arr.ndim != 2 or arr.shape[1] != ncols:
            raise SchemaError(
                f"{name}: expected shape (n, {ncols}), got shape {arr.shape}"
            )
    return arr.astype(dtype)


def _decode(src: _Source, vname: str) -> Grid:
    # ---------- Read the Basic Info
    info = src.attrs(f"{vname}.info")
    version = int(_attr(info, vname, "version"))
    if version > FORMAT_VERSION:
        raise SchemaError(
            f"{vname}.info:version = {version} is newer than supported ({FORMAT_VERSION})"
        )
    try:
        gtype = GridType.parse(_attr(info, vname, "type"))
        coords = Coordinates.parse(_attr(info, vname, "coordinates"))
        param = Parameterization.parse(_attr(info, vname, "parameterization"))
        ncells_full = int(_attr(info, vname, "cells.num_full"))
        nvertices_full = int(_attr(info, vname, "vertices.num_full"))
    except ValueError as exc:
        raise SchemaError(f"{vname}.info: {exc}") from exc

    sproj = str(_attr(info, vname, "projection")) if coords is Coordinates.XY else ""
    grid = Grid(
        name=str(info.get("name", "")),
        type=gtype,
        coordinates=coords,
        parameterization=param,
        sproj=sproj,
    )

    # ---------- Read the Vertices
    v_index = _shaped(src, f"{vname}.vertices.index", None, "i8")
    v_xy = _shaped(src, f"{vname}.vertices.xy", 2, "f8")
    if v_xy.shape[0] != v_index.size:
        raise SchemaError(
            f"{vname}: {v_index.size} vertex indices but {v_xy.shape[0]} coordinates"
        )
    try:
        for index, (x, y) in zip(v_index.tolist(), v_xy.tolist()):
            grid.add_vertex(Vertex(x, y, index))
    except ValueError as exc:
        raise SchemaError(f"{vname}.vertices.index: {exc}") from exc

    # ---------- Read the Cells
    c_index = _shaped(src, f"{vname}.cells.index", None, "i8")
    c_ijk = _shaped(src, f"{vname}.cells.ijk", 3, "i8")
    c_area = _shaped(src, f"{vname}.cells.area", None, "f8")
    refs = _shaped(src, f"{vname}.cells.vertex_refs", None, "i8")
    start = _shaped(src, f"{vname}.cells.vertex_refs_start", None, "i8")

    ncells = c_index.size
    if c_ijk.shape[0] != ncells or c_area.size != ncells:
        raise SchemaError(f"{vname}: cell tables have inconsistent lengths")
    if (
        start.size != ncells + 1
        or start[0] != 0
        or start[-1] != refs.size
        or np.any(np.diff(start) < 0)
    ):
        raise SchemaError(f"{vname}.cells.vertex_refs_start is malformed")

    # add_cell raises DanglingReferenceError for refs missing from the vertex table
    try:
        for k in range(ncells):
            cell_refs = refs[start[k] : start[k + 1]].tolist()
            i, j, kk = c_ijk[k].tolist()
            grid.add_cell(
                Cell(
                    cell_refs,
                    index=int(c_index[k]),
                    i=i,
                    j=j,
                    k=kk,
                    area=float(c_area[k]),
                )
            )
        grid.set_ncells_full(ncells_full)
        grid.set_nvertices_full(nvertices_full)
    except ValueError as exc:
        raise SchemaError(f"{vname}: {exc}") from exc
    return grid


def read_from_netcdf(ds: nc.Dataset, vname: str) -> Grid:
    """Decode the grid stored under *vname* in an open netCDF dataset."""
    return _decode(_NcSource(ds), vname)


def read_grid_nc(path: str | Path, vname: str = "grid") -> Grid:
    """Read the grid stored under *vname* in the netCDF file *path*."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(path)
    logger.info(f"Reading grid {vname!r} from {path}")
    with nc.Dataset(path, "r") as ds:
        return read_from_netcdf(ds, vname)


# -----------------------------------------------------------------------------
# xarray: same layout, in memory
# -----------------------------------------------------------------------------


def grid_to_dataset(grid: Grid, vname: str = "grid") -> xr.Dataset:
    """Return *grid* as an :class:`xarray.Dataset` with the netCDF layout."""
    grid.validate()
    arrays = _grid_arrays(grid)
    nvert = f"{vname}.vertices.num_realized"
    ncell = f"{vname}.cells.num_realized"
    dims = {
        "vertices.index": (nvert,),
        "vertices.xy": (nvert, "two"),
        "cells.index": (ncell,),
        "cells.ijk": (ncell, "three"),
        "cells.area": (ncell,),
        "cells.vertex_refs": (f"{vname}.cells.num_vertex_refs",),
        "cells.vertex_refs_start": (f"{vname}.cells.num_realized_plus1",),
    }
    data_vars: dict[str, Any] = {
        f"{vname}.info": (("one",), np.zeros(1, dtype="i4"), _info_attrs(grid, vname)),
    }
    for key, arr in arrays.items():
        data_vars[f"{vname}.{key}"] = (dims[key], arr, {"comment": _wrap(_COMMENTS[key])})
    return xr.Dataset(data_vars)


def grid_from_dataset(ds: xr.Dataset, vname: str = "grid") -> Grid:
    """Inverse of :func:`grid_to_dataset`."""
    return _decode(_XarraySource(ds), vname)
