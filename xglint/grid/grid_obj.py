from __future__ import annotations

"""Core mesh (grid) object used throughout xglint.

This module defines :class:`Grid`, the container that owns every
:class:`~xglint.grid.entities.Vertex` and :class:`~xglint.grid.entities.Cell`
of one polygonal mesh.

Key features
------------
* **Native vs. dense indices** – vertices and cells are keyed by their own
  (possibly sparse) index; ``ncells_full`` / ``nvertices_full`` describe the
  theoretical size of the whole domain even when only a subset is realized.
* **Tagged variants** – ``type``, ``coordinates`` and ``parameterization`` are
  closed enums validated on construction and on change, instead of
  subclasses, so (de)serialisation stays uniform.
* **Filtering** – :py:meth:`Grid.filter_cells` reduces the mesh to a
  sub-domain while keeping every remaining vertex reference valid.
* **Persistence** – :py:meth:`Grid.to_netcdf` / :py:meth:`Grid.from_netcdf`
  and :py:meth:`Grid.to_xarray` / :py:meth:`Grid.from_dataset` (see
  :mod:`xglint.io.grid_nc`).
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable

import numpy as np
import pandas as pd
import xarray as xr
from numpy.typing import NDArray

from ..errors import (
    DanglingReferenceError,
    DuplicateIndexError,
    UnsupportedCoordinateModeError,
)
from .entities import Cell, Vertex
from .enums import Coordinates, GridType, Parameterization
from .geo_utils import Proj2
from .geometry import area_of_polygon, area_of_proj_polygon, polygon_centroid

logger = logging.getLogger(__name__)

__all__ = ["Grid"]


# -----------------------------------------------------------------------------
# Main dataclass
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class Grid:
    """Polygonal mesh: vertices, cells and how to interpret them."""

    name: str = ""
    type: GridType = GridType.GENERIC
    coordinates: Coordinates = Coordinates.LONLAT
    parameterization: Parameterization = Parameterization.L0
    sproj: str = ""  # PROJ string; required iff coordinates == XY

    # entity storage (insertion ordered, keyed by index) ------------------
    _vertices: dict[int, Vertex] = field(default_factory=dict, init=False, repr=False)
    _cells: dict[int, Cell] = field(default_factory=dict, init=False, repr=False)

    # bookkeeping ----------------------------------------------------------
    _max_realized_cell_index: int = field(default=-1, init=False, repr=False)
    _max_realized_vertex_index: int = field(default=-1, init=False, repr=False)
    _ncells_full: int = field(default=-1, init=False, repr=False)
    _nvertices_full: int = field(default=-1, init=False, repr=False)

    def __post_init__(self) -> None:
        self.type = GridType.parse(self.type)
        self.coordinates = Coordinates.parse(self.coordinates)
        self.parameterization = Parameterization.parse(self.parameterization)
        self.sproj = self.sproj or ""
        self.validate()

    # ------------------------------------------------------------------
    # Validation of the tagged variant
    # ------------------------------------------------------------------
    def validate(self) -> None:
        """Raise ``ValueError`` if the tags are mutually inconsistent."""
        if self.coordinates is Coordinates.XY and not self.sproj:
            raise ValueError(
                f"Grid {self.name!r}: XY coordinates require a projection string (sproj)"
            )
        if self.coordinates is Coordinates.LONLAT and self.sproj:
            raise ValueError(
                f"Grid {self.name!r}: sproj is only meaningful for XY coordinates"
            )

    def set_coordinates(self, coordinates: Coordinates | str, sproj: str = "") -> None:
        """Change coordinate system and projection together, then validate."""
        old = (self.coordinates, self.sproj)
        self.coordinates = Coordinates.parse(coordinates)
        self.sproj = sproj or ""
        try:
            self.validate()
        except ValueError:
            self.coordinates, self.sproj = old
            raise

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def clear(self) -> None:
        self._vertices.clear()
        self._cells.clear()
        self._max_realized_cell_index = -1
        self._max_realized_vertex_index = -1
        self._ncells_full = -1
        self._nvertices_full = -1

    @staticmethod
    def _check_index(kind: str, ix: int, nfull: int) -> None:
        if ix < 0:
            raise ValueError(f"{kind.capitalize()} index must be >= 0, got {ix}")
        if 0 <= nfull <= ix:
            raise ValueError(
                f"{kind.capitalize()} index {ix} outside the grid's full extent {nfull}"
            )

    def add_vertex(self, vertex: Vertex) -> Vertex:
        """Insert *vertex*; an unset index gets the next free one."""
        # If we never specify our indices, things will "just work"
        if vertex.index is None:
            vertex.index = self._max_realized_vertex_index + 1
        ix = int(vertex.index)
        self._check_index("vertex", ix, self._nvertices_full)
        if ix in self._vertices:
            raise DuplicateIndexError("vertex", ix)
        vertex.index = ix
        self._vertices[ix] = vertex
        self._max_realized_vertex_index = max(self._max_realized_vertex_index, ix)
        return vertex

    def add_cell(self, cell: Cell) -> Cell:
        """Insert *cell*; an unset index gets the next free one."""
        if cell.index is None:
            cell.index = self._max_realized_cell_index + 1
        ix = int(cell.index)
        self._check_index("cell", ix, self._ncells_full)
        if ix in self._cells:
            raise DuplicateIndexError("cell", ix)
        for ref in cell.vertices:
            if ref not in self._vertices:
                raise DanglingReferenceError(ix, ref)
        cell.index = ix
        self._cells[ix] = cell
        self._max_realized_cell_index = max(self._max_realized_cell_index, ix)
        return cell

    def add_cell_xy(
        self, points: Iterable[tuple[float, float]], **kwargs: Any
    ) -> Cell:
        """Add one new vertex per point and a cell through them.

        Keyword arguments are forwarded to :class:`Cell` (``index``, ``i``...).
        """
        refs = [self.add_vertex(Vertex(float(x), float(y))).index for x, y in points]
        return self.add_cell(Cell(refs, **kwargs))  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    @property
    def vertices(self) -> Mapping[int, Vertex]:
        """Read-only view of the vertices, in insertion order."""
        return MappingProxyType(self._vertices)

    @property
    def cells(self) -> Mapping[int, Cell]:
        """Read-only view of the cells, in insertion order."""
        return MappingProxyType(self._cells)

    def get_vertex(self, index: int) -> Vertex:
        return self._vertices[int(index)]

    def get_cell(self, index: int) -> Cell:
        return self._cells[int(index)]

    def vertices_sorted(self) -> list[Vertex]:
        return [self._vertices[ix] for ix in sorted(self._vertices)]

    def cells_sorted(self) -> list[Cell]:
        return [self._cells[ix] for ix in sorted(self._cells)]

    # ------------------------------------------------------------------
    # Quick properties
    # ------------------------------------------------------------------
    @property
    def max_realized_cell_index(self) -> int:
        return self._max_realized_cell_index

    @property
    def max_realized_vertex_index(self) -> int:
        return self._max_realized_vertex_index

    def ncells_realized(self) -> int:
        return len(self._cells)

    def nvertices_realized(self) -> int:
        return len(self._vertices)

    def ncells_full(self) -> int:
        """Theoretical number of cells of the whole (unfiltered) domain."""
        if self._ncells_full >= 0:
            return self._ncells_full
        return self._max_realized_cell_index + 1

    def nvertices_full(self) -> int:
        """Theoretical number of vertices of the whole (unfiltered) domain."""
        if self._nvertices_full >= 0:
            return self._nvertices_full
        return self._max_realized_vertex_index + 1

    def set_ncells_full(self, n: int) -> None:
        if n < 0:
            raise ValueError(f"ncells_full must be >= 0, got {n}")
        if n <= self._max_realized_cell_index:
            raise ValueError(
                f"ncells_full={n} does not cover realized cell "
                f"{self._max_realized_cell_index}"
            )
        self._ncells_full = int(n)

    def set_nvertices_full(self, n: int) -> None:
        if n < 0:
            raise ValueError(f"nvertices_full must be >= 0, got {n}")
        if n <= self._max_realized_vertex_index:
            raise ValueError(
                f"nvertices_full={n} does not cover realized vertex "
                f"{self._max_realized_vertex_index}"
            )
        self._nvertices_full = int(n)

    def ndata(self) -> int:
        """Length of a field vector on this grid."""
        if self.parameterization is Parameterization.L1:
            return self.nvertices_full()
        return self.ncells_full()

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    def cell_xy(self, cell: Cell | int) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return the ``(xs, ys)`` corner coordinates of *cell*."""
        if not isinstance(cell, Cell):
            cell = self.get_cell(cell)
        verts = [self._vertices[ix] for ix in cell.vertices]
        xs = np.fromiter((v.x for v in verts), dtype=float, count=len(verts))
        ys = np.fromiter((v.y for v in verts), dtype=float, count=len(verts))
        return xs, ys

    def centroid(self, index: int) -> tuple[float, float]:
        """Location of data point *index* (cell centre for L0, vertex for L1).

        For L0 the polygon centroid is computed in native coordinates, which
        is NOT correct for lon/lat grids; project first.
        """
        if self.parameterization is Parameterization.L1:
            return self.get_vertex(index).xy
        return polygon_centroid(*self.cell_xy(index))

    def compute_native_areas(self) -> None:
        """Set every realized cell's ``area`` from its polygon."""
        for cell in self._cells.values():
            cell.area = area_of_polygon(*self.cell_xy(cell))

    def get_native_areas(self) -> NDArray[np.float64]:
        """Stored cell areas, dense over ``ncells_full``; NaN where unrealized."""
        area = np.full(self.ncells_full(), np.nan)
        for cell in self._cells.values():
            area[cell.index] = cell.area
        return area

    def get_proj_areas(self, sproj: str) -> NDArray[np.float64]:
        """Cell areas after projecting lon/lat vertices through *sproj*."""
        proj = self.get_ll_to_xy(sproj)
        area = np.full(self.ncells_full(), np.nan)
        for cell in self._cells.values():
            area[cell.index] = area_of_proj_polygon(*self.cell_xy(cell), proj)
        return area

    def get_ll_to_xy(self, sproj: str) -> Proj2:
        """Projection from this (lon/lat) grid's coordinates to planar XY."""
        logger.debug(f"get_ll_to_xy(sproj={sproj})")
        if self.coordinates is not Coordinates.LONLAT:
            raise UnsupportedCoordinateModeError(
                "get_ll_to_xy() only makes sense for grids in Lon/Lat coordinates"
            )
        return Proj2(sproj, Proj2.Direction.LL2XY)

    def get_xy_to_ll(self, sproj: str | None = None) -> Proj2:
        """Projection from this (XY) grid's coordinates to lon/lat."""
        sproj = sproj or self.sproj
        logger.debug(f"get_xy_to_ll(sproj={sproj})")
        if self.coordinates is not Coordinates.XY:
            raise UnsupportedCoordinateModeError(
                "get_xy_to_ll() only makes sense for grids in XY coordinates"
            )
        return Proj2(sproj, Proj2.Direction.XY2LL)

    # ------------------------------------------------------------------
    # Renumbering & filtering
    # ------------------------------------------------------------------
    def sort_renumber_vertices(self) -> None:
        """Renumber vertices ``0..n-1`` in ascending ``(x, y)`` order.

        Cell vertex references are rewritten accordingly, so two independent
        constructions of the same mesh end up numbered identically.
        """
        ordered = sorted(self._vertices.values(), key=lambda v: (v.x, v.y))
        remap = {v.index: new for new, v in enumerate(ordered)}

        self._vertices = {}
        for new, vertex in enumerate(ordered):
            vertex.index = new
            self._vertices[new] = vertex
        self._max_realized_vertex_index = len(ordered) - 1

        for cell in self._cells.values():
            cell.vertices = [remap[ix] for ix in cell.vertices]

    def filter_cells(self, include_cell: Callable[[int], bool]) -> None:
        """Remove cells (and then-unused vertices) not relevant to us.

        *include_cell* is called with each cell index, e.g. "is this cell in
        my domain". Vertices survive iff some surviving cell references them.
        """
        logger.debug(f"BEGIN filter_cells({self.name})")

        # Set counts so they won't change
        self._ncells_full = self.ncells_full()
        self._nvertices_full = self.nvertices_full()

        good_vertices: set[int] = set()
        kept_cells: dict[int, Cell] = {}
        for ix, cell in self._cells.items():
            if include_cell(ix):
                kept_cells[ix] = cell
                good_vertices.update(cell.vertices)
        self._cells = kept_cells
        self._max_realized_cell_index = max(kept_cells, default=-1)

        self._vertices = {
            ix: v for ix, v in self._vertices.items() if ix in good_vertices
        }
        self._max_realized_vertex_index = max(self._vertices, default=-1)

        logger.debug(
            f"END filter_cells({self.name}): kept {len(self._cells)} cells, "
            f"{len(self._vertices)} vertices"
        )

    # ------------------------------------------------------------------
    # Conversion helpers
    # ------------------------------------------------------------------
    def vertices_frame(self) -> pd.DataFrame:
        """Vertices as a DataFrame indexed by vertex index (sorted)."""
        verts = self.vertices_sorted()
        return pd.DataFrame(
            {
                "x": [v.x for v in verts],
                "y": [v.y for v in verts],
            },
            index=pd.Index([v.index for v in verts], name="index", dtype="int64"),
        )

    def cells_frame(self) -> pd.DataFrame:
        """Cells as a DataFrame indexed by cell index (sorted)."""
        cells = self.cells_sorted()
        return pd.DataFrame(
            {
                "i": [c.i for c in cells],
                "j": [c.j for c in cells],
                "k": [c.k for c in cells],
                "area": [c.area for c in cells],
                "vertices": [list(c.vertices) for c in cells],
            },
            index=pd.Index([c.index for c in cells], name="index", dtype="int64"),
        )

    def to_xarray(self, vname: str = "grid") -> xr.Dataset:
        """Return the grid laid out as in the netCDF file, in memory."""
        from ..io.grid_nc import grid_to_dataset

        return grid_to_dataset(self, vname)

    @classmethod
    def from_dataset(cls, ds: xr.Dataset, vname: str = "grid") -> "Grid":
        """Build from an xarray.Dataset produced by :py:meth:`to_xarray`."""
        from ..io.grid_nc import grid_from_dataset

        return grid_from_dataset(ds, vname)

    def to_netcdf(self, path: str | Path, vname: str = "grid", **kwargs: Any) -> Path:
        from ..io.grid_nc import write_grid_nc

        return write_grid_nc(self, path, vname, **kwargs)

    @classmethod
    def from_netcdf(cls, path: str | Path, vname: str = "grid") -> "Grid":
        from ..io.grid_nc import read_grid_nc

        return read_grid_nc(path, vname)

    # ------------------------------------------------------------------
    # Representation
    # ------------------------------------------------------------------
    def __repr__(self) -> str:
        return (
            f"Grid(name={self.name!r}, type={self.type.value}, "
            f"coordinates={self.coordinates.value}, "
            f"parameterization={self.parameterization.value}, "
            f"cells={self.ncells_realized()}/{self.ncells_full()}, "
            f"vertices={self.nvertices_realized()}/{self.nvertices_full()})"
        )


