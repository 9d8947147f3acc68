"""
xglint.grid – polygonal mesh utilities
--------------------------------------
Public:
    * Grid, Vertex, Cell
    * GridType, Coordinates, Parameterization
    * area_of_polygon, area_of_proj_polygon, polygon_centroid
    * make_xy_grid, make_lonlat_grid, xy_boundaries, read_grid
"""

import importlib
import sys
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

# light-weight modules (NumPy only) are imported eagerly
from .entities import Cell, Vertex
from .enums import Coordinates, GridType, Parameterization
from .geometry import area_of_polygon, area_of_proj_polygon, is_ccw, polygon_centroid

_LAZY = {
    "Grid": ".grid_obj",
    "Proj2": ".geo_utils",
    "make_xy_grid": ".builders",
    "make_lonlat_grid": ".builders",
    "xy_boundaries": ".builders",
}


# ---------------------------------------------------------------
# Lazy loader: the first attribute access triggers real import
# ---------------------------------------------------------------
def _load(modname: str) -> ModuleType:
    """Import a heavy submodule (pandas / xarray / pyproj) once and cache it."""
    mod = importlib.import_module(modname, __name__)
    sys.modules[f"{__name__}{modname}"] = mod
    return mod


if TYPE_CHECKING:  # <-- Mypy / IDE
    from .builders import make_lonlat_grid, make_xy_grid, xy_boundaries  # noqa
    from .geo_utils import Proj2  # noqa
    from .grid_obj import Grid  # noqa
else:

    def __getattr__(name: str):
        if name not in _LAZY:
            raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
        return getattr(_load(_LAZY[name]), name)

    # ---------- public helper (calls into grid_obj lazily) -----------------
    def read_grid(path: str | Path, vname: str = "grid"):
        """
        Read a grid netCDF file and return :class:`Grid`.
        This thin wrapper keeps the lazy-import behaviour intact.
        """
        mod = _load(".grid_obj")
        return mod.Grid.from_netcdf(path, vname)

    def __dir__():
        return sorted(set(__all__))


__all__ = [
    "Grid",
    "Vertex",
    "Cell",
    "GridType",
    "Coordinates",
    "Parameterization",
    "Proj2",
    "area_of_polygon",
    "area_of_proj_polygon",
    "polygon_centroid",
    "is_ccw",
    "make_xy_grid",
    "make_lonlat_grid",
    "xy_boundaries",
    "read_grid",
]
