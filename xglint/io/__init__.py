# xglint/io/__init__.py
"""
I/O sub-package of xglint.

* grid_nc.py – Grid <-> netCDF / xarray codec
"""

from __future__ import annotations

from .grid_nc import (  # noqa: F401
    FORMAT_VERSION,
    grid_from_dataset,
    grid_to_dataset,
    netcdf_define,
    netcdf_write,
    read_from_netcdf,
    read_grid_nc,
    write_grid_nc,
    write_grids_nc,
)

__all__: list[str] = [
    "FORMAT_VERSION",
    "grid_from_dataset",
    "grid_to_dataset",
    "netcdf_define",
    "netcdf_write",
    "read_from_netcdf",
    "read_grid_nc",
    "write_grid_nc",
    "write_grids_nc",
]
