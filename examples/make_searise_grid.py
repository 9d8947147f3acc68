#!/usr/bin/env python3
"""
Build the SeaRISE Antarctic ice grid (5 km polar stereographic) and write it
to netCDF.

The grid spans -2802.5 km .. 3202.5 km on both axes, i.e. 1201 x 1201 cells.
"""

import logging
import sys
from pathlib import Path

# Add parent directory to use xglint
sys.path.insert(0, str(Path(__file__).parent.parent))

from xglint.grid import make_xy_grid, xy_boundaries
from xglint.io import write_grid_nc

KM = 1000.0
SPROJ = "+proj=stere +lon_0=0 +lat_0=-90 +lat_ts=71.0 +ellps=WGS84"


def make_searise_grid():
    # The true exact SeaRISE grid
    xb = xy_boundaries((-2800.0 - 2.5) * KM, (-2800.0 + 1200 * 5.0 + 2.5) * KM, 5.0 * KM)
    return make_xy_grid(xb, xb, sproj=SPROJ, name="searise")


def main(output: str = "searise.nc") -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    grid = make_searise_grid()
    print(f"Ice grid has {grid.ncells_full()} cells")
    write_grid_nc(grid, output)


if __name__ == "__main__":
    main(*sys.argv[1:2])
