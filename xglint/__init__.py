# ------------------------------------------------------------------
# 0) lightweight first: pure-utility modules (no heavy imports)
# ------------------------------------------------------------------
from .errors import (
    DanglingReferenceError,
    DuplicateIndexError,
    NotRealizedError,
    SchemaError,
    UnsupportedCoordinateModeError,
    XglintError,
)
from .grid import (
    Cell,
    Coordinates,
    GridType,
    Parameterization,
    Vertex,
    area_of_polygon,
    area_of_proj_polygon,
    polygon_centroid,
)

# ------------------------------------------------------------------
# 1) core grid / I/O
# ------------------------------------------------------------------
from .grid import Grid, Proj2, make_lonlat_grid, make_xy_grid, read_grid, xy_boundaries
from .io import read_grid_nc, write_grid_nc, write_grids_nc

# ------------------------------------------------------------------
# 2) operators & regridding
# ------------------------------------------------------------------
from .sparse import (
    DenseOperator,
    SparseAccumulator,
    SparseMatrixBuilder,
    SparseSet,
    build_dense_operator,
)
from .icesheet import IceSheet, IceSheetL0, IceSheetL1, MatrixMaker
from .config import XYGridConfig

# ------------------------------------------------------------------
# 3) public symbol table
# ------------------------------------------------------------------
__all__: list[str] = [
    # grid
    "Grid",
    "Vertex",
    "Cell",
    "GridType",
    "Coordinates",
    "Parameterization",
    "Proj2",
    "make_xy_grid",
    "make_lonlat_grid",
    "xy_boundaries",
    "read_grid",
    # geometry
    "area_of_polygon",
    "area_of_proj_polygon",
    "polygon_centroid",
    # I/O
    "read_grid_nc",
    "write_grid_nc",
    "write_grids_nc",
    # operators
    "SparseSet",
    "SparseMatrixBuilder",
    "DenseOperator",
    "SparseAccumulator",
    "build_dense_operator",
    # regridding
    "IceSheet",
    "IceSheetL0",
    "IceSheetL1",
    "MatrixMaker",
    # config
    "XYGridConfig",
    # errors
    "XglintError",
    "DuplicateIndexError",
    "SchemaError",
    "DanglingReferenceError",
    "NotRealizedError",
    "UnsupportedCoordinateModeError",
]

__version__ = "0.1.0"
