from __future__ import annotations

"""Abstract ice sheet: one ice-model domain coupled to a GCM grid.

An ice sheet owns its ice grid (``grid2``) and the exchange grid (``exgrid``)
holding the overlap relation with the GCM grid: every exchange cell has
``i`` = GCM cell, ``j`` = ice cell and ``area`` = overlap area. The overlap
relation is built elsewhere; this module only consumes it.

Height-point space has ``nhp * n1`` entries, laid out as ``ihp * n1 + i1``.
Which height point a piece of ice belongs to is decided by ``hp_classifier``
(supplied by the coupling layer); without one, all ice is in height point 0.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, ClassVar, Iterator, NamedTuple

import netCDF4 as nc
import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import NotRealizedError, SchemaError
from ..grid.enums import GridType, Parameterization
from ..grid.grid_obj import Grid
from ..io.grid_nc import netcdf_define as grid_netcdf_define
from ..io.grid_nc import read_from_netcdf as grid_read_from_netcdf
from ..sparse import DenseOperator, SparseAccumulator, SparseMatrixBuilder

logger = logging.getLogger(__name__)

__all__ = ["IceSheet", "Overlap", "HpClassifier"]

# (i1, elevation) -> height point index in [0, nhp)
HpClassifier = Callable[[int, float], int]


class Overlap(NamedTuple):
    """One weighted piece of the GCM ↔ ice-data relation."""

    i1: int  # GCM cell
    i2: int  # ice data point (cell for L0, vertex for L1)
    area: float  # area of the piece
    elevation: float  # ice surface elevation of the piece (NaN if unknown)


class IceSheet(ABC):
    """Regridding contract shared by every ice grid representation."""

    # ice data index space of this variant
    parameterization: ClassVar[Parameterization]

    def __init__(
        self,
        name: str,
        grid2: Grid,
        exgrid: Grid,
        *,
        n1: int | None = None,
        nhp: int = 1,
        mask2: ArrayLike | None = None,
        elev2: ArrayLike | None = None,
        hp_classifier: HpClassifier | None = None,
    ) -> None:
        self.name = name
        self.index = -1  # position in the owning MatrixMaker
        self.grid2 = grid2  # ice grid
        self.exgrid = exgrid  # exchange grid (between GCM and ice)
        self.n1 = n1
        self.nhp = nhp
        # True = ice data point excluded
        self.mask2: NDArray[np.bool_] | None = (
            None if mask2 is None else np.asarray(mask2, dtype=bool)
        )
        # elevation of each ice cell (L0) or vertex (L1)
        self.elev2: NDArray[np.float64] | None = (
            None if elev2 is None else np.asarray(elev2, dtype=float)
        )
        self.hp_classifier = hp_classifier
        self._overlaps: list[Overlap] | None = None

    # ------------------------------------------------------------------
    # Realization
    # ------------------------------------------------------------------
    @property
    def realized(self) -> bool:
        return self._overlaps is not None

    def clear(self) -> None:
        self._overlaps = None

    def realize(self) -> None:
        """Check the inputs and cache the overlap relation."""
        if self.exgrid.type is not GridType.EXCHANGE:
            raise ValueError(
                f"Ice sheet {self.name!r}: exgrid must be an EXCHANGE grid, "
                f"got {self.exgrid.type.value}"
            )
        if self.grid2.parameterization is not self.parameterization:
            raise ValueError(
                f"Ice sheet {self.name!r}: {type(self).__name__} needs an "
                f"{self.parameterization.value} ice grid, got "
                f"{self.grid2.parameterization.value}"
            )
        if self.n1 is None or self.n1 <= 0:
            raise ValueError(f"Ice sheet {self.name!r}: GCM extent n1 is not set")
        if self.nhp < 1:
            raise ValueError(f"Ice sheet {self.name!r}: nhp must be >= 1")

        n2 = self.grid2.ndata()
        for label, arr in (("mask2", self.mask2), ("elev2", self.elev2)):
            if arr is not None and arr.shape != (n2,):
                raise ValueError(
                    f"Ice sheet {self.name!r}: {label} has shape {arr.shape}, "
                    f"expected ({n2},)"
                )

        self._overlaps = list(self._iter_overlaps())
        logger.debug(
            f"Realized ice sheet {self.name!r}: {len(self._overlaps)} overlaps "
            f"from {self.exgrid.ncells_realized()} exchange cells"
        )

    def filter_cells1(self, include_cell1: Callable[[int], bool]) -> None:
        """Keep only exchange cells whose GCM cell passes *include_cell1*."""
        cells = self.exgrid.cells
        self.exgrid.filter_cells(lambda ix: include_cell1(cells[ix].i))
        if self.realized:
            self.realize()

    def _require_realized(self) -> list[Overlap]:
        if self._overlaps is None:
            raise NotRealizedError(
                f"Ice sheet {self.name!r} must be realized before computing matrices"
            )
        return self._overlaps

    def _masked(self, i2: int) -> bool:
        return self.mask2 is not None and bool(self.mask2[i2])

    def _elevation(self, i2: int) -> float:
        return float("nan") if self.elev2 is None else float(self.elev2[i2])

    def _exchange_cells(self) -> Iterator[tuple[int, int, float]]:
        """``(i1, ice cell, overlap area)`` of every exchange cell."""
        cells2 = self.grid2.cells
        for cell in self.exgrid.cells.values():
            if cell.j not in cells2:
                raise ValueError(
                    f"Ice sheet {self.name!r}: exchange cell {cell.index} "
                    f"overlaps ice cell {cell.j}, which is not realized"
                )
            if not 0 <= cell.i < self.n1:  # type: ignore[operator]
                raise ValueError(
                    f"Ice sheet {self.name!r}: exchange cell {cell.index} "
                    f"refers to GCM cell {cell.i} outside [0, {self.n1})"
                )
            # overlap weights are magnitudes, whatever the polygon winding
            yield cell.i, cell.j, abs(cell.area)

    @abstractmethod
    def _iter_overlaps(self) -> Iterator[Overlap]:
        """Split the exchange grid into pieces on the ice data points."""

    def hp_index(self, i1: int, elevation: float) -> int:
        """Column of height-point space for ice over GCM cell *i1*."""
        ihp = 0 if self.hp_classifier is None else int(self.hp_classifier(i1, elevation))
        if not 0 <= ihp < self.nhp:
            raise ValueError(f"Height point {ihp} outside [0, {self.nhp})")
        return ihp * self.n1 + i1  # type: ignore[operator]

    # ------------------------------------------------------------------
    # Regridding contract
    # ------------------------------------------------------------------
    def accum_areas(self, area1_m: SparseAccumulator) -> None:
        """Adds up the (ice-covered) area of each GCM grid cell."""
        for ov in self._require_realized():
            area1_m.add(ov.i1, ov.area)

    def hp_to_ice(self) -> DenseOperator:
        """Matrix from height-point space ``[nhp*n1]`` to the ice grid ``[n2]``.

        Each row is normalised to sum to 1 (area-weighted average).
        """
        overlaps = self._require_realized()
        builder = SparseMatrixBuilder()
        for ov in overlaps:
            builder.add(ov.i2, self.hp_index(ov.i1, ov.elevation), ov.area)
        builder.set_sparse_shape((self.grid2.ndata(), self.nhp * self.n1))  # type: ignore[operator]
        op = builder.to_dense()

        row_area = np.asarray(op.matrix.sum(axis=1)).ravel()
        factors = np.divide(
            1.0, row_area, out=np.zeros_like(row_area), where=row_area != 0
        )
        return op.scale_rows(factors)

    def hp_to_atm(self, area1_m: SparseAccumulator) -> DenseOperator:
        """Matrix from height-point space ``[nhp*n1]`` to the GCM grid ``[n1]``.

        The matrix is NOT normalised: entries are overlap areas. *area1_m*
        (IN/OUT) accumulates the area of each GCM cell covered by
        (non-masked-out) ice, which the caller divides by.
        """
        overlaps = self._require_realized()
        builder = SparseMatrixBuilder()
        for ov in overlaps:
            builder.add(ov.i1, self.hp_index(ov.i1, ov.elevation), ov.area)
            area1_m.add(ov.i1, ov.area)
        builder.set_sparse_shape((self.n1, self.nhp * self.n1))  # type: ignore[operator]
        return builder.to_dense()

    # ------------------------------------------------------------------
    # netCDF
    # ------------------------------------------------------------------
    def netcdf_define(self, ds: nc.Dataset, vname: str) -> Callable[[], None]:
        """Define this sheet (and its grids) in *ds*; returns the writer."""
        info = ds.createVariable(f"{vname}.info", "i4", ())
        if self.name:
            info.setncattr("name", self.name)
        info.setncattr("parameterization", self.parameterization.value)
        info.setncattr("nhp", np.int32(self.nhp))
        if self.n1 is not None:
            info.setncattr("n1", np.int32(self.n1))

        writers = [
            grid_netcdf_define(ds, self.grid2, f"{vname}.grid2"),
            grid_netcdf_define(ds, self.exgrid, f"{vname}.exgrid"),
        ]

        arrays: dict[str, np.ndarray] = {}
        if self.mask2 is not None:
            arrays["mask2"] = self.mask2.astype("i1")
        if self.elev2 is not None:
            arrays["elev2"] = self.elev2
        if arrays:
            n2 = f"{vname}.n2"
            ds.createDimension(n2, self.grid2.ndata())
            for key, arr in arrays.items():
                ds.createVariable(f"{vname}.{key}", arr.dtype, (n2,))

        def write() -> None:
            for w in writers:
                w()
            for key, arr in arrays.items():
                if arr.size:
                    ds.variables[f"{vname}.{key}"][:] = arr

        return write

    def to_netcdf(self, path: str | Path, vname: str = "icesheet") -> Path:
        path = Path(path)
        with nc.Dataset(path, "w", format="NETCDF4") as ds:
            write = self.netcdf_define(ds, vname)
            write()
        logger.info(f"Wrote ice sheet {self.name!r} to {path}")
        return path

    @staticmethod
    def read_from_netcdf(
        ds: nc.Dataset, vname: str, hp_classifier: HpClassifier | None = None
    ) -> "IceSheet":
        """Rebuild the ice sheet stored under *vname* (variant from the file)."""
        from .variants import IceSheetL0, IceSheetL1

        if f"{vname}.info" not in ds.variables:
            raise SchemaError(f"Variable {vname}.info not found in netCDF file")
        info = ds.variables[f"{vname}.info"]
        attrs = {key: info.getncattr(key) for key in info.ncattrs()}
        try:
            param = Parameterization.parse(attrs["parameterization"])
        except (KeyError, ValueError) as exc:
            raise SchemaError(f"{vname}.info: bad parameterization ({exc})") from exc
        cls = IceSheetL1 if param is Parameterization.L1 else IceSheetL0

        def _opt(key: str) -> np.ndarray | None:
            var = ds.variables.get(f"{vname}.{key}")
            if var is None:
                return None
            return np.ma.getdata(var[:]) if var.size else np.empty(0)

        mask2 = _opt("mask2")
        return cls(
            str(attrs.get("name", "")),
            grid_read_from_netcdf(ds, f"{vname}.grid2"),
            grid_read_from_netcdf(ds, f"{vname}.exgrid"),
            n1=int(attrs["n1"]) if "n1" in attrs else None,
            nhp=int(attrs.get("nhp", 1)),
            mask2=None if mask2 is None else mask2.astype(bool),
            elev2=_opt("elev2"),
            hp_classifier=hp_classifier,
        )

    @classmethod
    def from_netcdf(
        cls,
        path: str | Path,
        vname: str = "icesheet",
        hp_classifier: HpClassifier | None = None,
    ) -> "IceSheet":
        with nc.Dataset(Path(path), "r") as ds:
            return IceSheet.read_from_netcdf(ds, vname, hp_classifier)

    def __repr__(self) -> str:
        state = "realized" if self.realized else "unrealized"
        return (
            f"{type(self).__name__}(name={self.name!r}, n1={self.n1}, "
            f"nhp={self.nhp}, {state})"
        )
