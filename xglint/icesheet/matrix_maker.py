from __future__ import annotations

"""Compose several ice sheets against one GCM grid."""

import logging
from typing import Callable, Iterator

import numpy as np

from ..grid.grid_obj import Grid
from ..sparse import DenseOperator, SparseAccumulator, SparseMatrixBuilder
from .base import IceSheet

logger = logging.getLogger(__name__)

__all__ = ["MatrixMaker"]


class MatrixMaker:
    """GCM grid plus the ice sheets coupled to it.

    Only talks to the sheets through the :class:`IceSheet` contract, so any
    mix of ice grid representations can be combined.
    """

    def __init__(self, grid1: Grid, *, nhp: int = 1) -> None:
        self.grid1 = grid1  # GCM grid
        self.nhp = nhp
        self._sheets: dict[str, IceSheet] = {}

    @property
    def n1(self) -> int:
        return self.grid1.ndata()

    # ------------------------------------------------------------------
    # Ice sheets
    # ------------------------------------------------------------------
    def add_ice_sheet(self, sheet: IceSheet) -> IceSheet:
        if sheet.name in self._sheets:
            raise ValueError(f"Ice sheet {sheet.name!r} already added")
        sheet.index = len(self._sheets)
        sheet.n1 = self.n1
        sheet.nhp = self.nhp
        self._sheets[sheet.name] = sheet
        return sheet

    def __getitem__(self, name: str) -> IceSheet:
        return self._sheets[name]

    def __iter__(self) -> Iterator[IceSheet]:
        return iter(self._sheets.values())

    def __len__(self) -> int:
        return len(self._sheets)

    def realize(self) -> None:
        for sheet in self._sheets.values():
            sheet.realize()

    def filter_cells1(self, include_cell1: Callable[[int], bool]) -> None:
        """Restrict the GCM grid (and every exchange grid) to a sub-domain."""
        self.grid1.filter_cells(include_cell1)
        for sheet in self._sheets.values():
            sheet.filter_cells1(include_cell1)

    # ------------------------------------------------------------------
    # Matrices
    # ------------------------------------------------------------------
    def accum_areas(self) -> SparseAccumulator:
        """Ice-covered area of each GCM cell, summed over all sheets."""
        area1_m = SparseAccumulator()
        for sheet in self._sheets.values():
            sheet.accum_areas(area1_m)
        return area1_m

    def hp_to_atm(self) -> tuple[DenseOperator, SparseAccumulator]:
        """Height points → GCM grid over all sheets, area-weighted average.

        Returns the operator and the ice-covered area of each GCM cell.
        """
        area1_m = SparseAccumulator()
        builder = SparseMatrixBuilder()
        for sheet in self._sheets.values():
            builder.add_coo(sheet.hp_to_atm(area1_m).to_native())
        builder.set_sparse_shape((self.n1, self.nhp * self.n1))
        op = builder.to_dense()

        rows = op.dims[0]
        area = np.array([area1_m.get(rows.to_sparse(r)) for r in range(len(rows))])
        factors = np.divide(1.0, area, out=np.zeros_like(area), where=area != 0)
        logger.debug(
            f"hp_to_atm: {len(self._sheets)} ice sheets, {op.nnz} non-zeros"
        )
        return op.scale_rows(factors), area1_m

    def hp_to_ice(self) -> dict[str, DenseOperator]:
        """Height points → each ice grid, keyed by ice sheet name."""
        return {name: sheet.hp_to_ice() for name, sheet in self._sheets.items()}
