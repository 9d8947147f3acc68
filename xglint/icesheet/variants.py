"""Concrete ice sheets for cell-centred (L0) and vertex-centred (L1) ice grids."""

from __future__ import annotations

from typing import Iterator

import numpy as np

from ..grid.enums import Parameterization
from .base import IceSheet, Overlap

__all__ = ["IceSheetL0", "IceSheetL1"]


class IceSheetL0(IceSheet):
    """Ice model with one value per ice cell (e.g. a structured XY grid)."""

    parameterization = Parameterization.L0

    def _iter_overlaps(self) -> Iterator[Overlap]:
        for i1, i2, area in self._exchange_cells():
            if self._masked(i2):
                continue
            yield Overlap(i1, i2, area, self._elevation(i2))


class IceSheetL1(IceSheet):
    """Ice model with one value per ice vertex (e.g. a finite element mesh).

    Each overlap is shared equally among the vertices of the ice cell it lies
    in, which is exact for the linear basis functions of a triangle. The
    elevation of an overlap is the mean elevation of those vertices.
    """

    parameterization = Parameterization.L1

    def _iter_overlaps(self) -> Iterator[Overlap]:
        cells2 = self.grid2.cells
        for i1, i2, area in self._exchange_cells():
            verts = cells2[i2].vertices
            if not verts:
                continue
            if self.elev2 is None:
                elevation = float("nan")
            else:
                elevation = float(np.mean(self.elev2[verts]))
            share = area / len(verts)
            for iv in verts:
                if self._masked(iv):
                    continue
                yield Overlap(i1, iv, share, elevation)
