from __future__ import annotations

"""Vertex and cell records owned by a :class:`~xglint.grid.Grid`.

A :class:`Cell` refers to its vertices by *index*, never by object, so cells
can be copied freely and filtering a grid cannot leave a cell pointing at a
removed vertex object.
"""

import math
from dataclasses import dataclass, field
from typing import Iterator

__all__ = ["Vertex", "Cell"]


@dataclass(slots=True)
class Vertex:
    """Polygon corner; ``x``/``y`` are metres (XY) or lon/lat degrees (LONLAT)."""

    x: float
    y: float
    index: int | None = None  # None → assigned by Grid.add_vertex

    @property
    def xy(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(slots=True)
class Cell:
    """Polygon (implicitly closed) plus its native address and area."""

    vertices: list[int] = field(default_factory=list)  # ordered vertex indices
    index: int | None = None  # None → assigned by Grid.add_cell

    # optional "real-world" address; for EXCHANGE grids i/j are the two
    # overlapping source cells
    i: int = -1
    j: int = -1
    k: int = -1

    area: float = math.nan  # area in native coordinates

    def __post_init__(self) -> None:
        self.vertices = [int(v) for v in self.vertices]

    # ``native_area`` is an alias of ``area``
    @property
    def native_area(self) -> float:
        return self.area

    @native_area.setter
    def native_area(self, value: float) -> None:
        self.area = float(value)

    @property
    def ijk(self) -> tuple[int, int, int]:
        return (self.i, self.j, self.k)

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self) -> Iterator[int]:
        return iter(self.vertices)
