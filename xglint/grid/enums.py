"""Closed tag sets describing how a :class:`~xglint.grid.Grid` is interpreted."""

from __future__ import annotations

from enum import Enum

__all__ = ["GridType", "Coordinates", "Parameterization"]


class _Tag(str, Enum):
    """String-valued enum whose value is the canonical on-disk tag."""

    @classmethod
    def parse(cls, tag: "str | _Tag"):
        if isinstance(tag, cls):
            return tag
        try:
            return cls[str(tag).strip().upper()]
        except KeyError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Unknown {cls.__name__} tag {tag!r}; expected one of: {valid}"
            ) from None

    def __str__(self) -> str:
        return self.value


class GridType(_Tag):
    """Overall kind of grid; controls which native address fields matter."""

    GENERIC = "GENERIC"
    XY = "XY"
    LONLAT = "LONLAT"
    EXCHANGE = "EXCHANGE"  # cells.ijk: i, j index the two overlapping source cells


class Coordinates(_Tag):
    """Coordinate system of the vertices (planar metres or lon/lat degrees)."""

    XY = "XY"
    LONLAT = "LONLAT"  # longitude comes before latitude


class Parameterization(_Tag):
    """Which entity set carries the field: cells (L0) or vertices (L1)."""

    L0 = "L0"
    L1 = "L1"
