"""Exception taxonomy for xglint.

Every error is fatal for the operation that raised it. Each class also
derives from the builtin that generic callers would expect, so
``except KeyError`` around a lookup keeps working.
"""

from __future__ import annotations

__all__ = [
    "XglintError",
    "DuplicateIndexError",
    "SchemaError",
    "DanglingReferenceError",
    "NotRealizedError",
    "UnsupportedCoordinateModeError",
]


class XglintError(Exception):
    """Base class of all xglint errors."""


class DuplicateIndexError(XglintError, KeyError):
    """A vertex or cell was inserted with an index already in use."""

    def __init__(self, kind: str, index: int) -> None:
        self.kind = kind
        self.index = index
        super().__init__(
            f"Error adding repeat {kind} index={index}. "
            f"{kind.capitalize()}s must have unique indices."
        )

    def __str__(self) -> str:  # KeyError would repr() the message
        return str(self.args[0])


class SchemaError(XglintError, KeyError):
    """A persisted grid is missing a required field or has a malformed one."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class DanglingReferenceError(XglintError, KeyError):
    """A decoded cell references a vertex absent from the vertex table."""

    def __init__(self, cell_index: int, vertex_index: int) -> None:
        self.cell_index = cell_index
        self.vertex_index = vertex_index
        super().__init__(
            f"Cell {cell_index} references vertex {vertex_index}, "
            "which is not in the vertex table"
        )

    def __str__(self) -> str:
        return str(self.args[0])


class NotRealizedError(XglintError, RuntimeError):
    """A matrix or area operation was called before ``realize()``."""


class UnsupportedCoordinateModeError(XglintError, ValueError):
    """The operation does not make sense for the grid's coordinate system."""
