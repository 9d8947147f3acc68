from __future__ import annotations

"""Sparse operators between native (possibly non-contiguous) index spaces.

Grid cells and vertices are addressed by *native* indices that need not be
contiguous: a GCM grid prepared for one ice sheet only realizes the few cells
near that sheet. Matrices, however, want dense ``0..n-1`` rows and columns.

* :class:`SparseSet` – the native ↔ dense mapping of one axis, with dense
  positions handed out in first-seen order.
* :class:`SparseMatrixBuilder` – accumulates ``(row, col, weight)`` triples in
  native indices (duplicates add up) and produces a :class:`DenseOperator`.
* :class:`DenseOperator` – the compacted ``scipy.sparse.csr_matrix`` plus the
  two :class:`SparseSet` objects needed to move native vectors in and out.
* :class:`SparseAccumulator` – sums of values keyed by native index, e.g. the
  ice-covered area of each GCM cell.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np
import scipy.sparse
from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

__all__ = [
    "SparseSet",
    "SparseMatrixBuilder",
    "DenseOperator",
    "SparseAccumulator",
    "build_dense_operator",
]


# -----------------------------------------------------------------------------
# Index mapping
# -----------------------------------------------------------------------------


class SparseSet:
    """Mapping between native indices ``[0, sparse_extent)`` and dense ones."""

    def __init__(self, sparse_extent: int = -1) -> None:
        self._s2d: dict[int, int] = {}
        self._d2s: list[int] = []
        self._sparse_extent = -1
        if sparse_extent >= 0:
            self.set_sparse_extent(sparse_extent)

    # ---------- building ----------
    def add(self, native: int) -> int:
        """Return the dense index of *native*, assigning one on first sight."""
        native = int(native)
        dense = self._s2d.get(native)
        if dense is None:
            if native < 0 or (0 <= self._sparse_extent <= native):
                raise IndexError(
                    f"Native index {native} outside [0, {self._sparse_extent})"
                )
            dense = len(self._d2s)
            self._s2d[native] = dense
            self._d2s.append(native)
        return dense

    def add_many(self, natives: Iterable[int]) -> NDArray[np.int_]:
        return np.array([self.add(n) for n in natives], dtype=int)

    def set_sparse_extent(self, extent: int) -> None:
        """Fix the size of the native space (may exceed what was seen)."""
        extent = int(extent)
        top = max(self._d2s, default=-1)
        if extent <= top:
            raise ValueError(
                f"Sparse extent {extent} too small: native index {top} already present"
            )
        self._sparse_extent = extent

    # ---------- queries ----------
    def sparse_extent(self) -> int:
        """Size of the native space; ``max seen + 1`` if never fixed."""
        if self._sparse_extent >= 0:
            return self._sparse_extent
        return max(self._d2s, default=-1) + 1

    def dense_extent(self) -> int:
        return len(self._d2s)

    def __len__(self) -> int:
        return len(self._d2s)

    def __contains__(self, native: object) -> bool:
        return native in self._s2d

    def to_dense(self, native: int) -> int:
        return self._s2d[int(native)]

    def to_sparse(self, dense: int) -> int:
        return self._d2s[int(dense)]

    def to_dense_array(self, natives: ArrayLike) -> NDArray[np.int_]:
        return np.array([self._s2d[int(n)] for n in np.ravel(natives)], dtype=int)

    def to_sparse_array(self, denses: ArrayLike | None = None) -> NDArray[np.int_]:
        """Native index of each dense position (all of them by default)."""
        d2s = np.asarray(self._d2s, dtype=int)
        if denses is None:
            return d2s
        return d2s[np.asarray(denses, dtype=int)]

    # ---------- vectors ----------
    def to_dense_vector(self, native_vector: ArrayLike) -> NDArray[np.float64]:
        """Gather a vector of length ``sparse_extent`` into dense order."""
        vec = np.asarray(native_vector, dtype=float)
        if vec.shape[0] < self.sparse_extent():
            raise ValueError(
                f"Vector of length {vec.shape[0]} shorter than sparse extent "
                f"{self.sparse_extent()}"
            )
        return vec[self.to_sparse_array()]

    def to_sparse_vector(
        self, dense_vector: ArrayLike, fill: float = np.nan
    ) -> NDArray[np.float64]:
        """Scatter a dense vector back to native order; *fill* elsewhere."""
        vec = np.asarray(dense_vector, dtype=float)
        if vec.shape[0] != self.dense_extent():
            raise ValueError(
                f"Vector of length {vec.shape[0]} does not match dense extent "
                f"{self.dense_extent()}"
            )
        out = np.full(self.sparse_extent(), fill, dtype=float)
        out[self.to_sparse_array()] = vec
        return out

    def __repr__(self) -> str:
        return f"SparseSet(dense={self.dense_extent()}, sparse={self.sparse_extent()})"


# -----------------------------------------------------------------------------
# Operators
# -----------------------------------------------------------------------------


@dataclass
class DenseOperator:
    """A dense-indexed sparse matrix and the index mappings of its axes."""

    matrix: scipy.sparse.csr_matrix
    dims: tuple[SparseSet, SparseSet]
    sparse_shape: tuple[int, int]

    @property
    def shape(self) -> tuple[int, int]:
        return self.matrix.shape

    @property
    def nnz(self) -> int:
        return self.matrix.nnz

    def value(self, row: int, col: int) -> float:
        """Entry at native ``(row, col)``; 0 where nothing was accumulated."""
        rows, cols = self.dims
        if row not in rows or col not in cols:
            return 0.0
        return float(self.matrix[rows.to_dense(row), cols.to_dense(col)])

    def to_native(self) -> scipy.sparse.coo_matrix:
        """The same matrix in native indices, shaped ``sparse_shape``."""
        coo = self.matrix.tocoo()
        rows, cols = self.dims
        return scipy.sparse.coo_matrix(
            (
                coo.data,
                (rows.to_sparse_array(coo.row), cols.to_sparse_array(coo.col)),
            ),
            shape=self.sparse_shape,
        )

    def apply(self, native_vector: ArrayLike, fill: float = np.nan) -> NDArray[np.float64]:
        """Multiply by a native-indexed vector; returns a native-indexed result.

        Rows never touched by the operator are set to *fill*.
        """
        rows, cols = self.dims
        dense_in = cols.to_dense_vector(native_vector)
        return rows.to_sparse_vector(self.matrix @ dense_in, fill=fill)

    def scale_rows(self, factors: ArrayLike) -> "DenseOperator":
        """New operator with dense row ``r`` multiplied by ``factors[r]``."""
        diag = scipy.sparse.diags(np.asarray(factors, dtype=float))
        return DenseOperator(
            scipy.sparse.csr_matrix(diag @ self.matrix), self.dims, self.sparse_shape
        )


class SparseMatrixBuilder:
    """Accumulate native-indexed triples into a dense-indexed matrix.

    Not safe for concurrent writers; use one builder per thread and merge.
    """

    def __init__(self, dims: tuple[SparseSet, SparseSet] | None = None) -> None:
        self.dims: tuple[SparseSet, SparseSet] = dims or (SparseSet(), SparseSet())
        self._rows: list[int] = []
        self._cols: list[int] = []
        self._vals: list[float] = []

    def add(self, row: int, col: int, value: float) -> None:
        self._rows.append(self.dims[0].add(row))
        self._cols.append(self.dims[1].add(col))
        self._vals.append(float(value))

    def extend(self, triples: Iterable[tuple[int, int, float]]) -> None:
        for row, col, value in triples:
            self.add(row, col, value)

    def add_coo(self, native: scipy.sparse.spmatrix) -> None:
        """Add every stored entry of a native-indexed scipy matrix."""
        coo = scipy.sparse.coo_matrix(native)
        for row, col, value in zip(coo.row.tolist(), coo.col.tolist(), coo.data.tolist()):
            self.add(row, col, value)

    def set_sparse_shape(self, shape: tuple[int, int]) -> None:
        self.dims[0].set_sparse_extent(shape[0])
        self.dims[1].set_sparse_extent(shape[1])

    def __len__(self) -> int:
        return len(self._vals)

    def to_dense(self) -> DenseOperator:
        """Materialise as CSR; duplicate ``(row, col)`` entries are summed."""
        rows, cols = self.dims
        shape = (rows.dense_extent(), cols.dense_extent())
        matrix = scipy.sparse.coo_matrix(
            (
                np.asarray(self._vals, dtype=float),
                (np.asarray(self._rows, dtype=int), np.asarray(self._cols, dtype=int)),
            ),
            shape=shape,
        ).tocsr()
        matrix.sum_duplicates()
        logger.debug(
            f"to_dense: {len(self._vals)} triples -> {shape} dense, "
            f"{matrix.nnz} non-zeros"
        )
        return DenseOperator(
            matrix, self.dims, (rows.sparse_extent(), cols.sparse_extent())
        )


def build_dense_operator(
    triples: Iterable[tuple[int, int, float]],
    sparse_shape: tuple[int, int],
    dims: tuple[SparseSet, SparseSet] | None = None,
) -> DenseOperator:
    """Compact a stream of native ``(row, col, weight)`` triples.

    The axis extents are fixed to *sparse_shape* after all triples are read,
    even if some native indices never appear.
    """
    builder = SparseMatrixBuilder(dims)
    builder.extend(triples)
    builder.set_sparse_shape(sparse_shape)
    return builder.to_dense()


# -----------------------------------------------------------------------------
# Accumulator
# -----------------------------------------------------------------------------


@dataclass
class SparseAccumulator:
    """Running sums keyed by native index."""

    values: dict[int, float] = field(default_factory=dict)

    def add(self, index: int, value: float) -> None:
        index = int(index)
        self.values[index] = self.values.get(index, 0.0) + float(value)

    def merge(self, other: "SparseAccumulator") -> None:
        for index, value in other.values.items():
            self.add(index, value)

    def __getitem__(self, index: int) -> float:
        return self.values[int(index)]

    def get(self, index: int, default: float = 0.0) -> float:
        return self.values.get(int(index), default)

    def __contains__(self, index: object) -> bool:
        return index in self.values

    def __len__(self) -> int:
        return len(self.values)

    def items(self):
        return self.values.items()

    def to_dense(self, n: int, fill: float = 0.0) -> NDArray[np.float64]:
        """Vector of length *n* with the sums at their native positions."""
        out = np.full(n, fill, dtype=float)
        for index, value in self.values.items():
            out[index] = value
        return out
