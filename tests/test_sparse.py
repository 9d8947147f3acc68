"""Tests for native/dense index mapping and sparse operators."""

import numpy as np
import pytest
import scipy.sparse

from xglint.sparse import (
    SparseAccumulator,
    SparseMatrixBuilder,
    SparseSet,
    build_dense_operator,
)


def test_sparse_set_first_seen_order():
    s = SparseSet()
    assert s.add(7) == 0
    assert s.add(3) == 1
    assert s.add(7) == 0
    assert len(s) == 2
    assert s.to_sparse(1) == 3
    assert s.to_dense(7) == 0
    assert 3 in s and 4 not in s
    assert s.sparse_extent() == 8
    assert list(s.to_sparse_array()) == [7, 3]


def test_sparse_set_extent_checks():
    s = SparseSet(5)
    s.add(4)
    with pytest.raises(IndexError):
        s.add(5)
    with pytest.raises(IndexError):
        s.add(-1)
    with pytest.raises(ValueError):
        s.set_sparse_extent(3)
    s.set_sparse_extent(10)
    assert s.sparse_extent() == 10
    assert s.dense_extent() == 1


def test_sparse_set_vectors():
    s = SparseSet(4)
    s.add_many([2, 0])
    assert np.allclose(s.to_dense_vector([10.0, 11.0, 12.0, 13.0]), [12.0, 10.0])
    out = s.to_sparse_vector([1.0, 2.0])
    assert np.allclose(out, [2.0, np.nan, 1.0, np.nan], equal_nan=True)
    with pytest.raises(ValueError):
        s.to_sparse_vector([1.0])


def test_build_dense_operator_sums_duplicates():
    op = build_dense_operator([(0, 0, 2.0), (0, 0, 3.0), (1, 2, 1.0)], (3, 4))

    assert op.shape == (2, 2)
    assert op.sparse_shape == (3, 4)
    assert op.nnz == 2
    assert op.value(0, 0) == 5.0
    assert op.value(1, 2) == 1.0
    assert op.value(2, 3) == 0.0
    assert op.value(1, 0) == 0.0


def test_build_dense_operator_rejects_small_extent():
    with pytest.raises(ValueError):
        build_dense_operator([(5, 0, 1.0)], (3, 4))


def test_to_native_matches_triples():
    triples = [(4, 1, 1.5), (0, 3, 2.0), (4, 1, 0.5)]
    native = build_dense_operator(triples, (6, 5)).to_native()

    assert native.shape == (6, 5)
    expected = np.zeros((6, 5))
    expected[4, 1] = 2.0
    expected[0, 3] = 2.0
    assert np.allclose(native.toarray(), expected)


def test_apply_native_vector():
    op = build_dense_operator([(2, 0, 1.0), (2, 1, 1.0), (0, 1, 3.0)], (3, 2))
    out = op.apply([10.0, 20.0])
    assert np.isnan(out[1])
    assert np.isclose(out[0], 60.0)
    assert np.isclose(out[2], 30.0)


def test_scale_rows():
    op = build_dense_operator([(1, 0, 2.0), (1, 1, 6.0)], (2, 2))
    scaled = op.scale_rows([0.125])
    assert scaled.value(1, 0) == 0.25
    assert scaled.value(1, 1) == 0.75
    assert op.value(1, 1) == 6.0


def test_builder_add_coo_combines_operators():
    builder = SparseMatrixBuilder()
    builder.add_coo(scipy.sparse.coo_matrix(([1.0], ([2], [3])), shape=(4, 4)))
    builder.add_coo(scipy.sparse.coo_matrix(([2.0, 5.0], ([2, 0], [3, 0])), shape=(4, 4)))
    builder.set_sparse_shape((4, 4))
    op = builder.to_dense()
    assert len(builder) == 3
    assert op.value(2, 3) == 3.0
    assert op.value(0, 0) == 5.0


def test_accumulator():
    acc = SparseAccumulator()
    acc.add(3, 1.0)
    acc.add(3, 2.5)
    acc.add(0, 1.0)
    other = SparseAccumulator({3: 0.5})
    acc.merge(other)

    assert acc[3] == 4.0
    assert acc.get(1) == 0.0
    assert 0 in acc and 1 not in acc
    assert len(acc) == 2
    assert np.allclose(acc.to_dense(4), [1.0, 0.0, 0.0, 4.0])
