from __future__ import annotations

import numpy as np
import pytest

from conic_portfolio.optimization.core.exceptions import DimensionMismatchError
from conic_portfolio.optimization.core.sparse import (
    INDEX_DTYPE,
    SparseMatrix,
    decode_csc,
    encode_csc,
)


def test_encode_small_matrix_layout() -> None:
    dense = np.array(
        [
            [1.0, 0.0, -2.0],
            [0.0, 0.0, 3.0],
            [4.0, 5e-9, 0.0],
        ]
    )

    encoded = encode_csc(dense)

    assert encoded.shape == (3, 3)
    np.testing.assert_array_equal(encoded.col_pointers, [0, 2, 2, 4])
    np.testing.assert_array_equal(encoded.row_indices, [0, 2, 0, 1])
    np.testing.assert_array_equal(encoded.values, [1.0, 4.0, -2.0, 3.0])
    assert encoded.nnz == 4


def test_indices_are_wide() -> None:
    encoded = encode_csc(np.eye(3))
    assert encoded.col_pointers.dtype == INDEX_DTYPE
    assert encoded.row_indices.dtype == INDEX_DTYPE
    assert encoded.values.dtype == np.float64


@pytest.mark.parametrize("tolerance", [0.0, 1e-8, 0.25, 0.9])
def test_decode_keeps_only_entries_above_tolerance(tolerance: float) -> None:
    rng = np.random.default_rng(7)
    dense = rng.normal(size=(9, 6))
    dense[rng.random(size=dense.shape) < 0.4] = 0.0

    decoded = decode_csc(encode_csc(dense, tolerance))

    above = np.abs(dense) > tolerance
    np.testing.assert_array_equal(decoded[above], dense[above])
    assert np.all(decoded[~above] == 0.0)


def test_tolerance_boundary_is_excluded() -> None:
    dense = np.array([[1e-8, -1e-8, 2e-8]])
    encoded = encode_csc(dense, tolerance=1e-8)
    np.testing.assert_array_equal(encoded.row_indices, [0])
    np.testing.assert_array_equal(encoded.col_pointers, [0, 0, 0, 1])


def test_row_indices_sorted_within_each_column() -> None:
    rng = np.random.default_rng(11)
    encoded = encode_csc(rng.normal(size=(12, 5)))
    for col in range(encoded.num_cols):
        rows = encoded.row_indices[encoded.col_pointers[col] : encoded.col_pointers[col + 1]]
        assert np.all(np.diff(rows) > 0)
    assert np.all(np.diff(encoded.col_pointers) >= 0)


def test_encoding_is_deterministic() -> None:
    rng = np.random.default_rng(3)
    dense = rng.normal(size=(7, 7))
    first = encode_csc(dense)
    second = encode_csc(dense.copy())
    assert first.fingerprint() == second.fingerprint()
    assert first.row_indices.tobytes() == second.row_indices.tobytes()
    assert first.values.tobytes() == second.values.tobytes()


def test_to_scipy_matches_dense() -> None:
    dense = np.array([[0.0, 2.0], [-1.0, 0.0], [0.5, 3.0]])
    matrix = encode_csc(dense).to_scipy()
    assert matrix.format == "csc"
    assert matrix.indices.dtype == np.int64
    assert matrix.indptr.dtype == np.int64
    np.testing.assert_array_equal(matrix.toarray(), dense)


def test_all_zero_and_empty_matrices() -> None:
    zeros = encode_csc(np.zeros((3, 2)))
    assert zeros.nnz == 0
    np.testing.assert_array_equal(zeros.col_pointers, [0, 0, 0])
    np.testing.assert_array_equal(zeros.to_dense(), np.zeros((3, 2)))

    empty = encode_csc(np.zeros((0, 0)))
    assert empty.nnz == 0
    assert empty.col_pointers.tolist() == [0]


def test_arrays_are_read_only() -> None:
    encoded = encode_csc(np.eye(2))
    with pytest.raises(ValueError):
        encoded.values[0] = 5.0


def test_invalid_inputs() -> None:
    with pytest.raises(ValueError):
        encode_csc(np.ones(3))
    with pytest.raises(ValueError):
        encode_csc(np.eye(2), tolerance=-1.0)
    with pytest.raises(ValueError):
        encode_csc(np.array([[np.nan]]))


def test_sparse_matrix_validates_structure() -> None:
    with pytest.raises(DimensionMismatchError):
        SparseMatrix(
            num_rows=2,
            num_cols=1,
            col_pointers=np.array([0, 1], dtype=INDEX_DTYPE),
            row_indices=np.array([2], dtype=INDEX_DTYPE),
            values=np.array([1.0]),
        )
    with pytest.raises(DimensionMismatchError):
        SparseMatrix(
            num_rows=2,
            num_cols=2,
            col_pointers=np.array([0, 1], dtype=INDEX_DTYPE),
            row_indices=np.array([0], dtype=INDEX_DTYPE),
            values=np.array([1.0]),
        )


@pytest.mark.parametrize("rows", [[2, 2], [2, 0]])
def test_sparse_matrix_rejects_unsorted_rows(rows: list[int]) -> None:
    with pytest.raises(DimensionMismatchError, match="strictly ascending"):
        SparseMatrix(
            num_rows=3,
            num_cols=1,
            col_pointers=[0, 2],
            row_indices=rows,
            values=[1.0, 2.0],
        )


def test_sparse_matrix_widens_narrow_indices() -> None:
    matrix = SparseMatrix(
        num_rows=3,
        num_cols=2,
        col_pointers=np.array([0, 1, 3], dtype=np.int32),
        row_indices=np.array([1, 0, 2], dtype=np.int32),
        values=np.array([1.0, -2.0, 4.0]),
    )

    assert matrix.col_pointers.dtype == INDEX_DTYPE
    assert matrix.row_indices.dtype == INDEX_DTYPE
    assert matrix.fingerprint() == encode_csc(matrix.to_dense()).fingerprint()
    with pytest.raises(TypeError):
        SparseMatrix(
            num_rows=1,
            num_cols=1,
            col_pointers=np.array([0.0, 1.0]),
            row_indices=[0],
            values=[1.0],
        )
