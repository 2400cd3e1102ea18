"""Dense to compressed-sparse-column conversion.

Both solver backends consume constraint matrices in CSC form with 64-bit
index arrays. :func:`encode_csc` scans the dense matrix column by column,
drops entries whose magnitude does not exceed ``tolerance`` and emits row
indices in ascending order, so the same input always produces the same
arrays.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp

from .exceptions import DimensionMismatchError

__all__ = [
    "DEFAULT_TOLERANCE",
    "INDEX_DTYPE",
    "SparseMatrix",
    "decode_csc",
    "encode_csc",
]

DEFAULT_TOLERANCE = 1e-8
INDEX_DTYPE = np.int64


def _readonly(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def _index_array(values: np.ndarray, label: str) -> np.ndarray:
    array = np.asarray(values)
    if array.dtype == INDEX_DTYPE:
        return array
    if array.size and not np.issubdtype(array.dtype, np.integer):
        raise TypeError(f"{label} must hold integers, got dtype {array.dtype}")
    return _readonly(array.astype(INDEX_DTYPE))


@dataclass(frozen=True)
class SparseMatrix:
    num_rows: int
    num_cols: int
    col_pointers: np.ndarray
    row_indices: np.ndarray
    values: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "col_pointers", _index_array(self.col_pointers, "col_pointers"))
        object.__setattr__(self, "row_indices", _index_array(self.row_indices, "row_indices"))
        values = np.asarray(self.values, dtype=float)
        if values is not self.values:
            values = _readonly(values)
        object.__setattr__(self, "values", values)

        if self.col_pointers.shape != (self.num_cols + 1,):
            raise DimensionMismatchError(
                f"col_pointers must have {self.num_cols + 1} entries, got {self.col_pointers.shape}"
            )
        if self.row_indices.shape != self.values.shape:
            raise DimensionMismatchError("row_indices and values must have the same length")
        if self.col_pointers[0] != 0 or self.col_pointers[-1] != self.values.size:
            raise DimensionMismatchError("col_pointers must start at 0 and end at nnz")
        if np.any(np.diff(self.col_pointers) < 0):
            raise DimensionMismatchError("col_pointers must be nondecreasing")
        if self.row_indices.size and (
            self.row_indices.min() < 0 or self.row_indices.max() >= self.num_rows
        ):
            raise DimensionMismatchError("row index outside [0, num_rows)")
        for col in range(self.num_cols):
            start, stop = self.col_pointers[col], self.col_pointers[col + 1]
            if np.any(np.diff(self.row_indices[start:stop]) <= 0):
                raise DimensionMismatchError(
                    f"row indices of column {col} must be strictly ascending"
                )

    @property
    def shape(self) -> tuple[int, int]:
        return (self.num_rows, self.num_cols)

    @property
    def nnz(self) -> int:
        return int(self.values.size)

    def to_dense(self) -> np.ndarray:
        return decode_csc(self)

    def to_scipy(self) -> sp.csc_matrix:
        """View the matrix as a ``scipy.sparse.csc_matrix`` (arrays are copied)."""

        matrix = sp.csc_matrix(
            (self.values.copy(), self.row_indices.copy(), self.col_pointers.copy()),
            shape=self.shape,
        )
        # scipy narrows the index arrays to int32 on construction
        matrix.indices = self.row_indices.copy()
        matrix.indptr = self.col_pointers.copy()
        matrix.has_sorted_indices = True
        return matrix

    def fingerprint(self) -> str:
        digest = hashlib.sha256()
        digest.update(np.asarray(self.shape, dtype=INDEX_DTYPE).tobytes())
        digest.update(self.col_pointers.tobytes())
        digest.update(self.row_indices.tobytes())
        digest.update(self.values.tobytes())
        return digest.hexdigest()


def encode_csc(dense: np.ndarray, tolerance: float = DEFAULT_TOLERANCE) -> SparseMatrix:
    """Encode ``dense`` as :class:`SparseMatrix`, dropping ``|v| <= tolerance``."""

    if tolerance < 0 or not np.isfinite(tolerance):
        raise ValueError(f"tolerance must be a non-negative finite number, got {tolerance}")

    matrix = np.asarray(dense, dtype=float)
    if matrix.ndim != 2:
        raise ValueError(f"expected a 2-dimensional matrix, got ndim={matrix.ndim}")
    if np.isnan(matrix).any():
        raise ValueError("matrix contains NaN entries")

    num_rows, num_cols = matrix.shape
    col_pointers = np.zeros(num_cols + 1, dtype=INDEX_DTYPE)
    rows: list[np.ndarray] = []
    values: list[np.ndarray] = []

    for col in range(num_cols):
        column = matrix[:, col]
        keep = np.flatnonzero(np.abs(column) > tolerance)
        rows.append(keep)
        values.append(column[keep])
        col_pointers[col + 1] = col_pointers[col] + keep.size

    if rows:
        row_indices = np.concatenate(rows).astype(INDEX_DTYPE, copy=False)
        nz_values = np.concatenate(values).astype(float, copy=False)
    else:
        row_indices = np.zeros(0, dtype=INDEX_DTYPE)
        nz_values = np.zeros(0, dtype=float)

    return SparseMatrix(
        num_rows=int(num_rows),
        num_cols=int(num_cols),
        col_pointers=_readonly(col_pointers),
        row_indices=_readonly(np.ascontiguousarray(row_indices)),
        values=_readonly(np.ascontiguousarray(nz_values)),
    )


def decode_csc(matrix: SparseMatrix) -> np.ndarray:
    dense = np.zeros(matrix.shape, dtype=float)
    for col in range(matrix.num_cols):
        start, stop = matrix.col_pointers[col], matrix.col_pointers[col + 1]
        dense[matrix.row_indices[start:stop], col] = matrix.values[start:stop]
    return dense
