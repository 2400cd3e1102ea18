"""Cholesky factorisation of the covariance matrix."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .exceptions import DecompositionError

__all__ = ["upper_cholesky"]

logger = logging.getLogger(__name__)


def upper_cholesky(matrix: np.ndarray | pd.DataFrame) -> np.ndarray:
    """Return the upper-triangular factor ``U`` with ``U.T @ U == matrix``.

    The input must be symmetric positive definite. Any failure of the
    factorisation is reported as :class:`DecompositionError`; the caller is
    not expected to retry with a perturbed matrix.
    """

    array = np.array(matrix, dtype=float)
    if array.ndim != 2 or array.shape[0] != array.shape[1]:
        raise DecompositionError(f"covariance must be a square matrix, got shape {array.shape}")
    if not np.all(np.isfinite(array)):
        raise DecompositionError("covariance contains non-finite entries")

    try:
        lower = np.linalg.cholesky(array)
    except np.linalg.LinAlgError as exc:
        raise DecompositionError("Cholesky decomposition failed: covariance is not positive definite") from exc

    upper = np.ascontiguousarray(lower.T)
    upper.setflags(write=False)
    logger.debug("Factored %dx%d covariance", array.shape[0], array.shape[1])
    return upper
