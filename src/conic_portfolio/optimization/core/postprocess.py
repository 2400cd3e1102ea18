"""Turn raw primal vectors into portfolio weights."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from .exceptions import DimensionMismatchError

__all__ = [
    "extract_weights",
    "portfolio_moments",
    "weights_to_series",
]


def extract_weights(primal: Sequence[float] | np.ndarray, num_assets: int) -> np.ndarray:
    """Return the first ``num_assets`` entries of ``primal``.

    Both program layouts place the weights first, so any trailing auxiliary
    variables are dropped regardless of the backend that produced them.
    """

    if num_assets < 1:
        raise ValueError(f"num_assets must be positive, got {num_assets}")
    values = np.asarray(primal, dtype=float)
    if values.ndim != 1:
        raise DimensionMismatchError(f"primal must be 1-dimensional, got ndim={values.ndim}")
    if values.size < num_assets:
        raise DimensionMismatchError(
            f"primal has {values.size} entries but {num_assets} weights were requested"
        )
    return values[:num_assets].copy()


def weights_to_series(weights: np.ndarray, assets: Sequence[object]) -> pd.Series:
    if len(assets) != len(weights):
        raise DimensionMismatchError("index length mismatch with weights")
    return pd.Series(np.asarray(weights, dtype=float), index=list(assets), dtype=float, name="weight")


def portfolio_moments(
    weights: np.ndarray, expected_returns: np.ndarray, covariance: np.ndarray
) -> tuple[float, float]:
    """Expected return ``mu' w`` and variance ``w' Sigma w``."""

    w = np.asarray(weights, dtype=float)
    expected_return = float(np.asarray(expected_returns, dtype=float) @ w)
    variance = float(w @ np.asarray(covariance, dtype=float) @ w)
    return expected_return, variance
