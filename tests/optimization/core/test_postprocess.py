from __future__ import annotations

import numpy as np
import pytest

from conic_portfolio.optimization.core.exceptions import DimensionMismatchError
from conic_portfolio.optimization.core.postprocess import (
    extract_weights,
    portfolio_moments,
    weights_to_series,
)


@pytest.mark.parametrize("extra", [0, 1, 5])
def test_extract_returns_leading_entries(extra: int) -> None:
    weights = np.array([0.1, 0.2, 0.3, 0.4])
    primal = np.r_[weights, np.arange(extra, dtype=float) + 10.0]

    extracted = extract_weights(primal, 4)

    np.testing.assert_array_equal(extracted, weights)
    assert extracted.size == 4


def test_extract_returns_a_copy() -> None:
    primal = np.array([0.5, 0.5, 0.1])
    extracted = extract_weights(primal, 2)
    extracted[0] = 9.0
    assert primal[0] == 0.5


def test_extract_rejects_short_or_malformed_vectors() -> None:
    with pytest.raises(DimensionMismatchError):
        extract_weights([0.5, 0.5], 3)
    with pytest.raises(DimensionMismatchError):
        extract_weights(np.ones((2, 2)), 2)
    with pytest.raises(ValueError):
        extract_weights([1.0], 0)


def test_weights_to_series_and_moments() -> None:
    weights = np.array([0.25, 0.75])
    series = weights_to_series(weights, ["A", "B"])
    assert list(series.index) == ["A", "B"]
    assert series["B"] == pytest.approx(0.75)

    expected_return, variance = portfolio_moments(
        weights, np.array([0.04, 0.08]), np.array([[0.04, 0.0], [0.0, 0.09]])
    )
    assert expected_return == pytest.approx(0.07)
    assert variance == pytest.approx(0.25**2 * 0.04 + 0.75**2 * 0.09)

    with pytest.raises(DimensionMismatchError):
        weights_to_series(weights, ["A"])
