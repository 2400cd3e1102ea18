from __future__ import annotations

import logging

import numpy as np
import pytest

from conic_portfolio.config import (
    DEMO_ASSETS,
    DEMO_COVARIANCE,
    DEMO_EXPECTED_RETURNS,
    DEMO_RISK_LIMIT,
    reset_settings_cache,
)
from conic_portfolio.optimization.core.program import PortfolioSpec


@pytest.fixture
def demo_mu() -> np.ndarray:
    return np.array(DEMO_EXPECTED_RETURNS, dtype=float)


@pytest.fixture
def demo_cov() -> np.ndarray:
    return np.array(DEMO_COVARIANCE, dtype=float)


@pytest.fixture
def demo_spec(demo_mu: np.ndarray, demo_cov: np.ndarray) -> PortfolioSpec:
    return PortfolioSpec(demo_mu, demo_cov, DEMO_RISK_LIMIT, DEMO_ASSETS)


@pytest.fixture
def infeasible_spec(demo_mu: np.ndarray, demo_cov: np.ndarray) -> PortfolioSpec:
    return PortfolioSpec(demo_mu, demo_cov, 1e-6, DEMO_ASSETS)


@pytest.fixture
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Point every settings path at ``tmp_path`` and clean up root handlers."""

    monkeypatch.setenv("CONIC_PORTFOLIO_PROJECT_ROOT", str(tmp_path))
    monkeypatch.setenv("CONIC_PORTFOLIO_LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("CONIC_PORTFOLIO_CONFIGS_DIR", str(tmp_path / "configs"))
    reset_settings_cache()
    yield tmp_path
    reset_settings_cache()
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
