from __future__ import annotations

import pytest
from pydantic import ValidationError

from conic_portfolio.config.schemas import ProblemConfig, SolverConfig


def _problem(**overrides):
    data = {
        "assets": ["A", "B"],
        "expected_returns": [0.05, 0.09],
        "covariance": [[0.0016, 0.0006], [0.0006, 0.0225]],
        "risk_limit": 0.06,
    }
    data.update(overrides)
    return data


def test_solver_defaults() -> None:
    config = SolverConfig()
    assert config.backend == "clarabel"
    assert config.verbose is False
    assert config.max_iter is None
    assert config.sparsity_tolerance == pytest.approx(1e-8)


def test_backend_is_case_insensitive() -> None:
    assert SolverConfig(backend="ECOS").backend == "ecos"
    with pytest.raises(ValidationError):
        SolverConfig(backend="mosek")


@pytest.mark.parametrize(
    "field,value",
    [("max_iter", 0), ("tol_feas", 0.0), ("tol_gap_abs", -1e-8), ("sparsity_tolerance", -1.0)],
)
def test_solver_rejects_non_positive_options(field: str, value: float) -> None:
    with pytest.raises(ValidationError):
        SolverConfig(**{field: value})


def test_problem_config_valid() -> None:
    config = ProblemConfig.model_validate(_problem(solver={"backend": "ecos", "max_iter": 50}))
    assert config.solver.backend == "ecos"
    assert config.solver.max_iter == 50
    assert config.risk_limit == pytest.approx(0.06)


def test_problem_config_assets_optional() -> None:
    config = ProblemConfig.model_validate(_problem(assets=None))
    assert config.assets is None
    assert config.solver == SolverConfig()


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"covariance": [[0.0016, 0.0006]]}, "covariance must be 2x2"),
        ({"covariance": [[0.0016], [0.0006, 0.0225]]}, "covariance must be 2x2"),
        ({"assets": ["A"]}, "1 assets given"),
        ({"assets": ["A", "A"]}, "Duplicate asset labels"),
        ({"risk_limit": 0.0}, "greater than 0"),
        ({"expected_returns": []}, "at least 1"),
    ],
)
def test_problem_config_invalid(overrides: dict, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        ProblemConfig.model_validate(_problem(**overrides))
