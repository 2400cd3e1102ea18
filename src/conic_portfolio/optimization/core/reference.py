"""Same portfolio problem stated through CVXPy, used to cross-check the
hand-assembled conic programs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import cvxpy as cp
import numpy as np
import pandas as pd

from .cholesky import upper_cholesky
from .postprocess import weights_to_series
from .program import PortfolioSpec
from .solver_utils import SolverSummary, solve_problem

__all__ = ["ReferenceResult", "build_reference_problem", "solve_reference"]


@dataclass(frozen=True)
class ReferenceResult:
    weights: pd.Series | None
    summary: SolverSummary


def build_reference_problem(spec: PortfolioSpec) -> tuple[cp.Problem, cp.Variable]:
    upper = upper_cholesky(spec.covariance)
    weights = cp.Variable(spec.num_assets)
    constraints = [
        cp.sum(weights) == 1.0,
        weights >= 0.0,
        cp.norm(upper @ weights, 2) <= spec.risk_limit,
    ]
    problem = cp.Problem(cp.Maximize(spec.expected_returns @ weights), constraints)
    return problem, weights


def solve_reference(
    spec: PortfolioSpec,
    *,
    solver: str | None = None,
    solver_kwargs: Mapping[str, Any] | None = None,
) -> ReferenceResult:
    problem, weights = build_reference_problem(spec)
    summary = solve_problem(problem, solver=solver, solver_kwargs=solver_kwargs)
    if not summary.is_optimal() or weights.value is None:
        return ReferenceResult(weights=None, summary=summary)
    values = np.asarray(weights.value, dtype=float).ravel()
    return ReferenceResult(weights=weights_to_series(values, spec.assets), summary=summary)
