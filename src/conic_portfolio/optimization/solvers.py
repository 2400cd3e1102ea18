"""Public entry points: build, solve and extract a long-only portfolio."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from conic_portfolio.config import ProblemConfig, Settings, get_settings, load_config
from conic_portfolio.optimization.backends import adapter_for_convention, get_adapter
from conic_portfolio.optimization.core.postprocess import (
    extract_weights,
    portfolio_moments,
    weights_to_series,
)
from conic_portfolio.optimization.core.exceptions import SolverStatusError
from conic_portfolio.optimization.core.program import ConicProgram, PortfolioSpec, build_program
from conic_portfolio.optimization.core.solver_utils import (
    SolverParameters,
    SolverResult,
    SolverStatus,
    solver_session,
)
from conic_portfolio.optimization.core.sparse import DEFAULT_TOLERANCE

__all__ = [
    "PortfolioResult",
    "optimize_portfolio",
    "run_from_config",
    "solve_portfolio",
    "solve_program",
    "spec_from_config",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortfolioResult:
    weights: pd.Series
    expected_return: float
    variance: float
    volatility: float
    solver: SolverResult

    def to_dict(self, include_weights: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.solver.status.value,
            "expected_return": self.expected_return,
            "variance": self.variance,
            "volatility": self.volatility,
            "solver": {
                "name": self.solver.backend,
                "native_status": self.solver.native_status,
                "objective": self.solver.objective,
                "iterations": self.solver.iterations,
                "runtime": self.solver.runtime,
            },
        }
        if include_weights:
            payload["weights"] = [
                {"asset": str(asset), "weight": float(weight)}
                for asset, weight in self.weights.items()
            ]
        return payload


def solve_program(
    program: ConicProgram,
    *,
    backend: str | None = None,
    parameters: SolverParameters | None = None,
) -> SolverResult:
    """Run ``program`` through a backend and report the normalised status.

    Non-optimal outcomes are returned, not raised. Lifecycle errors and
    convention mismatches propagate.
    """

    if backend is None:
        adapter = adapter_for_convention(program.convention)
    else:
        adapter = get_adapter(backend)

    with solver_session(adapter, program, parameters) as handle:
        status = adapter.optimize(handle)
        primal = adapter.solution(handle) if status is SolverStatus.OPTIMAL else None
        return SolverResult(
            status=status,
            primal=primal,
            backend=adapter.name,
            native_status=str(handle.native_status),
            objective=float(handle.objective),
            runtime=float(handle.runtime),
            iterations=handle.iterations,
        )


def solve_portfolio(
    spec: PortfolioSpec,
    *,
    backend: str = "clarabel",
    parameters: SolverParameters | None = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> SolverResult:
    """Factor, assemble in the backend's layout and solve ``spec``."""

    adapter = get_adapter(backend)
    program = build_program(spec, adapter.convention, tolerance=tolerance)
    return solve_program(program, backend=adapter.name, parameters=parameters)


def optimize_portfolio(
    spec: PortfolioSpec,
    *,
    backend: str = "clarabel",
    parameters: SolverParameters | None = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> PortfolioResult:
    """Solve ``spec`` and return validated weights.

    Raises
    ------
    DecompositionError
        The covariance is not positive definite.
    SolverStatusError
        The backend finished infeasible, unbounded or with an error.
    """

    result = solve_portfolio(spec, backend=backend, parameters=parameters, tolerance=tolerance)
    if not result.is_optimal():
        logger.warning(
            "Portfolio solve failed: backend=%s status=%s native=%s",
            result.backend,
            result.status.value,
            result.native_status,
        )
        raise SolverStatusError(result.status, result.backend)

    weights = extract_weights(result.primal, spec.num_assets)
    expected_return, variance = portfolio_moments(weights, spec.expected_returns, spec.covariance)
    return PortfolioResult(
        weights=weights_to_series(weights, spec.assets),
        expected_return=expected_return,
        variance=variance,
        volatility=float(np.sqrt(max(variance, 0.0))),
        solver=result,
    )


def spec_from_config(config: ProblemConfig) -> PortfolioSpec:
    assets = tuple(config.assets) if config.assets else ()
    return PortfolioSpec(
        expected_returns=np.asarray(config.expected_returns, dtype=float),
        covariance=np.asarray(config.covariance, dtype=float),
        risk_limit=config.risk_limit,
        assets=assets,
    )


def run_from_config(
    config_path: str | Path,
    *,
    settings: Settings | None = None,
) -> PortfolioResult:
    """Load a problem file (relative paths start in ``settings.configs_dir``) and solve it."""

    settings = settings or get_settings()
    config = load_config(
        config_path,
        ProblemConfig,
        project_root=settings.project_root,
        configs_dir=settings.configs_dir,
    )
    parameters = SolverParameters.from_config(config.solver)
    if settings.solver_verbose and not parameters.verbose:
        parameters = replace(parameters, verbose=True)
    return optimize_portfolio(
        spec_from_config(config),
        backend=config.solver.backend,
        parameters=parameters,
        tolerance=config.solver.sparsity_tolerance,
    )
