"""Portfolio optimisation through hand-assembled second-order cone programs."""

from .backends import ClarabelAdapter, EcosAdapter, get_adapter
from .solvers import (
    PortfolioResult,
    optimize_portfolio,
    run_from_config,
    solve_portfolio,
    solve_program,
)

__all__ = [
    "ClarabelAdapter",
    "EcosAdapter",
    "get_adapter",
    "PortfolioResult",
    "optimize_portfolio",
    "run_from_config",
    "solve_portfolio",
    "solve_program",
]
