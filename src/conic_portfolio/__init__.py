"""Mean-variance portfolio selection as a second-order cone program.

The covariance is Cholesky factored, the problem is assembled in the layout
of the chosen conic backend (Clarabel or ECOS), solved, and the portfolio
weights are read back from the primal solution.
"""

from .optimization.core import (
    DecompositionError,
    DimensionMismatchError,
    PortfolioSpec,
    SolverParameters,
    SolverStatus,
    SolverStatusError,
    build_program,
)
from .optimization.solvers import optimize_portfolio, solve_portfolio

__version__ = "0.1.0"

__all__ = [
    "DecompositionError",
    "DimensionMismatchError",
    "PortfolioSpec",
    "SolverParameters",
    "SolverStatus",
    "SolverStatusError",
    "build_program",
    "optimize_portfolio",
    "solve_portfolio",
    "__version__",
]
