"""Public API for the conic program core (factor, encode, build, extract)."""

from . import cholesky, program, sparse
from .cholesky import upper_cholesky
from .cones import ConeSpec, NonnegativeCone, SecondOrderCone, ZeroCone
from .exceptions import (
    ConicPortfolioError,
    DecompositionError,
    DimensionMismatchError,
    SolverStateError,
    SolverStatusError,
)
from .postprocess import extract_weights, portfolio_moments, weights_to_series
from .program import (
    COMBINED,
    SPLIT,
    CombinedConicProgram,
    PortfolioSpec,
    SplitConicProgram,
    build_program,
)
from .solver_utils import SolverParameters, SolverResult, SolverStatus, solver_session
from .sparse import SparseMatrix, decode_csc, encode_csc

__all__ = [
    "cholesky",
    "program",
    "sparse",
    "upper_cholesky",
    "ConeSpec",
    "NonnegativeCone",
    "SecondOrderCone",
    "ZeroCone",
    "ConicPortfolioError",
    "DecompositionError",
    "DimensionMismatchError",
    "SolverStateError",
    "SolverStatusError",
    "extract_weights",
    "portfolio_moments",
    "weights_to_series",
    "COMBINED",
    "SPLIT",
    "CombinedConicProgram",
    "PortfolioSpec",
    "SplitConicProgram",
    "build_program",
    "SolverParameters",
    "SolverResult",
    "SolverStatus",
    "solver_session",
    "SparseMatrix",
    "decode_csc",
    "encode_csc",
]
