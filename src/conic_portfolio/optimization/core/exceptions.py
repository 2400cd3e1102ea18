"""Error taxonomy for the conic portfolio pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .solver_utils import SolverStatus

__all__ = [
    "ConicPortfolioError",
    "DecompositionError",
    "DimensionMismatchError",
    "SolverStateError",
    "SolverStatusError",
]


class ConicPortfolioError(Exception):
    """Base class for every error raised by the package."""


class DecompositionError(ConicPortfolioError, ValueError):
    """Raised when the covariance matrix cannot be Cholesky factored."""


class DimensionMismatchError(ConicPortfolioError, ValueError):
    """Raised when vector lengths, matrix shapes or cone sizes disagree."""


class SolverStateError(ConicPortfolioError, RuntimeError):
    """Raised when a solver handle is used out of lifecycle order."""


class SolverStatusError(ConicPortfolioError):
    """Raised when a solve finishes without an optimal status."""

    def __init__(self, status: "SolverStatus", backend: str, message: str | None = None) -> None:
        self.status = status
        self.backend = backend
        if message is None:
            message = f"{backend} solve finished with status {status.value}"
        super().__init__(message)
