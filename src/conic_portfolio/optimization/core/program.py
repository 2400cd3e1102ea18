"""Assemble the mean-variance SOCP in the layout each backend expects.

The program has ``d = n + 1`` variables: the ``n`` portfolio weights followed
by an auxiliary variable ``t`` bounding the portfolio volatility. Every
constraint row follows the solver convention ``s = b - A x`` with ``s`` in a
cone:

* budget (zero cone): ``1 - sum(x) = 0``;
* non-negative cone: ``x >= 0`` and ``risk_limit - t >= 0``;
* second-order cone: ``(t, U x)`` with ``||U x||_2 <= t`` where ``U`` is the
  upper Cholesky factor of the covariance.

The combined layout stacks all blocks into a single matrix; the split layout
keeps the budget row as a separate equality system.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import ClassVar, Protocol, Sequence

import numpy as np
import pandas as pd

from .cholesky import upper_cholesky
from .cones import ConeSpec, NonnegativeCone, SecondOrderCone, ZeroCone, total_dim
from .exceptions import DimensionMismatchError
from .sparse import DEFAULT_TOLERANCE, SparseMatrix, encode_csc

__all__ = [
    "COMBINED",
    "SPLIT",
    "CombinedConicProgram",
    "CombinedConvention",
    "ConicProgram",
    "PortfolioSpec",
    "ProgramConvention",
    "SplitConicProgram",
    "SplitConvention",
    "build_program",
    "get_convention",
]

logger = logging.getLogger(__name__)

COMBINED = "combined"
SPLIT = "split"

_SYMMETRY_ATOL = 1e-10


def _frozen(values: np.ndarray) -> np.ndarray:
    array = np.array(values, dtype=float)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class PortfolioSpec:
    """Inputs of a long-only mean-variance problem with a risk cap."""

    expected_returns: np.ndarray
    covariance: np.ndarray
    risk_limit: float
    assets: tuple = ()

    def __post_init__(self) -> None:
        mu = np.asarray(self.expected_returns, dtype=float)
        cov = np.asarray(self.covariance, dtype=float)

        if mu.ndim != 1 or mu.size < 1:
            raise ValueError("expected_returns must be a non-empty 1-dimensional sequence")
        if cov.ndim != 2 or cov.shape[0] != cov.shape[1]:
            raise ValueError(f"covariance must be square, got shape {cov.shape}")
        if cov.shape[0] != mu.size:
            raise DimensionMismatchError(
                f"covariance is {cov.shape[0]}x{cov.shape[1]} but there are {mu.size} expected returns"
            )
        if not (np.all(np.isfinite(mu)) and np.all(np.isfinite(cov))):
            raise ValueError("expected_returns and covariance must be finite")
        if not np.allclose(cov, cov.T, atol=_SYMMETRY_ATOL, rtol=0.0):
            raise ValueError("covariance must be symmetric")

        risk_limit = float(self.risk_limit)
        if not np.isfinite(risk_limit) or risk_limit <= 0:
            raise ValueError(f"risk_limit must be positive, got {self.risk_limit}")

        assets = tuple(self.assets) if len(self.assets) else tuple(range(mu.size))
        if len(assets) != mu.size:
            raise DimensionMismatchError(
                f"{len(assets)} asset labels supplied for {mu.size} expected returns"
            )

        object.__setattr__(self, "expected_returns", _frozen(mu))
        object.__setattr__(self, "covariance", _frozen(cov))
        object.__setattr__(self, "risk_limit", risk_limit)
        object.__setattr__(self, "assets", assets)

    @property
    def num_assets(self) -> int:
        return int(self.expected_returns.size)

    @classmethod
    def from_pandas(
        cls,
        mu: pd.Series | Sequence[float],
        cov: pd.DataFrame | np.ndarray,
        risk_limit: float,
    ) -> "PortfolioSpec":
        """Build a spec aligning ``cov`` to the index of ``mu`` when labelled."""

        if isinstance(mu, pd.Series):
            assets = list(mu.index)
        elif isinstance(cov, pd.DataFrame):
            assets = list(cov.index)
        else:
            assets = list(range(np.asarray(mu).size))

        if isinstance(mu, pd.Series):
            mu_values = mu.reindex(assets).to_numpy(dtype=float)
        else:
            mu_values = np.asarray(mu, dtype=float)
        if isinstance(cov, pd.DataFrame):
            cov_values = cov.reindex(index=assets, columns=assets).to_numpy(dtype=float)
        else:
            cov_values = np.asarray(cov, dtype=float)

        return cls(mu_values, cov_values, risk_limit, tuple(assets))


@dataclass(frozen=True)
class CombinedConicProgram:
    """Single ``A x + s = b`` system, cones ``[zero, nonneg, soc]``."""

    convention: ClassVar[str] = COMBINED

    cost: np.ndarray
    matrix: SparseMatrix
    rhs: np.ndarray
    cones: tuple[ConeSpec, ...]
    num_assets: int

    def __post_init__(self) -> None:
        _check_block(self.matrix, self.rhs, self.cones, self.cost.size, "constraint")
        if not isinstance(self.cones[0], ZeroCone):
            raise DimensionMismatchError("combined layout must start with the zero cone")

    @property
    def dimension(self) -> int:
        return int(self.cost.size)


@dataclass(frozen=True)
class SplitConicProgram:
    """Equalities ``A x = b`` plus cone constraints ``G x + s = h``."""

    convention: ClassVar[str] = SPLIT

    cost: np.ndarray
    equality_matrix: SparseMatrix
    equality_rhs: np.ndarray
    inequality_matrix: SparseMatrix
    inequality_rhs: np.ndarray
    cones: tuple[ConeSpec, ...]
    num_assets: int
    equality_cones: tuple[ConeSpec, ...] = field(default=(), repr=False)

    def __post_init__(self) -> None:
        if any(isinstance(cone, ZeroCone) for cone in self.cones):
            raise DimensionMismatchError("split layout carries equalities outside the cone list")
        _check_block(self.inequality_matrix, self.inequality_rhs, self.cones, self.cost.size, "inequality")
        equality_cones = (ZeroCone(self.equality_matrix.num_rows),)
        _check_block(self.equality_matrix, self.equality_rhs, equality_cones, self.cost.size, "equality")
        object.__setattr__(self, "equality_cones", equality_cones)

    @property
    def dimension(self) -> int:
        return int(self.cost.size)

    @property
    def num_linear(self) -> int:
        return sum(cone.dim for cone in self.cones if isinstance(cone, NonnegativeCone))

    @property
    def soc_dims(self) -> list[int]:
        return [cone.dim for cone in self.cones if isinstance(cone, SecondOrderCone)]


ConicProgram = CombinedConicProgram | SplitConicProgram


def _check_block(
    matrix: SparseMatrix,
    rhs: np.ndarray,
    cones: Sequence[ConeSpec],
    dimension: int,
    label: str,
) -> None:
    if not cones:
        raise DimensionMismatchError(f"{label} block has no cones")
    rows = total_dim(cones)
    if rows != matrix.num_rows:
        raise DimensionMismatchError(
            f"{label} cones cover {rows} rows but the matrix has {matrix.num_rows}"
        )
    if rhs.shape != (matrix.num_rows,):
        raise DimensionMismatchError(
            f"{label} right-hand side has shape {rhs.shape}, expected ({matrix.num_rows},)"
        )
    if matrix.num_cols != dimension:
        raise DimensionMismatchError(
            f"{label} matrix has {matrix.num_cols} columns, expected {dimension}"
        )


# Shared blocks --------------------------------------------------------------


def _cost_vector(spec: PortfolioSpec) -> np.ndarray:
    return np.concatenate([-spec.expected_returns, [0.0]])


def _budget_block(n: int) -> tuple[np.ndarray, np.ndarray, ConeSpec]:
    matrix = np.zeros((1, n + 1))
    matrix[0, :n] = 1.0
    return matrix, np.array([1.0]), ZeroCone(1)


def _nonnegative_block(n: int, risk_limit: float) -> tuple[np.ndarray, np.ndarray, ConeSpec]:
    matrix = np.zeros((n + 1, n + 1))
    matrix[:n, :n] = -np.eye(n)
    matrix[n, n] = 1.0
    rhs = np.zeros(n + 1)
    rhs[n] = risk_limit
    return matrix, rhs, NonnegativeCone(n + 1)


def _second_order_block(factor: np.ndarray) -> tuple[np.ndarray, np.ndarray, ConeSpec]:
    n = factor.shape[0]
    matrix = np.zeros((n + 1, n + 1))
    matrix[0, n] = -1.0
    matrix[1:, :n] = -factor
    return matrix, np.zeros(n + 1), SecondOrderCone(n + 1)


def _resolve_factor(spec: PortfolioSpec, factor: np.ndarray | None) -> np.ndarray:
    if factor is None:
        return upper_cholesky(spec.covariance)
    factor = np.asarray(factor, dtype=float)
    n = spec.num_assets
    if factor.shape != (n, n):
        raise DimensionMismatchError(f"factor has shape {factor.shape}, expected ({n}, {n})")
    return factor


# Conventions ----------------------------------------------------------------


class ProgramConvention(Protocol):
    name: str

    def build(
        self, spec: PortfolioSpec, factor: np.ndarray, *, tolerance: float = DEFAULT_TOLERANCE
    ) -> ConicProgram: ...


class CombinedConvention:
    name = COMBINED

    def build(
        self, spec: PortfolioSpec, factor: np.ndarray, *, tolerance: float = DEFAULT_TOLERANCE
    ) -> CombinedConicProgram:
        n = spec.num_assets
        blocks = [
            _budget_block(n),
            _nonnegative_block(n, spec.risk_limit),
            _second_order_block(factor),
        ]
        dense = np.vstack([block[0] for block in blocks])
        rhs = np.concatenate([block[1] for block in blocks])
        return CombinedConicProgram(
            cost=_frozen(_cost_vector(spec)),
            matrix=encode_csc(dense, tolerance),
            rhs=_frozen(rhs),
            cones=tuple(block[2] for block in blocks),
            num_assets=n,
        )


class SplitConvention:
    name = SPLIT

    def build(
        self, spec: PortfolioSpec, factor: np.ndarray, *, tolerance: float = DEFAULT_TOLERANCE
    ) -> SplitConicProgram:
        n = spec.num_assets
        eq_matrix, eq_rhs, _ = _budget_block(n)
        blocks = [_nonnegative_block(n, spec.risk_limit), _second_order_block(factor)]
        return SplitConicProgram(
            cost=_frozen(_cost_vector(spec)),
            equality_matrix=encode_csc(eq_matrix, tolerance),
            equality_rhs=_frozen(eq_rhs),
            inequality_matrix=encode_csc(np.vstack([block[0] for block in blocks]), tolerance),
            inequality_rhs=_frozen(np.concatenate([block[1] for block in blocks])),
            cones=tuple(block[2] for block in blocks),
            num_assets=n,
        )


_CONVENTIONS: dict[str, ProgramConvention] = {
    COMBINED: CombinedConvention(),
    SPLIT: SplitConvention(),
}


def get_convention(name: str) -> ProgramConvention:
    try:
        return _CONVENTIONS[name.lower()]
    except KeyError:
        options = ", ".join(sorted(_CONVENTIONS))
        raise ValueError(f"Unknown program convention '{name}'. Choose one of: {options}") from None


def build_program(
    spec: PortfolioSpec,
    convention: str = COMBINED,
    *,
    factor: np.ndarray | None = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> ConicProgram:
    """Assemble the conic program for ``spec`` in the requested layout.

    ``factor`` defaults to the upper Cholesky factor of ``spec.covariance``;
    a :class:`DecompositionError` propagates when the covariance is not
    positive definite.
    """

    strategy = get_convention(convention)
    upper = _resolve_factor(spec, factor)
    program = strategy.build(spec, upper, tolerance=tolerance)
    logger.debug(
        "Built %s program: n=%d d=%d cones=%s",
        strategy.name,
        spec.num_assets,
        program.dimension,
        [f"{type(cone).__name__}({cone.dim})" for cone in program.cones],
    )
    return program
