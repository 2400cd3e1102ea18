"""Solver lifecycle, status normalisation and CVXPy helpers."""

from __future__ import annotations

import enum
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Protocol

import cvxpy as cp
import numpy as np

from .exceptions import SolverStateError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from conic_portfolio.config.schemas import SolverConfig

    from .program import ConicProgram

__all__ = [
    "HandleState",
    "SolverAdapter",
    "SolverHandle",
    "SolverParameters",
    "SolverResult",
    "SolverStatus",
    "SolverSummary",
    "normalize_cvxpy_status",
    "select_solver",
    "solve_problem",
    "solver_session",
]

logger = logging.getLogger(__name__)


class SolverStatus(str, enum.Enum):
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    SOLVER_ERROR = "solver_error"


class HandleState(str, enum.Enum):
    CREATED = "created"
    CONFIGURED = "configured"
    SET_UP = "set_up"
    OPTIMIZED = "optimized"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class SolverParameters:
    """Options forwarded to the backend; ``None`` keeps its default."""

    verbose: bool = False
    max_iter: int | None = None
    tol_feas: float | None = None
    tol_gap_abs: float | None = None
    tol_gap_rel: float | None = None

    @classmethod
    def from_config(cls, config: "SolverConfig") -> "SolverParameters":
        return cls(
            verbose=config.verbose,
            max_iter=config.max_iter,
            tol_feas=config.tol_feas,
            tol_gap_abs=config.tol_gap_abs,
            tol_gap_rel=config.tol_gap_rel,
        )


@dataclass(frozen=True)
class SolverResult:
    status: SolverStatus
    primal: np.ndarray | None
    backend: str
    native_status: str
    objective: float = float("nan")
    runtime: float = 0.0
    iterations: int | None = None

    def is_optimal(self) -> bool:
        return self.status is SolverStatus.OPTIMAL


@dataclass
class SolverHandle:
    """Mutable per-solve state owned by the caller.

    ``native`` holds whatever the backend needs between ``setup`` and
    ``optimize`` (a solver object, or the prepared call arguments).
    """

    backend: str
    state: HandleState = HandleState.CREATED
    parameters: SolverParameters | None = None
    native: Any = None
    status: SolverStatus | None = None
    native_status: str | None = None
    primal: np.ndarray | None = None
    objective: float = float("nan")
    iterations: int | None = None
    runtime: float = 0.0

    def configure(self, parameters: SolverParameters) -> None:
        self.require(HandleState.CREATED, action="configure")
        self.parameters = parameters
        self.state = HandleState.CONFIGURED

    def require(self, *states: HandleState, action: str) -> None:
        if self.state not in states:
            expected = " or ".join(state.value for state in states)
            raise SolverStateError(
                f"cannot {action} a {self.backend} handle in state '{self.state.value}' "
                f"(expected {expected})"
            )

    def dispose(self) -> None:
        if self.state is HandleState.DISPOSED:
            raise SolverStateError(f"{self.backend} handle already disposed")
        self.native = None
        self.state = HandleState.DISPOSED


class SolverAdapter(Protocol):
    """Capability interface implemented by each conic backend."""

    name: str
    convention: str

    def setup(self, program: "ConicProgram", parameters: SolverParameters) -> SolverHandle: ...

    def optimize(self, handle: SolverHandle) -> SolverStatus: ...

    def solution(self, handle: SolverHandle) -> np.ndarray: ...

    def dispose(self, handle: SolverHandle) -> None: ...


@contextmanager
def solver_session(
    adapter: SolverAdapter,
    program: "ConicProgram",
    parameters: SolverParameters | None = None,
) -> Iterator[SolverHandle]:
    """Set up a handle and dispose of it on every exit path."""

    handle = adapter.setup(program, parameters or SolverParameters())
    try:
        yield handle
    finally:
        if handle.state is not HandleState.DISPOSED:
            adapter.dispose(handle)


# CVXPy helpers ---------------------------------------------------------------

_CVXPY_STATUS = {
    cp.OPTIMAL: SolverStatus.OPTIMAL,
    cp.OPTIMAL_INACCURATE: SolverStatus.OPTIMAL,
    cp.INFEASIBLE: SolverStatus.INFEASIBLE,
    cp.INFEASIBLE_INACCURATE: SolverStatus.INFEASIBLE,
    cp.UNBOUNDED: SolverStatus.UNBOUNDED,
    cp.UNBOUNDED_INACCURATE: SolverStatus.UNBOUNDED,
}


def normalize_cvxpy_status(status: str | None) -> SolverStatus:
    return _CVXPY_STATUS.get(status, SolverStatus.SOLVER_ERROR)


@dataclass(frozen=True)
class SolverSummary:
    status: str
    solver: str
    value: float
    runtime: float

    @property
    def normalized_status(self) -> SolverStatus:
        return normalize_cvxpy_status(self.status)

    def is_optimal(self) -> bool:
        return self.normalized_status is SolverStatus.OPTIMAL


def select_solver(preferred: str | None = None) -> str:
    """Return an installed conic solver name following a priority order."""

    installed = {solver.upper() for solver in cp.installed_solvers()}
    if preferred:
        candidate = preferred.upper()
        if candidate in installed:
            return candidate
    for solver in ("CLARABEL", "ECOS", "SCS"):
        if solver in installed:
            return solver
    raise RuntimeError("No CVXPy conic solver available. Install CLARABEL, ECOS or SCS.")


def solve_problem(
    problem: cp.Problem,
    *,
    solver: str | None = None,
    solver_kwargs: Mapping[str, Any] | None = None,
) -> SolverSummary:
    """Solve ``problem`` and return a structured summary."""

    chosen_solver = select_solver(solver)
    kwargs = dict(solver_kwargs or {})

    start = time.perf_counter()
    try:
        problem.solve(solver=chosen_solver, **kwargs)
    except cp.SolverError:
        logger.exception("CVXPy solver %s failed", chosen_solver)
    runtime = time.perf_counter() - start

    status = problem.status or "solver_error"
    return SolverSummary(
        status=status,
        solver=chosen_solver,
        value=float(problem.value) if problem.value is not None else float("nan"),
        runtime=float(runtime),
    )
