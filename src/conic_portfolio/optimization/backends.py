"""Conic solver backends behind the :class:`SolverAdapter` interface.

``ClarabelAdapter`` consumes the combined layout (one ``A``/``b`` pair and a
cone list starting with the zero cone). ``EcosAdapter`` consumes the split
layout (``A x = b`` equalities and ``G x + s = h`` cone constraints). Both
translate their native exit codes into :class:`SolverStatus`.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import clarabel
import ecos
import numpy as np
import scipy.sparse as sp

from conic_portfolio.optimization.core.cones import (
    ConeSpec,
    NonnegativeCone,
    SecondOrderCone,
    ZeroCone,
)
from conic_portfolio.optimization.core.exceptions import SolverStateError
from conic_portfolio.optimization.core.program import (
    COMBINED,
    SPLIT,
    CombinedConicProgram,
    ConicProgram,
    SplitConicProgram,
)
from conic_portfolio.optimization.core.solver_utils import (
    HandleState,
    SolverAdapter,
    SolverHandle,
    SolverParameters,
    SolverStatus,
)

__all__ = [
    "BACKENDS",
    "ClarabelAdapter",
    "EcosAdapter",
    "adapter_for_convention",
    "get_adapter",
]

logger = logging.getLogger(__name__)

# Native failures reported as SOLVER_ERROR; anything else propagates.
_NATIVE_FAILURES = (ArithmeticError, ValueError, RuntimeError)


class _BaseAdapter:
    name: str
    convention: str
    program_type: type

    def _new_handle(self, program: ConicProgram, parameters: SolverParameters) -> SolverHandle:
        if not isinstance(program, self.program_type):
            raise TypeError(
                f"{self.name} expects a {self.program_type.__name__}, got {type(program).__name__}"
            )
        handle = SolverHandle(backend=self.name)
        handle.configure(parameters)
        return handle

    def optimize(self, handle: SolverHandle) -> SolverStatus:
        handle.require(HandleState.SET_UP, action="optimize")
        start = time.perf_counter()
        try:
            self._run(handle)
        except _NATIVE_FAILURES:
            logger.exception("%s backend failed during optimize", self.name)
            handle.status = SolverStatus.SOLVER_ERROR
            handle.native_status = "exception"
            handle.primal = None
        handle.runtime = time.perf_counter() - start
        handle.state = HandleState.OPTIMIZED
        logger.info(
            "%s finished: status=%s native=%s iterations=%s runtime=%.4fs",
            self.name,
            handle.status.value,
            handle.native_status,
            handle.iterations,
            handle.runtime,
            extra={
                "backend": self.name,
                "status": handle.status.value,
                "native_status": handle.native_status,
                "iterations": handle.iterations,
                "runtime": handle.runtime,
            },
        )
        return handle.status

    def solution(self, handle: SolverHandle) -> np.ndarray:
        handle.require(HandleState.OPTIMIZED, action="read the solution of")
        if handle.status is not SolverStatus.OPTIMAL or handle.primal is None:
            raise SolverStateError(
                f"{self.name} has no optimal solution (status {handle.status.value})"
            )
        return handle.primal.copy()

    def dispose(self, handle: SolverHandle) -> None:
        handle.dispose()
        logger.debug("%s handle disposed", self.name)

    def _run(self, handle: SolverHandle) -> None:  # pragma: no cover - abstract
        raise NotImplementedError


# Clarabel -------------------------------------------------------------------

_CLARABEL_STATUS = {
    "Solved": SolverStatus.OPTIMAL,
    "AlmostSolved": SolverStatus.OPTIMAL,
    "PrimalInfeasible": SolverStatus.INFEASIBLE,
    "AlmostPrimalInfeasible": SolverStatus.INFEASIBLE,
    "DualInfeasible": SolverStatus.UNBOUNDED,
    "AlmostDualInfeasible": SolverStatus.UNBOUNDED,
}


def _clarabel_status_name(status: Any) -> str:
    name = str(status).rsplit(".", 1)[-1]
    if name in _CLARABEL_STATUS:
        return name
    for candidate_name in _CLARABEL_STATUS:
        candidate = getattr(clarabel.SolverStatus, candidate_name, None)
        if candidate is not None and status == candidate:
            return candidate_name
    return name


def _clarabel_cone(cone: ConeSpec) -> Any:
    if isinstance(cone, ZeroCone):
        return clarabel.ZeroConeT(cone.dim)
    if isinstance(cone, NonnegativeCone):
        return clarabel.NonnegativeConeT(cone.dim)
    if isinstance(cone, SecondOrderCone):
        return clarabel.SecondOrderConeT(cone.dim)
    raise TypeError(f"Unsupported cone {cone!r}")


def _clarabel_settings(parameters: SolverParameters) -> Any:
    settings = clarabel.DefaultSettings()
    settings.verbose = bool(parameters.verbose)
    if parameters.max_iter is not None:
        settings.max_iter = int(parameters.max_iter)
    if parameters.tol_feas is not None:
        settings.tol_feas = float(parameters.tol_feas)
    if parameters.tol_gap_abs is not None:
        settings.tol_gap_abs = float(parameters.tol_gap_abs)
    if parameters.tol_gap_rel is not None:
        settings.tol_gap_rel = float(parameters.tol_gap_rel)
    return settings


class ClarabelAdapter(_BaseAdapter):
    name = "clarabel"
    convention = COMBINED
    program_type = CombinedConicProgram

    def setup(self, program: CombinedConicProgram, parameters: SolverParameters) -> SolverHandle:
        handle = self._new_handle(program, parameters)
        d = program.dimension
        quadratic = sp.csc_matrix((d, d), dtype=float)
        handle.native = clarabel.DefaultSolver(
            quadratic,
            np.array(program.cost, dtype=float),
            program.matrix.to_scipy(),
            np.array(program.rhs, dtype=float),
            [_clarabel_cone(cone) for cone in program.cones],
            _clarabel_settings(parameters),
        )
        handle.state = HandleState.SET_UP
        return handle

    def _run(self, handle: SolverHandle) -> None:
        solution = handle.native.solve()
        name = _clarabel_status_name(solution.status)
        handle.native_status = name
        handle.status = _CLARABEL_STATUS.get(name, SolverStatus.SOLVER_ERROR)
        handle.iterations = int(solution.iterations)
        handle.objective = float(solution.obj_val)
        if handle.status is SolverStatus.OPTIMAL:
            handle.primal = np.asarray(solution.x, dtype=float)
        else:
            handle.primal = None


# ECOS -----------------------------------------------------------------------

_ECOS_STATUS = {
    0: SolverStatus.OPTIMAL,
    10: SolverStatus.OPTIMAL,
    1: SolverStatus.INFEASIBLE,
    11: SolverStatus.INFEASIBLE,
    2: SolverStatus.UNBOUNDED,
    12: SolverStatus.UNBOUNDED,
}

_ECOS_PARAMETER_NAMES = {
    "max_iter": "max_iters",
    "tol_feas": "feastol",
    "tol_gap_abs": "abstol",
    "tol_gap_rel": "reltol",
}


def _ecos_kwargs(parameters: SolverParameters) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"verbose": bool(parameters.verbose)}
    for field_name, ecos_name in _ECOS_PARAMETER_NAMES.items():
        value = getattr(parameters, field_name)
        if value is not None:
            kwargs[ecos_name] = value
    return kwargs


class EcosAdapter(_BaseAdapter):
    name = "ecos"
    convention = SPLIT
    program_type = SplitConicProgram

    def setup(self, program: SplitConicProgram, parameters: SolverParameters) -> SolverHandle:
        handle = self._new_handle(program, parameters)
        handle.native = {
            "c": np.array(program.cost, dtype=float),
            "G": program.inequality_matrix.to_scipy(),
            "h": np.array(program.inequality_rhs, dtype=float),
            "dims": {"l": program.num_linear, "q": program.soc_dims, "e": 0},
            "A": program.equality_matrix.to_scipy(),
            "b": np.array(program.equality_rhs, dtype=float),
        }
        handle.state = HandleState.SET_UP
        return handle

    def _run(self, handle: SolverHandle) -> None:
        args = handle.native
        result = ecos.solve(
            args["c"],
            args["G"],
            args["h"],
            args["dims"],
            args["A"],
            args["b"],
            **_ecos_kwargs(handle.parameters),
        )
        info = result["info"]
        exit_flag = int(info["exitFlag"])
        handle.native_status = f"exitFlag={exit_flag}"
        handle.status = _ECOS_STATUS.get(exit_flag, SolverStatus.SOLVER_ERROR)
        handle.iterations = int(info.get("iter", 0))
        handle.objective = float(info.get("pcost", float("nan")))
        if handle.status is SolverStatus.OPTIMAL:
            handle.primal = np.asarray(result["x"], dtype=float)
        else:
            handle.primal = None


BACKENDS: dict[str, type[_BaseAdapter]] = {
    ClarabelAdapter.name: ClarabelAdapter,
    EcosAdapter.name: EcosAdapter,
}


def get_adapter(name: str) -> SolverAdapter:
    try:
        return BACKENDS[name.lower()]()
    except KeyError:
        options = ", ".join(sorted(BACKENDS))
        raise ValueError(f"Unknown solver backend '{name}'. Choose one of: {options}") from None


def adapter_for_convention(convention: str) -> SolverAdapter:
    for adapter_cls in BACKENDS.values():
        if adapter_cls.convention == convention:
            return adapter_cls()
    raise ValueError(f"No backend accepts the '{convention}' convention")
