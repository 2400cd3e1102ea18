"""Pydantic schemas for configuration validation.

Two schemas cover the YAML files consumed by the CLI:

- :class:`SolverConfig`: backend choice and solver options
- :class:`ProblemConfig`: expected returns, covariance and risk limit

Example problem file::

    assets: [A1, A2]
    expected_returns: [0.05, 0.09]
    covariance:
      - [0.0016, 0.0006]
      - [0.0006, 0.0225]
    risk_limit: 0.06
    solver:
      backend: ecos
      verbose: true
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import DEFAULT_BACKEND, DEFAULT_SPARSITY_TOLERANCE

__all__ = [
    "ProblemConfig",
    "SolverConfig",
]


class SolverConfig(BaseModel):
    """Backend selection and options forwarded to the conic solver.

    Attributes
    ----------
    backend : Literal
        ``clarabel`` (single combined constraint system) or ``ecos``
        (separate equality and cone constraints)
    verbose : bool
        Enable the solver's own iteration trace
    max_iter, tol_feas, tol_gap_abs, tol_gap_rel : optional
        Left to the backend default when omitted
    sparsity_tolerance : float
        Magnitude at or below which matrix entries are dropped
    """

    backend: Literal["clarabel", "ecos"] = Field(
        default=DEFAULT_BACKEND, description="Conic solver backend"
    )
    verbose: bool = Field(default=False, description="Solver-side diagnostic output")
    max_iter: int | None = Field(default=None, gt=0, description="Iteration cap")
    tol_feas: float | None = Field(default=None, gt=0, description="Feasibility tolerance")
    tol_gap_abs: float | None = Field(default=None, gt=0, description="Absolute gap tolerance")
    tol_gap_rel: float | None = Field(default=None, gt=0, description="Relative gap tolerance")
    sparsity_tolerance: float = Field(
        default=DEFAULT_SPARSITY_TOLERANCE, ge=0, description="CSC zero tolerance"
    )

    @field_validator("backend", mode="before")
    @classmethod
    def lowercase_backend(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v


class ProblemConfig(BaseModel):
    """Mean-variance problem with a volatility cap.

    Attributes
    ----------
    assets : Optional[List[str]]
        Asset labels; positional integers when omitted
    expected_returns : List[float]
        Expected return per asset
    covariance : List[List[float]]
        Square, symmetric covariance matrix
    risk_limit : float
        Upper bound on ``||U w||_2`` with ``U' U = covariance``
    """

    assets: list[str] | None = Field(default=None, description="Asset labels")
    expected_returns: list[float] = Field(min_length=1, description="Expected returns")
    covariance: list[list[float]] = Field(min_length=1, description="Covariance matrix rows")
    risk_limit: float = Field(gt=0, description="Risk cap on portfolio volatility")
    solver: SolverConfig = Field(default_factory=SolverConfig)

    @field_validator("assets")
    @classmethod
    def validate_assets_unique(cls, v: list[str] | None) -> list[str] | None:
        if v is not None and len(v) != len(set(v)):
            raise ValueError("Duplicate asset labels found")
        return v

    @model_validator(mode="after")
    def validate_dimensions(self) -> "ProblemConfig":
        n = len(self.expected_returns)
        if len(self.covariance) != n or any(len(row) != n for row in self.covariance):
            raise ValueError(f"covariance must be {n}x{n} to match expected_returns")
        if self.assets is not None and len(self.assets) != n:
            raise ValueError(f"{len(self.assets)} assets given for {n} expected returns")
        return self
