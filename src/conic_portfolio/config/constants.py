"""Shared constants, including the four-asset demonstration problem.

The demo problem is the reference case solved by the command line interface
when no configuration file is given.
"""

from __future__ import annotations

from typing import Final

__all__ = [
    "DEFAULT_BACKEND",
    "DEFAULT_SPARSITY_TOLERANCE",
    "DEMO_ASSETS",
    "DEMO_COVARIANCE",
    "DEMO_EXPECTED_RETURNS",
    "DEMO_RISK_LIMIT",
    "LOG_FILE_NAME",
]


# Numeric constants ---------------------------------------------------------

DEFAULT_SPARSITY_TOLERANCE: Final[float] = 1e-8
"""Entries with magnitude at or below this value are not stored in CSC form."""

DEFAULT_BACKEND: Final[str] = "clarabel"

LOG_FILE_NAME: Final[str] = "conic_portfolio.log"


# Demonstration problem ----------------------------------------------------

DEMO_ASSETS: Final[tuple[str, ...]] = ("A1", "A2", "A3", "A4")

DEMO_EXPECTED_RETURNS: Final[tuple[float, ...]] = (0.05, 0.09, 0.07, 0.06)

DEMO_COVARIANCE: Final[tuple[tuple[float, ...], ...]] = (
    (0.0016, 0.0006, 0.0008, -0.0004),
    (0.0006, 0.0225, 0.0015, -0.0015),
    (0.0008, 0.0015, 0.0025, -0.001),
    (-0.0004, -0.0015, -0.001, 0.01),
)

DEMO_RISK_LIMIT: Final[float] = 0.06
