"""Cone descriptors shared by every solver convention."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

__all__ = [
    "ConeSpec",
    "NonnegativeCone",
    "SecondOrderCone",
    "ZeroCone",
    "total_dim",
]


@dataclass(frozen=True)
class _Cone:
    dim: int

    def __post_init__(self) -> None:
        if isinstance(self.dim, bool) or not isinstance(self.dim, int):
            raise TypeError(f"{type(self).__name__}.dim must be an int, got {self.dim!r}")
        if self.dim < 1:
            raise ValueError(f"{type(self).__name__}.dim must be positive, got {self.dim}")


@dataclass(frozen=True)
class ZeroCone(_Cone):
    """Rows whose slack must equal zero (equalities)."""


@dataclass(frozen=True)
class NonnegativeCone(_Cone):
    """Rows whose slack must be componentwise non-negative."""


@dataclass(frozen=True)
class SecondOrderCone(_Cone):
    """Rows ``(t, y)`` whose slack satisfies ``||y||_2 <= t``."""


ConeSpec = Union[ZeroCone, NonnegativeCone, SecondOrderCone]


def total_dim(cones: Iterable[ConeSpec]) -> int:
    return sum(cone.dim for cone in cones)
