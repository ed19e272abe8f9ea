"""Pluggable eigendecomposition backends."""

from __future__ import annotations

from typing import Any

from manifold_embedding_toolkit.eigen.arpack import ArpackSolver
from manifold_embedding_toolkit.eigen.base import (
    EigenMethod,
    EigenMode,
    EigenPairs,
    EigenSolver,
    select_eigenpairs,
)
from manifold_embedding_toolkit.eigen.dense import DenseSolver
from manifold_embedding_toolkit.eigen.randomized import RandomizedSolver
from manifold_embedding_toolkit.errors import UnsupportedMethodError

SOLVERS: dict[EigenMethod, type[EigenSolver]] = {
    EigenMethod.ARPACK: ArpackSolver,
    EigenMethod.RANDOMIZED: RandomizedSolver,
    EigenMethod.DENSE: DenseSolver,
}


def available_eigen_methods() -> list[EigenMethod]:
    return [method for method in EigenMethod if method in SOLVERS]


def get_solver(method: EigenMethod, **options: Any) -> EigenSolver:
    if method not in SOLVERS:
        raise UnsupportedMethodError(
            f"Eigen method '{method.value}' is not available"
        )
    return SOLVERS[method](**options)


def eigendecomposition(
    method: EigenMethod,
    matrix: Any,
    k: int,
    mode: EigenMode,
    *,
    rhs: Any = None,
    skip: int = 0,
    **options: Any,
) -> EigenPairs:
    """Solve ``A x = lambda x`` (or ``A x = lambda B x`` with ``rhs``)."""
    return get_solver(method, **options).solve(matrix, k, mode, rhs=rhs, skip=skip)


__all__ = [
    "ArpackSolver",
    "DenseSolver",
    "EigenMethod",
    "EigenMode",
    "EigenPairs",
    "EigenSolver",
    "RandomizedSolver",
    "SOLVERS",
    "available_eigen_methods",
    "eigendecomposition",
    "get_solver",
    "select_eigenpairs",
]
