"""Shared eigensolver interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any, ClassVar

import numpy as np
from scipy import sparse

from manifold_embedding_toolkit.errors import (
    EigendecompositionError,
    EmbeddingCancelledError,
    UnsupportedMethodError,
)


class EigenMethod(str, Enum):
    ARPACK = "arpack"
    RANDOMIZED = "randomized"
    DENSE = "dense"

    @property
    def supports_generalized(self) -> bool:
        return self is EigenMethod.ARPACK


class EigenMode(str, Enum):
    SMALLEST = "smallest"
    LARGEST = "largest"


EigenPairs = tuple[np.ndarray, np.ndarray]


def _never_cancel() -> bool:
    return False


class EigenSolver(ABC):
    """Base interface for eigendecomposition strategies."""

    method: ClassVar[EigenMethod]
    supports_generalized: bool = False

    def __init__(
        self,
        *,
        shift: float = 1e-9,
        max_iteration: int = 100,
        random_state: int = 0,
        cancel: Callable[[], bool] | None = None,
    ) -> None:
        self.shift = shift
        self.max_iteration = max_iteration
        self.random_state = random_state
        self.cancel = cancel or _never_cancel

    def poll(self) -> None:
        if self.cancel():
            raise EmbeddingCancelledError(
                f"Embedding cancelled during {self.method.value} eigendecomposition"
            )

    def solve(
        self,
        matrix: Any,
        k: int,
        mode: EigenMode,
        *,
        rhs: Any = None,
        skip: int = 0,
    ) -> EigenPairs:
        """Return ``k`` eigenpairs as ``(vectors (n, k), values (k,))``.

        ``rhs`` turns the problem into ``A x = lambda B x``; ``skip`` drops the
        first eigenpairs in the requested order.
        """
        if rhs is not None and not self.supports_generalized:
            raise UnsupportedMethodError(
                f"The {self.method.value} eigensolver does not support "
                "generalized eigenproblems"
            )
        n = matrix.shape[0]
        if matrix.shape != (n, n):
            raise EigendecompositionError(f"Matrix must be square, got {matrix.shape}")
        if k <= 0:
            raise EigendecompositionError(f"Requested {k} eigenpairs")
        values, vectors = self._solve(matrix, k + skip, mode, rhs)
        return select_eigenpairs(values, vectors, k, mode, skip)

    @abstractmethod
    def _solve(
        self,
        matrix: Any,
        count: int,
        mode: EigenMode,
        rhs: Any,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Compute at least ``count`` eigenpairs in any order."""


def select_eigenpairs(
    values: np.ndarray,
    vectors: np.ndarray,
    k: int,
    mode: EigenMode,
    skip: int = 0,
) -> EigenPairs:
    """Order eigenpairs by mode and keep ``k`` of them after ``skip``.

    The sort is stable so tied eigenvalues keep their computation order.
    """
    values = np.asarray(values, dtype=np.float64)
    vectors = np.asarray(vectors, dtype=np.float64)
    if mode is EigenMode.SMALLEST:
        order = np.argsort(values, kind="stable")
    else:
        order = np.argsort(-values, kind="stable")
    order = order[skip : skip + k]
    if len(order) < k:
        raise EigendecompositionError(
            f"Could only extract {len(order)} of {k} requested eigenpairs"
        )
    selected_values = values[order]
    selected_vectors = vectors[:, order]
    finite = np.all(np.isfinite(selected_values)) and np.all(
        np.isfinite(selected_vectors)
    )
    if not finite:
        raise EigendecompositionError("Eigendecomposition produced non-finite values")
    return selected_vectors, selected_values


def as_dense(matrix: Any) -> np.ndarray:
    if sparse.issparse(matrix):
        return matrix.toarray()
    return np.asarray(matrix, dtype=np.float64)
