"""Exact dense symmetric eigendecomposition (small problems, debugging)."""

from __future__ import annotations

from typing import Any

import numpy as np

from manifold_embedding_toolkit.eigen.base import EigenMethod, EigenMode, EigenSolver, as_dense
from manifold_embedding_toolkit.errors import EigendecompositionError


class DenseSolver(EigenSolver):
    method = EigenMethod.DENSE
    supports_generalized = False

    def _solve(
        self,
        matrix: Any,
        count: int,
        mode: EigenMode,
        rhs: Any,
    ) -> tuple[np.ndarray, np.ndarray]:
        dense = as_dense(matrix)
        if count > dense.shape[0]:
            raise EigendecompositionError(
                f"Cannot extract {count} eigenpairs from a {dense.shape[0]}x"
                f"{dense.shape[0]} matrix"
            )
        self.poll()
        try:
            values, vectors = np.linalg.eigh(dense)
        except np.linalg.LinAlgError as exc:
            raise EigendecompositionError(str(exc)) from exc
        return values, vectors
