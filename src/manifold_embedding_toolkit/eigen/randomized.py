"""Randomized approximate eigensolver (range finder + Rayleigh-Ritz)."""

from __future__ import annotations

from typing import Any

import numpy as np
import scipy.linalg
from scipy import sparse
from scipy.sparse.linalg import splu

from manifold_embedding_toolkit.eigen.base import EigenMethod, EigenMode, EigenSolver
from manifold_embedding_toolkit.errors import EigendecompositionError

OVERSAMPLING = 10
POWER_ITERATIONS = 2


class RandomizedSolver(EigenSolver):
    """Approximate solver for standard problems only.

    The largest eigenpairs come from a Gaussian sketch of ``A``; the smallest
    from a sketch of ``(A + shift I)^-1``. Ritz values are always computed on
    ``A`` itself.
    """

    method = EigenMethod.RANDOMIZED
    supports_generalized = False

    def _inverse(self, matrix: Any, n: int):
        if sparse.issparse(matrix):
            shifted = sparse.csc_matrix(matrix, dtype=np.float64)
            shifted = shifted + self.shift * sparse.identity(n, format="csc")
            return splu(shifted.tocsc()).solve
        shifted = np.asarray(matrix, dtype=np.float64) + self.shift * np.eye(n)
        factor = scipy.linalg.lu_factor(shifted, check_finite=False)
        return lambda x: scipy.linalg.lu_solve(factor, x, check_finite=False)

    def _solve(
        self,
        matrix: Any,
        count: int,
        mode: EigenMode,
        rhs: Any,
    ) -> tuple[np.ndarray, np.ndarray]:
        n = matrix.shape[0]
        if count > n:
            raise EigendecompositionError(
                f"Cannot extract {count} eigenpairs from a {n}x{n} matrix"
            )
        self.poll()
        try:
            if mode is EigenMode.LARGEST:
                apply = lambda x: matrix @ x  # noqa: E731
            else:
                apply = self._inverse(matrix, n)

            rng = np.random.default_rng(self.random_state)
            width = min(n, count + OVERSAMPLING)
            basis, _ = np.linalg.qr(apply(rng.standard_normal((n, width))))
            for _ in range(POWER_ITERATIONS):
                self.poll()
                basis, _ = np.linalg.qr(apply(basis))

            projected = basis.T @ np.asarray(matrix @ basis)
            projected = (projected + projected.T) / 2.0
            values, small_vectors = np.linalg.eigh(projected)
        except (np.linalg.LinAlgError, RuntimeError, ValueError) as exc:
            raise EigendecompositionError(
                f"Randomized eigendecomposition failed: {exc}"
            ) from exc
        return values, basis @ small_vectors
