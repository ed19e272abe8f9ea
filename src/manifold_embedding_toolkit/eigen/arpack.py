"""Implicitly restarted Lanczos eigensolver backed by ARPACK."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import LinearOperator, eigsh, splu

from manifold_embedding_toolkit.eigen.base import EigenMethod, EigenMode, EigenSolver
from manifold_embedding_toolkit.errors import EigendecompositionError


class ArpackSolver(EigenSolver):
    """Krylov-subspace solver for standard and generalized problems.

    Smallest eigenvalues are found in shift-invert mode around ``-shift``; the
    inverse operator is a sparse LU factorization of ``A + shift * B``. Every
    operator application polls the cancellation predicate.
    """

    method = EigenMethod.ARPACK
    supports_generalized = True

    def _polling(
        self, apply: Callable[[np.ndarray], np.ndarray], n: int
    ) -> LinearOperator:
        def matvec(x: np.ndarray) -> np.ndarray:
            self.poll()
            return apply(x)

        return LinearOperator((n, n), matvec=matvec, dtype=np.float64)

    def _start_vector(self, n: int) -> np.ndarray:
        # ARPACK otherwise draws from an internal generator that advances
        # between calls.
        return np.random.default_rng(self.random_state).uniform(-1.0, 1.0, n)

    def _solve(
        self,
        matrix: Any,
        count: int,
        mode: EigenMode,
        rhs: Any,
    ) -> tuple[np.ndarray, np.ndarray]:
        n = matrix.shape[0]
        if count >= n:
            raise EigendecompositionError(
                f"ARPACK can extract at most {n - 1} eigenpairs of a {n}x{n} "
                f"matrix, requested {count}"
            )
        self.poll()
        try:
            if mode is EigenMode.LARGEST:
                operator = self._polling(lambda x: matrix @ x, n)
                return eigsh(
                    operator,
                    k=count,
                    M=rhs,
                    which="LA",
                    v0=self._start_vector(n),
                    maxiter=self.max_iteration,
                )

            lhs = sparse.csc_matrix(matrix, dtype=np.float64)
            mass = (
                sparse.identity(n, format="csc", dtype=np.float64)
                if rhs is None
                else sparse.csc_matrix(rhs, dtype=np.float64)
            )
            factor = splu((lhs + self.shift * mass).tocsc())
            return eigsh(
                lhs,
                k=count,
                M=rhs,
                sigma=-self.shift,
                which="LM",
                v0=self._start_vector(n),
                OPinv=self._polling(factor.solve, n),
                maxiter=self.max_iteration,
            )
        except RuntimeError as exc:
            # ArpackNoConvergence, ArpackError and singular LU factors
            raise EigendecompositionError(
                f"ARPACK failed to compute {count} eigenpairs: {exc}"
            ) from exc
