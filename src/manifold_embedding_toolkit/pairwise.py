"""Dense symmetric matrices from pairwise callbacks."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
from joblib import Parallel, delayed

from manifold_embedding_toolkit.errors import NotEnoughMemoryError

PairwiseCallback = Callable[[int, int], float]

DEFAULT_MEMORY_LIMIT = 8 * 1024**3
_ITEM_SIZE = np.dtype(np.float64).itemsize


def dense_matrix_bytes(n: int, columns: int | None = None) -> int:
    """Bytes taken by an ``n x columns`` float64 matrix (square by default)."""
    return n * (n if columns is None else columns) * _ITEM_SIZE


def check_matrix_feasible(
    rows: int, columns: int, memory_limit: int = DEFAULT_MEMORY_LIMIT
) -> None:
    """Fail before allocating a ``rows x columns`` float64 matrix over the limit."""
    required = dense_matrix_bytes(rows, columns)
    if required > memory_limit:
        raise NotEnoughMemoryError(
            f"A dense {rows}x{columns} matrix needs {required} bytes, "
            f"above the limit of {memory_limit} bytes"
        )


def check_dense_feasible(n: int, memory_limit: int = DEFAULT_MEMORY_LIMIT) -> None:
    check_matrix_feasible(n, n, memory_limit)


def dense_matrix_from_callback(
    n: int,
    callback: PairwiseCallback,
    *,
    memory_limit: int = DEFAULT_MEMORY_LIMIT,
    n_jobs: int = 1,
) -> np.ndarray:
    """Evaluate ``callback(i, j)`` once per ``i <= j`` and mirror the result.

    Each row segment ``(i, i..n-1)`` is an independent task; segments are
    written back in row order, so the result does not depend on scheduling.
    """
    check_dense_feasible(n, memory_limit)

    def row(i: int) -> np.ndarray:
        return np.fromiter(
            (callback(i, j) for j in range(i, n)),
            dtype=np.float64,
            count=n - i,
        )

    segments = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(row)(i) for i in range(n)
    )
    result = np.empty((n, n), dtype=np.float64)
    for i, segment in enumerate(segments):
        result[i, i:] = segment
        result[i:, i] = segment
    return result


def rectangular_matrix_from_callback(
    rows: np.ndarray,
    n: int,
    callback: PairwiseCallback,
    *,
    memory_limit: int = DEFAULT_MEMORY_LIMIT,
    n_jobs: int = 1,
) -> np.ndarray:
    """Evaluate ``callback(r, j)`` for each selected row ``r`` and every ``j``."""
    check_matrix_feasible(len(rows), n, memory_limit)

    def row(r: int) -> np.ndarray:
        return np.fromiter((callback(r, j) for j in range(n)), dtype=np.float64, count=n)

    segments = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(row)(int(r)) for r in rows
    )
    if not segments:
        return np.empty((0, n), dtype=np.float64)
    return np.vstack(segments)
