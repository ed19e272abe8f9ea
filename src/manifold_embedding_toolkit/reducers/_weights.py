"""Local weight, alignment and graph Laplacian builders.

Every alignment matrix is accumulated from per-neighborhood blocks as COO
triplets; duplicate coordinates are summed when converting to CSR.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np
from scipy import sparse

from manifold_embedding_toolkit.neighbors import Neighbors

PairwiseCallback = Callable[[int, int], float]


class _BlockAccumulator:
    def __init__(self, n: int) -> None:
        self.n = n
        self._rows: list[np.ndarray] = []
        self._cols: list[np.ndarray] = []
        self._values: list[np.ndarray] = []

    def add(self, indices: np.ndarray, block: np.ndarray) -> None:
        m = len(indices)
        self._rows.append(np.repeat(indices, m))
        self._cols.append(np.tile(indices, m))
        self._values.append(block.ravel())

    def to_csr(self) -> sparse.csr_matrix:
        if not self._values:
            return sparse.csr_matrix((self.n, self.n), dtype=np.float64)
        matrix = sparse.coo_matrix(
            (
                np.concatenate(self._values),
                (np.concatenate(self._rows), np.concatenate(self._cols)),
            ),
            shape=(self.n, self.n),
        )
        return matrix.tocsr()


def local_gram(kernel: PairwiseCallback, indices: Sequence[int]) -> np.ndarray:
    """Kernel matrix restricted to ``indices``, one callback per unordered pair."""
    m = len(indices)
    gram = np.empty((m, m), dtype=np.float64)
    for a in range(m):
        for b in range(a, m):
            value = kernel(int(indices[a]), int(indices[b]))
            gram[a, b] = value
            gram[b, a] = value
    return gram


def center_gram(gram: np.ndarray) -> np.ndarray:
    """Double-center a Gram matrix: ``J G J`` with ``J = I - 11ᵀ/m``."""
    row_mean = gram.mean(axis=1, keepdims=True)
    col_mean = gram.mean(axis=0, keepdims=True)
    return gram - row_mean - col_mean + gram.mean()


def _local_coordinates(gram: np.ndarray, dimension: int) -> np.ndarray:
    _, vectors = np.linalg.eigh(center_gram(gram))
    # eigh returns ascending eigenvalues; take the leading ones.
    return vectors[:, ::-1][:, :dimension]


def _with_center(i: int, local: np.ndarray) -> np.ndarray:
    return np.concatenate(([i], local)).astype(np.intp)


def linear_reconstruction_alignment(
    n: int,
    neighbors: Neighbors,
    kernel: PairwiseCallback,
    shift: float,
) -> sparse.csr_matrix:
    """``(I - W)ᵀ(I - W)`` for kernel-space locally linear reconstruction weights.

    Each row of ``W`` reconstructs a point from its neighbors with weights
    summing to one, solving the regularized local Gram system
    ``(C + shift * trace(C) I) w = 1``.
    """
    accumulator = _BlockAccumulator(n)
    for i, local in enumerate(neighbors):
        k = len(local)
        indices = _with_center(i, local)
        gram = local_gram(kernel, indices)
        # Gram matrix of the differences x_j - x_i in feature space.
        covariance = (
            gram[0, 0]
            - gram[0, 1:][:, None]
            - gram[0, 1:][None, :]
            + gram[1:, 1:]
        )
        trace = np.trace(covariance)
        covariance[np.diag_indices(k)] += shift * trace if trace > 0 else shift
        weights = np.linalg.solve(covariance, np.ones(k))
        weights /= weights.sum()
        column = np.concatenate(([1.0], -weights))
        accumulator.add(indices, np.outer(column, column))
    return accumulator.to_csr()


def tangent_space_alignment(
    n: int,
    neighbors: Neighbors,
    kernel: PairwiseCallback,
    dimension: int,
) -> sparse.csr_matrix:
    """Sum of ``I - G Gᵀ`` over neighborhoods, ``G = [1/√m, local coordinates]``."""
    accumulator = _BlockAccumulator(n)
    for i, local in enumerate(neighbors):
        indices = _with_center(i, local)
        m = len(indices)
        coordinates = _local_coordinates(local_gram(kernel, indices), dimension)
        basis = np.hstack([np.full((m, 1), 1.0 / np.sqrt(m)), coordinates])
        accumulator.add(indices, np.eye(m) - basis @ basis.T)
    return accumulator.to_csr()


def hessian_alignment(
    n: int,
    neighbors: Neighbors,
    kernel: PairwiseCallback,
    dimension: int,
) -> sparse.csr_matrix:
    """Sum of local Hessian estimator products ``Hᵀ H``."""
    quadratic = dimension * (dimension + 1) // 2
    accumulator = _BlockAccumulator(n)
    for i, local in enumerate(neighbors):
        indices = _with_center(i, local)
        m = len(indices)
        coordinates = _local_coordinates(local_gram(kernel, indices), dimension)
        products = [
            coordinates[:, a] * coordinates[:, b]
            for a in range(dimension)
            for b in range(a, dimension)
        ]
        design = np.hstack(
            [np.ones((m, 1)), coordinates, np.column_stack(products)]
        )
        orthonormal, _ = np.linalg.qr(design)
        hessian = orthonormal[:, 1 + dimension : 1 + dimension + quadratic]
        accumulator.add(indices, hessian @ hessian.T)
    return accumulator.to_csr()


def heat_kernel_graph(
    n: int,
    neighbors: Neighbors,
    distance: PairwiseCallback,
    width: float,
) -> sparse.csr_matrix:
    """Symmetric weights ``exp(-d(i, j)² / width)`` over the neighbor graph."""
    rows = np.repeat(np.arange(n), [len(local) for local in neighbors])
    cols = (
        np.concatenate(neighbors).astype(np.intp)
        if neighbors
        else np.empty(0, dtype=np.intp)
    )
    values = np.fromiter(
        (np.exp(-distance(int(i), int(j)) ** 2 / width) for i, j in zip(rows, cols)),
        dtype=np.float64,
        count=len(cols),
    )
    graph = sparse.csr_matrix((values, (rows, cols)), shape=(n, n))
    return graph.maximum(graph.T).tocsr()


def graph_laplacian(
    weights: sparse.csr_matrix,
) -> tuple[sparse.csr_matrix, sparse.csr_matrix]:
    """Return ``(L, D)`` with ``D`` the degree matrix and ``L = D - W``."""
    degree = sparse.diags(np.asarray(weights.sum(axis=1)).ravel()).tocsr()
    return (degree - weights).tocsr(), degree


def project_problem(
    features: np.ndarray,
    inner: sparse.spmatrix | np.ndarray | None = None,
) -> np.ndarray:
    """Symmetric ``Xᵀ A X`` (``Xᵀ X`` when ``inner`` is omitted)."""
    weighted = features if inner is None else inner @ features
    product = features.T @ np.asarray(weighted)
    return (product + product.T) / 2.0
