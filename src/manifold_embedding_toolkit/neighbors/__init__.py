"""Pluggable k-nearest-neighbor backends."""

from __future__ import annotations

import warnings

import numpy as np
from scipy import sparse
from scipy.sparse.csgraph import connected_components

from manifold_embedding_toolkit.errors import UnsupportedMethodError
from manifold_embedding_toolkit.neighbors.base import (
    Metric,
    Neighbors,
    NeighborsFinder,
    NeighborsMethod,
    kernel_metric,
)
from manifold_embedding_toolkit.neighbors.brute import BruteForceNeighbors
from manifold_embedding_toolkit.neighbors.cover_tree import (
    DEFAULT_BASE,
    CoverTree,
    CoverTreeNeighbors,
)

FINDERS: dict[NeighborsMethod, type[NeighborsFinder]] = {
    NeighborsMethod.BRUTE_FORCE: BruteForceNeighbors,
    NeighborsMethod.COVER_TREE: CoverTreeNeighbors,
}


def available_neighbors_methods() -> list[NeighborsMethod]:
    return [method for method in NeighborsMethod if method in FINDERS]


def neighborhood_graph(neighbors: Neighbors, n: int) -> sparse.csr_matrix:
    """Directed adjacency matrix with an edge from each point to its neighbors."""
    rows = np.repeat(np.arange(n), [len(local) for local in neighbors])
    cols = np.concatenate(neighbors) if neighbors else np.empty(0, dtype=np.intp)
    data = np.ones(len(cols), dtype=np.float64)
    return sparse.csr_matrix((data, (rows, cols)), shape=(n, n))


def is_connected(neighbors: Neighbors, n: int) -> bool:
    if n <= 1:
        return True
    n_components, _ = connected_components(
        neighborhood_graph(neighbors, n), directed=True, connection="weak"
    )
    return n_components == 1


def find_neighbors(
    method: NeighborsMethod,
    n: int,
    k: int,
    metric: Metric,
    *,
    base: float = DEFAULT_BASE,
    n_jobs: int = 1,
    check_connectivity: bool = True,
) -> Neighbors:
    """Find the ``k`` nearest neighbors of each of the ``n`` points."""
    if method not in FINDERS:
        raise UnsupportedMethodError(
            f"Neighbors method '{method.value}' is not available"
        )
    if method is NeighborsMethod.COVER_TREE:
        finder: NeighborsFinder = CoverTreeNeighbors(n_jobs=n_jobs, base=base)
    else:
        finder = FINDERS[method](n_jobs=n_jobs)

    neighbors = finder.find(n, k, metric)
    if check_connectivity and not is_connected(neighbors, n):
        warnings.warn(
            f"Neighborhood graph with k={k} is not connected; "
            "consider increasing the number of neighbors.",
            RuntimeWarning,
            stacklevel=2,
        )
    return neighbors


__all__ = [
    "BruteForceNeighbors",
    "CoverTree",
    "CoverTreeNeighbors",
    "DEFAULT_BASE",
    "FINDERS",
    "Metric",
    "Neighbors",
    "NeighborsFinder",
    "NeighborsMethod",
    "available_neighbors_methods",
    "find_neighbors",
    "is_connected",
    "kernel_metric",
    "neighborhood_graph",
]
