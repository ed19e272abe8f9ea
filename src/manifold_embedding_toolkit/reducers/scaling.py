"""Multidimensional scaling and geodesic (Isomap) reducers."""

from __future__ import annotations

import numpy as np
from scipy import sparse
from scipy.sparse.csgraph import shortest_path

from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.errors import WrongParameterValueError
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.pairwise import (
    check_dense_feasible,
    check_matrix_feasible,
)
from manifold_embedding_toolkit.reducer import Reducer
from manifold_embedding_toolkit.reducers._landmarks import (
    classical_scaling,
    landmark_scaling,
    select_landmarks,
)
from manifold_embedding_toolkit.result import EmbeddingResult


def _distance_graph(context: EmbeddingContext) -> sparse.csr_matrix:
    neighbors = context.neighbors()
    n = context.n
    rows = np.repeat(np.arange(n), [len(local) for local in neighbors])
    cols = np.concatenate(neighbors).astype(np.intp)
    weights = np.fromiter(
        (context.distance(int(i), int(j)) for i, j in zip(rows, cols)),
        dtype=np.float64,
        count=len(cols),
    )
    return sparse.csr_matrix((weights, (rows, cols)), shape=(n, n))


def _geodesics(
    context: EmbeddingContext, indices: np.ndarray | None = None
) -> np.ndarray:
    graph = _distance_graph(context)
    context.checkpoint("before shortest paths")
    with context.timed("shortest paths"):
        geodesics = shortest_path(graph, method="D", directed=False, indices=indices)
    if not np.all(np.isfinite(geodesics)):
        raise WrongParameterValueError(
            f"Neighbor graph with n_neighbors={context.n_neighbors} is not "
            "connected; geodesic distances are undefined"
        )
    return geodesics


class MultidimensionalScaling(Reducer):
    """Classical (metric) multidimensional scaling."""

    method = Method.MULTIDIMENSIONAL_SCALING

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        distance = context.distance
        context.checkpoint("before distance matrix")
        squared = context.dense_matrix(lambda i, j: distance(i, j) ** 2)
        return classical_scaling(context, squared)


class LandmarkMultidimensionalScaling(Reducer):
    """Multidimensional scaling of landmarks with triangulation of the rest."""

    method = Method.LANDMARK_MULTIDIMENSIONAL_SCALING

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        distance = context.distance
        landmarks = select_landmarks(context)
        context.checkpoint("before distance matrix")
        to_landmarks = context.rectangular_matrix(
            landmarks, lambda r, j: distance(r, j) ** 2
        )
        landmark_squared = to_landmarks[:, landmarks]
        return landmark_scaling(context, landmark_squared, to_landmarks)


class Isomap(Reducer):
    """Classical scaling of geodesic distances along the neighbor graph."""

    method = Method.ISOMAP

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        # Fail before running shortest paths when the result cannot fit.
        check_dense_feasible(context.n, context.memory_limit)
        geodesics = _geodesics(context)
        return classical_scaling(context, geodesics**2)


class LandmarkIsomap(Reducer):
    """Isomap with geodesics computed from landmarks only."""

    method = Method.LANDMARK_ISOMAP

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        landmarks = select_landmarks(context)
        check_matrix_feasible(len(landmarks), context.n, context.memory_limit)
        to_landmarks = _geodesics(context, landmarks) ** 2
        landmark_squared = to_landmarks[:, landmarks]
        return landmark_scaling(context, landmark_squared, to_landmarks)
