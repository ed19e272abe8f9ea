"""Graph Laplacian and diffusion based reducers."""

from __future__ import annotations

import numpy as np

from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.eigen import EigenMode
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.parameters import Option
from manifold_embedding_toolkit.reducer import Reducer
from manifold_embedding_toolkit.reducers._weights import (
    graph_laplacian,
    heat_kernel_graph,
    project_problem,
)
from manifold_embedding_toolkit.result import EmbeddingResult, ProjectingFunction


def _heat_laplacian(context: EmbeddingContext):
    neighbors = context.neighbors()
    context.checkpoint("before weight matrix")
    with context.timed("weight matrix"):
        weights = heat_kernel_graph(
            context.n,
            neighbors,
            context.distance,
            context.parameters.get(Option.GAUSSIAN_KERNEL_WIDTH),
        )
    return graph_laplacian(weights)


class LaplacianEigenmaps(Reducer):
    """Laplacian eigenmaps over a heat-kernel weighted neighbor graph."""

    method = Method.LAPLACIAN_EIGENMAPS

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        laplacian, degree = _heat_laplacian(context)
        context.checkpoint("before eigendecomposition")
        vectors, values = context.eigen(
            laplacian, EigenMode.SMALLEST, rhs=degree, skip=1
        )
        context.checkpoint("after eigendecomposition")
        return EmbeddingResult(vectors, values)


class LocalityPreservingProjections(Reducer):
    """Linear approximation of Laplacian eigenmaps."""

    method = Method.LOCALITY_PRESERVING_PROJECTIONS

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        laplacian, degree = _heat_laplacian(context)
        features = context.feature_matrix()
        mean = features.mean(axis=0)
        centered = features - mean
        lhs = project_problem(centered, laplacian)
        rhs = project_problem(centered, degree)
        context.checkpoint("before eigendecomposition")
        vectors, values = context.eigen(lhs, EigenMode.SMALLEST, rhs=rhs)
        context.checkpoint("after eigendecomposition")
        return EmbeddingResult(
            centered @ vectors,
            values,
            ProjectingFunction(matrix=vectors, mean=mean),
        )


class DiffusionMap(Reducer):
    """Diffusion map of a Gaussian kernel Markov chain after ``t`` steps."""

    method = Method.DIFFUSION_MAP

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        width = context.parameters.get(Option.GAUSSIAN_KERNEL_WIDTH)
        timesteps = context.parameters.get(Option.DIFFUSION_MAP_TIMESTEPS)
        distance = context.distance

        context.checkpoint("before kernel matrix")
        kernel = context.dense_matrix(lambda i, j: np.exp(-distance(i, j) ** 2 / width))
        # Density normalization removes the influence of sampling density.
        density = kernel.sum(axis=1)
        kernel /= np.outer(density, density)
        # Symmetric conjugate of the Markov matrix D^-1 K.
        scale = np.sqrt(kernel.sum(axis=1))
        kernel /= np.outer(scale, scale)

        context.checkpoint("before eigendecomposition")
        vectors, values = context.eigen(
            kernel, EigenMode.LARGEST, k=context.target_dimension + 1
        )
        context.checkpoint("after eigendecomposition")

        # The leading right eigenvector is constant; dividing by it recovers
        # the Markov chain eigenvectors up to a common factor.
        psi = vectors[:, 1:] / vectors[:, [0]]
        retained = values[1:]
        return EmbeddingResult(psi * retained**timesteps, retained)
