"""Reducers built on local neighborhood alignment."""

from __future__ import annotations

import numpy as np

from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.eigen import EigenMode
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.parameters import Option
from manifold_embedding_toolkit.reducer import Reducer
from manifold_embedding_toolkit.reducers._weights import (
    hessian_alignment,
    linear_reconstruction_alignment,
    project_problem,
    tangent_space_alignment,
)
from manifold_embedding_toolkit.result import EmbeddingResult, ProjectingFunction


def _null_space_embedding(context: EmbeddingContext, alignment) -> EmbeddingResult:
    context.checkpoint("before eigendecomposition")
    vectors, values = context.eigen(alignment, EigenMode.SMALLEST, skip=1)
    context.checkpoint("after eigendecomposition")
    return EmbeddingResult(vectors, values)


def _linear_embedding(
    context: EmbeddingContext, features: np.ndarray, alignment
) -> EmbeddingResult:
    mean = features.mean(axis=0)
    centered = features - mean
    lhs = project_problem(centered, alignment)
    rhs = project_problem(centered)
    context.checkpoint("before eigendecomposition")
    vectors, values = context.eigen(lhs, EigenMode.SMALLEST, rhs=rhs)
    context.checkpoint("after eigendecomposition")
    return EmbeddingResult(
        centered @ vectors,
        values,
        ProjectingFunction(matrix=vectors, mean=mean),
    )


class KernelLocallyLinearEmbedding(Reducer):
    """Locally linear embedding with reconstruction weights from a kernel."""

    method = Method.KERNEL_LOCALLY_LINEAR_EMBEDDING

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        neighbors = context.neighbors()
        context.checkpoint("before weight matrix")
        with context.timed("weight matrix"):
            alignment = linear_reconstruction_alignment(
                context.n,
                neighbors,
                context.kernel,
                context.parameters.get(Option.KLLE_SHIFT),
            )
        return _null_space_embedding(context, alignment)


class KernelLocalTangentSpaceAlignment(Reducer):
    """Local tangent space alignment with local coordinates from a kernel."""

    method = Method.KERNEL_LOCAL_TANGENT_SPACE_ALIGNMENT

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        d = context.target_dimension
        neighbors = context.neighbors()
        context.checkpoint("before weight matrix")
        with context.timed("weight matrix"):
            alignment = tangent_space_alignment(
                context.n, neighbors, context.kernel, d
            )
        return _null_space_embedding(context, alignment)


class HessianLocallyLinearEmbedding(Reducer):
    """Hessian eigenmaps: null space of a local Hessian estimator."""

    method = Method.HESSIAN_LOCALLY_LINEAR_EMBEDDING

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        d = context.target_dimension
        neighbors = context.neighbors()
        context.checkpoint("before weight matrix")
        with context.timed("weight matrix"):
            alignment = hessian_alignment(context.n, neighbors, context.kernel, d)
        return _null_space_embedding(context, alignment)


class NeighborhoodPreservingEmbedding(Reducer):
    """Linear approximation of locally linear embedding."""

    method = Method.NEIGHBORHOOD_PRESERVING_EMBEDDING

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        neighbors = context.neighbors()
        context.checkpoint("before weight matrix")
        with context.timed("weight matrix"):
            alignment = linear_reconstruction_alignment(
                context.n,
                neighbors,
                context.kernel,
                context.parameters.get(Option.KLLE_SHIFT),
            )
        return _linear_embedding(context, context.feature_matrix(), alignment)


class LinearLocalTangentSpaceAlignment(Reducer):
    """Linear approximation of local tangent space alignment."""

    method = Method.LINEAR_LOCAL_TANGENT_SPACE_ALIGNMENT

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        d = context.target_dimension
        neighbors = context.neighbors()
        context.checkpoint("before weight matrix")
        with context.timed("weight matrix"):
            alignment = tangent_space_alignment(
                context.n, neighbors, context.kernel, d
            )
        return _linear_embedding(context, context.feature_matrix(), alignment)
