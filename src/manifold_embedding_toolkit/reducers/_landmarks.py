"""Classical scaling and landmark triangulation."""

from __future__ import annotations

import numpy as np

from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.eigen import EigenMode
from manifold_embedding_toolkit.parameters import Option
from manifold_embedding_toolkit.reducers._weights import center_gram
from manifold_embedding_toolkit.result import EmbeddingResult


def landmark_count(n: int, target_dimension: int, ratio: float) -> int:
    """``max(d + 1, ratio * n)`` landmarks, never more than ``n``."""
    return min(max(target_dimension + 1, int(round(ratio * n))), n)


def select_landmarks(context: EmbeddingContext) -> np.ndarray:
    """Sorted random subset of ``landmark_count`` point indices."""
    count = landmark_count(
        context.n,
        context.target_dimension,
        context.parameters.get(Option.LANDMARK_RATIO),
    )
    chosen = context.rng().choice(context.n, size=count, replace=False)
    return np.sort(chosen)


def scaled_coordinates(vectors: np.ndarray, values: np.ndarray) -> np.ndarray:
    return vectors * np.sqrt(np.clip(values, 0.0, None))


def classical_scaling(
    context: EmbeddingContext, squared: np.ndarray
) -> EmbeddingResult:
    """Embed points from a full matrix of squared distances."""
    gram = -0.5 * center_gram(squared)
    context.checkpoint("before eigendecomposition")
    vectors, values = context.eigen(gram, EigenMode.LARGEST)
    context.checkpoint("after eigendecomposition")
    return EmbeddingResult(scaled_coordinates(vectors, values), values)


def landmark_scaling(
    context: EmbeddingContext,
    landmark_squared: np.ndarray,
    squared_to_landmarks: np.ndarray,
) -> EmbeddingResult:
    """Scale the landmarks, then triangulate every point from them.

    ``landmark_squared`` is ``(L, L)`` and ``squared_to_landmarks`` is
    ``(L, n)``; both hold squared distances.
    """
    gram = -0.5 * center_gram(landmark_squared)
    context.checkpoint("before eigendecomposition")
    vectors, values = context.eigen(gram, EigenMode.LARGEST)
    context.checkpoint("after eigendecomposition")

    positive = values > 0
    pseudo_inverse = np.zeros_like(vectors)
    pseudo_inverse[:, positive] = vectors[:, positive] / np.sqrt(values[positive])
    mean_squared = landmark_squared.mean(axis=1)
    embedding = -0.5 * (squared_to_landmarks - mean_squared[:, None]).T @ pseudo_inverse
    return EmbeddingResult(embedding, values)
