"""Exact t-distributed stochastic neighbor embedding."""

from __future__ import annotations

import logging

import numpy as np

from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.pairwise import check_dense_feasible
from manifold_embedding_toolkit.parameters import Option
from manifold_embedding_toolkit.reducer import Reducer
from manifold_embedding_toolkit.result import EmbeddingResult

logger = logging.getLogger(__name__)

LEARNING_RATE = 200.0
EXAGGERATION = 12.0
INITIAL_MOMENTUM = 0.5
FINAL_MOMENTUM = 0.8
MIN_GAIN = 0.01
_BISECTION_STEPS = 50
_ENTROPY_TOLERANCE = 1e-5
_MIN_PROBABILITY = 1e-12


def squared_distances(points: np.ndarray) -> np.ndarray:
    norms = np.einsum("ij,ij->i", points, points)
    result = norms[:, None] + norms[None, :] - 2.0 * points @ points.T
    np.maximum(result, 0.0, out=result)
    np.fill_diagonal(result, 0.0)
    return result


def conditional_probabilities(
    distances: np.ndarray, perplexity: float
) -> np.ndarray:
    """Row-wise Gaussian affinities whose entropy matches ``log(perplexity)``.

    The precision of each row is found by bisection.
    """
    n = distances.shape[0]
    target = np.log(perplexity)
    result = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        row = np.delete(distances[i], i)
        beta, low, high = 1.0, 0.0, np.inf
        for _ in range(_BISECTION_STEPS):
            weights = np.exp(-(row - row.min()) * beta)
            total = weights.sum()
            probabilities = weights / total
            entropy = np.log(total) + beta * np.sum((row - row.min()) * probabilities)
            if abs(entropy - target) < _ENTROPY_TOLERANCE:
                break
            if entropy > target:
                low = beta
                beta = beta * 2.0 if high == np.inf else (beta + high) / 2.0
            else:
                high = beta
                beta = (beta + low) / 2.0
        result[i, np.arange(n) != i] = probabilities
    return result


class TDistributedStochasticNeighborEmbedding(Reducer):
    """t-SNE with exact gradients over all pairs."""

    method = Method.T_DISTRIBUTED_STOCHASTIC_NEIGHBOR_EMBEDDING

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        n = context.n
        perplexity = context.parameters.get(Option.SNE_PERPLEXITY)
        max_iteration = context.parameters.get(Option.MAX_ITERATION)
        check_dense_feasible(n, context.memory_limit)

        features = context.feature_matrix()
        context.checkpoint("before affinities")
        with context.timed("affinities"):
            conditional = conditional_probabilities(
                squared_distances(features), perplexity
            )
        joint = np.maximum((conditional + conditional.T) / (2.0 * n), _MIN_PROBABILITY)

        rng = context.rng()
        embedding = rng.normal(0.0, 1e-4, size=(n, context.target_dimension))
        velocity = np.zeros_like(embedding)
        gains = np.ones_like(embedding)
        early = min(250, max_iteration // 4)

        for iteration in range(max_iteration):
            context.checkpoint("t-SNE iteration")
            exaggeration = EXAGGERATION if iteration < early else 1.0
            momentum = INITIAL_MOMENTUM if iteration < early else FINAL_MOMENTUM

            affinity = 1.0 / (1.0 + squared_distances(embedding))
            np.fill_diagonal(affinity, 0.0)
            q = np.maximum(affinity / affinity.sum(), _MIN_PROBABILITY)
            forces = (exaggeration * joint - q) * affinity
            gradient = 4.0 * (np.diag(forces.sum(axis=1)) - forces) @ embedding

            same_sign = np.sign(gradient) == np.sign(velocity)
            gains = np.where(same_sign, gains * 0.8, gains + 0.2)
            np.maximum(gains, MIN_GAIN, out=gains)
            velocity = momentum * velocity - LEARNING_RATE * gains * gradient
            embedding = embedding + velocity
            embedding -= embedding.mean(axis=0)

        logger.debug("t-SNE finished %d iterations", max_iteration)
        return EmbeddingResult(embedding)
