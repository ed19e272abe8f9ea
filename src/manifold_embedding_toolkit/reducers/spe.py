"""Stochastic proximity embedding."""

from __future__ import annotations

import numpy as np

from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.parameters import Option
from manifold_embedding_toolkit.reducer import Reducer
from manifold_embedding_toolkit.result import EmbeddingResult


class StochasticProximityEmbedding(Reducer):
    """Stochastic proximity embedding by pairwise coordinate updates.

    Each round picks ``spe_num_updates`` pairs and moves both points so that
    their embedded distance approaches the input distance. The global strategy
    samples random pairs; the local strategy samples neighbor pairs, which are
    always updated, and random pairs, which are only pushed apart. The
    learning rate decays linearly from 1 over ``max_iteration`` rounds.
    """

    method = Method.STOCHASTIC_PROXIMITY_EMBEDDING

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        parameters = context.parameters
        global_strategy = parameters.get(Option.SPE_GLOBAL_STRATEGY)
        tolerance = parameters.get(Option.SPE_TOLERANCE)
        num_updates = parameters.get(Option.SPE_NUM_UPDATES)
        max_iteration = parameters.get(Option.MAX_ITERATION)

        n = context.n
        rng = context.rng()
        neighbors = None if global_strategy else np.vstack(context.neighbors())
        embedding = rng.uniform(size=(n, context.target_dimension))

        for iteration in range(max_iteration):
            context.checkpoint("proximity embedding iteration")
            rate = 1.0 - iteration / max_iteration
            first = rng.integers(0, n, size=num_updates)
            if neighbors is None:
                second = rng.integers(0, n, size=num_updates)
                attract = np.ones(num_updates, dtype=bool)
            else:
                # Half of the pairs are neighbors, the others are random.
                attract = rng.random(num_updates) < 0.5
                picked = rng.integers(0, neighbors.shape[1], size=num_updates)
                second = np.where(
                    attract,
                    neighbors[first, picked],
                    rng.integers(0, n, size=num_updates),
                )
            distinct = first != second
            first, second, attract = first[distinct], second[distinct], attract[distinct]
            if not len(first):
                continue

            target = np.fromiter(
                (context.distance(int(i), int(j)) for i, j in zip(first, second)),
                dtype=np.float64,
                count=len(first),
            )
            difference = embedding[first] - embedding[second]
            current = np.linalg.norm(difference, axis=1)
            update = attract | (current < target)
            scale = rate * 0.5 * (target - current) / (current + tolerance)
            step = np.where(update, scale, 0.0)[:, None] * difference
            np.add.at(embedding, first, step)
            np.add.at(embedding, second, -step)

        return EmbeddingResult(embedding)
