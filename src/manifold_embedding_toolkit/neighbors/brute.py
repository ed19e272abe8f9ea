"""Brute force neighbor search, approx. O(N^2 log k)."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np

from manifold_embedding_toolkit.neighbors.base import (
    Metric,
    NeighborsFinder,
    NeighborsMethod,
    non_finite_distance,
)


class BruteForceNeighbors(NeighborsFinder):
    method = NeighborsMethod.BRUTE_FORCE

    def prepare(self, n: int, metric: Metric) -> Callable[[int, int], np.ndarray]:
        indices = np.arange(n)

        def query(point: int, k: int) -> np.ndarray:
            others = indices[indices != point]
            distances = np.fromiter(
                (metric(point, int(j)) for j in others),
                dtype=np.float64,
                count=len(others),
            )
            invalid = np.flatnonzero(~np.isfinite(distances))
            if invalid.size:
                first = invalid[0]
                raise non_finite_distance(
                    point, int(others[first]), float(distances[first])
                )
            # stable sort keeps ascending index order among equal distances
            order = np.argsort(distances, kind="stable")[:k]
            return others[order]

        return query
