"""Shared neighbor search interfaces."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import ClassVar

import numpy as np
from joblib import Parallel, delayed

from manifold_embedding_toolkit.errors import WrongParameterValueError

Metric = Callable[[int, int], float]
Neighbors = list[np.ndarray]


class NeighborsMethod(str, Enum):
    BRUTE_FORCE = "brute"
    COVER_TREE = "covertree"


class NeighborsFinder(ABC):
    """Base interface for k-nearest-neighbor strategies.

    Every strategy orders neighbors by ``(distance, index)``, so equal
    distances resolve to the lower index, and never lists a point as its own
    neighbor.
    """

    method: ClassVar[NeighborsMethod]

    def __init__(self, *, n_jobs: int = 1) -> None:
        self.n_jobs = n_jobs

    def find(self, n: int, k: int, metric: Metric) -> Neighbors:
        if n == 0:
            return []
        query = self.prepare(n, metric)
        return Parallel(n_jobs=self.n_jobs, prefer="threads")(
            delayed(query)(i, k) for i in range(n)
        )

    @abstractmethod
    def prepare(self, n: int, metric: Metric) -> Callable[[int, int], np.ndarray]:
        """Build any index structure and return a per-point query function."""


def non_finite_distance(i: int, j: int, distance: float) -> WrongParameterValueError:
    return WrongParameterValueError(
        f"Metric returned a non-finite distance {distance!r} for points ({i}, {j})"
    )


def kernel_metric(kernel: Callable[[int, int], float]) -> Metric:
    """Distance induced by a Mercer kernel in its feature space."""

    def metric(i: int, j: int) -> float:
        squared = kernel(i, i) - 2.0 * kernel(i, j) + kernel(j, j)
        return math.sqrt(max(squared, 0.0))

    return metric
