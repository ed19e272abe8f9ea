"""Services shared with a reducer during one embedding call."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import numpy as np

from manifold_embedding_toolkit.eigen import EigenMethod, EigenMode, EigenPairs, get_solver
from manifold_embedding_toolkit.errors import (
    EmbeddingCancelledError,
    WrongParameterValueError,
)
from manifold_embedding_toolkit.methods import MethodDescriptor
from manifold_embedding_toolkit.neighbors import (
    Metric,
    Neighbors,
    NeighborsMethod,
    find_neighbors,
    kernel_metric,
)
from manifold_embedding_toolkit.pairwise import (
    PairwiseCallback,
    check_dense_feasible,
    dense_matrix_from_callback,
    rectangular_matrix_from_callback,
)
from manifold_embedding_toolkit.parameters import Option, ParametersMap

logger = logging.getLogger(__name__)

KernelCallback = Callable[[int, int], float]
DistanceCallback = Callable[[int, int], float]
FeatureCallback = Callable[[int], Sequence[float]]


class EmbeddingContext:
    """Context object shared with a reducer while it computes an embedding.

    Callbacks required by the method descriptor are guaranteed to be set.
    """

    def __init__(
        self,
        *,
        n: int,
        parameters: ParametersMap,
        descriptor: MethodDescriptor,
        target_dimension: int,
        eigen_method: EigenMethod,
        neighbors_method: NeighborsMethod,
        kernel: KernelCallback | None = None,
        distance: DistanceCallback | None = None,
        features: FeatureCallback | None = None,
    ) -> None:
        self.n = n
        self.parameters = parameters
        self.descriptor = descriptor
        self.target_dimension = target_dimension
        self.eigen_method = eigen_method
        self.neighbors_method = neighbors_method
        self.kernel = kernel
        self.distance = distance
        self.features = features
        self.cancel: Callable[[], bool] = parameters.get(Option.CANCEL_FUNCTION)
        self.n_jobs: int = parameters.get(Option.N_JOBS)
        self.memory_limit: int = parameters.get(Option.MEMORY_LIMIT)
        self.eigen_calls = 0

    def checkpoint(self, stage: str) -> None:
        if self.cancel():
            raise EmbeddingCancelledError(f"Embedding cancelled at '{stage}'")

    @contextmanager
    def timed(self, stage: str) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            logger.debug(
                "%s: %s took %.4fs",
                self.descriptor.method.value,
                stage,
                time.perf_counter() - started,
            )

    def rng(self) -> np.random.Generator:
        return np.random.default_rng(self.parameters.get(Option.RANDOM_STATE))

    @property
    def n_neighbors(self) -> int:
        return self.parameters.get(Option.N_NEIGHBORS)

    def default_metric(self) -> Metric:
        if self.descriptor.needs_kernel:
            return kernel_metric(self.kernel)
        return self.distance

    def neighbors(self, metric: Metric | None = None) -> Neighbors:
        with self.timed("neighbors search"):
            return find_neighbors(
                self.neighbors_method,
                self.n,
                self.n_neighbors,
                metric or self.default_metric(),
                base=self.parameters.get(Option.COVER_TREE_BASE),
                n_jobs=self.n_jobs,
                check_connectivity=self.parameters.get(Option.CHECK_CONNECTIVITY),
            )

    def dense_matrix(self, callback: PairwiseCallback) -> np.ndarray:
        with self.timed("pairwise matrix"):
            return dense_matrix_from_callback(
                self.n,
                callback,
                memory_limit=self.memory_limit,
                n_jobs=self.n_jobs,
            )

    def rectangular_matrix(
        self, rows: np.ndarray, callback: PairwiseCallback
    ) -> np.ndarray:
        with self.timed("landmark matrix"):
            return rectangular_matrix_from_callback(
                rows,
                self.n,
                callback,
                memory_limit=self.memory_limit,
                n_jobs=self.n_jobs,
            )

    def feature_matrix(self) -> np.ndarray:
        """Stack feature vectors into an ``(n, current_dimension)`` array."""
        dimension = self.parameters.get(Option.CURRENT_DIMENSION)
        matrix = np.empty((self.n, dimension), dtype=np.float64)
        for i in range(self.n):
            vector = np.asarray(self.features(i), dtype=np.float64).ravel()
            if vector.shape[0] != dimension:
                raise WrongParameterValueError(
                    f"Feature vector {i} has {vector.shape[0]} components, "
                    f"expected current_dimension={dimension}"
                )
            matrix[i] = vector
        return matrix

    def eigen(
        self,
        matrix: Any,
        mode: EigenMode,
        *,
        k: int | None = None,
        rhs: Any = None,
        skip: int = 0,
    ) -> EigenPairs:
        """Solve one eigenproblem with the selected backend."""
        if self.eigen_method is EigenMethod.DENSE:
            # The dense backend materializes sparse operators as full arrays.
            check_dense_feasible(matrix.shape[0], self.memory_limit)
        solver = get_solver(
            self.eigen_method,
            shift=self.parameters.get(Option.NULLSPACE_SHIFT),
            max_iteration=self.parameters.get(Option.MAX_ITERATION),
            random_state=self.parameters.get(Option.RANDOM_STATE),
            cancel=self.cancel,
        )
        self.eigen_calls += 1
        with self.timed(f"{self.eigen_method.value} eigendecomposition"):
            return solver.solve(
                matrix,
                self.target_dimension if k is None else k,
                mode,
                rhs=rhs,
                skip=skip,
            )
