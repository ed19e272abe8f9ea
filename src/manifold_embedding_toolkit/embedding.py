"""Embedding entry point: validation, dispatch and execution of one call."""

from __future__ import annotations

import logging
from collections.abc import Sized
from enum import Enum
from typing import Any

from manifold_embedding_toolkit.context import (
    DistanceCallback,
    EmbeddingContext,
    FeatureCallback,
    KernelCallback,
)
from manifold_embedding_toolkit.eigen import EigenMethod, available_eigen_methods
from manifold_embedding_toolkit.errors import (
    MissedParameterError,
    UnsupportedMethodError,
    WrongParameterValueError,
)
from manifold_embedding_toolkit.methods import Method, MethodDescriptor, describe
from manifold_embedding_toolkit.neighbors import (
    NeighborsMethod,
    available_neighbors_methods,
)
from manifold_embedding_toolkit.pairwise import check_dense_feasible
from manifold_embedding_toolkit.parameters import Option, ParametersMap
from manifold_embedding_toolkit.reducer import Reducer
from manifold_embedding_toolkit.reducers._landmarks import landmark_count
from manifold_embedding_toolkit.registry import ReducerRegistry, default_registry
from manifold_embedding_toolkit.result import EmbeddingResult

logger = logging.getLogger(__name__)

# Eigenpairs requested beyond the target dimension. Methods missing here solve
# no eigenproblem.
_EXTRA_EIGENPAIRS: dict[Method, int] = {
    Method.KERNEL_LOCALLY_LINEAR_EMBEDDING: 1,
    Method.KERNEL_LOCAL_TANGENT_SPACE_ALIGNMENT: 1,
    Method.HESSIAN_LOCALLY_LINEAR_EMBEDDING: 1,
    Method.LAPLACIAN_EIGENMAPS: 1,
    Method.DIFFUSION_MAP: 1,
    Method.NEIGHBORHOOD_PRESERVING_EMBEDDING: 0,
    Method.LINEAR_LOCAL_TANGENT_SPACE_ALIGNMENT: 0,
    Method.LOCALITY_PRESERVING_PROJECTIONS: 0,
    Method.MULTIDIMENSIONAL_SCALING: 0,
    Method.LANDMARK_MULTIDIMENSIONAL_SCALING: 0,
    Method.ISOMAP: 0,
    Method.LANDMARK_ISOMAP: 0,
    Method.KERNEL_PCA: 0,
    Method.PCA: 0,
}


def _minimum_neighbors(method: Method, d: int) -> tuple[int, str] | None:
    if method in (
        Method.KERNEL_LOCAL_TANGENT_SPACE_ALIGNMENT,
        Method.LINEAR_LOCAL_TANGENT_SPACE_ALIGNMENT,
    ):
        return d, "one per target dimension"
    if method is Method.HESSIAN_LOCALLY_LINEAR_EMBEDDING:
        return d * (d + 3) // 2 + 1, "more than d(d+3)/2"
    return None


class EmbeddingState(str, Enum):
    VALIDATING = "validating"
    DISPATCHING = "dispatching"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


class EmbeddingRun:
    """One embedding call, moving through ``EmbeddingState`` stages.

    Every check that can fail cheaply runs before any callback is evaluated:
    required options and callbacks, value kinds and ranges, neighbor counts,
    the eigenpair count each backend can extract, backend availability and
    the solver/problem pairing. Errors propagate unchanged
    and leave the run in ``FAILED``.
    """

    def __init__(
        self,
        n: int,
        parameters: ParametersMap,
        *,
        kernel: KernelCallback | None = None,
        distance: DistanceCallback | None = None,
        features: FeatureCallback | None = None,
        registry: ReducerRegistry | None = None,
    ) -> None:
        self.n = n
        self.parameters = parameters
        self.kernel = kernel
        self.distance = distance
        self.features = features
        self.registry = registry
        self.state = EmbeddingState.VALIDATING
        self.method: Method | None = None
        self.descriptor: MethodDescriptor | None = None
        self.target_dimension = 0
        self.eigen_method: EigenMethod | None = None
        self.neighbors_method: NeighborsMethod | None = None
        self.reducer_cls: type[Reducer] | None = None
        self.context: EmbeddingContext | None = None

    def _transition(self, state: EmbeddingState) -> None:
        logger.debug("embedding %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self) -> EmbeddingResult:
        try:
            self._validate()
            self._transition(EmbeddingState.DISPATCHING)
            self._dispatch()
            self._transition(EmbeddingState.EXECUTING)
            result = self._execute()
        except Exception:
            self._transition(EmbeddingState.FAILED)
            raise
        self._transition(EmbeddingState.DONE)
        return result

    def _validate(self) -> None:
        parameters = self.parameters
        n = self.n
        if n < 0:
            raise WrongParameterValueError(f"Number of points must be >= 0, got {n}")
        self.method = parameters.get(Option.METHOD)
        self.target_dimension = parameters.get(Option.TARGET_DIMENSION)
        descriptor = self.descriptor = describe(self.method)
        d = self.target_dimension

        required = (
            ("kernel", descriptor.needs_kernel, self.kernel),
            ("distance", descriptor.needs_distance, self.distance),
            ("features", descriptor.needs_feature_vectors, self.features),
        )
        for name, needed, callback in required:
            if needed and callback is None:
                raise MissedParameterError(
                    f"{self.method.value} requires a {name} callback"
                )

        parameters.get(Option.CANCEL_FUNCTION)
        if n > 0:
            parameters.get(
                Option.TARGET_DIMENSION,
                check=lambda value: value <= n,
                requirement=f"at most the number of points ({n})",
            )

        current = None
        if descriptor.needs_feature_vectors:
            current = parameters.get(Option.CURRENT_DIMENSION)
            if descriptor.is_linear and d > current:
                raise WrongParameterValueError(
                    f"{self.method.value} cannot project {current}-dimensional "
                    f"features to target_dimension={d}"
                )
            if self.method is Method.PASS_THRU and d != current:
                raise WrongParameterValueError(
                    f"passthru needs target_dimension == current_dimension, "
                    f"got {d} and {current}"
                )

        if descriptor.needs_neighbors:
            if n > 0:
                k = parameters.get(
                    Option.N_NEIGHBORS,
                    check=lambda value: value < n,
                    requirement=f"below the number of points ({n})",
                )
            else:
                k = parameters.get(Option.N_NEIGHBORS)
            minimum = _minimum_neighbors(self.method, d)
            if minimum is not None and k < minimum[0]:
                raise WrongParameterValueError(
                    f"{self.method.value} needs at least {minimum[0]} neighbors "
                    f"({minimum[1]}), got n_neighbors={k}"
                )

        if descriptor.supports_landmarks:
            parameters.get(Option.LANDMARK_RATIO)

        if self.method is Method.T_DISTRIBUTED_STOCHASTIC_NEIGHBOR_EMBEDDING and n > 0:
            parameters.get(
                Option.SNE_PERPLEXITY,
                check=lambda value: 3.0 * value < n - 1,
                requirement=f"below (n - 1) / 3 = {(n - 1) / 3:.4g}",
            )

        if n > 0 and self.method in _EXTRA_EIGENPAIRS:
            self._validate_eigenproblem(current)

    def _validate_eigenproblem(self, current: int | None) -> None:
        """Check the eigenpair count against what the selected backend can extract."""
        parameters = self.parameters
        method = self.method
        d = self.target_dimension
        eigen_method = parameters.get(Option.EIGEN_METHOD)

        if self.descriptor.is_linear:
            size = current
        elif self.descriptor.supports_landmarks:
            size = landmark_count(self.n, d, parameters.get(Option.LANDMARK_RATIO))
        else:
            size = self.n
        if eigen_method is EigenMethod.DENSE:
            check_dense_feasible(size, parameters.get(Option.MEMORY_LIMIT))

        requested = d + _EXTRA_EIGENPAIRS[method]
        # ARPACK needs at least one eigenpair left over.
        limit = size - 1 if eigen_method is EigenMethod.ARPACK else size
        if requested > limit:
            raise WrongParameterValueError(
                f"{method.value} needs {requested} eigenpairs of a {size}x{size} "
                f"problem but the {eigen_method.value} eigensolver extracts at most "
                f"{limit}; lower target_dimension (got {d})"
            )

    def _dispatch(self) -> None:
        parameters = self.parameters
        descriptor = self.descriptor
        assert descriptor is not None

        eigen_method = parameters.get(Option.EIGEN_METHOD)
        if eigen_method not in available_eigen_methods():
            raise UnsupportedMethodError(
                f"Eigen method '{eigen_method.value}' is not available"
            )
        generalized = descriptor.is_generalized_eigenproblem
        if generalized and not eigen_method.supports_generalized:
            raise UnsupportedMethodError(
                f"{descriptor.method.value} solves a generalized eigenproblem, "
                f"which the {eigen_method.value} eigensolver does not support"
            )

        neighbors_method = parameters.get(Option.NEIGHBORS_METHOD)
        if neighbors_method not in available_neighbors_methods():
            raise UnsupportedMethodError(
                f"Neighbors method '{neighbors_method.value}' is not available"
            )

        registry = self.registry if self.registry is not None else default_registry()
        self.reducer_cls = registry.get(descriptor.method)
        self.eigen_method = eigen_method
        self.neighbors_method = neighbors_method
        logger.info(
            "embedding %d points with %s (eigen=%s, neighbors=%s, d=%d)",
            self.n,
            descriptor.method.value,
            eigen_method.value,
            neighbors_method.value,
            self.target_dimension,
        )

    def _execute(self) -> EmbeddingResult:
        context = self.context = EmbeddingContext(
            n=self.n,
            parameters=self.parameters,
            descriptor=self.descriptor,
            target_dimension=self.target_dimension,
            eigen_method=self.eigen_method,
            neighbors_method=self.neighbors_method,
            kernel=self.kernel,
            distance=self.distance,
            features=self.features,
        )
        context.checkpoint("start")
        if self.n == 0:
            return EmbeddingResult.empty(self.target_dimension)

        with context.timed("embedding"):
            result = self.reducer_cls().embed(context)
        expected = (self.n, self.target_dimension)
        if result.embedding.shape != expected:
            raise RuntimeError(
                f"{self.descriptor.method.value} returned an embedding of shape "
                f"{result.embedding.shape}, expected {expected}"
            )
        return result


def embed(
    data: Sized | int,
    parameters: ParametersMap,
    *,
    kernel: KernelCallback | None = None,
    distance: DistanceCallback | None = None,
    features: FeatureCallback | None = None,
    registry: ReducerRegistry | None = None,
) -> EmbeddingResult:
    """Embed ``data`` with the method selected in ``parameters``.

    ``data`` is either the number of points or a sized collection; callbacks
    receive point indices in ``range(len(data))``.
    """
    n = data if isinstance(data, int) else len(data)
    return EmbeddingRun(
        n,
        parameters,
        kernel=kernel,
        distance=distance,
        features=features,
        registry=registry,
    ).run()


def embed_with(data: Sized | int, **options: Any) -> EmbeddingResult:
    """Shorthand for ``embed`` taking options and callbacks as keywords."""
    callbacks = {
        name: options.pop(name)
        for name in ("kernel", "distance", "features", "registry")
        if name in options
    }
    return embed(data, ParametersMap(options), **callbacks)
