"""Dimension reduction methods and their static traits."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class Method(str, Enum):
    KERNEL_LOCALLY_LINEAR_EMBEDDING = "kernel_locally_linear_embedding"
    KERNEL_LOCAL_TANGENT_SPACE_ALIGNMENT = "kernel_local_tangent_space_alignment"
    HESSIAN_LOCALLY_LINEAR_EMBEDDING = "hessian_locally_linear_embedding"
    NEIGHBORHOOD_PRESERVING_EMBEDDING = "neighborhood_preserving_embedding"
    LINEAR_LOCAL_TANGENT_SPACE_ALIGNMENT = "linear_local_tangent_space_alignment"
    LAPLACIAN_EIGENMAPS = "laplacian_eigenmaps"
    LOCALITY_PRESERVING_PROJECTIONS = "locality_preserving_projections"
    DIFFUSION_MAP = "diffusion_map"
    MULTIDIMENSIONAL_SCALING = "multidimensional_scaling"
    LANDMARK_MULTIDIMENSIONAL_SCALING = "landmark_multidimensional_scaling"
    ISOMAP = "isomap"
    LANDMARK_ISOMAP = "landmark_isomap"
    STOCHASTIC_PROXIMITY_EMBEDDING = "stochastic_proximity_embedding"
    KERNEL_PCA = "kernel_pca"
    PCA = "pca"
    RANDOM_PROJECTION = "random_projection"
    FACTOR_ANALYSIS = "factor_analysis"
    T_DISTRIBUTED_STOCHASTIC_NEIGHBOR_EMBEDDING = (
        "t_distributed_stochastic_neighbor_embedding"
    )
    PASS_THRU = "passthru"

    @classmethod
    def from_name(cls, name: str) -> Method:
        """Parse a method from its full name or one of its short aliases."""
        key = name.strip().lower().replace("-", "_")
        for method in cls:
            if method.value == key:
                return method
        for method, aliases in METHOD_ALIASES.items():
            if name.strip().lower() in aliases:
                return method
        known = ", ".join(sorted(m.value for m in cls))
        raise ValueError(f"Unknown method '{name}'. Available: {known}")


METHOD_ALIASES: dict[Method, tuple[str, ...]] = {
    Method.KERNEL_LOCALLY_LINEAR_EMBEDDING: (
        "lle",
        "klle",
        "locally_linear_embedding",
    ),
    Method.KERNEL_LOCAL_TANGENT_SPACE_ALIGNMENT: (
        "ltsa",
        "kltsa",
        "local_tangent_space_alignment",
    ),
    Method.HESSIAN_LOCALLY_LINEAR_EMBEDDING: ("hlle",),
    Method.NEIGHBORHOOD_PRESERVING_EMBEDDING: ("npe",),
    Method.LINEAR_LOCAL_TANGENT_SPACE_ALIGNMENT: ("lltsa",),
    Method.LAPLACIAN_EIGENMAPS: ("la", "le"),
    Method.LOCALITY_PRESERVING_PROJECTIONS: ("lpp",),
    Method.DIFFUSION_MAP: ("dm",),
    Method.MULTIDIMENSIONAL_SCALING: ("mds",),
    Method.LANDMARK_MULTIDIMENSIONAL_SCALING: ("l-mds", "lmds"),
    Method.ISOMAP: (),
    Method.LANDMARK_ISOMAP: ("l-isomap",),
    Method.STOCHASTIC_PROXIMITY_EMBEDDING: ("spe",),
    Method.KERNEL_PCA: ("kpca",),
    Method.PCA: (),
    Method.RANDOM_PROJECTION: ("ra",),
    Method.FACTOR_ANALYSIS: ("fa",),
    Method.T_DISTRIBUTED_STOCHASTIC_NEIGHBOR_EMBEDDING: ("t-sne", "tsne"),
    Method.PASS_THRU: (),
}


@dataclass(frozen=True)
class MethodDescriptor:
    """Static callback and solver requirements of one method."""

    method: Method
    needs_kernel: bool = False
    needs_distance: bool = False
    needs_feature_vectors: bool = False
    is_generalized_eigenproblem: bool = False
    supports_landmarks: bool = False
    needs_neighbors: bool = False
    is_linear: bool = False

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["method"] = self.method.value
        payload["aliases"] = list(METHOD_ALIASES[self.method])
        return payload


_DESCRIPTORS: dict[Method, MethodDescriptor] = {
    descriptor.method: descriptor
    for descriptor in (
        MethodDescriptor(
            Method.KERNEL_LOCALLY_LINEAR_EMBEDDING,
            needs_kernel=True,
            needs_neighbors=True,
        ),
        MethodDescriptor(
            Method.KERNEL_LOCAL_TANGENT_SPACE_ALIGNMENT,
            needs_kernel=True,
            needs_neighbors=True,
        ),
        MethodDescriptor(
            Method.HESSIAN_LOCALLY_LINEAR_EMBEDDING,
            needs_kernel=True,
            needs_neighbors=True,
        ),
        MethodDescriptor(
            Method.NEIGHBORHOOD_PRESERVING_EMBEDDING,
            needs_kernel=True,
            needs_feature_vectors=True,
            is_generalized_eigenproblem=True,
            needs_neighbors=True,
            is_linear=True,
        ),
        MethodDescriptor(
            Method.LINEAR_LOCAL_TANGENT_SPACE_ALIGNMENT,
            needs_kernel=True,
            needs_feature_vectors=True,
            is_generalized_eigenproblem=True,
            needs_neighbors=True,
            is_linear=True,
        ),
        MethodDescriptor(
            Method.LAPLACIAN_EIGENMAPS,
            needs_distance=True,
            is_generalized_eigenproblem=True,
            needs_neighbors=True,
        ),
        MethodDescriptor(
            Method.LOCALITY_PRESERVING_PROJECTIONS,
            needs_distance=True,
            needs_feature_vectors=True,
            is_generalized_eigenproblem=True,
            needs_neighbors=True,
            is_linear=True,
        ),
        MethodDescriptor(Method.DIFFUSION_MAP, needs_distance=True),
        MethodDescriptor(Method.MULTIDIMENSIONAL_SCALING, needs_distance=True),
        MethodDescriptor(
            Method.LANDMARK_MULTIDIMENSIONAL_SCALING,
            needs_distance=True,
            supports_landmarks=True,
        ),
        MethodDescriptor(Method.ISOMAP, needs_distance=True, needs_neighbors=True),
        MethodDescriptor(
            Method.LANDMARK_ISOMAP,
            needs_distance=True,
            supports_landmarks=True,
            needs_neighbors=True,
        ),
        MethodDescriptor(
            Method.STOCHASTIC_PROXIMITY_EMBEDDING,
            needs_distance=True,
            needs_neighbors=True,
        ),
        MethodDescriptor(Method.KERNEL_PCA, needs_kernel=True),
        MethodDescriptor(Method.PCA, needs_feature_vectors=True, is_linear=True),
        MethodDescriptor(
            Method.RANDOM_PROJECTION,
            needs_feature_vectors=True,
            is_linear=True,
        ),
        MethodDescriptor(
            Method.FACTOR_ANALYSIS,
            needs_feature_vectors=True,
            is_linear=True,
        ),
        MethodDescriptor(
            Method.T_DISTRIBUTED_STOCHASTIC_NEIGHBOR_EMBEDDING,
            needs_feature_vectors=True,
        ),
        MethodDescriptor(Method.PASS_THRU, needs_feature_vectors=True),
    )
}


def describe(method: Method) -> MethodDescriptor:
    """Return the descriptor of a registered method.

    Unknown identifiers are a programming error and raise ``KeyError``.
    """
    if not isinstance(method, Method) or method not in _DESCRIPTORS:
        raise KeyError(f"No descriptor registered for method {method!r}")
    return _DESCRIPTORS[method]


def list_descriptors() -> list[MethodDescriptor]:
    return [_DESCRIPTORS[method] for method in Method]
