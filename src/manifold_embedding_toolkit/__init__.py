"""Manifold Embedding Toolkit: callback-driven dimension reduction."""

from manifold_embedding_toolkit.callbacks import (
    EuclideanDistance,
    FeatureVectors,
    GaussianKernel,
    LinearKernel,
    MatrixCallbacks,
)
from manifold_embedding_toolkit.eigen import EigenMethod, EigenMode
from manifold_embedding_toolkit.embedding import (
    EmbeddingRun,
    EmbeddingState,
    embed,
    embed_with,
)
from manifold_embedding_toolkit.errors import (
    EigendecompositionError,
    EmbeddingCancelledError,
    EmbeddingError,
    MissedParameterError,
    NotEnoughMemoryError,
    UnsupportedMethodError,
    WrongParameterTypeError,
    WrongParameterValueError,
)
from manifold_embedding_toolkit.methods import Method, MethodDescriptor, describe
from manifold_embedding_toolkit.neighbors import NeighborsMethod
from manifold_embedding_toolkit.parameters import Option, ParametersMap
from manifold_embedding_toolkit.result import EmbeddingResult, ProjectingFunction

__version__ = "0.1.0"

__all__ = [
    "EigenMethod",
    "EigenMode",
    "EigendecompositionError",
    "EmbeddingCancelledError",
    "EmbeddingError",
    "EmbeddingResult",
    "EmbeddingRun",
    "EmbeddingState",
    "EuclideanDistance",
    "FeatureVectors",
    "GaussianKernel",
    "LinearKernel",
    "MatrixCallbacks",
    "Method",
    "MethodDescriptor",
    "MissedParameterError",
    "NeighborsMethod",
    "NotEnoughMemoryError",
    "Option",
    "ParametersMap",
    "ProjectingFunction",
    "UnsupportedMethodError",
    "WrongParameterTypeError",
    "WrongParameterValueError",
    "describe",
    "embed",
    "embed_with",
]
