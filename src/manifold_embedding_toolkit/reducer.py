"""Reducer abstraction: one dimension reduction method per class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.methods import Method, MethodDescriptor, describe
from manifold_embedding_toolkit.result import EmbeddingResult


class Reducer(ABC):
    """Base class for dimension reduction methods."""

    method: ClassVar[Method]

    @classmethod
    def descriptor(cls) -> MethodDescriptor:
        return describe(cls.method)

    @classmethod
    def describe(cls) -> dict[str, Any]:
        return {
            "name": cls.method.value,
            "description": (cls.__doc__ or "").strip(),
            **cls.descriptor().as_dict(),
        }

    @abstractmethod
    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        """Compute the embedding of the ``context.n`` points."""
