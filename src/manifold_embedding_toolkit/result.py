"""Embedding results and projection functions."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class ProjectingFunction:
    """Maps new feature vectors into an embedded space: ``(x - mean) @ matrix``."""

    matrix: np.ndarray
    mean: np.ndarray

    def __call__(self, vector: np.ndarray) -> np.ndarray:
        x = np.asarray(vector, dtype=np.float64)
        return (x - self.mean) @ self.matrix

    @property
    def target_dimension(self) -> int:
        return int(self.matrix.shape[1])


@dataclass
class EmbeddingResult:
    embedding: np.ndarray
    eigenvalues: np.ndarray = field(default_factory=lambda: np.empty(0))
    projection: ProjectingFunction | None = None

    @classmethod
    def empty(cls, target_dimension: int) -> EmbeddingResult:
        return cls(embedding=np.empty((0, target_dimension), dtype=np.float64))

    @property
    def n_points(self) -> int:
        return int(self.embedding.shape[0])

    @property
    def target_dimension(self) -> int:
        return int(self.embedding.shape[1])
