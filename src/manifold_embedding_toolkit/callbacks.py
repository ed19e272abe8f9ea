"""Index-based callbacks over an in-memory ``(n, dimension)`` array."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class FeatureVectors:
    """``features(i)`` returns row ``i`` of ``data``."""

    data: np.ndarray

    def __call__(self, i: int) -> np.ndarray:
        return self.data[i]

    def __len__(self) -> int:
        return int(self.data.shape[0])

    @property
    def dimension(self) -> int:
        return int(self.data.shape[1])


@dataclass(frozen=True)
class LinearKernel:
    data: np.ndarray

    def __call__(self, i: int, j: int) -> float:
        return float(self.data[i] @ self.data[j])


@dataclass(frozen=True)
class GaussianKernel:
    """``exp(-|x_i - x_j|² / width)``."""

    data: np.ndarray
    width: float = 1.0

    def __call__(self, i: int, j: int) -> float:
        difference = self.data[i] - self.data[j]
        return float(np.exp(-(difference @ difference) / self.width))


@dataclass(frozen=True)
class EuclideanDistance:
    data: np.ndarray

    def __call__(self, i: int, j: int) -> float:
        return float(np.linalg.norm(self.data[i] - self.data[j]))


@dataclass(frozen=True)
class MatrixCallbacks:
    """Kernel, distance and feature callbacks sharing one data matrix."""

    data: np.ndarray
    kernel_name: str = "linear"
    width: float = 1.0
    features: FeatureVectors = field(init=False)

    def __post_init__(self) -> None:
        data = np.ascontiguousarray(self.data, dtype=np.float64)
        if data.ndim != 2:
            raise ValueError(f"Expected a 2-D data matrix, got shape {data.shape}")
        if self.kernel_name not in ("linear", "gaussian"):
            raise ValueError(f"Unknown kernel '{self.kernel_name}'")
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "features", FeatureVectors(data))

    @property
    def kernel(self) -> LinearKernel | GaussianKernel:
        if self.kernel_name == "gaussian":
            return GaussianKernel(self.data, self.width)
        return LinearKernel(self.data)

    @property
    def distance(self) -> EuclideanDistance:
        return EuclideanDistance(self.data)

    def __len__(self) -> int:
        return int(self.data.shape[0])
