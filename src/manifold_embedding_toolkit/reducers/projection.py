"""Reducers built on global feature or kernel projections."""

from __future__ import annotations

import logging

import numpy as np

from manifold_embedding_toolkit.context import EmbeddingContext
from manifold_embedding_toolkit.eigen import EigenMode
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.parameters import Option
from manifold_embedding_toolkit.reducer import Reducer
from manifold_embedding_toolkit.reducers._landmarks import scaled_coordinates
from manifold_embedding_toolkit.reducers._weights import center_gram
from manifold_embedding_toolkit.result import EmbeddingResult, ProjectingFunction

logger = logging.getLogger(__name__)

_MIN_VARIANCE = 1e-6


class PCA(Reducer):
    """Principal component analysis of the feature covariance matrix."""

    method = Method.PCA

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        features = context.feature_matrix()
        mean = features.mean(axis=0)
        centered = features - mean
        covariance = centered.T @ centered / context.n
        context.checkpoint("before eigendecomposition")
        vectors, values = context.eigen(covariance, EigenMode.LARGEST)
        context.checkpoint("after eigendecomposition")
        return EmbeddingResult(
            centered @ vectors,
            values,
            ProjectingFunction(matrix=vectors, mean=mean),
        )


class KernelPCA(Reducer):
    """Principal component analysis in the feature space of a kernel."""

    method = Method.KERNEL_PCA

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        context.checkpoint("before kernel matrix")
        gram = center_gram(context.dense_matrix(context.kernel))
        context.checkpoint("before eigendecomposition")
        vectors, values = context.eigen(gram, EigenMode.LARGEST)
        context.checkpoint("after eigendecomposition")
        return EmbeddingResult(scaled_coordinates(vectors, values), values)


class RandomProjection(Reducer):
    """Projection onto a random orthonormal basis."""

    method = Method.RANDOM_PROJECTION

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        features = context.feature_matrix()
        mean = features.mean(axis=0)
        gaussian = context.rng().standard_normal(
            (features.shape[1], context.target_dimension)
        )
        basis, _ = np.linalg.qr(gaussian)
        return EmbeddingResult(
            (features - mean) @ basis,
            projection=ProjectingFunction(matrix=basis, mean=mean),
        )


class FactorAnalysis(Reducer):
    """Factor analysis fitted by expectation maximization.

    The model is ``x = W z + mean + e`` with ``z ~ N(0, I)`` and diagonal
    noise ``e ~ N(0, diag(psi))``. Iterations stop after ``max_iteration``
    rounds or once the log-likelihood changes by less than ``fa_epsilon``.
    The embedding holds the posterior means ``E[z | x]``.
    """

    method = Method.FACTOR_ANALYSIS

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        max_iteration = context.parameters.get(Option.MAX_ITERATION)
        epsilon = context.parameters.get(Option.FA_EPSILON)
        d = context.target_dimension

        features = context.feature_matrix()
        mean = features.mean(axis=0)
        centered = features - mean
        n, dimension = centered.shape
        variances = np.maximum(
            np.einsum("ij,ij->j", centered, centered) / n, _MIN_VARIANCE
        )

        loadings = context.rng().standard_normal((dimension, d))
        loadings *= np.sqrt(variances)[:, None]
        psi = variances.copy()
        previous = -np.inf
        for iteration in range(max_iteration):
            context.checkpoint("factor analysis iteration")
            posterior = self._posterior(loadings, psi)
            latent = centered @ posterior.T
            second_moment = (
                n * self._posterior_covariance(loadings, psi) + latent.T @ latent
            )
            cross = centered.T @ latent
            loadings = np.linalg.solve(second_moment.T, cross.T).T
            psi = np.maximum(
                variances - np.einsum("ij,ij->i", loadings, cross) / n,
                _MIN_VARIANCE,
            )
            likelihood = self._log_likelihood(centered, loadings, psi)
            if abs(likelihood - previous) < epsilon:
                logger.debug(
                    "factor analysis converged after %d iterations", iteration + 1
                )
                break
            previous = likelihood

        posterior = self._posterior(loadings, psi)
        return EmbeddingResult(
            centered @ posterior.T,
            projection=ProjectingFunction(matrix=posterior.T, mean=mean),
        )

    @staticmethod
    def _posterior_covariance(loadings: np.ndarray, psi: np.ndarray) -> np.ndarray:
        d = loadings.shape[1]
        return np.linalg.inv(np.eye(d) + (loadings.T / psi) @ loadings)

    @classmethod
    def _posterior(cls, loadings: np.ndarray, psi: np.ndarray) -> np.ndarray:
        """Matrix mapping centered observations to posterior latent means."""
        return cls._posterior_covariance(loadings, psi) @ (loadings.T / psi)

    @staticmethod
    def _log_likelihood(
        centered: np.ndarray, loadings: np.ndarray, psi: np.ndarray
    ) -> float:
        n, dimension = centered.shape
        covariance = loadings @ loadings.T + np.diag(psi)
        _, logdet = np.linalg.slogdet(covariance)
        sample = centered.T @ centered / n
        trace = np.trace(np.linalg.solve(covariance, sample))
        return float(-0.5 * n * (dimension * np.log(2 * np.pi) + logdet + trace))


class PassThru(Reducer):
    """Returns the feature vectors unchanged."""

    method = Method.PASS_THRU

    def embed(self, context: EmbeddingContext) -> EmbeddingResult:
        return EmbeddingResult(context.feature_matrix())
