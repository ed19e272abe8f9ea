"""Error kinds surfaced by the embedding framework."""

from __future__ import annotations


class EmbeddingError(Exception):
    """Base class for every error raised while computing an embedding."""


class MissedParameterError(EmbeddingError):
    """Raised when a required option or callback was never provided."""


class WrongParameterTypeError(EmbeddingError, TypeError):
    """Raised when an option holds a value of the wrong runtime type."""


class WrongParameterValueError(EmbeddingError, ValueError):
    """Raised when an option value fails its validity predicate."""


class UnsupportedMethodError(EmbeddingError):
    """Raised for an unavailable backend or an invalid backend pairing."""


class NotEnoughMemoryError(EmbeddingError, MemoryError):
    """Raised before a dense allocation that exceeds the memory limit."""


class EigendecompositionError(EmbeddingError):
    """Raised when a solver cannot extract the requested eigenpairs."""


class EmbeddingCancelledError(EmbeddingError):
    """Raised when the cancellation predicate reports true at a checkpoint."""


class ConfigValidationError(ValueError):
    """Raised when a run config does not validate."""


class MatrixFormatError(ValueError):
    """Raised when a numeric matrix file is malformed."""
