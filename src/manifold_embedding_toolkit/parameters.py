"""Typed option store shared by every embedding call.

Values are stored as given and only checked when read: each option declares
one value kind, and ``ParametersMap.get`` rejects values of any other kind
(``WrongParameterTypeError``) before applying the option's validity predicate
(``WrongParameterValueError``). Nothing is coerced; ``True`` is not an index
and ``1`` is not a scalar.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from manifold_embedding_toolkit.eigen.base import EigenMethod
from manifold_embedding_toolkit.errors import (
    MissedParameterError,
    WrongParameterTypeError,
    WrongParameterValueError,
)
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.neighbors.base import NeighborsMethod
from manifold_embedding_toolkit.pairwise import DEFAULT_MEMORY_LIMIT


class Option(str, Enum):
    METHOD = "method"
    TARGET_DIMENSION = "target_dimension"
    CURRENT_DIMENSION = "current_dimension"
    N_NEIGHBORS = "n_neighbors"
    NEIGHBORS_METHOD = "neighbors_method"
    EIGEN_METHOD = "eigen_method"
    GAUSSIAN_KERNEL_WIDTH = "gaussian_kernel_width"
    DIFFUSION_MAP_TIMESTEPS = "diffusion_map_timesteps"
    MAX_ITERATION = "max_iteration"
    SPE_GLOBAL_STRATEGY = "spe_global_strategy"
    SPE_TOLERANCE = "spe_tolerance"
    SPE_NUM_UPDATES = "spe_num_updates"
    LANDMARK_RATIO = "landmark_ratio"
    NULLSPACE_SHIFT = "nullspace_shift"
    KLLE_SHIFT = "klle_shift"
    CHECK_CONNECTIVITY = "check_connectivity"
    FA_EPSILON = "fa_epsilon"
    SNE_PERPLEXITY = "sne_perplexity"
    COVER_TREE_BASE = "cover_tree_base"
    MEMORY_LIMIT = "memory_limit"
    N_JOBS = "n_jobs"
    RANDOM_STATE = "random_state"
    CANCEL_FUNCTION = "cancel_function"


class ValueKind(str, Enum):
    INDEX = "index"
    SCALAR = "scalar"
    FLAG = "flag"
    METHOD = "method"
    NEIGHBORS_METHOD = "neighbors_method"
    EIGEN_METHOD = "eigen_method"
    CALLABLE = "callable"

    def matches(self, value: Any) -> bool:
        if self is ValueKind.INDEX:
            return isinstance(value, (int, np.integer)) and not isinstance(
                value, (bool, np.bool_)
            )
        if self is ValueKind.SCALAR:
            return isinstance(value, (float, np.floating))
        if self is ValueKind.FLAG:
            return isinstance(value, (bool, np.bool_))
        if self is ValueKind.METHOD:
            return isinstance(value, Method)
        if self is ValueKind.NEIGHBORS_METHOD:
            return isinstance(value, NeighborsMethod)
        if self is ValueKind.EIGEN_METHOD:
            return isinstance(value, EigenMethod)
        return callable(value)

    def normalize(self, value: Any) -> Any:
        if self is ValueKind.INDEX:
            return int(value)
        if self is ValueKind.SCALAR:
            return float(value)
        if self is ValueKind.FLAG:
            return bool(value)
        return value


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def never_cancel() -> bool:
    return False


@dataclass(frozen=True)
class OptionSpec:
    kind: ValueKind
    default: Any = MISSING
    check: Callable[[Any], bool] | None = None
    requirement: str = ""


def _positive(value: Any) -> bool:
    return value > 0


def _non_negative(value: Any) -> bool:
    return value >= 0


OPTION_SPECS: dict[Option, OptionSpec] = {
    Option.METHOD: OptionSpec(ValueKind.METHOD),
    Option.TARGET_DIMENSION: OptionSpec(ValueKind.INDEX, check=_positive, requirement="positive"),
    Option.CURRENT_DIMENSION: OptionSpec(ValueKind.INDEX, check=_positive, requirement="positive"),
    Option.N_NEIGHBORS: OptionSpec(ValueKind.INDEX, 10, _positive, "positive"),
    Option.NEIGHBORS_METHOD: OptionSpec(
        ValueKind.NEIGHBORS_METHOD, NeighborsMethod.COVER_TREE
    ),
    Option.EIGEN_METHOD: OptionSpec(ValueKind.EIGEN_METHOD, EigenMethod.ARPACK),
    Option.GAUSSIAN_KERNEL_WIDTH: OptionSpec(ValueKind.SCALAR, 1.0, _positive, "positive"),
    Option.DIFFUSION_MAP_TIMESTEPS: OptionSpec(ValueKind.INDEX, 3, _positive, "positive"),
    Option.MAX_ITERATION: OptionSpec(ValueKind.INDEX, 100, _positive, "positive"),
    Option.SPE_GLOBAL_STRATEGY: OptionSpec(ValueKind.FLAG, True),
    Option.SPE_TOLERANCE: OptionSpec(ValueKind.SCALAR, 1e-5, _positive, "positive"),
    Option.SPE_NUM_UPDATES: OptionSpec(ValueKind.INDEX, 100, _positive, "positive"),
    Option.LANDMARK_RATIO: OptionSpec(
        ValueKind.SCALAR, 0.5, lambda v: 0.0 < v <= 1.0, "in (0, 1]"
    ),
    Option.NULLSPACE_SHIFT: OptionSpec(ValueKind.SCALAR, 1e-9, _non_negative, "non-negative"),
    Option.KLLE_SHIFT: OptionSpec(ValueKind.SCALAR, 1e-3, _non_negative, "non-negative"),
    Option.CHECK_CONNECTIVITY: OptionSpec(ValueKind.FLAG, True),
    Option.FA_EPSILON: OptionSpec(ValueKind.SCALAR, 1e-5, _positive, "positive"),
    Option.SNE_PERPLEXITY: OptionSpec(ValueKind.SCALAR, 30.0, _positive, "positive"),
    Option.COVER_TREE_BASE: OptionSpec(
        ValueKind.SCALAR, 1.3, lambda v: v > 1.0, "greater than 1"
    ),
    Option.MEMORY_LIMIT: OptionSpec(
        ValueKind.INDEX, DEFAULT_MEMORY_LIMIT, _positive, "positive"
    ),
    Option.N_JOBS: OptionSpec(ValueKind.INDEX, 1, lambda v: v != 0, "non-zero"),
    Option.RANDOM_STATE: OptionSpec(ValueKind.INDEX, 0, _non_negative, "non-negative"),
    Option.CANCEL_FUNCTION: OptionSpec(ValueKind.CALLABLE, never_cancel),
}


class ParametersMap:
    """Mapping of options to values, validated on read."""

    def __init__(self, values: Mapping[Option | str, Any] | None = None) -> None:
        self._values: dict[Option, Any] = {}
        for option, value in (values or {}).items():
            self.set(option, value)

    def set(self, option: Option | str, value: Any) -> ParametersMap:
        """Store a value; never fails for a known option."""
        self._values[Option(option)] = value
        return self

    def has(self, option: Option | str) -> bool:
        return Option(option) in self._values

    def get(
        self,
        option: Option | str,
        default: Any = MISSING,
        *,
        check: Callable[[Any], bool] | None = None,
        requirement: str = "",
    ) -> Any:
        """Read an option, checking its kind and validity.

        ``check`` adds a context-dependent predicate on top of the option's
        own (e.g. a neighbor count below the number of points).
        """
        option = Option(option)
        spec = OPTION_SPECS[option]
        if option in self._values:
            value = self._values[option]
        else:
            value = spec.default if default is MISSING else default
            if value is MISSING:
                raise MissedParameterError(
                    f"Required parameter '{option.value}' is not set"
                )

        if not spec.kind.matches(value):
            raise WrongParameterTypeError(
                f"Parameter '{option.value}' expects a value of kind "
                f"'{spec.kind.value}', got {type(value).__name__} ({value!r})"
            )
        if spec.check is not None and not spec.check(value):
            raise WrongParameterValueError(
                f"Parameter '{option.value}' must be {spec.requirement}, got {value!r}"
            )
        if check is not None and not check(value):
            raise WrongParameterValueError(
                f"Parameter '{option.value}' must be {requirement}, got {value!r}"
            )
        return spec.kind.normalize(value)

    def copy(self) -> ParametersMap:
        return ParametersMap(self._values)

    def items(self) -> Iterator[tuple[Option, Any]]:
        return iter(self._values.items())

    def __contains__(self, option: object) -> bool:
        try:
            return self.has(option)  # type: ignore[arg-type]
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        body = ", ".join(f"{opt.value}={val!r}" for opt, val in self._values.items())
        return f"ParametersMap({body})"
