"""Configuration loading and validation for embedding runs."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from manifold_embedding_toolkit.eigen import EigenMethod
from manifold_embedding_toolkit.errors import ConfigValidationError
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.neighbors import NeighborsMethod
from manifold_embedding_toolkit.pairwise import DEFAULT_MEMORY_LIMIT
from manifold_embedding_toolkit.parameters import Option, ParametersMap

# Settings fields copied verbatim into the option store.
_OPTION_FIELDS = (
    Option.N_NEIGHBORS,
    Option.NEIGHBORS_METHOD,
    Option.EIGEN_METHOD,
    Option.GAUSSIAN_KERNEL_WIDTH,
    Option.DIFFUSION_MAP_TIMESTEPS,
    Option.MAX_ITERATION,
    Option.SPE_GLOBAL_STRATEGY,
    Option.SPE_TOLERANCE,
    Option.SPE_NUM_UPDATES,
    Option.LANDMARK_RATIO,
    Option.NULLSPACE_SHIFT,
    Option.KLLE_SHIFT,
    Option.CHECK_CONNECTIVITY,
    Option.FA_EPSILON,
    Option.SNE_PERPLEXITY,
    Option.COVER_TREE_BASE,
    Option.MEMORY_LIMIT,
    Option.N_JOBS,
    Option.RANDOM_STATE,
)


class EmbeddingSettings(BaseSettings):
    """Schema of a YAML embedding run config."""

    model_config = SettingsConfigDict(extra="forbid")

    input: Path | None = None
    transpose: bool = False
    method: Method
    target_dimension: int = Field(ge=1)
    kernel: Literal["linear", "gaussian"] = "linear"
    distance: Literal["euclidean"] = "euclidean"

    n_neighbors: int = Field(default=10, ge=1)
    neighbors_method: NeighborsMethod = NeighborsMethod.COVER_TREE
    eigen_method: EigenMethod = EigenMethod.ARPACK
    gaussian_kernel_width: float = Field(default=1.0, gt=0)
    diffusion_map_timesteps: int = Field(default=3, ge=1)
    max_iteration: int = Field(default=100, ge=1)
    spe_global_strategy: bool = True
    spe_tolerance: float = Field(default=1e-5, gt=0)
    spe_num_updates: int = Field(default=100, ge=1)
    landmark_ratio: float = Field(default=0.5, gt=0, le=1)
    nullspace_shift: float = Field(default=1e-9, ge=0)
    klle_shift: float = Field(default=1e-3, ge=0)
    check_connectivity: bool = True
    fa_epsilon: float = Field(default=1e-5, gt=0)
    sne_perplexity: float = Field(default=30.0, gt=0)
    cover_tree_base: float = Field(default=1.3, gt=1)
    memory_limit: int = Field(default=DEFAULT_MEMORY_LIMIT, ge=1)
    n_jobs: int = 1
    random_state: int = Field(default=0, ge=0)

    @field_validator("method", mode="before")
    @classmethod
    def _parse_method(cls, value: object) -> object:
        if isinstance(value, str):
            return Method.from_name(value)
        return value

    @field_validator("n_jobs")
    @classmethod
    def _non_zero_jobs(cls, value: int) -> int:
        if value == 0:
            raise ValueError("n_jobs must be non-zero")
        return value

    def to_parameters(self, current_dimension: int | None = None) -> ParametersMap:
        """Build a strictly typed option store from the settings."""
        parameters = ParametersMap(
            {
                Option.METHOD: self.method,
                Option.TARGET_DIMENSION: self.target_dimension,
            }
        )
        for option in _OPTION_FIELDS:
            parameters.set(option, getattr(self, option.value))
        if current_dimension is not None:
            parameters.set(Option.CURRENT_DIMENSION, current_dimension)
        return parameters


def validate_config_dict(
    raw: object, model: type[BaseModel] = EmbeddingSettings
) -> BaseModel:
    """Validate a pre-loaded config mapping against a pydantic model."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigValidationError("Config file root must be a mapping/object.")

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise ConfigValidationError(str(exc)) from exc


def load_and_validate_config(
    path: Path, model: type[BaseModel] = EmbeddingSettings
) -> BaseModel:
    """Load YAML config and validate with the provided pydantic model."""
    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    return validate_config_dict(raw, model)
