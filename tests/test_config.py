from pathlib import Path

import pytest

from manifold_embedding_toolkit.config import (
    EmbeddingSettings,
    load_and_validate_config,
    validate_config_dict,
)
from manifold_embedding_toolkit.eigen import EigenMethod
from manifold_embedding_toolkit.errors import ConfigValidationError
from manifold_embedding_toolkit.methods import Method
from manifold_embedding_toolkit.neighbors import NeighborsMethod
from manifold_embedding_toolkit.parameters import Option


def test_valid_config_loads(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "input: data.txt\n"
        "method: l-isomap\n"
        "target_dimension: 2\n"
        "n_neighbors: 8\n"
        "eigen_method: dense\n"
        "neighbors_method: brute\n"
        "landmark_ratio: 0.25\n",
        encoding="utf-8",
    )

    config = load_and_validate_config(config_path)

    assert isinstance(config, EmbeddingSettings)
    assert config.method is Method.LANDMARK_ISOMAP
    assert config.eigen_method is EigenMethod.DENSE
    assert config.neighbors_method is NeighborsMethod.BRUTE_FORCE
    assert config.input == Path("data.txt")


def test_invalid_config_fails_validation(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "method: isomap\ntarget_dimension: 0\nextra_field: true\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigValidationError):
        load_and_validate_config(config_path)


@pytest.mark.parametrize(
    "raw",
    [
        ["method", "isomap"],
        {"method": "umap", "target_dimension": 2},
        {"method": "isomap", "target_dimension": 2, "n_jobs": 0},
        {"method": "isomap", "target_dimension": 2, "landmark_ratio": 2.0},
        {"method": "isomap", "target_dimension": 2, "kernel": "polynomial"},
        {"target_dimension": 2},
    ],
)
def test_invalid_mappings_are_rejected(raw: object) -> None:
    with pytest.raises(ConfigValidationError):
        validate_config_dict(raw)


def test_settings_produce_strictly_typed_parameters() -> None:
    settings = validate_config_dict(
        {
            "method": "dm",
            "target_dimension": 3,
            "gaussian_kernel_width": 2,
            "spe_global_strategy": False,
        }
    )

    parameters = settings.to_parameters(current_dimension=5)

    assert parameters.get(Option.METHOD) is Method.DIFFUSION_MAP
    assert parameters.get(Option.TARGET_DIMENSION) == 3
    assert parameters.get(Option.CURRENT_DIMENSION) == 5
    width = parameters.get(Option.GAUSSIAN_KERNEL_WIDTH)
    assert width == 2.0 and isinstance(width, float)
    assert parameters.get(Option.SPE_GLOBAL_STRATEGY) is False
    assert parameters.get(Option.EIGEN_METHOD) is EigenMethod.ARPACK


def test_current_dimension_is_left_unset_without_data() -> None:
    settings = validate_config_dict({"method": "pca", "target_dimension": 1})

    assert not settings.to_parameters().has(Option.CURRENT_DIMENSION)
