import json
import logging
from pathlib import Path

import numpy as np
import pytest
import yaml

from manifold_embedding_toolkit.errors import ConfigValidationError, WrongParameterValueError
from manifold_embedding_toolkit.io import read_matrix, write_matrix
from manifold_embedding_toolkit.runner import RunContext, build_run_dir, run_embedding


def _read_jsonl(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def _write_points(path: Path, n: int = 20) -> np.ndarray:
    rng = np.random.default_rng(3)
    data = rng.normal(size=(n, 3)) * np.array([3.0, 1.0, 0.1])
    write_matrix(path, data)
    return data


def test_metrics_logger_writes_expected_schema(tmp_path: Path) -> None:
    context = RunContext(tmp_path)

    context.log_metric(
        step=1,
        metric_name="eigenvalue",
        value=0.42,
        metadata={"method": "pca"},
    )

    records = _read_jsonl(tmp_path / "metrics.jsonl")
    assert len(records) == 1
    assert records[0]["step"] == 1
    assert records[0]["metric_name"] == "eigenvalue"
    assert records[0]["value"] == 0.42
    assert records[0]["metadata"] == {"method": "pca"}


def test_event_logs_are_emitted(tmp_path: Path) -> None:
    context = RunContext(tmp_path)

    context.log_event("hello", points=3)
    context.log_event("broken", level="error")

    lines = (tmp_path / "events.log").read_text(encoding="utf-8").splitlines()
    assert lines[0].split()[1:] == ["INFO", "hello"]
    assert lines[1].split()[1:] == ["ERROR", "broken"]

    records = _read_jsonl(tmp_path / "events.jsonl")
    assert [record["level"] for record in records] == ["INFO", "ERROR"]
    assert records[0]["message"] == "hello"
    assert records[0]["payload"] == {"points": 3}


def test_events_are_forwarded_to_the_module_logger(tmp_path: Path, caplog) -> None:
    context = RunContext(tmp_path)

    with caplog.at_level(logging.INFO, logger="manifold_embedding_toolkit.instrumentation"):
        context.log_event("Loaded input matrix", rows=4)

    assert "Loaded input matrix" in caplog.text


def test_unknown_event_levels_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="level"):
        RunContext(tmp_path).log_event("hello", level="loud")


def test_artifact_helpers_save_text_numpy_and_matrices(tmp_path: Path) -> None:
    context = RunContext(tmp_path)
    matrix = np.array([[1.0, 2.0], [3.0, 4.0]])

    text_path = context.save_text_artifact("note.txt", "recorded")
    array_path = context.save_numpy_artifact("matrix.npy", matrix)
    matrix_path = context.save_matrix_artifact("matrix.txt", matrix)

    assert text_path.read_text(encoding="utf-8") == "recorded"
    assert np.array_equal(np.load(array_path), matrix)
    assert np.array_equal(read_matrix(matrix_path), matrix)


def test_build_run_dir_is_timestamped(tmp_path: Path) -> None:
    run_dir = build_run_dir("isomap", tmp_path)

    assert run_dir.parent == tmp_path
    assert run_dir.name.endswith("Z_isomap")
    assert (run_dir / "artifacts").is_dir()


def test_run_embedding_records_outputs(tmp_path: Path) -> None:
    data = _write_points(tmp_path / "points.txt")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "input: points.txt\nmethod: pca\ntarget_dimension: 2\neigen_method: dense\n",
        encoding="utf-8",
    )

    run_dir = run_embedding(config_path, tmp_path / "runs")

    artifacts = run_dir / "artifacts"
    embedding = read_matrix(artifacts / "embedding.txt")
    assert embedding.shape == (len(data), 2)
    assert read_matrix(artifacts / "eigenvalues.txt").shape == (1, 2)
    assert np.load(artifacts / "projection_matrix.npy").shape == (3, 2)
    np.testing.assert_allclose(np.load(artifacts / "projection_mean.npy"), data.mean(axis=0))
    assert json.loads((artifacts / "method.json").read_text(encoding="utf-8"))["name"] == "pca"

    saved = yaml.safe_load((run_dir / "config.yaml").read_text(encoding="utf-8"))
    assert saved["method"] == "pca"

    metrics = _read_jsonl(run_dir / "metrics.jsonl")
    names = [record["metric_name"] for record in metrics]
    assert names.count("eigenvalue") == 2
    assert "elapsed_seconds" in names

    messages = [record["message"] for record in _read_jsonl(run_dir / "events.jsonl")]
    assert messages[0] == "Loaded input matrix"
    assert messages[-1] == "Embedding completed"


def test_run_embedding_logs_failures(tmp_path: Path) -> None:
    _write_points(tmp_path / "points.txt", n=5)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "input: points.txt\nmethod: isomap\ntarget_dimension: 2\nn_neighbors: 8\n",
        encoding="utf-8",
    )

    with pytest.raises(WrongParameterValueError):
        run_embedding(config_path, tmp_path / "runs")

    (run_dir,) = (tmp_path / "runs").iterdir()
    records = _read_jsonl(run_dir / "events.jsonl")
    assert records[-1]["level"] == "ERROR"
    assert records[-1]["payload"]["error"] == "WrongParameterValueError"


def test_run_embedding_requires_an_input(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("method: pca\ntarget_dimension: 1\n", encoding="utf-8")

    with pytest.raises(ConfigValidationError):
        run_embedding(config_path, tmp_path / "runs")
    assert not (tmp_path / "runs").exists()
