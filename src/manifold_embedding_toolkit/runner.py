"""Embedding run execution helpers."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from manifold_embedding_toolkit.callbacks import MatrixCallbacks
from manifold_embedding_toolkit.config import EmbeddingSettings, load_and_validate_config
from manifold_embedding_toolkit.embedding import embed
from manifold_embedding_toolkit.errors import ConfigValidationError
from manifold_embedding_toolkit.instrumentation import ArtifactSaver, EventLog, MetricsLog
from manifold_embedding_toolkit.io import read_matrix
from manifold_embedding_toolkit.registry import default_registry
from manifold_embedding_toolkit.result import EmbeddingResult

RUNS_ROOT = Path("runs")


class RunContext:
    """Logs, metrics and artifacts of one recorded embedding run."""

    def __init__(self, run_dir: Path) -> None:
        self.run_dir = run_dir
        self.artifacts_dir = run_dir / "artifacts"
        self.artifacts_dir.mkdir(parents=True, exist_ok=True)

        self.events = EventLog(run_dir)
        self.metrics = MetricsLog(run_dir / "metrics.jsonl")
        self.artifacts_saver = ArtifactSaver(self.artifacts_dir)

    def log_event(self, message: str, level: str = "info", **payload: Any) -> None:
        self.events.write(level, message, **payload)

    def log_metric(
        self,
        *,
        step: int,
        metric_name: str,
        value: float | int,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.metrics.record(metric_name, value, step=step, **(metadata or {}))

    def save_text_artifact(self, filename: str, text: str) -> Path:
        path = self.artifacts_saver.save_text(filename, text)
        self.log_event(f"Saved text artifact: {path.name}", artifact=str(path))
        return path

    def save_matrix_artifact(self, filename: str, matrix: np.ndarray) -> Path:
        path = self.artifacts_saver.save_matrix(filename, matrix)
        self.log_event(f"Saved matrix artifact: {path.name}", artifact=str(path))
        return path

    def save_numpy_artifact(self, filename: str, array: np.ndarray) -> Path:
        path = self.artifacts_saver.save_numpy(filename, array)
        self.log_event(f"Saved numpy artifact: {path.name}", artifact=str(path))
        return path


def build_run_dir(method_name: str, runs_root: Path = RUNS_ROOT) -> Path:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    run_dir = runs_root / f"{timestamp}_{method_name}"
    run_dir.mkdir(parents=True, exist_ok=False)
    (run_dir / "artifacts").mkdir(parents=True, exist_ok=True)
    return run_dir


def embed_matrix(data: np.ndarray, settings: EmbeddingSettings) -> EmbeddingResult:
    """Embed the rows of ``data`` with callbacks built from ``settings``."""
    callbacks = MatrixCallbacks(
        data,
        kernel_name=settings.kernel,
        width=settings.gaussian_kernel_width,
    )
    current_dimension = callbacks.features.dimension if len(callbacks) else None
    return embed(
        len(callbacks),
        settings.to_parameters(current_dimension),
        kernel=callbacks.kernel,
        distance=callbacks.distance,
        features=callbacks.features,
    )


def _resolve_input(settings: EmbeddingSettings, config_path: Path) -> Path:
    if settings.input is None:
        raise ConfigValidationError("Config must name an 'input' matrix file.")
    if settings.input.is_absolute():
        return settings.input
    return config_path.parent / settings.input


def run_embedding(config_path: Path, runs_root: Path = RUNS_ROOT) -> Path:
    settings = load_and_validate_config(config_path)
    input_path = _resolve_input(settings, config_path)
    data = read_matrix(input_path, transpose=settings.transpose)

    run_dir = build_run_dir(settings.method.value, runs_root)
    with (run_dir / "config.yaml").open("w", encoding="utf-8") as f:
        yaml.safe_dump(settings.model_dump(mode="json"), f, sort_keys=True)

    context = RunContext(run_dir)
    context.log_event(
        "Loaded input matrix",
        input=str(input_path),
        rows=int(data.shape[0]),
        columns=int(data.shape[1]) if data.ndim == 2 else 0,
    )
    started = time.perf_counter()
    try:
        result = embed_matrix(data, settings)
    except Exception as exc:
        context.log_event(
            f"Embedding failed: {exc}",
            level="error",
            error=type(exc).__name__,
        )
        raise
    elapsed = time.perf_counter() - started

    context.log_metric(step=0, metric_name="elapsed_seconds", value=elapsed)
    for index, value in enumerate(result.eigenvalues):
        context.log_metric(step=index, metric_name="eigenvalue", value=float(value))
    context.save_text_artifact(
        "method.json",
        json.dumps(default_registry().get(settings.method).describe(), indent=2),
    )
    context.save_matrix_artifact("embedding.txt", result.embedding)
    if result.eigenvalues.size:
        context.save_matrix_artifact("eigenvalues.txt", result.eigenvalues[None, :])
    if result.projection is not None:
        context.save_numpy_artifact("projection_matrix.npy", result.projection.matrix)
        context.save_numpy_artifact("projection_mean.npy", result.projection.mean)
    context.log_event(
        "Embedding completed",
        method=settings.method.value,
        points=result.n_points,
        target_dimension=result.target_dimension,
    )
    return run_dir
