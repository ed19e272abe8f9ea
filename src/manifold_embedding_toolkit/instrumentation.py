"""Event, metric and artifact records of one embedding run directory."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np

from manifold_embedding_toolkit.io import write_matrix

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _append_jsonl(path: Path, record: dict[str, Any]) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, default=str) + "\n")


class EventLog:
    """Run events as ``events.log`` lines and ``events.jsonl`` records.

    Each event is also forwarded to this module's logger, so ``met -v``
    prints it while the run is in progress.
    """

    def __init__(self, run_dir: Path) -> None:
        self.text_path = run_dir / "events.log"
        self.json_path = run_dir / "events.jsonl"

    def write(self, level: str, message: str, **payload: Any) -> None:
        level = level.lower()
        if level not in _LEVELS:
            raise ValueError(f"Unknown event level '{level}'")
        timestamp = _timestamp()
        logger.log(_LEVELS[level], "%s %s", message, payload or "")

        with self.text_path.open("a", encoding="utf-8") as f:
            f.write(f"{timestamp} {level.upper():<7} {message}\n")
        _append_jsonl(
            self.json_path,
            {
                "timestamp": timestamp,
                "level": level.upper(),
                "message": message,
                "payload": payload,
            },
        )


class MetricsLog:
    """Numeric measurements of a run (timings, retained eigenvalues)."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def record(self, name: str, value: float, *, step: int = 0, **metadata: Any) -> None:
        _append_jsonl(
            self.path,
            {
                "timestamp": _timestamp(),
                "step": step,
                "metric_name": name,
                "value": float(value),
                "metadata": metadata,
            },
        )


class ArtifactSaver:
    """Writes embedding outputs below a run's ``artifacts`` directory."""

    def __init__(self, artifacts_dir: Path) -> None:
        self.artifacts_dir = artifacts_dir
        self.artifacts_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, filename: str) -> Path:
        path = self.artifacts_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def save_text(self, filename: str, text: str) -> Path:
        path = self._path(filename)
        path.write_text(text, encoding="utf-8")
        return path

    def save_numpy(self, filename: str, array: np.ndarray) -> Path:
        path = self._path(filename)
        np.save(path, array)
        return path

    def save_matrix(self, filename: str, matrix: np.ndarray) -> Path:
        return write_matrix(self._path(filename), matrix)
