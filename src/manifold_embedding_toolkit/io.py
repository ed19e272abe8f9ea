"""Reading and writing whitespace-delimited numeric matrices."""

from __future__ import annotations

import re
from pathlib import Path

import numpy as np

from manifold_embedding_toolkit.errors import MatrixFormatError

_ALLOWED = re.compile(r"[0-9eE.+\-\s]*")


def read_matrix(path: Path, *, transpose: bool = False) -> np.ndarray:
    """Read one row per non-empty line; every row must have the same length.

    Only digits, whitespace, ``.``, ``+``, ``-``, ``e`` and ``E`` are accepted.
    """
    rows: list[list[float]] = []
    with Path(path).open("r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if not _ALLOWED.fullmatch(line):
                raise MatrixFormatError(
                    f"{path}:{line_number}: unexpected character in {line.rstrip()!r}"
                )
            tokens = line.split()
            if not tokens:
                continue
            try:
                row = [float(token) for token in tokens]
            except ValueError as exc:
                raise MatrixFormatError(f"{path}:{line_number}: {exc}") from exc
            if rows and len(row) != len(rows[0]):
                raise MatrixFormatError(
                    f"{path}:{line_number}: expected {len(rows[0])} columns, "
                    f"got {len(row)}"
                )
            rows.append(row)

    if not rows:
        return np.empty((0, 0), dtype=np.float64)
    matrix = np.array(rows, dtype=np.float64)
    return matrix.T.copy() if transpose else matrix


def write_matrix(path: Path, matrix: np.ndarray) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savetxt(path, np.atleast_2d(matrix), fmt="%.18e", delimiter=" ")
    return path
