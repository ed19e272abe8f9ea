"""CLI entrypoint for manifold_embedding_toolkit."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import typer

from manifold_embedding_toolkit.config import EmbeddingSettings, validate_config_dict
from manifold_embedding_toolkit.errors import (
    ConfigValidationError,
    EmbeddingError,
    MatrixFormatError,
)
from manifold_embedding_toolkit.io import read_matrix, write_matrix
from manifold_embedding_toolkit.methods import METHOD_ALIASES, Method
from manifold_embedding_toolkit.registry import default_registry
from manifold_embedding_toolkit.runner import embed_matrix, run_embedding

app = typer.Typer(help="Manifold Embedding Toolkit command-line interface.")

_FAILURES = (EmbeddingError, ConfigValidationError, MatrixFormatError)


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log progress to stderr.")
    ] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("list")
def list_methods() -> None:
    """List available methods and their aliases."""
    registry = default_registry()
    for method in registry.list_methods():
        aliases = ", ".join(METHOD_ALIASES[method])
        typer.echo(f"{method.value} ({aliases})" if aliases else method.value)


@app.command("describe")
def describe_method(method: str) -> None:
    """Describe a method's callback and solver requirements."""
    try:
        reducer_cls = default_registry().get(Method.from_name(method))
    except (ValueError, EmbeddingError) as err:
        raise typer.BadParameter(str(err)) from err
    typer.echo(json.dumps(reducer_cls.describe(), indent=2))


@app.command("embed")
def embed_command(
    input_path: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, help="Input matrix file.")
    ],
    output_path: Annotated[Path, typer.Argument(help="Output matrix file.")],
    method: Annotated[str, typer.Option("--method", "-m")] = "klle",
    target_dimension: Annotated[int, typer.Option("--target-dimension", "-d")] = 2,
    n_neighbors: Annotated[int, typer.Option("--neighbors", "-k")] = 10,
    eigen_method: Annotated[str, typer.Option("--eigen-method")] = "arpack",
    neighbors_method: Annotated[str, typer.Option("--neighbors-method")] = "covertree",
    kernel: Annotated[str, typer.Option("--kernel")] = "linear",
    width: Annotated[float, typer.Option("--width")] = 1.0,
    timesteps: Annotated[int, typer.Option("--timesteps")] = 3,
    landmark_ratio: Annotated[float, typer.Option("--landmark-ratio")] = 0.5,
    max_iteration: Annotated[int, typer.Option("--max-iteration")] = 100,
    perplexity: Annotated[float, typer.Option("--perplexity")] = 30.0,
    random_state: Annotated[int, typer.Option("--random-state")] = 0,
    n_jobs: Annotated[int, typer.Option("--jobs", "-j")] = 1,
    transpose: Annotated[
        bool, typer.Option("--transpose", help="Read one point per column.")
    ] = False,
    eigenvalues_path: Annotated[
        Path | None, typer.Option("--eigenvalues", help="Write eigenvalues here.")
    ] = None,
) -> None:
    """Embed the points of INPUT_PATH and write coordinates to OUTPUT_PATH."""
    try:
        settings = validate_config_dict(
            {
                "method": method,
                "target_dimension": target_dimension,
                "n_neighbors": n_neighbors,
                "eigen_method": eigen_method,
                "neighbors_method": neighbors_method,
                "kernel": kernel,
                "gaussian_kernel_width": width,
                "diffusion_map_timesteps": timesteps,
                "landmark_ratio": landmark_ratio,
                "max_iteration": max_iteration,
                "sne_perplexity": perplexity,
                "random_state": random_state,
                "n_jobs": n_jobs,
            },
            EmbeddingSettings,
        )
        data = read_matrix(input_path, transpose=transpose)
        result = embed_matrix(data, settings)
    except _FAILURES as err:
        raise typer.BadParameter(str(err)) from err

    write_matrix(output_path, result.embedding)
    if eigenvalues_path is not None:
        write_matrix(eigenvalues_path, result.eigenvalues[None, :])
    typer.echo(
        f"Embedded {result.n_points} points into {result.target_dimension} "
        f"dimensions: {output_path}"
    )


@app.command("run")
def run(
    config: Annotated[
        Path,
        typer.Option(..., "--config", "-c", exists=True, dir_okay=False),
    ],
    runs_root: Annotated[Path, typer.Option("--runs-root")] = Path("runs"),
) -> None:
    """Run an embedding from a YAML configuration file and record its outputs."""
    if config.suffix.lower() not in {".yaml", ".yml"}:
        raise typer.BadParameter("Config must be a YAML file (.yaml/.yml).")
    try:
        run_dir = run_embedding(config, runs_root)
    except _FAILURES as err:
        raise typer.BadParameter(f"Failed to run embedding: {err}") from err
    typer.echo(f"Run completed: {run_dir}")

