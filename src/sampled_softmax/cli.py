"""Command-line utilities for the sampled_softmax package."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import ujson as json
from rich.console import Console
from rich.table import Table

from . import get_version
from .api import (
    ConfigurationError,
    SamplingExhaustedError,
    build_layer,
    load_config,
    train_synthetic,
)

app = typer.Typer(help="Sampled softmax output layer utilities")
console = Console()


def _load(config: Path):
    try:
        return load_config(config)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def version() -> None:
    """Print the installed package version."""
    typer.echo(get_version())


@app.command("check-config")
def check_config(
    config: Annotated[Path, typer.Argument(..., exists=True, readable=True)],
) -> None:
    """Validate a run config and print its summary."""
    run_cfg = _load(config)
    try:
        build_layer(run_cfg.layer)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    negatives = run_cfg.layer.negative_sample_size
    if negatives is not None and negatives >= run_cfg.layer.layer_size:
        raise typer.BadParameter(
            f"negative_sample_size ({negatives}) leaves no room for the gold label "
            f"among {run_cfg.layer.layer_size} labels"
        )
    console.print_json(json.dumps(run_cfg.summary()))


@app.command()
def train(
    config: Annotated[Path, typer.Argument(..., exists=True, readable=True)],
    epochs: Annotated[int | None, typer.Option(min=1)] = None,
    workers: Annotated[int | None, typer.Option(min=1)] = None,
    seed: Annotated[int | None, typer.Option()] = None,
    out: Annotated[Path | None, typer.Option(help="Write epoch metrics as JSON.")] = None,
) -> None:
    """Train a layer on a synthetic dataset with Hogwild workers."""
    run_cfg = _load(config)
    try:
        layer, history = train_synthetic(run_cfg, epochs=epochs, workers=workers, seed=seed)
    except (ConfigurationError, SamplingExhaustedError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    table = Table(title=f"Training ({type(layer).__name__})")
    table.add_column("Epoch")
    table.add_column("loss")
    table.add_column("train_acc")
    table.add_column("eval_acc")
    for row in history:
        table.add_row(
            str(row.epoch), f"{row.loss:.4f}", f"{row.train_acc:.3f}", f"{row.eval_acc:.3f}"
        )
    console.print(table)
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps([row.to_json() for row in history], indent=2))
        console.print(f"[bold green]Metrics written:[/] {out}")


def main() -> None:
    """Entry point for `python -m sampled_softmax.cli`."""
    app()


if __name__ == "__main__":
    main()
