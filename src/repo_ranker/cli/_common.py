"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .. import __version__
from ..api import RepoRanker
from ..config import RankerConfig, load_config
from ..logging_config import setup_logging
from . import app

console = Console()


def display_score(score: float) -> float:
    """Map internal [0,1] score to display [1,10] scale.

    Internal storage stays [0,1]. This is applied at display time only.
    """
    return round(score * 9 + 1, 1)


@app.callback(invoke_without_command=True)
def root_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    database: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite database holding runs (default: .repo-ranker/ranker.db)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
):
    """
    Clone, analyze and rank repositories by code quality.

    [bold cyan]Examples:[/bold cyan]

      repo-ranker analyze https://github.com/pallets/flask https://github.com/psf/requests

      repo-ranker result 3 --json

      repo-ranker report 12
    """
    if version:
        console.print(f"[bold cyan]repo-ranker[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)

    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config
    ctx.obj["database"] = database
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)

    setup_logging(verbose=verbose, quiet=quiet)


def resolve_config(ctx: typer.Context, **overrides) -> RankerConfig:
    """Build config from the root options plus per-command overrides."""
    obj = ctx.obj or {}
    return load_config(
        config_file=obj.get("config_file"),
        database_path=obj.get("database"),
        verbose=obj.get("verbose", False),
        quiet=obj.get("quiet", False),
        **overrides,
    )


def open_ranker(ctx: typer.Context, **overrides) -> RepoRanker:
    return RepoRanker(resolve_config(ctx, **overrides))
