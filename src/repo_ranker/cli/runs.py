"""Runs command: list stored analysis runs."""

import json

import typer
from rich.table import Table

from ..exceptions import RepoRankerError
from . import app
from ._common import console, open_ranker


@app.command()
def runs(
    ctx: typer.Context,
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum number of runs to list",
        min=1,
        max=1000,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    List recent analysis runs with their report counts.
    """
    try:
        with open_ranker(ctx) as ranker:
            rows = ranker.list_runs(limit)
    except RepoRankerError as e:
        console.print(f"[red]Error reading runs:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(rows, indent=2))
        return

    if not rows:
        console.print("[yellow]No runs recorded yet.[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Analysis Runs", show_lines=False, pad_edge=True)
    table.add_column("ID", style="bold", justify="right")
    table.add_column("Created", style="green")
    table.add_column("Owner", style="cyan")
    table.add_column("Reports", justify="right", style="yellow")

    for row in rows:
        created = row["created_at"].replace("T", " ")
        if "." in created:
            created = created[: created.index(".")]
        if "+" in created:
            created = created[: created.index("+")]
        table.add_row(str(row["id"]), created, row["owner_id"] or "-", str(row["report_count"]))

    console.print()
    console.print(table)
    console.print()
