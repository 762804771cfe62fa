"""Report command: one repository's quality tree."""

import json

import typer
from rich.tree import Tree

from ..exceptions import RepoRankerError
from ..models import QualityMetricNode, RepositoryReport
from . import app
from ._common import console, display_score, open_ranker


@app.command()
def report(
    ctx: typer.Context,
    report_id: int = typer.Argument(..., help="Report id"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    Show the quality tree and raw metrics of a single repository report.
    """
    try:
        with open_ranker(ctx) as ranker:
            stored = ranker.get_report(report_id)
    except RepoRankerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(stored.to_dict(), indent=2))
    else:
        _output_rich(stored)


def _label(node: QualityMetricNode) -> str:
    color = "green" if node.value >= 0.7 else "yellow" if node.value >= 0.4 else "red"
    return f"{node.attribute.value}  [{color}]{display_score(node.value)}[/{color}]"


def _add_children(branch: Tree, node: QualityMetricNode) -> None:
    for child in node.children:
        _add_children(branch.add(_label(child)), child)


def _output_rich(stored: RepositoryReport) -> None:
    root = Tree(f"[bold cyan]{stored.location}[/bold cyan]  {_label(stored.tree.root)}")
    _add_children(root, stored.tree.root)
    console.print()
    console.print(root)
    if stored.raw_metrics:
        console.print()
        console.print("[dim]Raw metrics:[/dim]")
        for name, value in sorted(stored.raw_metrics.items()):
            console.print(f"  {name}: {value:g}")
    console.print()
