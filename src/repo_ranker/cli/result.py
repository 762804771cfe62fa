"""Result command: ranked reports of a stored run."""

import json

import typer
from rich.table import Table

from ..exceptions import RepoRankerError
from ..models import AnalysisResult, QualityAttribute
from . import app
from ._common import console, display_score, open_ranker

_COLUMNS = (
    QualityAttribute.COMPREHENSION,
    QualityAttribute.SIMPLICITY,
    QualityAttribute.MAINTAINABILITY,
    QualityAttribute.RELIABILITY,
    QualityAttribute.COMPLEXITY,
    QualityAttribute.SECURITY,
)


@app.command()
def result(
    ctx: typer.Context,
    run_id: int = typer.Argument(..., help="Run id printed by 'analyze'"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    Show a run's repositories ranked by its stored preferences.

    Ranks are recomputed from the stored quality trees on every call.
    Repositories failing a stored constraint are listed as excluded.
    """
    try:
        with open_ranker(ctx) as ranker:
            analysis = ranker.get_result(run_id)
    except RepoRankerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(analysis.to_dict(), indent=2))
    else:
        _output_rich(analysis)


def _output_rich(analysis: AnalysisResult) -> None:
    table = Table(title=f"Run {analysis.run_id}", show_lines=False, pad_edge=True)
    table.add_column("#", style="bold", justify="right")
    table.add_column("Repository", style="cyan")
    table.add_column("Rank", justify="right", style="green")
    table.add_column("Quality", justify="right")
    for attribute in _COLUMNS:
        table.add_column(attribute.value.capitalize(), justify="right", style="dim")
    table.add_column("Report", justify="right", style="dim")

    for i, report in enumerate(analysis.reports, start=1):
        table.add_row(
            str(i),
            report.location,
            f"{report.rank:.3f}" if report.rank is not None else "-",
            f"{display_score(report.overall)}",
            *(f"{display_score(report.tree.value_of(a) or 0.0)}" for a in _COLUMNS),
            str(report.report_id),
        )

    console.print()
    console.print(table)
    if analysis.excluded:
        console.print(
            "[yellow]Excluded by constraints:[/yellow] "
            + ", ".join(r.location for r in analysis.excluded)
        )
    console.print()
