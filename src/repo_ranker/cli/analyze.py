"""Analyze command: submit a batch of repositories."""

import json
from typing import List, Optional

import typer

from ..exceptions import AllReposFailedError, RepoRankerError
from ..logging_config import get_logger
from ..models import AnalysisRequest
from ..orchestrator import AnalysisOutcome
from . import app
from ._common import console, display_score, open_ranker

logger = get_logger(__name__)


@app.command()
def analyze(
    ctx: typer.Context,
    locations: List[str] = typer.Argument(..., help="Repository URLs to analyze"),
    prefer: List[str] = typer.Option(
        [],
        "--prefer",
        "-p",
        help="Ranking weight, e.g. security=2 (repeatable)",
    ),
    constraint: List[str] = typer.Option(
        [],
        "--constraint",
        "-k",
        help="Hard filter, e.g. 'cyclomatic_complexity>=0.4' (repeatable)",
    ),
    owner: Optional[str] = typer.Option(None, "--owner", help="Owner recorded with the run"),
    workers: Optional[int] = typer.Option(
        None, "-w", "--workers", help="Parallel clone/analyze workers", min=1
    ),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="Per-repository time budget in seconds", min=1
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
):
    """
    Clone and analyze repositories concurrently, then store the run.

    Repositories that are private, unreachable, invalid or in an unsupported
    language are skipped; the run succeeds as long as one repository is
    analyzed.

    [bold cyan]Examples:[/bold cyan]

      repo-ranker analyze https://github.com/pallets/flask https://github.com/psf/requests

      repo-ranker analyze URL1 URL2 -p security=2 -p simplicity=1 -k "duplication>=0.5"
    """
    try:
        request = AnalysisRequest.build(locations, constraints=constraint, preferences=prefer)
    except ValueError as e:
        console.print(f"[red]Invalid request:[/red] {e}")
        raise typer.Exit(2)

    try:
        with open_ranker(ctx, workers=workers, task_timeout_seconds=timeout) as ranker:
            if json_output:
                outcome = ranker.submit_detailed(request, owner_id=owner)
            else:
                with console.status(f"Analyzing {len(request.locations)} repositories..."):
                    outcome = ranker.submit_detailed(request, owner_id=owner)
    except AllReposFailedError as e:
        if json_output:
            print(json.dumps({"error": str(e), "skipped": e.reasons}, indent=2))
        else:
            console.print(f"[red]Error:[/red] {e}")
            for location, reason in e.reasons.items():
                console.print(f"  [dim]-[/dim] {location}: [yellow]{reason}[/yellow]")
        raise typer.Exit(1)
    except RepoRankerError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)

    if json_output:
        _output_json(outcome)
    else:
        _output_rich(outcome)


def _output_json(outcome: AnalysisOutcome) -> None:
    print(
        json.dumps(
            {
                "run_id": outcome.run_id,
                "reports": [
                    {"report_id": r.report_id, "location": r.location, "quality": r.overall}
                    for r in outcome.reports
                ],
                "skipped": [
                    {
                        "location": s.location,
                        "reason": s.skip_reason.value if s.skip_reason else None,
                        "detail": s.detail,
                    }
                    for s in outcome.skipped
                ],
            },
            indent=2,
        )
    )


def _output_rich(outcome: AnalysisOutcome) -> None:
    console.print(
        f"[green]Run {outcome.run_id} stored[/green] with "
        f"{len(outcome.reports)} report(s). "
        f"View it with [bold]repo-ranker result {outcome.run_id}[/bold]"
    )
    for r in sorted(outcome.reports, key=lambda r: r.position):
        console.print(
            f"  [dim]#{r.report_id}[/dim] {r.location}  "
            f"quality [bold]{display_score(r.overall)}[/bold]/10"
        )
    if outcome.skipped:
        console.print()
        console.print(
            "[yellow]Skipped[/yellow] (not a valid GitHub URL, private, or an unsupported language):"
        )
        for s in outcome.skipped:
            reason = s.skip_reason.value if s.skip_reason else "unknown"
            console.print(f"  [dim]-[/dim] {s.location}: {reason}")
