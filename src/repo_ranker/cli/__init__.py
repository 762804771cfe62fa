"""CLI entry point: registers all subcommands."""

import typer

app = typer.Typer(
    name="repo-ranker",
    help="repo-ranker - Concurrent repository quality analysis and ranking",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from ._common import root_callback as _root_callback  # noqa: F401, E402
from .analyze import analyze as _analyze  # noqa: F401, E402
from .result import result as _result  # noqa: F401, E402
from .report import report as _report  # noqa: F401, E402
from .runs import runs as _runs  # noqa: F401, E402


def main() -> None:
    app()
