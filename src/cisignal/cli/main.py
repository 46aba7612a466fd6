# Copyright (c) Syntropy Systems
"""Main CLI entry point for cisignal."""

import logging

import typer
from rich.logging import RichHandler

from cisignal.cli.canonicalize import canonicalize
from cisignal.cli.regressions import regressions_app
from cisignal.cli.report import report
from cisignal.cli.triage import triage_app

app = typer.Typer(
    name="cisignal",
    help=(
        "CI health signals. Aggregate job results, match failures to triage, "
        "and check intentional regressions."
    ),
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """CI health signals."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


# Register commands
_ = app.command()(report)
_ = app.command()(canonicalize)

# Register sub-apps
app.add_typer(regressions_app, name="regressions")
app.add_typer(triage_app, name="triage")


if __name__ == "__main__":
    app()
