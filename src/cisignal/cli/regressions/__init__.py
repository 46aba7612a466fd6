"""cisignal regressions subcommand group."""

import typer

from cisignal.cli.regressions.check import check
from cisignal.cli.regressions.lookup import lookup

regressions_app = typer.Typer(
    name="regressions",
    help="Validate and query the intentional regression registry.",
    no_args_is_help=True,
)

# Register subcommands
regressions_app.command()(check)
regressions_app.command()(lookup)
