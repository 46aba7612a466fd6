# Copyright (c) Syntropy Systems
"""cisignal regressions check command."""
from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from cisignal.errors import RegistryBuildError
from cisignal.regressions import load_intentional_regressions

console = Console()


def check(
    path: Path = typer.Argument(..., help="Intentional regressions YAML file"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="List every admitted regression",
    ),
) -> None:
    """Validate an intentional regression registry file.

    Exits non-zero on the first entry that fails admission.

    Example:
        cisignal regressions check regressions.yaml

    """
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)

    try:
        registry = load_intentional_regressions(path)
    except RegistryBuildError as e:
        console.print(f"[red]Invalid entry:[/red] {e}", highlight=False)
        raise typer.Exit(1) from e
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}", highlight=False)
        raise typer.Exit(1) from e

    console.print(
        f"[green]OK[/green] {len(registry)} intentional regressions "
        f"across {len(registry.releases())} releases"
    )

    if verbose:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Release", style="cyan")
        table.add_column("Component")
        table.add_column("Test")
        table.add_column("Previous", justify="right")
        table.add_column("Regressed", justify="right")
        table.add_column("Tracking")

        for release in registry.releases():
            for regression in registry.entries(release):
                table.add_row(
                    release,
                    regression.component,
                    regression.test_name,
                    f"{regression.previous_pass_percentage() * 100:.2f}%",
                    f"{regression.regressed_pass_percentage() * 100:.2f}%",
                    regression.tracking_link,
                )

        console.print(table)
