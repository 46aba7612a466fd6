# Copyright (c) Syntropy Systems
"""cisignal regressions lookup command."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from cisignal.errors import RegistryBuildError
from cisignal.regressions import load_intentional_regressions
from cisignal.variants import parse_variant_args

console = Console()


def lookup(
    path: Path = typer.Argument(..., help="Intentional regressions YAML file"),
    test_id: str = typer.Argument(..., help="Test ID"),
    variants: list[str] = typer.Argument(
        None, help="Variant dimensions as Dimension=value"
    ),
    release: str = typer.Option(..., "--release", "-r", help="Release name"),
) -> None:
    """Find the intentional regression for a test and variant set.

    Example:
        cisignal regressions lookup regressions.yaml test-1 Platform=aws -r 4.16

    """
    try:
        variant_set = parse_variant_args(variants or [])
        registry = load_intentional_regressions(path)
    except (RegistryBuildError, ValueError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}", highlight=False)
        raise typer.Exit(1) from e

    regression = registry.lookup(release, variant_set, test_id)
    if regression is None:
        console.print(f"[yellow]No intentional regression for {test_id}[/yellow]")
        raise typer.Exit(1)

    console.print(f"\n[bold]{regression.test_name}[/bold]")
    console.print(f"  [dim]component:[/dim] {regression.component}")
    console.print(
        f"  [dim]previous:[/dim]  {regression.previous_pass_percentage() * 100:.2f}%"
    )
    console.print(
        f"  [dim]regressed:[/dim] {regression.regressed_pass_percentage() * 100:.2f}%"
    )
    console.print(f"  [dim]tracking:[/dim]  {regression.tracking_link}", soft_wrap=True)
    console.print(f"  [dim]reason:[/dim]    {regression.justification}")
