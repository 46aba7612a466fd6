# Copyright (c) Syntropy Systems
"""cisignal triage subcommand group."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cisignal.triage import load_triage
from cisignal.variants import canonicalize, parse_variant_args

console = Console()

triage_app = typer.Typer(
    name="triage",
    help="Query triaged incidents.",
    no_args_is_help=True,
)


@triage_app.command()
def lookup(
    path: Path = typer.Argument(..., help="Triage records YAML file"),
    test_id: str = typer.Argument(..., help="Test ID"),
    variants: list[str] = typer.Argument(
        None, help="Variant dimensions as Dimension=value"
    ),
    release: str = typer.Option(..., "--release", "-r", help="Release name"),
) -> None:
    """List incidents triaged for a test under a variant set.

    Example:
        cisignal triage lookup triage.yaml test-1 Platform=metal-ipi -r 4.16

    """
    try:
        variant_set = parse_variant_args(variants or [])
        registry = load_triage(path)
    except (ValueError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}", highlight=False)
        raise typer.Exit(1) from e

    key = canonicalize(test_id, variant_set)
    incidents = registry.incidents_for_key(release, key)
    if not incidents:
        console.print(f"[yellow]No triaged incidents for {key}[/yellow]", soft_wrap=True)
        raise typer.Exit(1)

    table = Table(title=f"Triaged incidents: {test_id}")
    table.add_column("Type", style="dim")
    table.add_column("URL")
    table.add_column("Description")
    for incident in incidents:
        table.add_row(incident.issue_type.value, incident.url, incident.description)
    console.print(table)
