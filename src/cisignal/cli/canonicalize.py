# Copyright (c) Syntropy Systems
"""Canonicalize command - print the triage key for a test and variant set."""

import typer
from rich.console import Console

from cisignal.variants import canonicalize as canonical_key
from cisignal.variants import parse_variant_args

console = Console()


def canonicalize(
    test_id: str = typer.Argument(..., help="Test ID"),
    variants: list[str] = typer.Argument(
        None, help="Variant dimensions as Dimension=value"
    ),
) -> None:
    """Show the canonical triage key for a test.

    Example:
        cisignal canonicalize test-1 Platform=metal-ipi Variant=fips

    """
    try:
        variant_set = parse_variant_args(variants or [])
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    key = canonical_key(test_id, variant_set)
    console.print(f"[dim]test_id:[/dim]  {key.test_id}")
    console.print(
        f"[dim]variants:[/dim] {key.variants}", highlight=False, soft_wrap=True
    )
