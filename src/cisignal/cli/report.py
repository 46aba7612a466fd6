# Copyright (c) Syntropy Systems
"""Report command - aggregate job results into health signals."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.table import Table

from cisignal.analysis import IssueTracker, NullIssueTracker, load_issue_tracker
from cisignal.classify import PatternClassifier
from cisignal.config import load_config
from cisignal.errors import CISignalError
from cisignal.ingest import load_raw_jobs
from cisignal.regressions import (
    IntentionalRegressionRegistry,
    load_intentional_regressions,
)
from cisignal.report import aggregate
from cisignal.triage import TriageRegistry, load_triage

if TYPE_CHECKING:
    from cisignal.models.report import Report, TestResult

console = Console()


def _percent(value: float) -> str:
    return f"{value * 100:.2f}%"


def _print_tests(title: str, tests: list[TestResult], flake_as_failure: bool) -> None:
    if not tests:
        return
    table = Table(title=title)
    table.add_column("Test")
    table.add_column("Pass", justify="right")
    table.add_column("Failures", justify="right")
    table.add_column("Flakes", justify="right")
    table.add_column("Bugs", style="dim")
    for test in tests:
        table.add_row(
            test.name,
            _percent(test.pass_percentage(flake_as_failure)),
            str(test.failures),
            str(test.flakes),
            ", ".join(b.url for b in test.bugs) or "-",
        )
    console.print(table)


def print_report(result: Report, flake_as_failure: bool) -> None:
    """Render the headline parts of a report."""
    console.print(f"\n[bold]Release {result.release}[/bold]")
    console.print(f"  [dim]generated:[/dim] {result.timestamp.isoformat()}")
    console.print(
        f"  [dim]jobs:[/dim] {len(result.by_job)}  "
        f"[dim]tests:[/dim] {len(result.by_test)} "
        f"({len(result.filtered_tests)} after filtering)"
    )

    if result.top_level_indicators.variant:
        table = Table(title="Variant health")
        table.add_column("Variant")
        table.add_column("Pass", justify="right")
        table.add_column("Runs", justify="right")
        for health in result.top_level_indicators.variant:
            table.add_row(
                health.variant_name,
                _percent(health.pass_percentage),
                str(health.successes + health.failures),
            )
        console.print(table)

    _print_tests(
        "Top failing tests without a bug",
        result.top_failing_tests_without_bug,
        flake_as_failure,
    )
    _print_tests(
        "Top failing tests with a bug",
        result.top_failing_tests_with_bug,
        flake_as_failure,
    )
    _print_tests("Curated tests", result.curated_tests, flake_as_failure)

    if result.bugs_by_failure_count:
        table = Table(title="Bugs by failure count")
        table.add_column("Bug")
        table.add_column("Failures", justify="right")
        table.add_column("Flakes", justify="right")
        for bug in result.bugs_by_failure_count:
            table.add_row(bug.url, str(bug.failure_count), str(bug.flake_count))
        console.print(table)

    if result.job_failures_by_component:
        table = Table(title="Job failures by component")
        table.add_column("Component")
        table.add_column("Job")
        table.add_column("Failed runs", justify="right")
        for component in result.job_failures_by_component:
            worst = component.jobs_failed[0]
            table.add_row(
                component.name,
                worst.job_name,
                f"{worst.failed_runs}/{worst.total_runs}",
            )
        console.print(table)

    if result.failure_groups:
        table = Table(title="Failure clusters")
        table.add_column("Job")
        table.add_column("Failed tests", justify="right")
        table.add_column("URL", style="dim")
        for run in result.failure_groups:
            table.add_row(run.job, str(run.test_failures), run.url)
        console.print(table)

    if result.untriaged_regressions:
        table = Table(title="Untriaged regressions")
        table.add_column("Test")
        table.add_column("Job")
        table.add_column("Pass", justify="right")
        for signal in result.untriaged_regressions:
            table.add_row(signal.test_name, signal.job_name, _percent(signal.pass_percentage))
        console.print(table)

    if result.accepted_regressions:
        console.print(
            f"\n[dim]{len(result.accepted_regressions)} failing test/job pairs "
            "are accepted intentional regressions[/dim]"
        )

    if result.analysis_warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for warning in result.analysis_warnings:
            console.print(f"  - {warning}", highlight=False)


def report(
    results: Path = typer.Argument(..., help="Job results file (JSON or YAML)"),
    release: str = typer.Option(..., "--release", "-r", help="Release name"),
    triage: Path | None = typer.Option(
        None, "--triage", help="Triage records file"
    ),
    regressions: Path | None = typer.Option(
        None, "--regressions", help="Intentional regressions file"
    ),
    issues: Path | None = typer.Option(
        None, "--issues", help="Tracked issues by test ID"
    ),
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help="Config file (default: nearest cisignal.yaml)"
    ),
    now: datetime | None = typer.Option(
        None, "--now", help="Reference time for freshness checks"
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write the full report as JSON"
    ),
) -> None:
    """Aggregate job results into a health report.

    Example:
        cisignal report results.json -r 4.16 --triage triage.yaml

    """
    config = load_config(config_path)

    # an invalid registry is fatal: dropping entries would raise false alarms
    regression_registry = IntentionalRegressionRegistry.build({})
    if regressions is not None:
        try:
            regression_registry = load_intentional_regressions(regressions)
        except (CISignalError, ValueError, OSError) as e:
            console.print(f"[red]Invalid intentional regressions:[/red] {e}", highlight=False)
            raise typer.Exit(1) from e

    try:
        raw_jobs = load_raw_jobs(results)
        triage_registry = load_triage(triage) if triage else TriageRegistry()
        tracker: IssueTracker = (
            load_issue_tracker(issues) if issues else NullIssueTracker()
        )
        result = aggregate(
            raw_jobs,
            triage_registry,
            PatternClassifier(config.variant_patterns),
            config,
            release=release,
            issues=tracker,
            regressions=regression_registry,
            now=now,
        )
    except (CISignalError, ValueError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}", highlight=False)
        raise typer.Exit(1) from e

    print_report(result, config.flake_as_failure)

    if output is not None:
        _ = output.write_text(result.model_dump_json(indent=2))
        console.print(f"\n[green]Report written to {output}[/green]")
