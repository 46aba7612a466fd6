# Copyright (c) Syntropy Systems
"""Pydantic models for aggregated rollups and the final report."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .base import SignalBaseModel, VariantSet
from .counts import Counts
from .regression import IntentionalRegression
from .results import JobRunResult, TrackedIssue
from .triage import TriagedIncident


class TestJobResult(Counts):
    """Counts for one test within one job."""

    __test__ = False

    test_id: str
    test_name: str
    job_name: str
    triaged_incidents: list[TriagedIncident] = Field(default_factory=list)


class TestResult(Counts):
    """Counts for one test across every job it ran in."""

    __test__ = False

    test_id: str
    name: str
    by_job: list[TestJobResult] = Field(default_factory=list)
    bugs: list[TrackedIssue] = Field(default_factory=list)


class JobResult(Counts):
    """Run-level counts and per-test results for one job."""

    name: str
    release: str = ""
    variants: VariantSet = Field(default_factory=dict)
    variant_tags: list[str] = Field(default_factory=list)
    all_runs: list[JobRunResult] = Field(default_factory=list)
    test_results: list[TestJobResult] = Field(default_factory=list)


class VariantResult(Counts):
    """Rollup of all jobs classified under one variant tag."""

    variant_name: str
    job_names: list[str] = Field(default_factory=list)
    test_results: list[TestResult] = Field(default_factory=list)


class VariantHealth(SignalBaseModel):
    """Headline pass percentage of a variant."""

    variant_name: str
    successes: int
    failures: int
    pass_percentage: float


class TopLevelIndicators(SignalBaseModel):
    """Synthetic test results summarizing overall CI health."""

    infrastructure: TestResult | None = None
    install: TestResult | None = None
    upgrade: TestResult | None = None
    final_operator_health: TestResult | None = None
    variant: list[VariantHealth] = Field(default_factory=list)


class ComponentJobResult(SignalBaseModel):
    """Runs of one job that failed tests owned by a component."""

    job_name: str
    total_runs: int
    failed_runs: int
    fail_percentage: float
    failed_tests: list[str] = Field(default_factory=list)


class ComponentJobFailures(SignalBaseModel):
    """Job failures attributed to one component, worst job first."""

    name: str
    jobs_failed: list[ComponentJobResult] = Field(default_factory=list)


class RegressionSignal(SignalBaseModel):
    """A failing test/job pair with no triage record."""

    test_id: str
    test_name: str
    job_name: str
    variants: VariantSet = Field(default_factory=dict)
    failures: int
    pass_percentage: float
    intentional_regression: IntentionalRegression | None = None


class Report(SignalBaseModel):
    """Everything one aggregation pass produces."""

    release: str
    timestamp: datetime
    top_level_indicators: TopLevelIndicators = Field(default_factory=TopLevelIndicators)
    by_test: list[TestResult] = Field(default_factory=list)
    filtered_tests: list[TestResult] = Field(default_factory=list)
    by_variant: list[VariantResult] = Field(default_factory=list)
    by_job: list[JobResult] = Field(default_factory=list)
    frequent_job_results: list[JobResult] = Field(default_factory=list)
    infrequent_job_results: list[JobResult] = Field(default_factory=list)
    failure_groups: list[JobRunResult] = Field(default_factory=list)
    bugs_by_failure_count: list[TrackedIssue] = Field(default_factory=list)
    job_failures_by_component: list[ComponentJobFailures] = Field(default_factory=list)
    top_failing_tests_with_bug: list[TestResult] = Field(default_factory=list)
    top_failing_tests_without_bug: list[TestResult] = Field(default_factory=list)
    curated_tests: list[TestResult] = Field(default_factory=list)
    triaged_failures: list[TestJobResult] = Field(default_factory=list)
    accepted_regressions: list[RegressionSignal] = Field(default_factory=list)
    untriaged_regressions: list[RegressionSignal] = Field(default_factory=list)
    analysis_warnings: list[str] = Field(default_factory=list)
