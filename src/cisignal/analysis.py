# Copyright (c) Syntropy Systems
"""Aggregation stages that fold raw job runs into rollups.

Nothing is cached between calls. Raw inputs are never modified; the attach_*
helpers only update rollups built earlier in the same pass.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, cast

import yaml

from cisignal.errors import IssueLookupError, MalformedResultError
from cisignal.models.counts import Counts
from cisignal.models.report import (
    ComponentJobFailures,
    ComponentJobResult,
    JobResult,
    RegressionSignal,
    TestJobResult,
    TestResult,
    VariantHealth,
    VariantResult,
)
from cisignal.models.results import (
    JobOverallResult,
    JobRunResult,
    RawJobResult,
    TestStatus,
    TrackedIssue,
)

if TYPE_CHECKING:
    from cisignal.classify import VariantClassifier
    from cisignal.regressions import IntentionalRegressionRegistry
    from cisignal.triage import TriageRegistry

logger = logging.getLogger(__name__)

ResultFilterFn = Callable[[Counts], bool]

UNKNOWN_COMPONENT = "Unknown"

_SIG_RE = re.compile(r"\[(sig-[^\]]+)\]")


class IssueTracker(Protocol):
    """Looks up tracked defects for a test."""

    def find_issues_for_test(self, test_id: str) -> list[TrackedIssue]: ...


class NullIssueTracker:
    """Issue tracker with no issues."""

    def find_issues_for_test(self, test_id: str) -> list[TrackedIssue]:
        _ = test_id
        return []


class StaticIssueTracker:
    """Issue tracker backed by a fixed test ID -> issues mapping."""

    def __init__(self, issues: Mapping[str, Sequence[TrackedIssue]]) -> None:
        self._issues = {k: list(v) for k, v in issues.items()}

    def find_issues_for_test(self, test_id: str) -> list[TrackedIssue]:
        return [issue.model_copy() for issue in self._issues.get(test_id, [])]


@dataclass(frozen=True)
class StandardTestResultFilter:
    """Keep results with enough runs that are not essentially always passing."""

    min_runs: int
    success_threshold: float
    flake_as_failure: bool = False

    def __call__(self, counts: Counts) -> bool:
        if counts.runs < self.min_runs or counts.runs == 0:
            return False
        return counts.pass_percentage(self.flake_as_failure) < self.success_threshold


def _outcome_counts(status: TestStatus) -> Counts | None:
    if status == TestStatus.SUCCESS:
        return Counts(successes=1)
    if status == TestStatus.FAILURE:
        return Counts(failures=1)
    if status == TestStatus.FLAKE:
        return Counts(flakes=1)
    return None


def is_terminal(run: JobRunResult) -> bool:
    return run.overall_result != JobOverallResult.RUNNING


def build_job_result(
    raw: RawJobResult, classifier: VariantClassifier, release: str
) -> JobResult:
    """Roll up one job's runs and the tests within them."""
    job_release = raw.release or release
    job = JobResult(
        name=raw.name,
        release=job_release,
        variants=dict(raw.variants),
        variant_tags=classifier.identify_variants(raw.name, job_release),
    )

    tests: dict[str, TestJobResult] = {}
    for run in sorted(raw.runs, key=lambda r: r.timestamp):
        if run.job and run.job != raw.name:
            msg = f"run {run.url or run.timestamp} belongs to job {run.job!r}, not {raw.name!r}"
            raise MalformedResultError(msg)
        if not is_terminal(run):
            continue
        job.all_runs.append(run)
        if run.succeeded:
            job.successes += 1
        else:
            job.failures += 1

        for outcome in run.tests:
            counts = _outcome_counts(outcome.status)
            if counts is None:
                continue
            result = tests.get(outcome.test_id)
            if result is None:
                result = TestJobResult(
                    test_id=outcome.test_id,
                    test_name=outcome.name,
                    job_name=raw.name,
                )
                tests[outcome.test_id] = result
            result.add(counts)

    job.test_results = [tests[k] for k in sorted(tests)]
    return job


def build_job_results(
    raw_jobs: Iterable[RawJobResult], classifier: VariantClassifier, release: str
) -> list[JobResult]:
    """Stage 1: per-job rollups, ordered by job name."""
    jobs = [build_job_result(raw, classifier, release) for raw in raw_jobs]
    names = [j.name for j in jobs]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        msg = f"duplicate job results for: {', '.join(duplicates)}"
        raise MalformedResultError(msg)
    return sorted(jobs, key=lambda j: j.name)


def build_test_results(job_results: Iterable[JobResult]) -> dict[str, TestResult]:
    """Stage 2: union of every test's per-job results."""
    tests: dict[str, TestResult] = {}
    for job in job_results:
        for job_test in job.test_results:
            result = tests.get(job_test.test_id)
            if result is None:
                result = TestResult(test_id=job_test.test_id, name=job_test.test_name)
                tests[job_test.test_id] = result
            result.add(job_test)
            result.by_job.append(job_test)
    return {k: tests[k] for k in sorted(tests)}


def filter_tests(
    tests: Iterable[TestResult], filter_fn: ResultFilterFn
) -> list[TestResult]:
    """Stage 3: the filtered view.

    Keeps tests the filter selects, and within each only the per-job entries
    the filter also selects.
    """
    filtered: list[TestResult] = []
    for test in tests:
        if not filter_fn(test):
            continue
        filtered.append(
            test.model_copy(update={"by_job": [j for j in test.by_job if filter_fn(j)]})
        )
    return filtered


def filter_job_results(
    job_results: Iterable[JobResult], filter_fn: ResultFilterFn
) -> list[JobResult]:
    return [
        job.model_copy(
            update={"test_results": [t for t in job.test_results if filter_fn(t)]}
        )
        for job in job_results
    ]


def split_frequent_jobs(
    job_results: Sequence[JobResult],
    num_days: int,
    frequent_filter: ResultFilterFn,
    infrequent_filter: ResultFilterFn,
) -> tuple[list[JobResult], list[JobResult]]:
    """Split jobs that run at least once a day from those that do not."""
    frequent = [j for j in job_results if len(j.all_runs) >= num_days]
    infrequent = [j for j in job_results if len(j.all_runs) < num_days]
    return (
        filter_job_results(frequent, frequent_filter),
        filter_job_results(infrequent, infrequent_filter),
    )


def attach_bugs(
    tests: Iterable[TestResult], issues: IssueTracker, warnings: list[str]
) -> None:
    """Look up tracked issues for each test.

    A failed lookup leaves that test without bugs and records a warning.
    """
    for test in tests:
        try:
            test.bugs = issues.find_issues_for_test(test.test_id)
        except IssueLookupError as e:
            logger.warning("Issue lookup failed for %s: %s", test.test_id, e)
            warnings.append(f"Could not look up issues for test {test.name}: {e}")
            test.bugs = []


def generate_sorted_bug_failure_counts(tests: Iterable[TestResult]) -> list[TrackedIssue]:
    """Stage 4: attribute each test's failures and flakes to its bugs.

    Sorted by failure count, highest first; ties by URL.
    """
    bugs: dict[str, TrackedIssue] = {}
    for test in tests:
        for bug in test.bugs:
            found = bugs.get(bug.url)
            if found is None:
                bugs[bug.url] = bug.model_copy(
                    update={"failure_count": test.failures, "flake_count": test.flakes}
                )
            else:
                found.failure_count += test.failures
                found.flake_count += test.flakes
    return sorted(bugs.values(), key=lambda b: (-b.failure_count, b.url))


def filter_failure_groups(
    raw_jobs: Iterable[RawJobResult], failure_cluster_threshold: int
) -> list[JobRunResult]:
    """Stage 5: job runs with at least ``failure_cluster_threshold`` failed tests.

    A negative threshold disables clustering.
    """
    if failure_cluster_threshold < 0:
        return []
    groups = [
        run
        for raw in raw_jobs
        for run in raw.runs
        if run.test_failures >= failure_cluster_threshold
    ]
    return sorted(groups, key=lambda r: (-r.test_failures, r.job, r.timestamp))


def failure_impact(test: TestResult) -> tuple[int, int, str]:
    return (-test.failures, -test.flakes, test.name)


def top_failing_tests(
    tests: Iterable[TestResult], *, with_bug: bool, limit: int
) -> list[TestResult]:
    """Stage 6: most failing tests that do (or do not) have a tracked issue."""
    selected = [t for t in tests if t.failures > 0 and bool(t.bugs) == with_bug]
    selected.sort(key=failure_impact)
    return selected[:limit] if limit >= 0 else selected


def component_for_test(name: str, bugs: Iterable[TrackedIssue]) -> str:
    """Component owning a test: its first tracked issue's, else its sig tag."""
    for bug in bugs:
        if bug.component:
            return bug.component
    match = _SIG_RE.search(name)
    if match is not None:
        return match.group(1)
    return UNKNOWN_COMPONENT


def job_failures_by_component(
    job_results: Iterable[JobResult], tests_by_id: Mapping[str, TestResult]
) -> list[ComponentJobFailures]:
    """Count, per component, the runs of each job that failed its tests.

    A run counts once per component however many of its tests failed.
    Components are ordered by their worst job; jobs by fail percentage.
    """
    by_component: dict[str, list[ComponentJobResult]] = {}
    for job in job_results:
        if not job.all_runs:
            continue
        failed_runs: dict[str, int] = {}
        failed_tests: dict[str, set[str]] = {}
        for run in job.all_runs:
            hit: set[str] = set()
            for outcome in run.tests:
                if outcome.status != TestStatus.FAILURE:
                    continue
                test = tests_by_id.get(outcome.test_id)
                component = component_for_test(outcome.name, test.bugs if test else [])
                hit.add(component)
                failed_tests.setdefault(component, set()).add(outcome.name)
            for component in hit:
                failed_runs[component] = failed_runs.get(component, 0) + 1

        total = len(job.all_runs)
        for component, count in failed_runs.items():
            by_component.setdefault(component, []).append(
                ComponentJobResult(
                    job_name=job.name,
                    total_runs=total,
                    failed_runs=count,
                    fail_percentage=count / total,
                    failed_tests=sorted(failed_tests[component]),
                )
            )

    results: list[ComponentJobFailures] = []
    for name, jobs in by_component.items():
        jobs.sort(key=lambda j: (-j.fail_percentage, j.job_name))
        results.append(ComponentJobFailures(name=name, jobs_failed=jobs))
    results.sort(key=lambda c: (-c.jobs_failed[0].fail_percentage, c.name))
    return results


def curated_tests(
    tests: Iterable[TestResult], substrings: Sequence[str]
) -> list[TestResult]:
    """Tests whose names contain any curated substring, most failing first."""
    if not substrings:
        return []
    selected = [t for t in tests if any(s in t.name for s in substrings)]
    selected.sort(key=failure_impact)
    return selected


def build_variant_results(
    job_results: Sequence[JobResult], filter_fn: ResultFilterFn
) -> list[VariantResult]:
    """Roll jobs up by variant tag, ordered by tag."""
    by_tag: dict[str, list[JobResult]] = {}
    for job in job_results:
        for tag in job.variant_tags:
            by_tag.setdefault(tag, []).append(job)

    variants: list[VariantResult] = []
    for tag in sorted(by_tag):
        jobs = by_tag[tag]
        result = VariantResult(variant_name=tag, job_names=[j.name for j in jobs])
        for job in jobs:
            result.add(job)
        tests = build_test_results(jobs).values()
        result.test_results = [t for t in tests if filter_fn(t)]
        variants.append(result)
    return variants


def variant_health(
    variants: Iterable[VariantResult], flake_as_failure: bool = False
) -> list[VariantHealth]:
    """Headline pass percentage per variant, worst first."""
    health = [
        VariantHealth(
            variant_name=v.variant_name,
            successes=v.successes,
            failures=v.failures,
            pass_percentage=v.pass_percentage(flake_as_failure),
        )
        for v in variants
        if v.runs > 0
    ]
    return sorted(health, key=lambda h: (h.pass_percentage, h.variant_name))


def exclude_jobs(test: TestResult | None, job_names: set[str]) -> TestResult | None:
    """Recompute a test result without the given jobs."""
    if test is None:
        return None
    kept = [j for j in test.by_job if j.job_name not in job_names]
    result = TestResult(test_id=test.test_id, name=test.name, by_job=kept, bugs=test.bugs)
    for job_test in kept:
        result.add(job_test)
    return result


def attach_triage(
    job_results: Iterable[JobResult], triage: TriageRegistry
) -> list[TestJobResult]:
    """Match failing test/job pairs against triaged incidents.

    Returns every pair that matched at least one incident.
    """
    triaged: list[TestJobResult] = []
    for job in job_results:
        for job_test in job.test_results:
            if job_test.failures == 0:
                continue
            job_test.triaged_incidents = triage.incidents_for(
                job.release, job_test.test_id, job.variants
            )
            if job_test.triaged_incidents:
                triaged.append(job_test)
    return triaged


def classify_regressions(
    job_results: Iterable[JobResult],
    filter_fn: ResultFilterFn,
    regressions: IntentionalRegressionRegistry,
    flake_as_failure: bool = False,
) -> tuple[list[RegressionSignal], list[RegressionSignal]]:
    """Split untriaged failing pairs into accepted and unexplained regressions."""
    accepted: list[RegressionSignal] = []
    untriaged: list[RegressionSignal] = []
    for job in job_results:
        for job_test in job.test_results:
            if job_test.failures == 0 or job_test.triaged_incidents:
                continue
            if not filter_fn(job_test):
                continue
            signal = RegressionSignal(
                test_id=job_test.test_id,
                test_name=job_test.test_name,
                job_name=job.name,
                variants=dict(job.variants),
                failures=job_test.failures,
                pass_percentage=job_test.pass_percentage(flake_as_failure),
                intentional_regression=regressions.lookup(
                    job.release, job.variants, job_test.test_id
                ),
            )
            if signal.intentional_regression is not None:
                accepted.append(signal)
            else:
                untriaged.append(signal)
    untriaged.sort(key=lambda s: (s.pass_percentage, -s.failures, s.test_name, s.job_name))
    return accepted, untriaged


def load_issue_tracker(path: Path) -> StaticIssueTracker:
    """Load a ``{test_id: [issue, ...]}`` YAML or JSON document."""
    with path.open() as f:
        data = cast("object", yaml.safe_load(f))
    if data is None:
        return StaticIssueTracker({})
    if not isinstance(data, dict):
        msg = f"{path}: issues must map test IDs to lists of issues"
        raise ValueError(msg)
    issues: dict[str, list[TrackedIssue]] = {}
    for test_id, items in cast("dict[object, object]", data).items():
        if not isinstance(items, list):
            msg = f"{path}: issues for {test_id} must be a list"
            raise ValueError(msg)
        issues[str(test_id)] = [
            TrackedIssue.model_validate(item) for item in cast("list[object]", items)
        ]
    return StaticIssueTracker(issues)
