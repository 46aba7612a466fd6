# Copyright (c) Syntropy Systems
"""Report generation: one deterministic aggregation pass over raw job results."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from cisignal.analysis import (
    IssueTracker,
    NullIssueTracker,
    StandardTestResultFilter,
    attach_bugs,
    attach_triage,
    build_job_results,
    build_test_results,
    build_variant_results,
    classify_regressions,
    curated_tests,
    exclude_jobs,
    filter_failure_groups,
    filter_tests,
    generate_sorted_bug_failure_counts,
    job_failures_by_component,
    split_frequent_jobs,
    top_failing_tests,
    variant_health,
)
from cisignal.errors import PassPercentageError
from cisignal.ingest import (
    FINAL_OPERATOR_HEALTH_TEST_NAME,
    INFRASTRUCTURE_TEST_NAME,
    INSTALL_TEST_NAME,
    UPGRADE_TEST_NAME,
)
from cisignal.models.report import Report, TopLevelIndicators
from cisignal.promotion import generate_promotion_warnings
from cisignal.regressions import IntentionalRegressionRegistry

if TYPE_CHECKING:
    from cisignal.classify import VariantClassifier
    from cisignal.config import ReportConfig
    from cisignal.models.results import RawJobResult
    from cisignal.triage import TriageRegistry

logger = logging.getLogger(__name__)

# Infrequent jobs have too few runs for the standard minimum.
INFREQUENT_MIN_RUNS = 2


def aggregate(
    raw_jobs: Sequence[RawJobResult],
    triage: TriageRegistry,
    classifier: VariantClassifier,
    filters: ReportConfig,
    *,
    release: str,
    issues: IssueTracker | None = None,
    regressions: IntentionalRegressionRegistry | None = None,
    now: datetime | None = None,
    analysis_warnings: Sequence[str] = (),
) -> Report:
    """Fold raw job results into a report.

    ``now`` is the only clock the pass reads; it defaults to the current UTC
    time. Malformed input raises MalformedResultError. Failures of optional
    lookups become entries in ``Report.analysis_warnings``.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if issues is None:
        issues = NullIssueTracker()
    if regressions is None:
        regressions = IntentionalRegressionRegistry.build({})

    warnings = list(analysis_warnings)
    flake_as_failure = filters.flake_as_failure
    standard_filter = StandardTestResultFilter(
        filters.min_runs, filters.success_threshold, flake_as_failure
    )
    infrequent_filter = StandardTestResultFilter(
        INFREQUENT_MIN_RUNS, filters.success_threshold, flake_as_failure
    )

    job_results = build_job_results(raw_jobs, classifier, release)
    for job in job_results:
        try:
            _ = job.pass_percentage(flake_as_failure)
        except PassPercentageError as e:
            warnings.append(f"Job {job.name} has no completed runs: {e}")

    triaged_failures = attach_triage(job_results, triage)
    tests_by_id = build_test_results(job_results)
    filtered_tests = filter_tests(tests_by_id.values(), standard_filter)

    attach_bugs(filtered_tests, issues, warnings)
    for test in filtered_tests:
        tests_by_id[test.test_id].bugs = test.bugs
    bugs_by_failure_count = generate_sorted_bug_failure_counts(filtered_tests)
    component_failures = job_failures_by_component(job_results, tests_by_id)

    failure_groups = filter_failure_groups(raw_jobs, filters.failure_cluster_threshold)
    frequent_jobs, infrequent_jobs = split_frequent_jobs(
        job_results, filters.num_days, standard_filter, infrequent_filter
    )
    by_variant = build_variant_results(job_results, standard_filter)

    accepted, untriaged = classify_regressions(
        job_results, standard_filter, regressions, flake_as_failure
    )

    # top level indicators leave out jobs that have never been stable
    never_stable = {
        j.name for j in job_results if filters.never_stable_variant in j.variant_tags
    }
    indicators = TopLevelIndicators(
        infrastructure=exclude_jobs(tests_by_id.get(INFRASTRUCTURE_TEST_NAME), never_stable),
        install=exclude_jobs(tests_by_id.get(INSTALL_TEST_NAME), never_stable),
        upgrade=exclude_jobs(tests_by_id.get(UPGRADE_TEST_NAME), never_stable),
        final_operator_health=exclude_jobs(
            tests_by_id.get(FINAL_OPERATOR_HEALTH_TEST_NAME), never_stable
        ),
        variant=variant_health(by_variant, flake_as_failure),
    )

    promotion_warnings = generate_promotion_warnings(
        job_results,
        filters.promotion_variant,
        now,
        timedelta(hours=filters.promotion_freshness_hours),
    )
    warnings.extend(str(w) for w in promotion_warnings)

    logger.info(
        "Aggregated %d jobs, %d tests (%d after filtering) for release %s",
        len(job_results),
        len(tests_by_id),
        len(filtered_tests),
        release,
    )

    return Report(
        release=release,
        timestamp=now,
        top_level_indicators=indicators,
        by_test=list(tests_by_id.values()),
        filtered_tests=filtered_tests,
        by_variant=by_variant,
        by_job=job_results,
        frequent_job_results=frequent_jobs,
        infrequent_job_results=infrequent_jobs,
        failure_groups=failure_groups,
        bugs_by_failure_count=bugs_by_failure_count,
        job_failures_by_component=component_failures,
        top_failing_tests_with_bug=top_failing_tests(
            filtered_tests, with_bug=True, limit=filters.top_n
        ),
        top_failing_tests_without_bug=top_failing_tests(
            filtered_tests, with_bug=False, limit=filters.top_n
        ),
        curated_tests=curated_tests(tests_by_id.values(), filters.curated_tests),
        triaged_failures=triaged_failures,
        accepted_regressions=accepted,
        untriaged_regressions=untriaged,
        analysis_warnings=warnings,
    )
