# Copyright (c) Syntropy Systems
"""Conversion of collected job runs into raw job results.

Fetching runs and parsing suite documents happen elsewhere; this module only
turns their parsed form into ``RawJobResult`` records. Lookup caches live on an
explicit ``IngestState`` so each ingestion (and each test) owns its own.
"""
from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import cast

import yaml

from cisignal.models.base import VariantSet
from cisignal.models.junit import TestSuite
from cisignal.models.results import (
    JobOverallResult,
    JobRunResult,
    RawJobResult,
    TestOutcome,
    TestStatus,
)

logger = logging.getLogger(__name__)

INFRASTRUCTURE_TEST_NAME = "[sig-cisignal] infrastructure should work"
INSTALL_TEST_NAME = "[sig-cisignal] install should work"
UPGRADE_TEST_NAME = "[sig-cisignal] upgrade should work"
FINAL_OPERATOR_HEALTH_TEST_NAME = "[sig-cisignal] tests should finish with healthy operators"

_CLUSTER_DATA_RE = re.compile(r"_(\d{8}-\d{6})\.json$")
_CLUSTER_DATA_FORMAT = "%Y%m%d-%H%M%S"


@dataclass
class IngestState:
    """Caches for one ingestion."""

    known_suites: set[str] = field(default_factory=set)
    # suite-qualified keys ("suite.test") dropped from every run
    ignored_tests: set[str] = field(default_factory=set)
    # test name -> test ID; names seen for the first time are their own ID
    test_ids: dict[str, str] = field(default_factory=dict)
    jobs: dict[str, RawJobResult] = field(default_factory=dict)
    seen_runs: set[str] = field(default_factory=set)
    suite_cache: dict[str, bool] = field(default_factory=dict)

    def is_known_suite(self, name: str) -> bool:
        if not name:
            return False
        if name not in self.suite_cache:
            self.suite_cache[name] = name in self.known_suites
        return self.suite_cache[name]

    def find_or_add_test(self, name: str) -> str:
        return self.test_ids.setdefault(name, name)

    def job(self, name: str, release: str, variants: Mapping[str, str]) -> RawJobResult:
        """Return the job record, creating it or refreshing its variants."""
        existing = self.jobs.get(name)
        if existing is None:
            existing = RawJobResult(name=name, release=release, variants=dict(variants))
            self.jobs[name] = existing
        elif existing.variants != variants:
            existing.variants = dict(variants)
        return existing

    def add_run(
        self,
        job_name: str,
        release: str,
        variants: Mapping[str, str],
        run: JobRunResult,
    ) -> bool:
        """Record a run unless it was already ingested (by URL)."""
        if run.url and run.url in self.seen_runs:
            return False
        job = self.job(job_name, release, variants)
        if not run.job:
            run.job = job_name
        job.runs.append(run)
        if run.url:
            self.seen_runs.add(run.url)
        return True

    def raw_jobs(self) -> list[RawJobResult]:
        return [self.jobs[k] for k in sorted(self.jobs)]


def _extract_test_cases(
    suite: TestSuite, state: IngestState, cases: dict[str, TestOutcome]
) -> None:
    for tc in suite.test_cases:
        if tc.skip_message is not None:
            continue
        status = TestStatus.SUCCESS if tc.failure_output is None else TestStatus.FAILURE

        # keyed with the suite name so a pass and a fail from two different
        # suites never combine into a flake
        cache_key = f"{suite.name}.{tc.name}"

        name = tc.name
        if suite.name and not state.is_known_suite(suite.name):
            name = f"{suite.name}.{tc.name}"

        existing = cases.get(cache_key)
        if existing is None:
            cases[cache_key] = TestOutcome(
                name=name,
                test_id=state.find_or_add_test(name),
                suite=suite.name,
                status=status,
                duration=tc.duration,
                output=tc.failure_output,
            )
        elif {existing.status, status} == {TestStatus.SUCCESS, TestStatus.FAILURE}:
            # one pass among failures makes this a flake
            existing.status = TestStatus.FLAKE
            if existing.output is None:
                existing.output = tc.failure_output

    for child in suite.children:
        _extract_test_cases(child, state, cases)


def consolidate_test_cases(
    suites: Iterable[TestSuite], state: IngestState
) -> list[TestOutcome]:
    """Flatten suites into one outcome per test, detecting flakes."""
    cases: dict[str, TestOutcome] = {}
    for suite in suites:
        _extract_test_cases(suite, state, cases)
    return [cases[k] for k in sorted(cases) if k not in state.ignored_tests]


def synthetic_outcomes(
    overall_result: JobOverallResult, *, upgrade: bool = False
) -> list[TestOutcome]:
    """Synthetic infrastructure/install/upgrade outcomes for a run."""
    infra_failed = overall_result in (
        JobOverallResult.INFRASTRUCTURE_FAILURE,
        JobOverallResult.FAILURE_BEFORE_SETUP,
    )
    outcomes = [
        TestOutcome(
            name=INFRASTRUCTURE_TEST_NAME,
            status=TestStatus.FAILURE if infra_failed else TestStatus.SUCCESS,
        )
    ]
    if infra_failed or overall_result in (
        JobOverallResult.RUNNING,
        JobOverallResult.ABORTED,
    ):
        return outcomes

    install_failed = overall_result == JobOverallResult.INSTALL_FAILURE
    outcomes.append(
        TestOutcome(
            name=INSTALL_TEST_NAME,
            status=TestStatus.FAILURE if install_failed else TestStatus.SUCCESS,
        )
    )
    if upgrade and not install_failed:
        outcomes.append(
            TestOutcome(
                name=UPGRADE_TEST_NAME,
                status=(
                    TestStatus.FAILURE
                    if overall_result == JobOverallResult.UPGRADE_FAILURE
                    else TestStatus.SUCCESS
                ),
            )
        )
    return outcomes


def ingest_run(
    state: IngestState,
    *,
    job_name: str,
    release: str,
    variants: VariantSet,
    timestamp: datetime,
    url: str,
    overall_result: JobOverallResult,
    suites: Iterable[TestSuite],
    duration: float = 0.0,
    upgrade: bool = False,
) -> JobRunResult | None:
    """Convert one finished job run and record it in ``state``.

    Returns None for runs still in progress or already ingested.
    """
    if overall_result == JobOverallResult.RUNNING:
        return None
    tests = consolidate_test_cases(suites, state)
    tests.extend(synthetic_outcomes(overall_result, upgrade=upgrade))
    run = JobRunResult(
        job=job_name,
        timestamp=timestamp,
        url=url,
        overall_result=overall_result,
        tests=tests,
        duration=duration,
    )
    if not state.add_run(job_name, release, variants, run):
        logger.debug("Skipping already ingested run %s", url)
        return None
    return run


def parse_variant_data_file(data: bytes | str) -> dict[str, str]:
    """Parse a cluster-data JSON document into its string-valued fields."""
    parsed = cast("object", json.loads(data))
    if not isinstance(parsed, dict):
        msg = "cluster data must be a JSON object"
        raise ValueError(msg)
    return {
        str(k): v
        for k, v in cast("dict[object, object]", parsed).items()
        if isinstance(v, str)
    }


def find_most_recent_cluster_data(names: Iterable[str] | None) -> str:
    """Pick the cluster-data file with the latest timestamp in its name.

    Names without a parseable ``_YYYYMMDD-HHMMSS.json`` suffix are ignored;
    returns an empty string when nothing matches.
    """
    best_name = ""
    best_time: datetime | None = None
    for name in names or []:
        match = _CLUSTER_DATA_RE.search(name)
        if match is None:
            continue
        try:
            stamp = datetime.strptime(match.group(1), _CLUSTER_DATA_FORMAT)
        except ValueError:
            logger.debug("Ignoring cluster data with invalid date: %s", name)
            continue
        if best_time is None or stamp > best_time:
            best_time = stamp
            best_name = name
    return best_name


def load_raw_jobs(path: Path) -> list[RawJobResult]:
    """Load raw job results from a JSON or YAML document.

    The document is a list of jobs or ``{"jobs": [...]}``.
    """
    with path.open() as f:
        data = cast("object", yaml.safe_load(f))
    if data is None:
        return []
    if isinstance(data, dict):
        data = cast("dict[str, object]", data).get("jobs", [])
    if not isinstance(data, list):
        msg = f"{path}: job results must be a list"
        raise ValueError(msg)
    return [RawJobResult.model_validate(item) for item in cast("list[object]", data)]
