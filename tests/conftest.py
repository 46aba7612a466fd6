# Copyright (c) Syntropy Systems
"""Pytest fixtures for cisignal tests."""

import os
import tempfile
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from cisignal.models.regression import IntentionalRegression
from cisignal.models.results import (
    JobOverallResult,
    JobRunResult,
    RawJobResult,
    TestOutcome,
    TestStatus,
)

# Store original cwd at module load time
_original_cwd = Path.cwd()

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

FULL_VARIANTS = {
    "Architecture": "amd64",
    "FeatureSet": "default",
    "Installer": "ipi",
    "Network": "ovn",
    "NetworkAccess": "default",
    "Platform": "aws",
    "Scheduler": "default",
    "SecurityMode": "default",
    "Suite": "parallel",
    "Topology": "ha",
    "Upgrade": "none",
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def in_temp_dir(temp_dir: Path) -> Generator[Path, None, None]:
    """Run the test from inside a temporary directory."""
    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def full_variants() -> dict[str, str]:
    return dict(FULL_VARIANTS)


@pytest.fixture
def make_regression() -> Callable[..., IntentionalRegression]:
    """Build a valid intentional regression, overriding any field."""

    def _make(**overrides: object) -> IntentionalRegression:
        fields: dict[str, object] = {
            "component": "Networking",
            "test_id": "openshift-tests:abc123",
            "test_name": "[sig-network] pods should reach services",
            "variant": dict(FULL_VARIANTS),
            "previous_successes": 95,
            "previous_failures": 5,
            "previous_flakes": 0,
            "regressed_successes": 80,
            "regressed_failures": 20,
            "regressed_flakes": 0,
            "tracking_link": "https://issues.example.com/browse/OCPBUGS-1234",
            "justification": "Known kernel change, fix lands next release.",
        }
        fields.update(overrides)
        return IntentionalRegression.model_validate(fields)

    return _make


def make_run(
    job: str,
    hours_ago: float,
    overall_result: JobOverallResult = JobOverallResult.SUCCEEDED,
    tests: dict[str, TestStatus] | None = None,
    url: str | None = None,
) -> JobRunResult:
    """Build a job run ``hours_ago`` hours before NOW."""
    return JobRunResult(
        job=job,
        timestamp=NOW - timedelta(hours=hours_ago),
        url=url or f"https://ci.example.com/{job}/{int(hours_ago * 60)}",
        overall_result=overall_result,
        tests=[
            TestOutcome(name=name, status=status)
            for name, status in (tests or {}).items()
        ],
    )


def make_job(
    name: str, runs: list[JobRunResult], variants: dict[str, str] | None = None
) -> RawJobResult:
    return RawJobResult(
        name=name,
        release="4.16",
        variants=variants if variants is not None else dict(FULL_VARIANTS),
        runs=runs,
    )
