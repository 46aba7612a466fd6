# Copyright (c) Syntropy Systems
"""Pydantic models for raw job run results."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field, field_validator, model_validator

from .base import SignalBaseModel, VariantSet


class TestStatus(str, Enum):
    """Outcome of one test within one job run."""

    SUCCESS = "success"
    FAILURE = "failure"
    FLAKE = "flake"
    SKIPPED = "skipped"


class JobOverallResult(str, Enum):
    """Overall outcome of a job run."""

    SUCCEEDED = "S"
    RUNNING = "R"
    INFRASTRUCTURE_FAILURE = "N"
    INSTALL_FAILURE = "I"
    UPGRADE_FAILURE = "U"
    TEST_FAILURE = "F"
    FAILURE_BEFORE_SETUP = "n"
    FAILURE_AFTER_TESTS = "f"
    ABORTED = "A"


class TestOutcome(SignalBaseModel):
    """A single test's outcome in one job run."""

    __test__ = False

    name: str = Field(min_length=1)
    suite: str = ""
    status: TestStatus
    duration: float = 0.0
    output: str | None = None
    test_id: str = ""

    @model_validator(mode="after")
    def _default_test_id(self) -> TestOutcome:
        if not self.test_id:
            self.test_id = self.name
        return self


class JobRunResult(SignalBaseModel):
    """One execution of a job."""

    job: str = ""
    timestamp: datetime
    url: str = ""
    overall_result: JobOverallResult
    tests: list[TestOutcome] = Field(default_factory=list)
    duration: float = 0.0

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def succeeded(self) -> bool:
        return self.overall_result == JobOverallResult.SUCCEEDED

    @property
    def failed_test_names(self) -> list[str]:
        return [t.name for t in self.tests if t.status == TestStatus.FAILURE]

    @property
    def test_failures(self) -> int:
        return len(self.failed_test_names)


class RawJobResult(SignalBaseModel):
    """All collected runs of one job, tagged with its variant set."""

    name: str = Field(min_length=1)
    release: str = ""
    variants: VariantSet = Field(default_factory=dict)
    runs: list[JobRunResult] = Field(default_factory=list)

    @model_validator(mode="after")
    def _fill_run_job_names(self) -> RawJobResult:
        for run in self.runs:
            if not run.job:
                run.job = self.name
        return self


class TrackedIssue(SignalBaseModel):
    """A defect in an issue tracker and the failures attributed to it."""

    url: str
    summary: str = ""
    component: str = ""
    failure_count: int = 0
    flake_count: int = 0
