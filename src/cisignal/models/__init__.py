# Copyright (c) Syntropy Systems
"""Pydantic models for cisignal."""

from .base import FrozenModel, SignalBaseModel, VariantSet
from .counts import Counts, pass_percentage
from .regression import IntentionalRegression
from .report import (
    ComponentJobFailures,
    ComponentJobResult,
    JobResult,
    RegressionSignal,
    Report,
    TestJobResult,
    TestResult,
    TopLevelIndicators,
    VariantHealth,
    VariantResult,
)
from .results import (
    JobOverallResult,
    JobRunResult,
    RawJobResult,
    TestOutcome,
    TestStatus,
    TrackedIssue,
)
from .triage import (
    CanonicalTriageKey,
    TriagedIncident,
    TriagedIncidentsForRelease,
    TriageIssueType,
    TriageRecord,
)

__all__ = [
    "CanonicalTriageKey",
    "ComponentJobFailures",
    "ComponentJobResult",
    "Counts",
    "FrozenModel",
    "IntentionalRegression",
    "JobOverallResult",
    "JobResult",
    "JobRunResult",
    "RawJobResult",
    "RegressionSignal",
    "Report",
    "SignalBaseModel",
    "TestJobResult",
    "TestOutcome",
    "TestResult",
    "TestStatus",
    "TopLevelIndicators",
    "TrackedIssue",
    "TriageIssueType",
    "TriageRecord",
    "TriagedIncident",
    "TriagedIncidentsForRelease",
    "VariantHealth",
    "VariantResult",
    "VariantSet",
    "pass_percentage",
]
