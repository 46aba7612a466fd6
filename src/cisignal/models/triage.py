# Copyright (c) Syntropy Systems
"""Pydantic models for triage keys and triaged incidents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import Field

from .base import FrozenModel, SignalBaseModel, VariantSet


class CanonicalTriageKey(FrozenModel):
    """Stable lookup key: a test ID plus its canonical variant string."""

    test_id: str
    variants: str

    def __str__(self) -> str:
        return f"{self.test_id} [{self.variants}]"


class TriageIssueType(str, Enum):
    """Category of a triaged incident."""

    INFRASTRUCTURE = "Infrastructure"
    PRODUCT = "Product"
    TEST = "Test"


class TriagedIncident(SignalBaseModel):
    """A known, externally tracked issue behind a failing test."""

    test_id: str
    test_name: str = ""
    issue_type: TriageIssueType = TriageIssueType.PRODUCT
    url: str
    description: str = ""
    job_runs: list[str] = Field(default_factory=list)


class TriageRecord(SignalBaseModel):
    """One entry of a triage feed, before canonicalization."""

    release: str
    variants: VariantSet = Field(default_factory=dict)
    incident: TriagedIncident


@dataclass
class TriagedIncidentsForRelease:
    """Triaged incidents of one release keyed by canonical triage key."""

    release: str
    triaged_incidents: dict[CanonicalTriageKey, list[TriagedIncident]] = field(
        default_factory=dict
    )
