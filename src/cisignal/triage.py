# Copyright (c) Syntropy Systems
"""Registry of triaged incidents, matched through canonical triage keys."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import cast

import yaml

from cisignal.models.triage import (
    CanonicalTriageKey,
    TriagedIncident,
    TriagedIncidentsForRelease,
    TriageRecord,
)
from cisignal.variants import canonicalize

logger = logging.getLogger(__name__)


class TriageRegistry:
    """Known issues per release, read-only once built."""

    def __init__(self, releases: Mapping[str, TriagedIncidentsForRelease] | None = None):
        self._releases: dict[str, TriagedIncidentsForRelease] = dict(releases or {})

    @classmethod
    def build(cls, records: Iterable[TriageRecord]) -> TriageRegistry:
        """Group triage records by release and canonical key.

        Incidents keep the order in which they appear in ``records``.
        """
        releases: dict[str, TriagedIncidentsForRelease] = {}
        count = 0
        for record in records:
            for_release = releases.setdefault(
                record.release, TriagedIncidentsForRelease(release=record.release)
            )
            key = canonicalize(record.incident.test_id, record.variants)
            for_release.triaged_incidents.setdefault(key, []).append(record.incident)
            count += 1
        logger.info("Loaded %d triaged incidents for %d releases", count, len(releases))
        return cls(releases)

    def for_release(self, release: str) -> TriagedIncidentsForRelease | None:
        return self._releases.get(release)

    def incidents_for_key(
        self, release: str, key: CanonicalTriageKey
    ) -> list[TriagedIncident]:
        for_release = self._releases.get(release)
        if for_release is None:
            return []
        return list(for_release.triaged_incidents.get(key, []))

    def incidents_for(
        self, release: str, test_id: str, variants: Mapping[str, str]
    ) -> list[TriagedIncident]:
        """Return incidents triaged for a test under a variant set.

        A miss is an empty list, not an error.
        """
        return self.incidents_for_key(release, canonicalize(test_id, variants))

    def releases(self) -> list[str]:
        return sorted(self._releases)

    def __len__(self) -> int:
        return sum(
            len(incidents)
            for r in self._releases.values()
            for incidents in r.triaged_incidents.values()
        )


def load_triage(path: Path) -> TriageRegistry:
    """Load triage records from a YAML (or JSON) file.

    The document is either a list of records or ``{"incidents": [...]}``.
    """
    with path.open() as f:
        data = cast("object", yaml.safe_load(f))
    if data is None:
        return TriageRegistry()
    if isinstance(data, dict):
        data = cast("dict[str, object]", data).get("incidents", [])
    if not isinstance(data, list):
        msg = f"{path}: triage records must be a list"
        raise ValueError(msg)
    return TriageRegistry.build(
        TriageRecord.model_validate(item) for item in cast("list[object]", data)
    )
