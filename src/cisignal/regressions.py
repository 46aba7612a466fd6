# Copyright (c) Syntropy Systems
"""Registry of intentional regressions, keyed by release and canonical key."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import cast

import yaml
from pydantic import AnyUrl, TypeAdapter, ValidationError

from cisignal.errors import (
    AdmissionError,
    DuplicateRegressionError,
    InvalidTrackingLinkError,
    MissingDimensionError,
    MissingFieldError,
    MissingJustificationError,
    NoBaselineError,
    NoRegressedFailuresError,
    NotARegressionError,
    RegistryBuildError,
    RegistryFrozenError,
)
from cisignal.models.regression import IntentionalRegression
from cisignal.models.triage import CanonicalTriageKey
from cisignal.variants import TRIAGE_MATCH_VARIANTS, canonicalize

logger = logging.getLogger(__name__)

_URL_ADAPTER = TypeAdapter(AnyUrl)


def validate_intentional_regression(regression: IntentionalRegression) -> None:
    """Check every admission invariant; the first violation is raised."""
    if not regression.component:
        raise MissingFieldError("component")
    if not regression.test_id:
        raise MissingFieldError("test_id")
    if not regression.test_name:
        raise MissingFieldError("test_name")
    # there must have been successes previously for there to be a regression now
    if regression.previous_successes <= 0:
        raise NoBaselineError
    # there must be failures now for there to be a regression
    if regression.regressed_failures <= 0:
        raise NoRegressedFailuresError
    previous = regression.previous_pass_percentage(flake_as_failure=False)
    regressed = regression.regressed_pass_percentage(flake_as_failure=False)
    if previous <= regressed:
        raise NotARegressionError(previous, regressed)
    if not regression.justification.strip():
        raise MissingJustificationError
    try:
        _ = _URL_ADAPTER.validate_python(regression.tracking_link)
    except ValidationError as e:
        raise InvalidTrackingLinkError(regression.tracking_link) from e
    for dimension in sorted(TRIAGE_MATCH_VARIANTS):
        if not regression.variant.get(dimension):
            raise MissingDimensionError(dimension)


class IntentionalRegressionRegistry:
    """Reviewed regressions per release.

    Entries are admitted while the registry is being built and the registry is
    frozen afterwards, so lookups need no locking.
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[CanonicalTriageKey, IntentionalRegression]] = {}
        self._frozen = False

    @classmethod
    def build(
        cls, entries: Mapping[str, Iterable[IntentionalRegression]]
    ) -> IntentionalRegressionRegistry:
        """Admit every entry and freeze.

        Raises RegistryBuildError naming the first rejected entry.
        """
        registry = cls()
        for release, regressions in entries.items():
            for index, regression in enumerate(regressions):
                try:
                    registry.admit(release, regression)
                except AdmissionError as e:
                    raise RegistryBuildError(release, index, e) from e
        registry.freeze()
        logger.info(
            "Loaded %d intentional regressions across %d releases",
            len(registry),
            len(registry.releases()),
        )
        return registry

    def admit(self, release: str, regression: IntentionalRegression) -> None:
        """Validate and insert one regression under ``release``."""
        if self._frozen:
            msg = "intentional regression registry is frozen"
            raise RegistryFrozenError(msg)

        validate_intentional_regression(regression)

        key = canonicalize(regression.test_id, regression.variant)
        target = self._entries.setdefault(release, {})
        if key in target:
            raise DuplicateRegressionError(release, key.test_id, key.variants)
        target[key] = regression

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(
        self, release: str, variants: Mapping[str, str], test_id: str
    ) -> IntentionalRegression | None:
        """Return the accepted regression for a test/variant, if any."""
        target = self._entries.get(release)
        if target is None:
            return None
        found = target.get(canonicalize(test_id, variants))
        if found is not None:
            logger.debug("Found approved regression: %s %s", release, found.test_id)
        return found

    def releases(self) -> list[str]:
        return sorted(self._entries)

    def entries(self, release: str) -> list[IntentionalRegression]:
        return list(self._entries.get(release, {}).values())

    def __len__(self) -> int:
        return sum(len(v) for v in self._entries.values())


def parse_intentional_regressions(
    data: object,
) -> dict[str, list[IntentionalRegression]]:
    """Parse a ``releases: {release: [entry, ...]}`` document."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = "intentional regressions must be a mapping"
        raise ValueError(msg)
    data_dict = cast("dict[str, object]", data)
    releases = data_dict.get("releases", data_dict)
    if not isinstance(releases, dict):
        msg = "'releases' must map release names to lists of entries"
        raise ValueError(msg)

    parsed: dict[str, list[IntentionalRegression]] = {}
    for release, items in cast("dict[object, object]", releases).items():
        if not isinstance(items, list):
            msg = f"release {release} must list its intentional regressions"
            raise ValueError(msg)
        parsed[str(release)] = [
            IntentionalRegression.model_validate(item)
            for item in cast("list[object]", items)
        ]
    return parsed


def load_intentional_regressions(path: Path) -> IntentionalRegressionRegistry:
    """Load and validate a YAML registry file."""
    with path.open() as f:
        data = cast("object", yaml.safe_load(f))
    return IntentionalRegressionRegistry.build(parse_intentional_regressions(data))
