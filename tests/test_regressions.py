# Copyright (c) Syntropy Systems
"""Tests for the intentional regression registry."""

import pytest
from pydantic import ValidationError

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
    PassPercentageError,
    RegistryBuildError,
    RegistryFrozenError,
)
from cisignal.models.counts import pass_percentage
from cisignal.regressions import (
    IntentionalRegressionRegistry,
    load_intentional_regressions,
    parse_intentional_regressions,
    validate_intentional_regression,
)
from cisignal.variants import TRIAGE_MATCH_VARIANTS


class TestPassPercentage:
    """Tests for the pass percentage formulas."""

    def test_flakes_as_success(self):
        """Flakes count as passes by default."""
        assert pass_percentage(8, 1, 1, flake_as_failure=False) == pytest.approx(0.9)

    def test_flakes_as_failure(self):
        """Flakes count against the test in strict mode."""
        assert pass_percentage(8, 1, 1, flake_as_failure=True) == pytest.approx(0.8)

    def test_zero_runs_rejected(self):
        """No runs means no percentage."""
        with pytest.raises(PassPercentageError):
            pass_percentage(0, 0, 0, flake_as_failure=False)

    def test_regression_percentages(self, make_regression):
        """IntentionalRegression exposes both percentages."""
        regression = make_regression(
            previous_successes=8, previous_flakes=1, previous_failures=1
        )
        assert regression.previous_pass_percentage() == pytest.approx(0.9)
        assert regression.previous_pass_percentage(flake_as_failure=True) == pytest.approx(0.8)
        assert regression.regressed_pass_percentage() == pytest.approx(0.8)


class TestAdmission:
    """Tests for admission invariants."""

    def test_valid_regression(self, make_regression):
        """A complete regression passes validation."""
        validate_intentional_regression(make_regression())

    @pytest.mark.parametrize("field", ["component", "test_id", "test_name"])
    def test_missing_identity(self, make_regression, field):
        """Identifying fields are required."""
        with pytest.raises(MissingFieldError) as exc_info:
            validate_intentional_regression(make_regression(**{field: ""}))
        assert exc_info.value.field == field

    def test_zero_previous_successes(self, make_regression):
        """A regression needs a healthy baseline."""
        with pytest.raises(NoBaselineError):
            validate_intentional_regression(make_regression(previous_successes=0))

    def test_zero_regressed_failures(self, make_regression):
        """A regression needs current failures."""
        with pytest.raises(NoRegressedFailuresError):
            validate_intentional_regression(make_regression(regressed_failures=0))

    def test_not_a_regression(self, make_regression):
        """Previous 50% vs regressed 80% is an improvement."""
        regression = make_regression(
            previous_successes=50,
            previous_failures=50,
            regressed_successes=80,
            regressed_failures=20,
        )
        with pytest.raises(NotARegressionError):
            validate_intentional_regression(regression)

    def test_equal_percentages_rejected(self, make_regression):
        """The inequality is strict."""
        regression = make_regression(
            previous_successes=8,
            previous_failures=2,
            regressed_successes=80,
            regressed_failures=20,
        )
        with pytest.raises(NotARegressionError):
            validate_intentional_regression(regression)

    def test_flakes_count_as_passes_for_admission(self, make_regression):
        """Admission compares percentages with flakes counted as passes."""
        # strict mode would call this a regression (0.9 -> 0.5), lenient does not
        regression = make_regression(
            previous_successes=9,
            previous_failures=1,
            previous_flakes=0,
            regressed_successes=5,
            regressed_flakes=4,
            regressed_failures=1,
        )
        with pytest.raises(NotARegressionError):
            validate_intentional_regression(regression)

    def test_empty_justification(self, make_regression):
        """A reason to accept the regression is required."""
        with pytest.raises(MissingJustificationError):
            validate_intentional_regression(make_regression(justification=""))

    @pytest.mark.parametrize("link", ["", "not a url", "issues.example.com/OCPBUGS-1"])
    def test_malformed_tracking_link(self, make_regression, link):
        """The tracking link must be a well-formed URI."""
        with pytest.raises(InvalidTrackingLinkError):
            validate_intentional_regression(make_regression(tracking_link=link))

    @pytest.mark.parametrize("dimension", sorted(TRIAGE_MATCH_VARIANTS))
    def test_missing_dimension(self, make_regression, full_variants, dimension):
        """Every canonical dimension must be present."""
        del full_variants[dimension]
        with pytest.raises(MissingDimensionError) as exc_info:
            validate_intentional_regression(make_regression(variant=full_variants))
        assert exc_info.value.dimension == dimension

    def test_empty_dimension(self, make_regression, full_variants):
        """A present but empty dimension is rejected too."""
        full_variants["Platform"] = ""
        with pytest.raises(MissingDimensionError):
            validate_intentional_regression(make_regression(variant=full_variants))

    def test_first_failure_wins(self, make_regression):
        """Checks run in order; the earliest violation is reported."""
        regression = make_regression(
            component="", previous_successes=0, justification="", tracking_link="x"
        )
        with pytest.raises(MissingFieldError):
            validate_intentional_regression(regression)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"regressed_successes": 0, "regressed_failures": 1, "regressed_flakes": -1},
            {"previous_failures": -50},
        ],
        ids=["zero-total", "inflated-baseline"],
    )
    def test_negative_counts_rejected(self, make_regression, overrides):
        """Counts are never negative, so pass ratios stay within [0, 1]."""
        with pytest.raises(ValidationError, match="greater than or equal to 0"):
            _ = make_regression(**overrides)

    def test_negative_counts_fail_load(self, temp_dir):
        """A negative count in a registry file fails validation on load."""
        path = temp_dir / "regressions.yaml"
        _ = path.write_text(
            """
releases:
  "4.16":
    - component: Networking
      test_id: t1
      test_name: t1
      previous_successes: 95
      previous_failures: -50
      regressed_successes: 80
      regressed_failures: 20
"""
        )
        with pytest.raises(ValidationError):
            _ = load_intentional_regressions(path)

    def test_errors_are_distinct(self):
        """Each invariant has its own error type."""
        types = {
            MissingFieldError,
            NoBaselineError,
            NoRegressedFailuresError,
            NotARegressionError,
            MissingJustificationError,
            InvalidTrackingLinkError,
            MissingDimensionError,
            DuplicateRegressionError,
        }
        assert len(types) == 8
        assert all(issubclass(t, AdmissionError) for t in types)


class TestRegistry:
    """Tests for admission, lookup, and freezing."""

    def test_admit_and_lookup(self, make_regression, full_variants):
        """An admitted regression is found by its test and variants."""
        registry = IntentionalRegressionRegistry()
        regression = make_regression()
        registry.admit("4.16", regression)

        found = registry.lookup("4.16", full_variants, regression.test_id)
        assert found is regression

    def test_lookup_miss(self, make_regression, full_variants):
        """Misses are None, not errors."""
        registry = IntentionalRegressionRegistry.build({"4.16": [make_regression()]})
        assert registry.lookup("4.15", full_variants, "openshift-tests:abc123") is None
        assert registry.lookup("4.16", full_variants, "other") is None
        other = dict(full_variants, Platform="gcp")
        assert registry.lookup("4.16", other, "openshift-tests:abc123") is None

    def test_lookup_uses_canonical_key(self, make_regression, full_variants):
        """Lookups with legacy naming find entries stored with new naming."""
        stored = dict(full_variants, Platform="metal", Upgrade="minor")
        registry = IntentionalRegressionRegistry.build(
            {"4.16": [make_regression(variant=stored)]}
        )
        legacy = dict(full_variants, Platform="metal-ipi", Upgrade="upgrade-minor")
        legacy["Owner"] = "ignored"
        assert registry.lookup("4.16", legacy, "openshift-tests:abc123") is not None

    def test_duplicate_rejected(self, make_regression):
        """The same release and key cannot be admitted twice."""
        registry = IntentionalRegressionRegistry()
        registry.admit("4.16", make_regression())
        with pytest.raises(DuplicateRegressionError):
            registry.admit("4.16", make_regression(justification="different reason"))

    def test_duplicate_by_canonical_key(self, make_regression, full_variants):
        """Entries differing only in legacy naming are duplicates."""
        registry = IntentionalRegressionRegistry()
        registry.admit("4.16", make_regression(variant=dict(full_variants, Platform="metal")))
        with pytest.raises(DuplicateRegressionError):
            registry.admit(
                "4.16", make_regression(variant=dict(full_variants, Platform="metal-ipi"))
            )

    def test_same_key_other_release(self, make_regression):
        """Keys are scoped per release."""
        registry = IntentionalRegressionRegistry()
        registry.admit("4.15", make_regression())
        registry.admit("4.16", make_regression())
        assert len(registry) == 2
        assert registry.releases() == ["4.15", "4.16"]

    def test_invalid_not_stored(self, make_regression, full_variants):
        """A rejected entry leaves the registry unchanged."""
        registry = IntentionalRegressionRegistry()
        with pytest.raises(NoBaselineError):
            registry.admit("4.16", make_regression(previous_successes=0))
        assert len(registry) == 0
        assert registry.lookup("4.16", full_variants, "openshift-tests:abc123") is None

    def test_build_reports_entry(self, make_regression):
        """build wraps the first rejection with its release and position."""
        with pytest.raises(RegistryBuildError) as exc_info:
            IntentionalRegressionRegistry.build(
                {"4.16": [make_regression(), make_regression(regressed_failures=0)]}
            )
        assert exc_info.value.release == "4.16"
        assert exc_info.value.index == 1
        assert isinstance(exc_info.value.cause, NoRegressedFailuresError)

    def test_frozen_after_build(self, make_regression):
        """The registry cannot change once built."""
        registry = IntentionalRegressionRegistry.build({})
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.admit("4.16", make_regression())


class TestLoading:
    """Tests for loading registries from YAML."""

    def test_load(self, temp_dir, full_variants):
        """A YAML file with a releases mapping loads."""
        path = temp_dir / "regressions.yaml"
        variant_lines = "\n".join(f"          {k}: {v}" for k, v in full_variants.items())
        _ = path.write_text(
            f"""
releases:
  "4.16":
    - component: Networking
      test_id: openshift-tests:abc123
      test_name: pods should reach services
      variant:
{variant_lines}
      previous_successes: 95
      previous_failures: 5
      regressed_successes: 80
      regressed_failures: 20
      tracking_link: https://issues.example.com/browse/OCPBUGS-1
      justification: accepted
"""
        )
        registry = load_intentional_regressions(path)
        assert len(registry) == 1
        assert registry.lookup("4.16", full_variants, "openshift-tests:abc123")

    def test_load_invalid_entry(self, temp_dir):
        """An invalid entry fails the whole load."""
        path = temp_dir / "regressions.yaml"
        _ = path.write_text(
            """
releases:
  "4.16":
    - component: Networking
      test_id: t1
      test_name: t1
"""
        )
        with pytest.raises(RegistryBuildError):
            _ = load_intentional_regressions(path)

    def test_parse_without_releases_key(self, make_regression):
        """A bare release mapping is accepted."""
        entry = make_regression().model_dump()
        parsed = parse_intentional_regressions({"4.16": [entry]})
        assert list(parsed) == ["4.16"]
        assert parsed["4.16"][0].test_id == entry["test_id"]

    def test_parse_empty(self):
        assert parse_intentional_regressions(None) == {}

    def test_parse_rejects_non_list(self):
        with pytest.raises(ValueError, match="must list"):
            _ = parse_intentional_regressions({"releases": {"4.16": "oops"}})
