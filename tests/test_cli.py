"""Tests for cisignal CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from cisignal.cli.main import app
from conftest import FULL_VARIANTS

runner = CliRunner()

FULL_VARIANT_ARGS = [f"{k}={v}" for k, v in FULL_VARIANTS.items()]

REGRESSIONS_YAML = """
releases:
  "4.16":
    - component: Networking
      test_id: openshift-tests:abc123
      test_name: pods should reach services
      variant:
{variants}
      previous_successes: 95
      previous_failures: 5
      regressed_successes: 80
      regressed_failures: 20
      tracking_link: https://issues.example.com/browse/OCPBUGS-1
      justification: accepted for the kernel change
"""

TRIAGE_YAML = """
incidents:
  - release: "4.16"
    variants:
      Platform: metal
      Suite: unknown
    incident:
      test_id: t1
      issue_type: Infrastructure
      url: https://bugs/42
      description: DHCP timeouts
"""


def _write_regressions(path):
    variants = "\n".join(f"        {k}: {v}" for k, v in FULL_VARIANTS.items())
    _ = path.write_text(REGRESSIONS_YAML.format(variants=variants))
    return path


def _run(job: str, hours: int, result: str, tests: dict[str, str]) -> dict[str, object]:
    return {
        "timestamp": f"2024-03-01T{12 - hours:02d}:00:00Z",
        "url": f"https://ci.example.com/{job}/{hours}",
        "overall_result": result,
        "tests": [{"name": name, "status": status} for name, status in tests.items()],
    }


@pytest.fixture
def project(in_temp_dir, monkeypatch):
    """A directory with job results, triage and a config file."""
    monkeypatch.setenv("HOME", str(in_temp_dir))
    jobs = [
        {
            "name": "e2e-metal",
            "release": "4.16",
            "variants": {"Platform": "metal-ipi", "Suite": ""},
            "runs": [
                _run("e2e-metal", h, "F", {"t1": "failure", "t2": "failure"})
                for h in (1, 2, 3)
            ],
        },
        {
            "name": "promote-aws",
            "release": "4.16",
            "variants": {"Platform": "aws"},
            "runs": [_run("promote-aws", 1, "I", {}), _run("promote-aws", 2, "S", {})],
        },
    ]
    _ = (in_temp_dir / "results.json").write_text(json.dumps(jobs))
    _ = (in_temp_dir / "triage.yaml").write_text(TRIAGE_YAML)
    _ = (in_temp_dir / "cisignal.yaml").write_text(
        "min_runs: 3\n"
        "success_threshold: 0.99\n"
        "variant_patterns:\n"
        "  promote: ['^promote-']\n"
        "  metal: ['-metal']\n"
    )
    return in_temp_dir


class TestCanonicalizeCommand:
    """Tests for cisignal canonicalize."""

    def test_canonicalize(self):
        result = runner.invoke(app, ["canonicalize", "t1", "Platform=metal-ipi", "Variant=fips"])

        assert result.exit_code == 0
        assert "test_id:  t1" in result.stdout
        assert "Platform_metal" in result.stdout
        assert "SecurityMode_fips" in result.stdout
        assert "Variant" not in result.stdout

    def test_canonicalize_defaults(self):
        result = runner.invoke(app, ["canonicalize", "t1"])

        assert result.exit_code == 0
        assert "FeatureSet_default,Installer_ipi,Suite_unknown,Topology_ha" in result.stdout

    def test_canonicalize_bad_argument(self):
        result = runner.invoke(app, ["canonicalize", "t1", "Platform"])

        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestRegressionsCommands:
    """Tests for cisignal regressions."""

    def test_check_ok(self, temp_dir):
        path = _write_regressions(temp_dir / "regressions.yaml")

        result = runner.invoke(app, ["regressions", "check", str(path)])

        assert result.exit_code == 0
        assert "OK" in result.stdout
        assert "1 intentional regressions across 1 releases" in result.stdout

    def test_check_verbose(self, temp_dir):
        path = _write_regressions(temp_dir / "regressions.yaml")

        result = runner.invoke(app, ["regressions", "check", str(path), "--verbose"])

        assert result.exit_code == 0
        assert "Networking" in result.stdout
        assert "95.00%" in result.stdout

    def test_check_invalid(self, temp_dir):
        path = temp_dir / "regressions.yaml"
        _ = path.write_text(
            REGRESSIONS_YAML.format(variants="        Platform: aws")
        )

        result = runner.invoke(app, ["regressions", "check", str(path)])

        assert result.exit_code == 1
        assert "Invalid entry" in result.stdout

    def test_check_missing_file(self, temp_dir):
        result = runner.invoke(app, ["regressions", "check", str(temp_dir / "nope.yaml")])

        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_lookup_hit(self, temp_dir):
        path = _write_regressions(temp_dir / "regressions.yaml")

        result = runner.invoke(
            app,
            ["regressions", "lookup", str(path), "openshift-tests:abc123",
             *FULL_VARIANT_ARGS, "--release", "4.16"],
        )

        assert result.exit_code == 0
        assert "pods should reach services" in result.stdout
        assert "80.00%" in result.stdout

    def test_lookup_miss(self, temp_dir):
        path = _write_regressions(temp_dir / "regressions.yaml")

        result = runner.invoke(
            app,
            ["regressions", "lookup", str(path), "openshift-tests:abc123",
             *FULL_VARIANT_ARGS, "--release", "4.15"],
        )

        assert result.exit_code == 1
        assert "No intentional regression" in result.stdout


class TestTriageCommand:
    """Tests for cisignal triage lookup."""

    def test_lookup_legacy_variants(self, project):
        result = runner.invoke(
            app,
            ["triage", "lookup", "triage.yaml", "t1", "Platform=metal-ipi", "-r", "4.16"],
        )

        assert result.exit_code == 0
        assert "https://bugs/42" in result.stdout
        assert "Infrastructure" in result.stdout

    def test_lookup_miss(self, project):
        result = runner.invoke(
            app, ["triage", "lookup", "triage.yaml", "t2", "Platform=metal", "-r", "4.16"]
        )

        assert result.exit_code == 1
        assert "No triaged incidents" in result.stdout


class TestReportCommand:
    """Tests for cisignal report."""

    def test_report(self, project):
        result = runner.invoke(
            app,
            ["report", "results.json", "-r", "4.16", "--triage", "triage.yaml",
             "--now", "2024-03-01T12:00:00"],
        )

        assert result.exit_code == 0
        assert "Release 4.16" in result.stdout
        assert "Untriaged regressions" in result.stdout
        assert "Warnings:" in result.stdout
        assert "promote-aws" in result.stdout

    def test_report_output(self, project):
        result = runner.invoke(
            app,
            ["report", "results.json", "-r", "4.16", "--triage", "triage.yaml",
             "--now", "2024-03-01T12:00:00", "--output", "report.json"],
        )

        assert result.exit_code == 0
        assert "Report written to" in result.stdout
        data = json.loads((project / "report.json").read_text())
        assert data["release"] == "4.16"
        assert [t["test_id"] for t in data["triaged_failures"]] == ["t1"]
        assert [s["test_id"] for s in data["untriaged_regressions"]] == ["t2"]
        assert [v["variant_name"] for v in data["by_variant"]] == ["metal", "promote"]
        assert len(data["analysis_warnings"]) == 1

    def test_report_invalid_regressions(self, project):
        path = project / "regressions.yaml"
        _ = path.write_text(REGRESSIONS_YAML.format(variants="        Platform: aws"))

        result = runner.invoke(
            app, ["report", "results.json", "-r", "4.16", "--regressions", str(path)]
        )

        assert result.exit_code == 1
        assert "Invalid intentional regressions" in result.stdout

    def test_report_missing_results(self, project):
        result = runner.invoke(app, ["report", "missing.json", "-r", "4.16"])

        assert result.exit_code == 1
        assert "Error" in result.stdout
