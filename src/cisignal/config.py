# Copyright (c) Syntropy Systems
"""Configuration management for cisignal."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import yaml

CONFIG_FILE_NAME = "cisignal.yaml"


@dataclass
class ReportConfig:
    """Thresholds and knobs for report generation."""

    # Runs a test/job pair needs before it appears in filtered views
    min_runs: int = 10

    # Pass ratio at or above which a test is too healthy to be interesting
    success_threshold: float = 0.9999

    # Failed tests per job run needed to report the run as a cluster (-1 disables)
    failure_cluster_threshold: int = 10

    # Count flakes as failures in pass percentages
    flake_as_failure: bool = False

    # Days of data collected; jobs with fewer runs are "infrequent"
    num_days: int = 7

    # Length of the top failing test lists
    top_n: int = 50

    # Variant tag marking promotion jobs
    promotion_variant: str = "promote"

    # Variant tag marking jobs excluded from top-level indicators
    never_stable_variant: str = "never-stable"

    # A promotion job must have run within this many hours
    promotion_freshness_hours: float = 12.0

    # variant tag -> job name regular expressions
    variant_patterns: dict[str, list[str]] = field(default_factory=dict)

    # Name substrings of tests always shown in the report
    curated_tests: list[str] = field(default_factory=list)


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find the nearest cisignal.yaml by walking up from start_path.

    Returns None if no config file is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        candidate = current / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
        current = current.parent

    # Check root
    candidate = current / CONFIG_FILE_NAME
    if candidate.is_file():
        return candidate

    return None


def get_global_config_dir() -> Path:
    """Get the global cisignal config directory (~/.cisignal)."""
    return Path.home() / ".cisignal"


def _int_value(data: dict[str, object], key: str, default: int) -> int:
    value = data.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    return default


def _float_value(data: dict[str, object], key: str, default: float) -> float:
    value = data.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


def _str_value(data: dict[str, object], key: str, default: str) -> str:
    value = data.get(key)
    if isinstance(value, str) and value:
        return value
    return default


def _patterns_value(data: dict[str, object]) -> dict[str, list[str]]:
    value = data.get("variant_patterns")
    if not isinstance(value, dict):
        return {}
    patterns: dict[str, list[str]] = {}
    for tag, exprs in cast("dict[object, object]", value).items():
        if isinstance(exprs, str):
            patterns[str(tag)] = [exprs]
        elif isinstance(exprs, list):
            patterns[str(tag)] = [str(e) for e in cast("list[object]", exprs)]
    return patterns


def _str_list_value(data: dict[str, object], key: str) -> list[str]:
    value = data.get(key)
    if isinstance(value, str) and value:
        return [value]
    if isinstance(value, list):
        return [str(v) for v in cast("list[object]", value) if v]
    return []


def config_from_dict(data: dict[str, object]) -> ReportConfig:
    """Build a config from a parsed mapping, ignoring malformed values."""
    config = ReportConfig()
    config.min_runs = _int_value(data, "min_runs", config.min_runs)
    config.success_threshold = _float_value(
        data, "success_threshold", config.success_threshold
    )
    config.failure_cluster_threshold = _int_value(
        data, "failure_cluster_threshold", config.failure_cluster_threshold
    )
    flake_as_failure = data.get("flake_as_failure")
    if isinstance(flake_as_failure, bool):
        config.flake_as_failure = flake_as_failure
    config.num_days = _int_value(data, "num_days", config.num_days)
    config.top_n = _int_value(data, "top_n", config.top_n)
    config.promotion_variant = _str_value(
        data, "promotion_variant", config.promotion_variant
    )
    config.never_stable_variant = _str_value(
        data, "never_stable_variant", config.never_stable_variant
    )
    config.promotion_freshness_hours = _float_value(
        data, "promotion_freshness_hours", config.promotion_freshness_hours
    )
    config.variant_patterns = _patterns_value(data)
    config.curated_tests = _str_list_value(data, "curated_tests")
    return config


def load_config(config_path: Path | None = None) -> ReportConfig:
    """Load configuration from cisignal.yaml or defaults.

    Looks for config in:
    1. Provided config_path
    2. Nearest cisignal.yaml walking up
    3. ~/.cisignal/config.yaml
    4. Defaults
    """
    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        global_config = get_global_config_dir() / "config.yaml"
        if global_config.exists():
            config_path = global_config

    if config_path is None or not config_path.exists():
        return ReportConfig()

    with config_path.open() as f:
        data = cast("dict[str, object]", yaml.safe_load(f) or {})
    return config_from_dict(data)
