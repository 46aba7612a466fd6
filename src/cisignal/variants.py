# Copyright (c) Syntropy Systems
"""Canonicalization of variant metadata into stable triage keys.

Variant names have changed over time. Older records carry a free-form
``Variant`` dimension and legacy values such as ``metal-ipi`` or
``upgrade-minor``; newer records use explicit dimensions. Everything here maps
both schemes onto one canonical form so a triage record written against either
matches results reported under either.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from cisignal.models.base import VariantSet
from cisignal.models.triage import CanonicalTriageKey

VARIANT_ARCHITECTURE: Final = "Architecture"
VARIANT_FEATURE_SET: Final = "FeatureSet"
VARIANT_INSTALLER: Final = "Installer"
VARIANT_NETWORK: Final = "Network"
VARIANT_NETWORK_ACCESS: Final = "NetworkAccess"
VARIANT_PLATFORM: Final = "Platform"
VARIANT_SCHEDULER: Final = "Scheduler"
VARIANT_SECURITY_MODE: Final = "SecurityMode"
VARIANT_SUITE: Final = "Suite"
VARIANT_TOPOLOGY: Final = "Topology"
VARIANT_UPGRADE: Final = "Upgrade"

# Legacy catch-all dimension; only its value is interpreted.
LEGACY_VARIANT: Final = "Variant"

TRIAGE_MATCH_VARIANTS: Final[frozenset[str]] = frozenset(
    {
        VARIANT_ARCHITECTURE,
        VARIANT_FEATURE_SET,
        VARIANT_INSTALLER,
        VARIANT_NETWORK,
        VARIANT_NETWORK_ACCESS,
        VARIANT_PLATFORM,
        VARIANT_SCHEDULER,
        VARIANT_SECURITY_MODE,
        VARIANT_SUITE,
        VARIANT_TOPOLOGY,
        VARIANT_UPGRADE,
    }
)

DEFAULT_VARIANTS: Final[Mapping[str, str]] = MappingProxyType(
    {
        VARIANT_SUITE: "unknown",
        VARIANT_TOPOLOGY: "ha",
        VARIANT_FEATURE_SET: "default",
        VARIANT_INSTALLER: "ipi",
    }
)

# token -> (dimension, value); None marks a recognised token with no mapping.
# "standard" was only ever the placeholder for "nothing special".
LEGACY_VARIANT_TOKENS: Final[Mapping[str, tuple[str, str] | None]] = MappingProxyType(
    {
        "proxy": (VARIANT_NETWORK_ACCESS, "proxy"),
        "fips": (VARIANT_SECURITY_MODE, "fips"),
        "rt": (VARIANT_SCHEDULER, "realtime"),
        "serial": (VARIANT_SUITE, "serial"),
        "standard": None,
    }
)

VALUE_REMAPS: Final[Mapping[str, Mapping[str, str]]] = MappingProxyType(
    {
        VARIANT_UPGRADE: MappingProxyType(
            {
                "upgrade-minor": "minor",
                "upgrade-micro": "micro",
                "no-upgrade": "none",
            }
        ),
        VARIANT_PLATFORM: MappingProxyType({"metal-ipi": "metal"}),
    }
)


def transform_variant(variants: Mapping[str, str]) -> VariantSet:
    """Return only the dimensions used for triage matching, unmodified."""
    return {k: v for k, v in variants.items() if k in TRIAGE_MATCH_VARIANTS}


def legacy_dimension(token: str) -> tuple[str, str] | None:
    """Translate a legacy ``Variant`` token to an allowed (dimension, value).

    Returns None for ignored, unknown, or disallowed tokens.
    """
    mapped = LEGACY_VARIANT_TOKENS.get(token)
    if mapped is None or mapped[0] not in TRIAGE_MATCH_VARIANTS:
        return None
    return mapped


def canonical_variants(variants: Mapping[str, str]) -> VariantSet:
    """Normalize a variant set onto the canonical dimensions.

    Explicit dimensions take precedence over values derived from the legacy
    token, and empty values never replace a default.
    """
    result: VariantSet = dict(DEFAULT_VARIANTS)

    legacy_token = variants.get(LEGACY_VARIANT)
    if legacy_token:
        mapped = legacy_dimension(legacy_token)
        if mapped is not None:
            dimension, value = mapped
            result[dimension] = value

    for dimension, value in variants.items():
        if dimension not in TRIAGE_MATCH_VARIANTS or not value:
            continue
        result[dimension] = VALUE_REMAPS.get(dimension, {}).get(value, value)

    return result


def serialize_variants(variants: Mapping[str, str]) -> str:
    """Serialize dimensions as sorted ``Dimension_value`` pairs."""
    return ",".join(f"{k}_{variants[k]}" for k in sorted(variants))


def canonicalize(test_id: str, variants: Mapping[str, str]) -> CanonicalTriageKey:
    """Build the triage lookup key for a test run under ``variants``."""
    return CanonicalTriageKey(
        test_id=test_id,
        variants=serialize_variants(canonical_variants(variants)),
    )


def parse_variant_args(pairs: list[str]) -> VariantSet:
    """Parse ``Dimension=value`` strings into a variant set."""
    result: VariantSet = {}
    for pair in pairs:
        if "=" not in pair:
            msg = f"Invalid variant {pair!r}, expected Dimension=value"
            raise ValueError(msg)
        key, value = pair.split("=", 1)
        result[key.strip()] = value.strip()
    return result
