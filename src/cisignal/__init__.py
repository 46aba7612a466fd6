"""
cisignal - CI health signals.

Canonical triage keys, intentional regression registry, and test result
aggregation for CI job runs.
"""

from cisignal.regressions import IntentionalRegressionRegistry
from cisignal.report import aggregate
from cisignal.triage import TriageRegistry
from cisignal.variants import canonicalize

__version__ = "0.1.0"
__all__ = [
    "IntentionalRegressionRegistry",
    "TriageRegistry",
    "__version__",
    "aggregate",
    "canonicalize",
]
