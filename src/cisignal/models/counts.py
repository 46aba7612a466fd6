# Copyright (c) Syntropy Systems
"""Success/failure/flake counters and the pass percentage formulas."""

from __future__ import annotations

from pydantic import Field

from cisignal.errors import PassPercentageError

from .base import SignalBaseModel


def pass_percentage(
    successes: int, flakes: int, failures: int, *, flake_as_failure: bool
) -> float:
    """Return the pass ratio in [0, 1].

    With ``flake_as_failure`` a flake counts against the test, otherwise it
    counts as a pass. Raises PassPercentageError when there are no runs.
    """
    total = successes + flakes + failures
    if total <= 0:
        msg = (
            "cannot compute pass percentage with no runs "
            f"(successes={successes}, flakes={flakes}, failures={failures})"
        )
        raise PassPercentageError(msg)
    if flake_as_failure:
        return successes / total
    return (successes + flakes) / total


class Counts(SignalBaseModel):
    """Accumulated outcome counts."""

    successes: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)
    flakes: int = Field(default=0, ge=0)

    @property
    def runs(self) -> int:
        return self.successes + self.failures + self.flakes

    def pass_percentage(self, flake_as_failure: bool = False) -> float:
        return pass_percentage(
            self.successes,
            self.flakes,
            self.failures,
            flake_as_failure=flake_as_failure,
        )

    def add(self, other: Counts) -> None:
        """Fold another set of counts into this one."""
        self.successes += other.successes
        self.failures += other.failures
        self.flakes += other.flakes
