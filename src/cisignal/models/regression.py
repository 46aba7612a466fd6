# Copyright (c) Syntropy Systems
"""Pydantic model for reviewed, intentionally accepted regressions."""

from __future__ import annotations

from pydantic import Field

from .base import SignalBaseModel, VariantSet
from .counts import pass_percentage


class IntentionalRegression(SignalBaseModel):
    """A real drop in pass rate that was reviewed and accepted."""

    component: str = ""
    test_id: str = ""
    test_name: str = ""
    variant: VariantSet = Field(default_factory=dict)
    previous_successes: int = Field(default=0, ge=0)
    previous_failures: int = Field(default=0, ge=0)
    previous_flakes: int = Field(default=0, ge=0)
    regressed_successes: int = Field(default=0, ge=0)
    regressed_failures: int = Field(default=0, ge=0)
    regressed_flakes: int = Field(default=0, ge=0)
    tracking_link: str = ""
    justification: str = ""

    def previous_pass_percentage(self, flake_as_failure: bool = False) -> float:
        return pass_percentage(
            self.previous_successes,
            self.previous_flakes,
            self.previous_failures,
            flake_as_failure=flake_as_failure,
        )

    def regressed_pass_percentage(self, flake_as_failure: bool = False) -> float:
        return pass_percentage(
            self.regressed_successes,
            self.regressed_flakes,
            self.regressed_failures,
            flake_as_failure=flake_as_failure,
        )
