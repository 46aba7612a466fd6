# Copyright (c) Syntropy Systems
"""Pydantic models for parsed test-suite documents."""

from __future__ import annotations

from pydantic import Field

from .base import SignalBaseModel


class TestCase(SignalBaseModel):
    """One test case as reported by a suite document."""

    __test__ = False

    name: str
    duration: float = 0.0
    failure_output: str | None = None
    skip_message: str | None = None


class TestSuite(SignalBaseModel):
    """A (possibly nested) suite of test cases."""

    __test__ = False

    name: str = ""
    test_cases: list[TestCase] = Field(default_factory=list)
    children: list[TestSuite] = Field(default_factory=list)
