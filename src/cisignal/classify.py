# Copyright (c) Syntropy Systems
"""Variant classification of jobs by name."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Protocol


class VariantClassifier(Protocol):
    """Assigns variant tags (``aws``, ``promote``, ...) to a job."""

    def identify_variants(self, job_name: str, release: str) -> list[str]: ...


class PatternClassifier:
    """Tag jobs whose name matches any of a tag's regular expressions."""

    def __init__(self, patterns: Mapping[str, Sequence[str]] | None = None) -> None:
        self._patterns: dict[str, list[re.Pattern[str]]] = {
            tag: [re.compile(expr) for expr in exprs]
            for tag, exprs in (patterns or {}).items()
        }

    def identify_variants(self, job_name: str, release: str) -> list[str]:
        _ = release
        return sorted(
            tag
            for tag, regexes in self._patterns.items()
            if any(r.search(job_name) for r in regexes)
        )


class StaticClassifier:
    """Fixed job name -> tags mapping, mostly for tests and replayed data."""

    def __init__(self, tags: Mapping[str, Sequence[str]]) -> None:
        self._tags = {job: sorted(set(t)) for job, t in tags.items()}

    def identify_variants(self, job_name: str, release: str) -> list[str]:
        _ = release
        return list(self._tags.get(job_name, []))
