# Copyright (c) Syntropy Systems
"""Health checks for promotion jobs."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from cisignal.models.report import JobResult


class PromotionWarningKind(str, Enum):
    """Which promotion check fired."""

    STALE = "stale"
    NEVER_SUCCEEDED = "never_succeeded"
    LATEST_FAILED = "latest_failed"


@dataclass(frozen=True)
class PromotionWarning:
    """A failed promotion health check."""

    kind: PromotionWarningKind
    job_name: str
    url: str
    message: str

    def __str__(self) -> str:
        return self.message


def check_promotion_job(
    job: JobResult, now: datetime, freshness: timedelta
) -> list[PromotionWarning]:
    """Run the three independent promotion checks for one job."""
    if not job.all_runs:
        return []

    warnings: list[PromotionWarning] = []
    most_recent = max(job.all_runs, key=lambda r: r.timestamp)

    if most_recent.timestamp < now - freshness:
        hours = freshness.total_seconds() / 3600
        warnings.append(
            PromotionWarning(
                kind=PromotionWarningKind.STALE,
                job_name=job.name,
                url=most_recent.url,
                message=(
                    f"The last run of {job.name} ({most_recent.url}) "
                    f"was more than {hours:g} hours ago."
                ),
            )
        )

    if not any(run.succeeded for run in job.all_runs):
        warnings.append(
            PromotionWarning(
                kind=PromotionWarningKind.NEVER_SUCCEEDED,
                job_name=job.name,
                url=most_recent.url,
                message=f"No successful run of {job.name} found.",
            )
        )

    if not most_recent.succeeded:
        warnings.append(
            PromotionWarning(
                kind=PromotionWarningKind.LATEST_FAILED,
                job_name=job.name,
                url=most_recent.url,
                message=(
                    f"The most recent promotion for {job.name} "
                    f"({most_recent.url}) failed."
                ),
            )
        )

    return warnings


def generate_promotion_warnings(
    job_results: Iterable[JobResult],
    promotion_variant: str,
    now: datetime,
    freshness: timedelta = timedelta(hours=12),
) -> list[PromotionWarning]:
    """Check every job tagged with ``promotion_variant``."""
    warnings: list[PromotionWarning] = []
    for job in job_results:
        if promotion_variant in job.variant_tags:
            warnings.extend(check_promotion_job(job, now, freshness))
    return warnings
