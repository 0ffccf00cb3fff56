"""
Snapshots: immutable point-in-time views of both feeds shared with readers.

This is a pure data module with no network or scheduling dependencies.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

from .models import Build, BuildStatus, FeedKind, Job


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclasses.dataclass(frozen=True)
class JobsSnapshot:
    """
    Aggregated job list produced by one jobs-feed poll.

    Built by aggregator.aggregate(); never mutate in place.
    """

    jobs: tuple[Job, ...] = ()

    # Most severe status across tracked jobs (UNKNOWN when there is no data)
    overall_status: BuildStatus = BuildStatus.UNKNOWN

    # Per-status counters over the tracked jobs, for status-bar style summaries
    broken: int = 0
    unstable: int = 0
    aborted: int = 0
    succeeded: int = 0
    building: int = 0
    total: int = 0

    # Poll sequence number that produced this snapshot (0 = none yet)
    sequence: int = 0
    created_at: datetime = dataclasses.field(default_factory=_utcnow)

    kind = FeedKind.JOBS

    def get_job(self, name: str) -> Job | None:
        for job in self.jobs:
            if job.name == name:
                return job
        return None

    @property
    def job_names(self) -> list[str]:
        return [job.name for job in self.jobs]


@dataclasses.dataclass(frozen=True)
class BuildsSnapshot:
    """Recent builds produced by one builds-feed poll, newest first."""

    builds: tuple[Build, ...] = ()
    sequence: int = 0
    created_at: datetime = dataclasses.field(default_factory=_utcnow)

    kind = FeedKind.BUILDS

    def get_build(self, job_name: str, number: int) -> Build | None:
        for build in self.builds:
            if build.key == (job_name, number):
                return build
        return None


@dataclasses.dataclass(frozen=True)
class CoordinatorData:
    """
    Typed, copy-on-write pair of the current snapshot of each feed.

    Always replace via dataclasses.replace(), never mutate in place.
    """

    jobs: JobsSnapshot = dataclasses.field(default_factory=JobsSnapshot)
    builds: BuildsSnapshot = dataclasses.field(default_factory=BuildsSnapshot)
