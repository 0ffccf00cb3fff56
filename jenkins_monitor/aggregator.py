"""
Reduce per-job statuses into a single health summary.

Pure functions: the same ordered input always yields the same snapshot
(apart from its creation timestamp).
"""
from __future__ import annotations

from typing import Iterable

from .coordinator_data import BuildsSnapshot, JobsSnapshot
from .models import Build, BuildStatus, Job

# BuildStatus → JobsSnapshot counter field
_COUNTERS: dict[BuildStatus, str] = {
    BuildStatus.FAILURE: "broken",
    BuildStatus.UNSTABLE: "unstable",
    BuildStatus.ABORTED: "aborted",
    BuildStatus.SUCCESS: "succeeded",
    BuildStatus.BUILDING: "building",
}


def tracked_jobs(jobs: Iterable[Job]) -> list[Job]:
    """Favorites when there are any, every job otherwise."""
    jobs = list(jobs)
    favorites = [job for job in jobs if job.favorite]
    return favorites or jobs


def worst_status(statuses: Iterable[BuildStatus]) -> BuildStatus:
    """Most severe status, or UNKNOWN for an empty input."""
    return max(statuses, key=lambda status: status.severity, default=BuildStatus.UNKNOWN)


def aggregate(jobs: Iterable[Job], sequence: int = 0) -> JobsSnapshot:
    """Build a JobsSnapshot from the job list of one poll."""
    jobs = tuple(jobs)
    tracked = tracked_jobs(jobs)

    counters = dict.fromkeys(_COUNTERS.values(), 0)
    for job in tracked:
        field = _COUNTERS.get(job.status)
        if field is not None:
            counters[field] += 1

    return JobsSnapshot(
        jobs=jobs,
        overall_status=worst_status(job.status for job in tracked),
        total=len(tracked),
        sequence=sequence,
        **counters,
    )


def aggregate_builds(builds: Iterable[Build], sequence: int = 0) -> BuildsSnapshot:
    return BuildsSnapshot(builds=tuple(builds), sequence=sequence)
