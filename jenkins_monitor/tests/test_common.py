"""
Shared helpers and factory functions for Jenkins monitor tests.
Import from this module in each test file to avoid duplication.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from jenkins_monitor.aggregator import aggregate, aggregate_builds
from jenkins_monitor.coordinator import JenkinsCoordinator
from jenkins_monitor.models import Build, BuildStatus, Job


def make_build(
    job_name: str = "app",
    number: int = 1,
    status: BuildStatus = BuildStatus.SUCCESS,
    **kwargs,
) -> Build:
    defaults = dict(
        job_name=job_name,
        number=number,
        status=status,
        timestamp=datetime(2024, 1, 1, 12, 0, number % 60, tzinfo=timezone.utc),
        duration=30.0,
        url=f"http://jenkins.example.com/job/{job_name}/{number}/",
    )
    defaults.update(kwargs)
    return Build(**defaults)


def make_job(name: str = "app", status: BuildStatus = BuildStatus.SUCCESS, **kwargs) -> Job:
    defaults = dict(
        name=name,
        status=status,
        url=f"http://jenkins.example.com/job/{name}/",
        favorite=False,
    )
    defaults.update(kwargs)
    return Job(**defaults)


def make_jobs_snapshot(*jobs: Job, sequence: int = 1):
    return aggregate(jobs, sequence)


def make_builds_snapshot(*builds: Build, sequence: int = 1):
    return aggregate_builds(builds, sequence)


def make_raw_build(number: int = 1, result: str | None = "SUCCESS", building: bool = False, **kwargs) -> dict:
    defaults = dict(
        number=number,
        result=result,
        building=building,
        timestamp=1704110400000 + number * 1000,
        duration=30000,
        url=f"http://jenkins.example.com/job/app/{number}/",
    )
    defaults.update(kwargs)
    return defaults


def make_raw_job(name: str = "app", color: str = "blue", last_build: dict | None = None) -> dict:
    raw = dict(name=name, url=f"http://jenkins.example.com/job/{name}/", color=color)
    if last_build is not None:
        raw["lastBuild"] = last_build
    return raw


def make_config_data(**kwargs) -> dict:
    defaults = dict(
        server_url="http://jenkins.example.com",
        username="bot",
        api_token="secret",
        jobs_interval=0,
        builds_interval=0,
        favorite_jobs=[],
    )
    defaults.update(kwargs)
    return defaults


def make_client(jobs: list[Job] | None = None, builds: list[Build] | None = None) -> MagicMock:
    """Mocked JenkinsClient returning fixed data."""
    client = MagicMock()
    client.async_list_jobs = AsyncMock(return_value=list(jobs or []))
    client.async_fetch_recent_builds = AsyncMock(return_value=list(builds or []))
    client.async_trigger_build = AsyncMock(return_value=True)
    client.async_check_availability = AsyncMock(return_value=True)
    client.close = AsyncMock()
    return client


def make_coordinator(*clients: MagicMock, **config_kwargs) -> JenkinsCoordinator:
    """
    Build a coordinator whose client factory hands out the given mocks in
    order (one per init/reload). Defaults to a single empty client.
    """
    coord = JenkinsCoordinator(make_config_data(**config_kwargs))
    coord._build_client = MagicMock(side_effect=list(clients or [make_client()]))
    return coord
