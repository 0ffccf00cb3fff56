"""
Low-level job data fetching from the Jenkins API.

Responsible for:
- Fetching the raw job list (optionally of one view) from the API
- Mapping the JSON response fields onto Job model instances
- Triggering a build of a job
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from urllib.parse import quote

import aiohttp

from jenkins_monitor.const import (
    COLOR_TO_STATUS,
    JOBS_TREE,
    RESULT_TO_STATUS,
    TRIGGER_ACCEPTED_STATUSES,
)
from jenkins_monitor.models import Build, BuildStatus, Job
from jenkins_monitor.requests import MalformedResponse, make_request

_LOGGER = logging.getLogger(__name__)


def status_from_color(color: str | None) -> BuildStatus:
    """Map a Jenkins ball colour ("blue", "red_anime", ...) onto a BuildStatus."""
    if not color:
        return BuildStatus.UNKNOWN
    if color.endswith("_anime"):
        return BuildStatus.BUILDING
    return BuildStatus.from_name(COLOR_TO_STATUS.get(color))


def status_from_result(result: str | None, building: bool = False) -> BuildStatus:
    """Map a Jenkins build "result" onto a BuildStatus."""
    if building:
        return BuildStatus.BUILDING
    return BuildStatus.from_name(RESULT_TO_STATUS.get(result or ""))


def _completed_status(color: str | None) -> BuildStatus | None:
    """Base status of an "*_anime" colour, None for any other colour."""
    if not color or not color.endswith("_anime"):
        return None
    return status_from_color(color[: -len("_anime")])


def parse_build(job_name: str, raw: dict) -> Build:
    """Map a raw "lastBuild" dict onto a Build instance."""
    timestamp = raw.get("timestamp")
    return Build(
        job_name=job_name,
        number=int(raw["number"]),
        status=status_from_result(raw.get("result"), bool(raw.get("building"))),
        # Jenkins reports epoch milliseconds
        timestamp=datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc) if timestamp else None,
        duration=(raw.get("duration") or 0) / 1000,
        url=raw.get("url"),
    )


def _parse_job(raw: dict, favorites: frozenset[str]) -> Job:
    """Map a single raw API job dict onto a Job instance."""
    name = raw["name"]
    last_build = raw.get("lastBuild")
    return Job(
        name=name,
        status=status_from_color(raw.get("color")),
        url=raw.get("url"),
        favorite=name in favorites,
        completed_status=_completed_status(raw.get("color")),
        last_build=parse_build(name, last_build) if last_build else None,
    )


def jobs_url(server_url: str, view: str | None = None) -> str:
    base = server_url.rstrip("/")
    if view:
        base += "/view/" + quote(view, safe="")
    return base + "/api/json"


def job_url(server_url: str, job_name: str) -> str:
    return server_url.rstrip("/") + "/job/" + quote(job_name, safe="")


def parse_jobs(raw_json: dict, favorites: frozenset[str] = frozenset()) -> list[Job]:
    """
    Parse the "jobs" array of an /api/json response.

    Raises MalformedResponse when the payload does not have the expected shape.
    """
    try:
        return [_parse_job(raw, favorites) for raw in raw_json["jobs"]]
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponse(f"Unexpected job list payload: {e!r}") from e


async def fetch_jobs(
    session: aiohttp.ClientSession,
    server_url: str,
    headers: dict,
    favorites: frozenset[str] = frozenset(),
    view: str | None = None,
    timeout: float = 10,
) -> list[Job]:
    """
    Fetch all jobs (of one view when given) from the Jenkins API.

    Corresponding CURL command:
    curl 'https://jenkins.example.com/api/json?tree=jobs[name,url,color,lastBuild[...]]'
    """
    url = jobs_url(server_url, view)
    raw_json = await make_request(
        session, "GET", url, headers, params={"tree": JOBS_TREE}, timeout=timeout
    )
    return parse_jobs(raw_json, favorites)


async def trigger_build(
    session: aiohttp.ClientSession,
    server_url: str,
    job_name: str,
    headers: dict,
    timeout: float = 10,
) -> bool:
    """
    Ask Jenkins to schedule a build of job_name.

    Corresponding CURL command:
    curl -X POST 'https://jenkins.example.com/job/<name>/build' -H 'Jenkins-Crumb: <crumb>'
    """
    url = job_url(server_url, job_name) + "/build"
    status = await make_request(
        session, "POST", url, headers, timeout=timeout, max_attempts=1, expect_json=False
    )
    accepted = status in TRIGGER_ACCEPTED_STATUSES
    if not accepted:
        _LOGGER.warning("Build of %s not accepted (status %s)", job_name, status)
    return accepted
