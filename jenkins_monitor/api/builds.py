"""
Low-level recent-build fetching from the Jenkins API.

Responsible for:
- Fetching the last build of every job in one lightweight request
- Ordering the builds newest first and capping the feed length
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

import aiohttp

from jenkins_monitor.api.jobs import jobs_url, parse_build
from jenkins_monitor.const import DEFAULT_MAX_BUILDS, RECENT_BUILDS_TREE
from jenkins_monitor.models import Build
from jenkins_monitor.requests import MalformedResponse, make_request

_LOGGER = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def parse_recent_builds(raw_json: dict, max_builds: int = DEFAULT_MAX_BUILDS) -> list[Build]:
    """
    Turn an /api/json job list into the recent-build feed.

    Jobs without a last build are skipped. Raises MalformedResponse when the
    payload does not have the expected shape.
    """
    try:
        builds = [
            parse_build(raw["name"], raw["lastBuild"])
            for raw in raw_json["jobs"]
            if raw.get("lastBuild")
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponse(f"Unexpected recent builds payload: {e!r}") from e

    builds.sort(key=lambda b: b.timestamp or _EPOCH, reverse=True)
    return builds[:max_builds]


async def fetch_recent_builds(
    session: aiohttp.ClientSession,
    server_url: str,
    headers: dict,
    max_builds: int = DEFAULT_MAX_BUILDS,
    timeout: float = 10,
) -> list[Build]:
    """
    Fetch the latest build of every job, newest first.

    Corresponding CURL command:
    curl 'https://jenkins.example.com/api/json?tree=jobs[name,lastBuild[...]]'
    """
    url = jobs_url(server_url)
    raw_json = await make_request(
        session, "GET", url, headers, params={"tree": RECENT_BUILDS_TREE}, timeout=timeout
    )
    builds = parse_recent_builds(raw_json, max_builds)
    _LOGGER.debug("Fetched %s recent builds from %s", len(builds), server_url)
    return builds
