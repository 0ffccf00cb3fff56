"""
JenkinsClient: the single remote-server gateway owned by the coordinator.

Wraps the api/ helpers around one shared aiohttp session built from a
Configuration. Every call raises a RemoteError subclass on failure; nothing
else leaves this module.
"""
from __future__ import annotations

import logging

import aiohttp

from .api.auth import CrumbData, get_basic_auth, get_standard_headers, load_crumb
from .api.builds import fetch_recent_builds
from .api.jobs import fetch_jobs, trigger_build
from .config import Configuration
from .models import Build, Job
from .requests import check_availability

_LOGGER = logging.getLogger(__name__)


class JenkinsClient:
    """Performs the individual network calls against one Jenkins server."""

    def __init__(self, config: Configuration, crumb: CrumbData | None = None) -> None:
        self._config = config
        self._crumb = crumb if crumb is not None else load_crumb(config.crumb_file)
        self._session: aiohttp.ClientSession | None = None
        self._closed = False

    @property
    def config(self) -> Configuration:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise RuntimeError("JenkinsClient is closed")
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=get_basic_auth(self._config.username, self._config.api_token),
            )
        return self._session

    @property
    def headers(self) -> dict:
        return get_standard_headers(self._crumb)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def async_list_jobs(self) -> list[Job]:
        """Fetch the job list, flagging configured favorites."""
        return await fetch_jobs(
            self._get_session(),
            self._config.server_url,
            self.headers,
            favorites=self._config.favorite_jobs,
            view=self._config.view,
            timeout=self._config.request_timeout,
        )

    async def async_fetch_recent_builds(self) -> list[Build]:
        """Fetch the latest build of every job, newest first."""
        return await fetch_recent_builds(
            self._get_session(),
            self._config.server_url,
            self.headers,
            max_builds=self._config.max_builds,
            timeout=self._config.request_timeout,
        )

    async def async_check_availability(self) -> bool:
        if self._closed:
            return False
        return await check_availability(self._get_session(), self._config.server_url)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def async_trigger_build(self, job_name: str) -> bool:
        """Issue a "run build" request; True when Jenkins accepted it."""
        accepted = await trigger_build(
            self._get_session(),
            self._config.server_url,
            job_name,
            self.headers,
            timeout=self._config.request_timeout,
        )
        if accepted:
            _LOGGER.info("Build of %s scheduled on %s", job_name, self._config.server_url)
        return accepted

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release the HTTP session. Safe to call more than once."""
        self._closed = True
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
