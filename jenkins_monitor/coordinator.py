"""
JenkinsCoordinator: lifecycle root of the Jenkins monitor.

Responsibilities:
- Own the active Configuration and the single JenkinsClient built from it.
- Drive two feeds on independent timers through one FeedPoller each:
    jobs feed:   full job list,   every jobs_interval seconds
    builds feed: recent builds,   every builds_interval seconds
- Reduce each jobs poll with aggregator.aggregate() and keep the latest
  CoordinatorData snapshot (copy-on-write, replaced never mutated).
- Hand every new snapshot to the NotificationDispatcher, which diffs it and
  fans events out to host listeners.
- Swap configuration atomically: results computed under an older
  configuration generation are dropped.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Callable, Mapping

from .aggregator import aggregate, aggregate_builds
from .client import JenkinsClient
from .config import Configuration, ConfigurationInvalid, validate_configuration
from .coordinator_data import BuildsSnapshot, CoordinatorData, JobsSnapshot
from .dispatcher import NotificationDispatcher
from .models import Build, FeedKind, Job, NotificationEvent, PollError
from .requests import MalformedResponse, RemoteError, RemoteRejected
from .scheduler import FeedPoller, PollerState

__all__ = ["CoordinatorData", "JenkinsCoordinator"]

_LOGGER = logging.getLogger(__name__)


class JenkinsCoordinator:
    """
    Coordinator for the Jenkins monitor.

    The host calls async_init() once, async_reload_configuration() whenever
    the user changes settings, and async_dispose() on shutdown. Everything
    else is delivered through listeners.
    """

    def __init__(self, config_data: Configuration | Mapping[str, Any]) -> None:
        """Store the raw configuration; it is validated by async_init()."""
        self._config_data = config_data
        self._config: Configuration | None = None
        self.client: JenkinsClient | None = None
        self.dispatcher = NotificationDispatcher()

        self._pollers: dict[FeedKind, FeedPoller] = {}

        # Bumped on every reload; poll callbacks carry the value they were built with
        self._generation = 0
        self._initialized = False
        self._disposed = False
        # Serializes init, reload and dispose
        self._lifecycle_lock = asyncio.Lock()

        # Last non-transient rejection, kept until the configuration changes
        self.rejection: RemoteRejected | None = None

        # Snapshot starts empty; readers must handle empty snapshots until the first poll
        self.data = CoordinatorData()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def configuration(self) -> Configuration | None:
        return self._config

    @property
    def jobs_snapshot(self) -> JobsSnapshot:
        return self.data.jobs

    @property
    def builds_snapshot(self) -> BuildsSnapshot:
        return self.data.builds

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def disposed(self) -> bool:
        return self._disposed

    def poller_state(self, feed: FeedKind) -> PollerState | None:
        poller = self._pollers.get(feed)
        return poller.state if poller is not None else None

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def add_snapshot_listener(
        self, listener: Callable[[JobsSnapshot | BuildsSnapshot], None]
    ) -> Callable[[], None]:
        return self.dispatcher.add_snapshot_listener(listener)

    def add_notification_listener(
        self, listener: Callable[[NotificationEvent], None]
    ) -> Callable[[], None]:
        return self.dispatcher.add_notification_listener(listener)

    def add_error_listener(self, listener: Callable[[PollError], None]) -> Callable[[], None]:
        return self.dispatcher.add_error_listener(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_init(self) -> None:
        """
        Validate the configuration, build the client and start both feeds.

        Raises ConfigurationInvalid before anything is started. An
        unreachable server is only logged; the feeds keep retrying.
        """
        async with self._lifecycle_lock:
            if self._disposed:
                raise RuntimeError("JenkinsCoordinator has been disposed")
            if self._initialized:
                _LOGGER.warning("JenkinsCoordinator already initialized")
                return

            config = validate_configuration(self._config_data)
            client = self._build_client(config)
            self._config = config
            self.client = client
            self._initialized = True
            self._start_pollers()

        if not await client.async_check_availability():
            _LOGGER.warning(
                "Jenkins server %s is not reachable yet; polling continues", config.server_url
            )

    async def async_reload_configuration(
        self, config_data: Configuration | Mapping[str, Any]
    ) -> None:
        """
        Replace the configuration and restart both feeds under it.

        The new configuration is validated first; if it is invalid
        ConfigurationInvalid is raised and the running setup is untouched.
        Overlapping reloads are applied one after another in call order.
        """
        if self._disposed:
            raise RuntimeError("JenkinsCoordinator has been disposed")
        config = validate_configuration(config_data)
        client = self._build_client(config)

        async with self._lifecycle_lock:
            if self._disposed:
                await client.close()
                raise RuntimeError("JenkinsCoordinator has been disposed")

            await self._async_stop_pollers()
            old_client = self.client

            # Swap: nothing from the previous generation may be applied after this
            self._generation += 1
            self._config_data = config_data
            self._config = config
            self.client = client
            self.rejection = None
            self.dispatcher.reset()
            self.data = CoordinatorData()

            if old_client is not None:
                await old_client.close()

            _LOGGER.info("Configuration reloaded for %s", config.server_url)
            self._initialized = True
            self._start_pollers()

    async def async_dispose(self) -> None:
        """Stop both feeds and release the client. Idempotent."""
        if self._disposed:
            return
        # Fence callbacks right away; teardown waits for a running reload
        self._disposed = True
        self._generation += 1
        async with self._lifecycle_lock:
            await self._async_stop_pollers()
            if self.client is not None:
                await self.client.close()
            self.dispatcher.clear_listeners()
        _LOGGER.debug("JenkinsCoordinator disposed")

    # ------------------------------------------------------------------
    # Host commands
    # ------------------------------------------------------------------

    async def async_trigger_build(self, job_name: str) -> bool:
        """
        Ask the server to run job_name.

        Does NOT refresh the feeds; the next scheduled poll reports the
        new build. Returns False (and logs) when the request failed.
        """
        if self.client is None or self._disposed:
            _LOGGER.error("Cannot trigger %s: coordinator is not running", job_name)
            return False
        try:
            return await self.client.async_trigger_build(job_name)
        except RemoteRejected as exc:
            self.rejection = exc
            _LOGGER.error("Build of %s rejected: %s", job_name, exc)
            return False
        except RemoteError as exc:
            _LOGGER.error("Failed to trigger build of %s: %s", job_name, exc)
            return False

    async def async_refresh(self, feed: FeedKind | None = None) -> bool:
        """
        Poll one feed (or both) right now.

        Returns False when any requested poll was skipped because one was
        already in flight or the coordinator is not running.
        """
        feeds = [feed] if feed is not None else list(FeedKind)
        pollers = [self._pollers[kind] for kind in feeds if kind in self._pollers]
        if len(pollers) != len(feeds):
            return False
        results = await asyncio.gather(*(poller.async_poll_now() for poller in pollers))
        return all(results)

    # ------------------------------------------------------------------
    # Feed plumbing
    # ------------------------------------------------------------------

    def _build_client(self, config: Configuration) -> JenkinsClient:
        try:
            return JenkinsClient(config)
        except OSError as exc:
            raise ConfigurationInvalid(f"Cannot read crumb file {config.crumb_file}: {exc}") from exc

    def _start_pollers(self) -> None:
        config = self._config
        client = self.client
        generation = self._generation

        self._pollers = {
            FeedKind.JOBS: FeedPoller(
                FeedKind.JOBS,
                client.async_list_jobs,
                lambda seq, jobs: self._apply_jobs(generation, seq, jobs),
                lambda error: self._handle_poll_error(generation, error),
                config.interval_for(FeedKind.JOBS),
            ),
            FeedKind.BUILDS: FeedPoller(
                FeedKind.BUILDS,
                client.async_fetch_recent_builds,
                lambda seq, builds: self._apply_builds(generation, seq, builds),
                lambda error: self._handle_poll_error(generation, error),
                config.interval_for(FeedKind.BUILDS),
            ),
        }
        for poller in self._pollers.values():
            poller.start()

    async def _async_stop_pollers(self) -> None:
        pollers = list(self._pollers.values())
        self._pollers = {}
        await asyncio.gather(*(poller.async_stop() for poller in pollers))

    def _is_current(self, generation: int) -> bool:
        return not self._disposed and generation == self._generation

    def _apply_jobs(self, generation: int, sequence: int, jobs: list[Job]) -> None:
        """Aggregate one jobs poll and push the new snapshot."""
        if not self._is_current(generation):
            _LOGGER.debug("Dropping jobs poll #%s from an old configuration", sequence)
            return
        snapshot = aggregate(jobs, sequence)
        self.data = dataclasses.replace(self.data, jobs=snapshot)
        self.dispatcher.publish_jobs(snapshot)

    def _apply_builds(self, generation: int, sequence: int, builds: list[Build]) -> None:
        """Wrap one builds poll in a snapshot and push it."""
        if not self._is_current(generation):
            _LOGGER.debug("Dropping builds poll #%s from an old configuration", sequence)
            return
        snapshot = aggregate_builds(builds, sequence)
        self.data = dataclasses.replace(self.data, builds=snapshot)
        self.dispatcher.publish_builds(snapshot)

    def _handle_poll_error(self, generation: int, error: PollError) -> None:
        """Keep the stale snapshot, remember rejections, tell the host."""
        if not self._is_current(generation):
            return
        if isinstance(error.error, RemoteRejected):
            self.rejection = error.error
        elif isinstance(error.error, MalformedResponse):
            _LOGGER.warning(
                "Malformed %s response from %s: %s",
                error.feed.value, self._config.server_url, error.error,
            )
        self.dispatcher.publish_error(error)
