"""
Notification dispatcher.

Responsibilities:
- Diff successive snapshots of each feed into NotificationEvents
  (diff_jobs / diff_builds are pure functions).
- Remember the previous snapshot per feed and the builds already reported.
- Fan snapshots, notifications and poll errors out to subscribed listeners.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable

from .coordinator_data import BuildsSnapshot, JobsSnapshot
from .models import (
    BuildStatus,
    FeedKind,
    NotificationEvent,
    NotificationSeverity,
    PollError,
)

_LOGGER = logging.getLogger(__name__)

_WARNING_STATUSES = frozenset({BuildStatus.UNSTABLE, BuildStatus.ABORTED})


def _severity_for(new_status: BuildStatus, is_breakage: bool) -> NotificationSeverity:
    if is_breakage or new_status is BuildStatus.FAILURE:
        return NotificationSeverity.ERROR
    if new_status in _WARNING_STATUSES:
        return NotificationSeverity.WARNING
    return NotificationSeverity.INFO


def diff_jobs(
    previous: JobsSnapshot | None, current: JobsSnapshot
) -> list[NotificationEvent]:
    """
    One event per job present in both snapshots whose status changed.

    Jobs that appear or disappear produce nothing, and neither does the
    first snapshot (previous is None).

    is_breakage compares against the settled status of the previous job,
    so a broken job that rebuilds and fails again (BUILDING -> FAILURE,
    "red_anime" -> "red") is not flagged; its severity is still ERROR.
    """
    if previous is None or previous is current:
        return []

    before = {job.name: job for job in previous.jobs}
    events = []
    for job in current.jobs:
        old = before.get(job.name)
        if old is None or old.status is job.status:
            continue
        is_breakage = (
            job.status is BuildStatus.FAILURE
            and old.settled_status is not BuildStatus.FAILURE
        )
        events.append(
            NotificationEvent(
                feed=FeedKind.JOBS,
                job_name=job.name,
                previous_status=old.status,
                new_status=job.status,
                build=job.last_build,
                severity=_severity_for(job.status, is_breakage),
                is_breakage=is_breakage,
            )
        )
    return events


def diff_builds(
    previous: BuildsSnapshot | None,
    current: BuildsSnapshot,
    already_reported: Iterable[tuple[str, int]] = (),
) -> list[NotificationEvent]:
    """
    One event per build that was seen before without FAILURE and now failed.

    Keyed by (job name, build number). A build observed for the first time
    never produces an event, and keys in already_reported are skipped.
    """
    if previous is None or previous is current:
        return []

    reported = set(already_reported)
    before = {build.key: build for build in previous.builds}
    events = []
    for build in current.builds:
        old = before.get(build.key)
        if old is None or build.key in reported:
            continue
        if build.status is BuildStatus.FAILURE and old.status is not BuildStatus.FAILURE:
            reported.add(build.key)
            events.append(
                NotificationEvent(
                    feed=FeedKind.BUILDS,
                    job_name=build.job_name,
                    previous_status=old.status,
                    new_status=build.status,
                    build=build,
                    severity=NotificationSeverity.ERROR,
                    is_breakage=True,
                )
            )
    return events


class NotificationDispatcher:
    """
    Subscription registry and per-feed diff state.

    Every add_*_listener() returns a callable that removes the listener.
    A listener that raises is logged; the remaining listeners still run.
    """

    def __init__(self) -> None:
        self._snapshot_listeners: list[Callable] = []
        self._notification_listeners: list[Callable[[NotificationEvent], None]] = []
        self._error_listeners: list[Callable[[PollError], None]] = []

        self._previous_jobs: JobsSnapshot | None = None
        self._previous_builds: BuildsSnapshot | None = None
        # (job name, build number) of failures already notified
        self._reported_builds: set[tuple[str, int]] = set()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def add_snapshot_listener(self, listener: Callable) -> Callable[[], None]:
        return self._add(self._snapshot_listeners, listener)

    def add_notification_listener(
        self, listener: Callable[[NotificationEvent], None]
    ) -> Callable[[], None]:
        return self._add(self._notification_listeners, listener)

    def add_error_listener(self, listener: Callable[[PollError], None]) -> Callable[[], None]:
        return self._add(self._error_listeners, listener)

    @staticmethod
    def _add(listeners: list, listener: Callable) -> Callable[[], None]:
        listeners.append(listener)

        def remove() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish_snapshot(
        self, snapshot: JobsSnapshot | BuildsSnapshot
    ) -> list[NotificationEvent]:
        """Route a snapshot of either feed to publish_jobs / publish_builds."""
        if snapshot.kind is FeedKind.JOBS:
            return self.publish_jobs(snapshot)
        return self.publish_builds(snapshot)

    def publish_jobs(self, snapshot: JobsSnapshot) -> list[NotificationEvent]:
        """Diff against the previous jobs snapshot, then notify listeners."""
        events = diff_jobs(self._previous_jobs, snapshot)
        self._previous_jobs = snapshot
        self._emit(self._snapshot_listeners, snapshot)
        self._emit_events(events)
        return events

    def publish_builds(self, snapshot: BuildsSnapshot) -> list[NotificationEvent]:
        """Diff against the previous builds snapshot, then notify listeners."""
        events = diff_builds(self._previous_builds, snapshot, self._reported_builds)
        current_keys = {build.key for build in snapshot.builds}
        # Builds that left the feed cannot be reported again; forget them
        self._reported_builds = {
            key for key in self._reported_builds if key in current_keys
        } | {event.build.key for event in events}
        self._previous_builds = snapshot
        self._emit(self._snapshot_listeners, snapshot)
        self._emit_events(events)
        return events

    def publish_error(self, error: PollError) -> None:
        self._emit(self._error_listeners, error)

    def reset(self) -> None:
        """Forget previous snapshots so the next ones count as a first load."""
        self._previous_jobs = None
        self._previous_builds = None
        self._reported_builds = set()

    def clear_listeners(self) -> None:
        self._snapshot_listeners.clear()
        self._notification_listeners.clear()
        self._error_listeners.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _emit_events(self, events: list[NotificationEvent]) -> None:
        for event in events:
            if event.is_breakage:
                _LOGGER.warning("%s", event.message)
            else:
                _LOGGER.info("%s", event.message)
            self._emit(self._notification_listeners, event)

    @staticmethod
    def _emit(listeners: list, payload) -> None:
        for listener in list(listeners):
            try:
                listener(payload)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Listener %r failed", listener)
