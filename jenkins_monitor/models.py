"""
Domain models for the Jenkins monitor.

This module contains pure data classes representing Jenkins entities and the
events derived from them. These classes have no dependencies on HTTP, polling
or host internals.
"""
from __future__ import annotations

import dataclasses
import enum
import logging
from datetime import datetime

_LOGGER = logging.getLogger(__name__)


class BuildStatus(enum.Enum):
    """Status of a job or build, ranked by severity (higher is worse)."""

    SUCCESS = 0
    DISABLED = 1
    UNKNOWN = 2
    BUILDING = 3
    ABORTED = 4
    UNSTABLE = 5
    FAILURE = 6

    @property
    def severity(self) -> int:
        return self.value

    @classmethod
    def from_name(cls, name: str | None) -> "BuildStatus":
        """Look up a status by name, falling back to UNKNOWN."""
        if not name:
            return cls.UNKNOWN
        try:
            return cls[name.upper()]
        except KeyError:
            _LOGGER.debug("Unknown build status name: %s", name)
            return cls.UNKNOWN


class FeedKind(enum.Enum):
    """The two independently-scheduled polling streams."""

    JOBS = "jobs"
    BUILDS = "builds"


class NotificationSeverity(enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclasses.dataclass(frozen=True)
class Build:
    """One concrete execution of a job, identified by job name + build number."""

    job_name: str
    number: int
    status: BuildStatus = BuildStatus.UNKNOWN
    timestamp: datetime | None = None
    duration: float = 0.0    # seconds
    url: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        return self.job_name, self.number

    @property
    def is_complete(self) -> bool:
        return self.status is not BuildStatus.BUILDING

    def __str__(self) -> str:
        return f"{self.job_name}#{self.number}"


@dataclasses.dataclass(frozen=True)
class Job:
    """A named, repeatable build definition tracked on the server."""

    name: str
    status: BuildStatus = BuildStatus.UNKNOWN
    url: str | None = None
    favorite: bool = False
    last_build: Build | None = None
    # Status before the running build started ("red_anime" keeps FAILURE here)
    completed_status: BuildStatus | None = None

    @property
    def settled_status(self) -> BuildStatus:
        """Status ignoring a build in progress."""
        if self.status is BuildStatus.BUILDING and self.completed_status is not None:
            return self.completed_status
        return self.status


@dataclasses.dataclass(frozen=True)
class NotificationEvent:
    """A detected status transition of a job or build."""

    feed: FeedKind
    job_name: str
    previous_status: BuildStatus
    new_status: BuildStatus
    build: Build | None = None
    severity: NotificationSeverity = NotificationSeverity.INFO
    # True when the entity just went to FAILURE from anything else
    is_breakage: bool = False

    @property
    def message(self) -> str:
        """Short human-readable text, e.g. 'app#12: FAILED'."""
        if self.build is not None and self.is_breakage:
            return f"{self.build}: FAILED"
        subject = str(self.build) if self.build is not None else self.job_name
        return f"{subject}: {self.previous_status.name} -> {self.new_status.name}"


@dataclasses.dataclass(frozen=True)
class PollError:
    """A failed poll, surfaced to the host as transient feedback."""

    feed: FeedKind
    error: Exception
    consecutive_failures: int = 1
    sequence: int = 0
