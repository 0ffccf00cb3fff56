import logging

from .config import Configuration, ConfigurationInvalid
from .const import VERSION
from .coordinator import JenkinsCoordinator
from .coordinator_data import BuildsSnapshot, CoordinatorData, JobsSnapshot
from .models import Build, BuildStatus, FeedKind, Job, NotificationEvent, PollError
from .requests import MalformedResponse, RemoteError, RemoteRejected, RemoteUnavailable

__version__ = VERSION

__all__ = [
    "Build",
    "BuildStatus",
    "BuildsSnapshot",
    "Configuration",
    "ConfigurationInvalid",
    "CoordinatorData",
    "FeedKind",
    "JenkinsCoordinator",
    "Job",
    "JobsSnapshot",
    "MalformedResponse",
    "NotificationEvent",
    "PollError",
    "RemoteError",
    "RemoteRejected",
    "RemoteUnavailable",
]

_LOGGER = logging.getLogger(__name__)
_LOGGER.addHandler(logging.NullHandler())
