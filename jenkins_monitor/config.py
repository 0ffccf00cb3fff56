"""Configuration for the Jenkins monitor."""
from __future__ import annotations

import dataclasses
import logging
import os
from typing import Any, Mapping

import voluptuous as vol

from .models import FeedKind
from .const import (
    DEFAULT_BUILDS_INTERVAL,
    DEFAULT_JOBS_INTERVAL,
    DEFAULT_MAX_BUILDS,
    DEFAULT_REQUEST_TIMEOUT,
)

_LOGGER = logging.getLogger(__name__)


class ConfigurationInvalid(Exception):
    """Raised synchronously when a configuration cannot be used."""


# Interval in seconds; 0 turns the automatic refresh of that feed off
interval = vol.All(vol.Coerce(float), vol.Range(min=0))
url_validator = vol.All(str, vol.Length(min=1), vol.Match(r"^https?://[^\s/]+"))
optional_string = vol.Any(None, vol.All(str, vol.Strip))
job_names = vol.All(
    vol.Any(list, tuple, set, frozenset), vol.Coerce(list), [vol.All(str, vol.Length(min=1))]
)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required("server_url"): url_validator,
        vol.Optional("username", default=None): optional_string,
        vol.Optional("api_token", default=None): optional_string,
        vol.Optional("jobs_interval", default=DEFAULT_JOBS_INTERVAL): interval,
        vol.Optional("builds_interval", default=DEFAULT_BUILDS_INTERVAL): interval,
        vol.Optional("favorite_jobs", default=[]): job_names,
        vol.Optional("crumb_file", default=None): optional_string,
        vol.Optional("view", default=None): optional_string,
        vol.Optional("request_timeout", default=DEFAULT_REQUEST_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0, min_included=False)
        ),
        vol.Optional("max_builds", default=DEFAULT_MAX_BUILDS): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    }
)


@dataclasses.dataclass(frozen=True)
class Configuration:
    """
    Immutable configuration value.

    Built through from_dict(); swapped as a whole on reload, never patched.
    """

    server_url: str
    username: str | None = None
    api_token: str | None = None
    jobs_interval: float = DEFAULT_JOBS_INTERVAL
    builds_interval: float = DEFAULT_BUILDS_INTERVAL
    favorite_jobs: frozenset[str] = frozenset()
    crumb_file: str | None = None
    view: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_builds: int = DEFAULT_MAX_BUILDS

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Configuration":
        """Validate data against CONFIG_SCHEMA and build a Configuration."""
        try:
            validated = CONFIG_SCHEMA(dict(data))
        except vol.Invalid as e:
            _LOGGER.error("Rejected configuration: %s", e)
            raise ConfigurationInvalid(f"Invalid configuration: {e}") from e
        validated["server_url"] = validated["server_url"].rstrip("/")
        validated["favorite_jobs"] = frozenset(validated["favorite_jobs"])
        return cls(**validated)

    def as_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["favorite_jobs"] = sorted(self.favorite_jobs)
        return data

    def interval_for(self, feed: FeedKind) -> float:
        return self.jobs_interval if feed is FeedKind.JOBS else self.builds_interval

    def validate(self) -> None:
        """
        Check things the schema cannot: the crumb file must be readable.

        Raises ConfigurationInvalid.
        """
        if self.crumb_file and not os.access(self.crumb_file, os.R_OK):
            raise ConfigurationInvalid(f"Crumb file is not readable: {self.crumb_file}")


def validate_configuration(config: Configuration | Mapping[str, Any]) -> Configuration:
    """
    Accept a Configuration or a plain mapping and return a checked Configuration.

    Instances are run through CONFIG_SCHEMA again, so a hand-built
    Configuration gets the same checks and normalisation as a mapping.
    """
    data = config.as_dict() if isinstance(config, Configuration) else config
    config = Configuration.from_dict(data)
    config.validate()
    return config
