"""
Low-level authentication helpers for the Jenkins API.

Responsible for:
- Reading the CSRF crumb from the configured crumb file
- Building the standard headers used by all API calls
- Building the basic-auth object from the credentials reference
"""
from __future__ import annotations

import logging
from pathlib import Path

import aiohttp

from jenkins_monitor.const import DEFAULT_CRUMB_FIELD

_LOGGER = logging.getLogger(__name__)


class CrumbData:
    """CSRF crumb sent with every state-changing request."""

    field: str = DEFAULT_CRUMB_FIELD
    value: str | None = None

    def __init__(self, value: str | None, field: str = DEFAULT_CRUMB_FIELD) -> None:
        self.value = value
        self.field = field

    def __str__(self) -> str:
        return f"{self.field}: {'<set>' if self.value else '<none>'}"


def parse_crumb(text: str) -> CrumbData:
    """
    Parse the content of a crumb file.

    Accepts either the bare crumb value or the "Field:value" pair that
    /crumbIssuer/api/xml?xpath=concat(//crumbRequestField,":",//crumb) prints.
    """
    text = text.strip()
    if not text:
        return CrumbData(None)
    if ":" in text:
        field, _, value = text.partition(":")
        return CrumbData(value.strip() or None, field.strip() or DEFAULT_CRUMB_FIELD)
    return CrumbData(text)


def load_crumb(crumb_file: str | None) -> CrumbData:
    """
    Read the crumb from crumb_file.

    Returns an empty CrumbData when no file is configured.
    Raises OSError when the file cannot be read.
    """
    if not crumb_file:
        return CrumbData(None)
    crumb = parse_crumb(Path(crumb_file).read_text(encoding="utf-8"))
    _LOGGER.debug("Loaded crumb from %s (%s)", crumb_file, crumb)
    return crumb


def get_standard_headers(crumb: CrumbData | None = None) -> dict:
    """
    Build the standard HTTP headers used by all Jenkins API requests.

    :param crumb: Crumb to attach, if any.
    :return: Dictionary of HTTP headers.
    """
    headers = {"accept": "application/json"}
    if crumb is not None and crumb.value:
        headers[crumb.field] = crumb.value
    return headers


def get_basic_auth(username: str | None, api_token: str | None) -> aiohttp.BasicAuth | None:
    if not username:
        return None
    return aiohttp.BasicAuth(username, api_token or "")
