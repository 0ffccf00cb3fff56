"""
Low-level HTTP request library for Jenkins API communication.
This module handles all HTTP requests with retry-on-timeout and maps every
failure onto the remote error taxonomy.
"""
import asyncio
import logging

import aiohttp

from .const import (
    AVAILABILITY_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    REJECTED_STATUSES,
    REQUEST_ATTEMPTS,
)

_LOGGER = logging.getLogger(__name__)


class RemoteError(Exception):
    """Base class for every failure talking to the Jenkins server."""


class RemoteUnavailable(RemoteError):
    """Network error, timeout or server-side failure. Transient."""


class MalformedResponse(RemoteUnavailable):
    """The server answered but the payload could not be understood."""


class RemoteRejected(RemoteError):
    """Authentication, authorization or not-found. Will not heal on its own."""

    def __init__(self, status: int, url: str):
        self.status = status
        self.url = url
        super().__init__(f"HTTP {status} from {url}")


async def check_availability(
    session: aiohttp.ClientSession, url: str, timeout: int = AVAILABILITY_TIMEOUT
) -> bool:
    """
    Check if the Jenkins server is reachable by sending a HEAD request.

    Args:
        session: Session to send the request with
        url: Server root URL
        timeout: Timeout in seconds for the HEAD request

    Returns:
        True if the server answered with a non-5xx status, False otherwise
    """
    try:
        async with session.head(url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
            if response.status >= 500:
                _LOGGER.warning("Jenkins server is not healthy (status %s)", response.status)
                return False
            return True
    except (asyncio.TimeoutError, TimeoutError):
        _LOGGER.warning("Timeout while checking Jenkins server %s", url)
        return False
    except aiohttp.ClientError as e:
        _LOGGER.warning("Error while checking Jenkins server %s: %s", url, e)
        return False


async def make_request(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    headers: dict = None,
    params: dict = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
    expect_json: bool = True,
):
    """
    Make an HTTP request with automatic retry on timeout.

    Args:
        session: Session owned by the caller
        method: HTTP method (GET, POST, HEAD)
        url: Target URL for the request
        headers: HTTP headers dictionary (optional)
        params: URL query parameters (optional)
        timeout: Base timeout in seconds (multiplied by attempt number for each retry)
        max_attempts: Maximum number of attempts
        expect_json: Parse and return the JSON body; otherwise return the status code

    Returns:
        Parsed JSON response, or the HTTP status when expect_json is False

    Raises:
        RemoteUnavailable: On network errors, timeouts and server errors
        RemoteRejected: On 401/403/404
        MalformedResponse: If the body is not the expected JSON
    """
    method = method.upper()
    if method not in ("GET", "POST", "HEAD"):
        raise ValueError(f"Unsupported HTTP method: {method}")

    for attempt in range(max_attempts):
        # Timeout grows with each attempt
        timeout_config = aiohttp.ClientTimeout(total=timeout * (attempt + 1))
        try:
            async with session.request(
                method,
                url,
                headers=headers,
                params=params,
                timeout=timeout_config,
                allow_redirects=(method != "POST"),
            ) as response:
                return await _process_response(response, url, expect_json)

        except (asyncio.TimeoutError, TimeoutError) as e:
            if attempt < max_attempts - 1:
                continue
            _LOGGER.warning(
                "Timeout on %s request to %s after %s attempts",
                method, url, max_attempts
            )
            raise RemoteUnavailable(f"Timeout on {method} {url}") from e

        except aiohttp.ClientError as e:
            # Connection problems are not retried here; the next tick will
            raise RemoteUnavailable(f"{method} {url} failed: {e}") from e

    raise RemoteUnavailable(f"{method} {url} was not attempted")


async def _process_response(response, url: str, expect_json: bool):
    """
    Process HTTP response and extract JSON data.

    Args:
        response: aiohttp response object
        url: Request URL (for logging)
        expect_json: Whether a JSON body is required

    Returns:
        Parsed JSON response, or the status code when expect_json is False

    Raises:
        RemoteRejected / RemoteUnavailable / MalformedResponse
    """
    status = response.status

    if status in REJECTED_STATUSES:
        _LOGGER.error("Request to %s rejected with status %s", url, status)
        raise RemoteRejected(status, url)

    if status >= 400:
        text = await response.text()
        _LOGGER.warning(
            "Error response from %s: status %s, body preview: %s",
            url, status, text[:200]
        )
        raise RemoteUnavailable(f"HTTP {status} from {url}")

    if not expect_json:
        return status

    content_type = response.headers.get("Content-Type", "")
    if "application/json" not in content_type:
        text = await response.text()
        _LOGGER.warning(
            "Unexpected content type in response: %s (status %s) from %s",
            content_type, status, url
        )
        raise MalformedResponse(f"Expected JSON but got {content_type}: {text[:200]}")

    try:
        return await response.json()
    except (aiohttp.ContentTypeError, ValueError) as e:
        _LOGGER.warning("Failed to parse JSON response from %s: %s", url, e)
        raise MalformedResponse(f"Invalid JSON from {url}: {e}") from e
