"""
FeedPoller: one periodic polling loop for one feed.

This is a pure asyncio concurrency primitive with no network dependencies:
it is handed a fetch coroutine factory plus result/error callbacks.

Guarantees:
- at most one request per feed is in flight; a tick that finds one running
  is dropped and counted in skipped_ticks
- every poll carries the sequence number drawn when it was dispatched; a
  response older than the last applied one is discarded
- after stop() no callback runs, even for a response already on its way
"""
from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable

from .models import FeedKind, PollError

_LOGGER = logging.getLogger(__name__)


class PollerState(enum.Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    STOPPED = "stopped"


class FeedPoller:
    """
    Drives one feed on a repeating timer.

    The first tick fires as soon as start() is called; later ticks follow
    every `interval` seconds. An interval of 0 arms no timer, leaving only
    manual polls through async_poll_now().
    """

    def __init__(
        self,
        kind: FeedKind,
        fetch: Callable[[], Awaitable[Any]],
        on_result: Callable[[int, Any], None],
        on_error: Callable[[PollError], None],
        interval: float,
    ) -> None:
        self.kind = kind
        self._fetch = fetch
        self._on_result = on_result
        self._on_error = on_error
        self._interval = interval

        self._state = PollerState.IDLE
        self._started = False
        self._timer: asyncio.Task | None = None
        self._in_flight: asyncio.Task | None = None

        # Last sequence handed out / last sequence whose result was applied
        self._sequence = 0
        self._applied_sequence = 0

        self.consecutive_failures = 0
        self.skipped_ticks = 0

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def applied_sequence(self) -> int:
        return self._applied_sequence

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    @property
    def stopped(self) -> bool:
        return self._state is PollerState.STOPPED

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self) -> None:
        """IDLE → SCHEDULED; arms the timer. STOPPED pollers cannot restart."""
        if self.stopped:
            raise RuntimeError(f"{self.kind.value} poller is stopped; create a new one")
        if self._started:
            _LOGGER.warning("%s poller already started", self.kind.value)
            return
        self._started = True
        self._state = PollerState.SCHEDULED
        self._arm(immediate=True)
        _LOGGER.debug("%s poller started (interval %ss)", self.kind.value, self._interval)

    def reconfigure(self, interval: float) -> None:
        """
        Re-arm the timer with a new interval.

        A poll already in flight keeps running and is applied normally; the
        next tick comes `interval` seconds from now.
        """
        if self.stopped:
            raise RuntimeError(f"{self.kind.value} poller is stopped; create a new one")
        self._interval = interval
        if not self._started:
            return
        self._cancel_timer()
        self._arm(immediate=False)
        _LOGGER.debug("%s poller re-armed (interval %ss)", self.kind.value, interval)

    def stop(self) -> list[asyncio.Task]:
        """
        Cancel the timer and any in-flight request. Terminal.

        Returns the cancelled tasks so callers may await their completion.
        """
        if self.stopped:
            return []
        self._state = PollerState.STOPPED
        cancelled = []
        for task in (self._timer, self._in_flight):
            if task is not None and not task.done():
                task.cancel()
                cancelled.append(task)
        self._timer = None
        self._in_flight = None
        _LOGGER.debug("%s poller stopped", self.kind.value)
        return cancelled

    async def async_stop(self) -> None:
        """stop() and wait until the cancelled tasks have unwound."""
        tasks = self.stop()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def async_poll_now(self) -> bool:
        """
        Run one poll right away and wait for it.

        Returns False when the poll was not started (stopped, or another
        request for this feed is still in flight).
        """
        task = self._dispatch()
        if task is None:
            return False
        await asyncio.wait({task})
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _arm(self, immediate: bool) -> None:
        if self._interval <= 0:
            _LOGGER.debug("%s automatic refresh disabled", self.kind.value)
            self._timer = None
            return
        self._timer = asyncio.ensure_future(self._timer_loop(self._interval, immediate))

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _timer_loop(self, interval: float, immediate: bool) -> None:
        """Fire a tick every `interval` seconds until cancelled."""
        if not immediate:
            await asyncio.sleep(interval)
        while True:
            self._dispatch()
            await asyncio.sleep(interval)

    def _dispatch(self) -> asyncio.Task | None:
        """SCHEDULED → IN_FLIGHT, unless a request is already running."""
        if self.stopped:
            return None
        if self.in_flight:
            self.skipped_ticks += 1
            _LOGGER.debug(
                "%s poll #%s still in flight, skipping tick", self.kind.value, self._sequence
            )
            return None
        self._sequence += 1
        self._in_flight = asyncio.ensure_future(self._poll(self._sequence))
        return self._in_flight

    def _is_stale(self, sequence: int) -> bool:
        return self.stopped or sequence <= self._applied_sequence

    async def _poll(self, sequence: int) -> None:
        """Run one fetch and route its outcome to the result/error callback."""
        self._state = PollerState.IN_FLIGHT
        try:
            result = await self._fetch()
        except Exception as exc:  # noqa: BLE001
            self._handle_failure(sequence, exc)
            return

        if self._is_stale(sequence):
            _LOGGER.debug(
                "Discarding stale %s response #%s (applied #%s)",
                self.kind.value, sequence, self._applied_sequence,
            )
            self._reschedule()
            return

        self._applied_sequence = sequence
        try:
            self._on_result(sequence, result)
        except Exception:  # noqa: BLE001
            # Counts as a failed cycle; the timer keeps running
            self.consecutive_failures += 1
            self._state = PollerState.FAILED
            _LOGGER.exception("Error applying %s poll #%s", self.kind.value, sequence)
        else:
            self._state = PollerState.SUCCEEDED
            if self.consecutive_failures:
                _LOGGER.info(
                    "%s feed recovered after %s failed polls",
                    self.kind.value, self.consecutive_failures,
                )
                self.consecutive_failures = 0
        finally:
            self._reschedule()

    def _handle_failure(self, sequence: int, exc: Exception) -> None:
        if self._is_stale(sequence):
            _LOGGER.debug("Ignoring failure of stale %s poll #%s: %s", self.kind.value, sequence, exc)
            self._reschedule()
            return

        self.consecutive_failures += 1
        self._state = PollerState.FAILED
        _LOGGER.warning(
            "Failed to poll %s feed (%s in a row): %s",
            self.kind.value, self.consecutive_failures, exc,
        )
        try:
            self._on_error(
                PollError(
                    feed=self.kind,
                    error=exc,
                    consecutive_failures=self.consecutive_failures,
                    sequence=sequence,
                )
            )
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Error reporting %s poll failure", self.kind.value)
        finally:
            self._reschedule()

    def _reschedule(self) -> None:
        if not self.stopped:
            self._state = PollerState.SCHEDULED if self._started else PollerState.IDLE
