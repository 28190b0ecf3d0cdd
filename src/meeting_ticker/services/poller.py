"""Participant-count polling with a bounded error budget."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from meeting_ticker.adapters.participants_client import ParticipantCountClient
from meeting_ticker.domain.errors import (
    ErrorKind,
    ParticipantPollError,
    TransientPollError,
)
from meeting_ticker.domain.tracking import StatusMessage, TrackerState, utc_now
from meeting_ticker.services.backoff import BackoffPolicy, FixedInterval
from meeting_ticker.services.persistence import PersistenceAdapter

_logger = logging.getLogger(__name__)

HALTED_STATUS = StatusMessage(
    "Polling stopped due to errors - using last known count", "error"
)


@dataclass(frozen=True)
class PollOutcome:
    """Result of a single poll attempt."""

    count: int | None = None
    error: ErrorKind | None = None
    discarded: bool = False
    halted: bool = False

    @property
    def ok(self) -> bool:
        return self.count is not None and not self.discarded


@dataclass
class ParticipantPoller:
    """Refreshes the participant count for one meeting on a coarse schedule.

    A result is applied only if no reset happened and the meeting did not
    change while the request was in flight. Once ``max_errors`` consecutive
    failures are seen the poller stops for good; a new poller is needed to
    resume.
    """

    state: TrackerState
    client: ParticipantCountClient
    persistence: PersistenceAdapter
    interval_seconds: float = 5.0
    max_errors: int = 3
    backoff: BackoffPolicy = field(default_factory=FixedInterval)
    clock: Callable[[], datetime] = utc_now
    meeting_id: str | None = None
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _in_flight: set[asyncio.Task[PollOutcome]] = field(
        default_factory=set, init=False, repr=False
    )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, meeting_id: str) -> None:
        """Poll immediately, then keep polling on the schedule."""
        self.meeting_id = meeting_id
        if self.running:
            return
        _logger.info(
            "Starting participant polling for %s every %s seconds",
            meeting_id,
            self.interval_seconds,
        )
        self._task = asyncio.get_running_loop().create_task(self.run())

    def stop(self) -> None:
        """Cancel the schedule; an in-flight request is left to finish."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def run(self) -> None:
        """Polling loop: one poll right away, then one per computed delay."""
        await self._poll_shielded()
        while not self.state.poll_health.halted:
            delay = self.backoff.next_delay(
                self.interval_seconds, self.state.poll_health.consecutive_errors
            )
            await asyncio.sleep(delay)
            await self._poll_shielded()

    async def _poll_shielded(self) -> PollOutcome:
        # Cancelling the schedule must not abort a request already sent;
        # the stale check in poll_once decides whether its result applies.
        task = asyncio.get_running_loop().create_task(self.poll_once())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return await asyncio.shield(task)

    async def poll_once(self) -> PollOutcome:
        """Fetch the count once and fold the result into the shared state."""
        accumulation = self.state.accumulation
        token = self.state.session.access_token
        meeting_id = self.meeting_id
        if not token or not meeting_id:
            _logger.info("Missing access token or meeting id for participant polling")
            accumulation.current_participant_count = max(
                1, accumulation.current_participant_count
            )
            return PollOutcome(error=ErrorKind.CREDENTIALS_MISSING)

        generation = self.state.generation
        try:
            result = await self.client.fetch_count(token, meeting_id)
        except ParticipantPollError as exc:
            if self._is_stale(generation, meeting_id):
                return PollOutcome(error=exc.kind, discarded=True)
            return self._record_failure(exc)
        except Exception as exc:
            _logger.exception("Unexpected error fetching participant count")
            if self._is_stale(generation, meeting_id):
                return PollOutcome(error=ErrorKind.TRANSIENT, discarded=True)
            return self._record_failure(TransientPollError(f"Unexpected error: {exc}"))

        if self._is_stale(generation, meeting_id):
            _logger.info("Discarding participant count for stale meeting %s", meeting_id)
            return PollOutcome(count=result.participant_count, discarded=True)

        now = self.clock()
        accumulation.current_participant_count = result.participant_count
        accumulation.last_participant_update = now
        health = self.state.poll_health
        health.consecutive_errors = 0
        health.last_error = None
        self.state.ticker_status = StatusMessage(
            f"Last updated: {now.astimezone():%H:%M:%S}", "info"
        )
        _logger.info("Updated participant count: %s", result.participant_count)
        self.persistence.save(self.state)
        return PollOutcome(count=result.participant_count)

    def _is_stale(self, generation: int, meeting_id: str) -> bool:
        return (
            self.state.generation != generation
            or self.state.meeting.meeting_id != meeting_id
        )

    def _record_failure(self, exc: ParticipantPollError) -> PollOutcome:
        health = self.state.poll_health
        health.consecutive_errors += 1
        health.last_error = exc.kind
        _logger.warning(
            "Failed to poll participant count (attempt %s/%s): %s",
            health.consecutive_errors,
            self.max_errors,
            exc,
        )
        self.state.ticker_status = _status_for_failure(
            exc.kind, health.consecutive_errors
        )
        if health.consecutive_errors >= self.max_errors:
            health.halted = True
            self.state.ticker_status = HALTED_STATUS
            _logger.warning("Too many polling errors, stopping participant polling")
            return PollOutcome(error=exc.kind, halted=True)
        return PollOutcome(error=exc.kind)


def _status_for_failure(kind: ErrorKind, attempt: int) -> StatusMessage:
    if kind == ErrorKind.AUTH_EXPIRED:
        return StatusMessage("Authentication expired - please re-authenticate", "error")
    if kind == ErrorKind.PERMISSION_DENIED:
        return StatusMessage("Access denied - check permissions", "error")
    if kind == ErrorKind.MEETING_NOT_FOUND:
        return StatusMessage("Meeting not found", "error")
    return StatusMessage(f"API error (attempt {attempt})", "warning")
