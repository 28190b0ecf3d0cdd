"""Session and meeting identity state machine driving the ticker and poller."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from meeting_ticker.adapters.auth_client import AuthClient
from meeting_ticker.adapters.meet_session import (
    SessionProvider,
    parse_cloud_project_number,
)
from meeting_ticker.adapters.participants_client import ParticipantCountClient
from meeting_ticker.domain.errors import (
    HandshakeError,
    HandshakeFailedError,
    HandshakeTimeoutError,
    InvalidTransitionError,
    TokenExchangeError,
)
from meeting_ticker.domain.tracking import (
    PollHealth,
    StatusMessage,
    TrackerPhase,
    TrackerState,
    utc_now,
)
from meeting_ticker.services.backoff import BackoffPolicy, FixedInterval
from meeting_ticker.services.persistence import PersistenceAdapter
from meeting_ticker.services.poller import ParticipantPoller
from meeting_ticker.services.ticker import Ticker

_logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: dict[TrackerPhase, set[TrackerPhase]] = {
    TrackerPhase.UNAUTHENTICATED: {TrackerPhase.AUTHENTICATING},
    TrackerPhase.AUTHENTICATING: {
        TrackerPhase.AUTHENTICATED,
        TrackerPhase.UNAUTHENTICATED,
    },
    TrackerPhase.AUTHENTICATED: {
        TrackerPhase.AUTHENTICATING,
        TrackerPhase.MEETING_LINKED,
        TrackerPhase.UNAUTHENTICATED,
    },
    TrackerPhase.MEETING_LINKED: {
        TrackerPhase.MEETING_LINKED,
        TrackerPhase.AUTHENTICATING,
        TrackerPhase.UNAUTHENTICATED,
    },
    TrackerPhase.ERROR: {
        TrackerPhase.AUTHENTICATED,
        TrackerPhase.UNAUTHENTICATED,
        TrackerPhase.AUTHENTICATING,
    },
}

AUTH_SUCCESS_MESSAGE = "auth_success"


@dataclass
class MeetingTracker:
    """Owns the tracker state and decides when ticking and polling may run.

    Ticking and polling only happen while the phase is ``MEETING_LINKED``.
    Linking a different meeting than the one held resets the accumulation;
    linking the same meeting again keeps the running total.
    """

    state: TrackerState
    auth_client: AuthClient
    participant_client: ParticipantCountClient
    session_provider: SessionProvider
    persistence: PersistenceAdapter
    auth_base_url: str = ""
    poll_interval_seconds: float = 5.0
    max_poll_errors: int = 3
    handshake_timeout_seconds: float = 10.0
    backoff: BackoffPolicy = field(default_factory=FixedInterval)
    clock: Callable[[], datetime] = utc_now
    meet_sdk_param: str | None = None
    ticker: Ticker = field(init=False)
    poller: ParticipantPoller = field(init=False)

    def __post_init__(self) -> None:
        self.ticker = Ticker(self.state, self.persistence, clock=self.clock)
        self.poller = self._build_poller()

    @property
    def phase(self) -> TrackerPhase:
        return self.state.phase

    def restore(self) -> TrackerState:
        """Load the saved snapshot into the live state at startup."""
        loaded = self.persistence.load()
        self.state.session = loaded.session
        self.state.meeting = loaded.meeting
        self.state.accumulation = loaded.accumulation
        self.state.poll_health = PollHealth()
        if self.state.session.authenticated and self.state.session.access_token:
            self.state.phase = TrackerPhase.AUTHENTICATED
            self.state.auth_status = StatusMessage(
                "Session restored - reconnecting to meeting", "info"
            )
        else:
            self.state.phase = TrackerPhase.UNAUTHENTICATED
        return self.state

    def begin_authentication(self) -> str:
        """Start the OAuth flow and return the URL the user must open."""
        self._transition(TrackerPhase.AUTHENTICATING)
        self.state.auth_status = StatusMessage("Starting authentication...", "info")
        return f"{self.auth_base_url.rstrip('/')}/auth"

    def cancel_authentication(self) -> None:
        """The authorization window closed without a callback."""
        if self.state.phase == TrackerPhase.AUTHENTICATING:
            self._transition(TrackerPhase.UNAUTHENTICATED)
            self.state.auth_status = StatusMessage(
                "Authentication cancelled", "warning"
            )

    async def handle_message(self, payload: object) -> bool:
        """Handle a cross-window message; True when it completed authentication."""
        if not isinstance(payload, dict):
            return False
        session_id = payload.get("sessionId")
        if payload.get("type") != AUTH_SUCCESS_MESSAGE or not session_id:
            return False
        return await self.complete_authentication(str(session_id))

    async def complete_authentication(self, session_id: str) -> bool:
        """Exchange the callback session id for a bearer token."""
        if self.state.phase != TrackerPhase.AUTHENTICATING:
            self._transition(TrackerPhase.AUTHENTICATING)
        self.state.session.session_id = session_id
        self.state.auth_status = StatusMessage(
            "Authentication successful! Getting access token...", "success"
        )
        try:
            grant = await self.auth_client.fetch_token(session_id)
        except TokenExchangeError as exc:
            _logger.warning("Failed to get access token: %s", exc)
            self.state.auth_status = StatusMessage("Failed to get access token", "error")
            self._fail(str(exc))
            return False

        session = self.state.session
        session.access_token = grant.access_token
        session.authenticated = True
        session.token_expires_at = (
            self.clock() + timedelta(seconds=grant.expires_in)
            if grant.expires_in is not None
            else None
        )
        self.state.auth_status = StatusMessage("Ready to start tracking!", "success")
        self._transition(TrackerPhase.AUTHENTICATED)
        _logger.info("Authentication completed for session %s", session_id)
        return True

    async def link_meeting(self, meet_sdk_param: str | None = None) -> str | None:
        """Run the host handshake and start tracking the reported meeting."""
        if self.state.phase not in {
            TrackerPhase.AUTHENTICATED,
            TrackerPhase.MEETING_LINKED,
        }:
            raise InvalidTransitionError(
                f"Cannot link a meeting while {self.state.phase}"
            )
        if meet_sdk_param is not None:
            self.meet_sdk_param = meet_sdk_param
        try:
            meeting_id = await self._handshake(self.meet_sdk_param)
        except HandshakeError as exc:
            _logger.warning("Error initializing meeting context: %s", exc)
            self.state.auth_status = StatusMessage(
                f"Failed to connect to Meet: {exc}", "error"
            )
            self._fail(f"Failed to connect to Meet: {exc}")
            return None

        previous = self.state.meeting.meeting_id
        self.state.meeting.meeting_id = meeting_id
        if previous and previous != meeting_id:
            _logger.info("New meeting detected (%s -> %s)", previous, meeting_id)
            self.reset()

        accumulation = self.state.accumulation
        accumulation.current_participant_count = max(
            1, accumulation.current_participant_count
        )
        self._transition(TrackerPhase.MEETING_LINKED)
        self.start_tracking()
        self.state.ticker_status = StatusMessage(
            "Connected to meeting - starting tracking...", "success"
        )
        return meeting_id

    def start_tracking(self) -> None:
        """Start the ticker and the poller for the linked meeting."""
        meeting_id = self.state.meeting.meeting_id
        if self.state.phase != TrackerPhase.MEETING_LINKED or not meeting_id:
            raise InvalidTransitionError("Tracking needs a linked meeting")
        self.ticker.start()
        if self.state.poll_health.halted:
            self._restart_poller()
        self.poller.start(meeting_id)
        self.persistence.save(self.state)

    def stop_tracking(self) -> None:
        """Cancel both schedules; the accumulated total is kept as is."""
        self.ticker.stop()
        self.poller.stop()
        self.persistence.save(self.state)

    def reset(self) -> None:
        """Zero the accumulation and restart any active schedules."""
        _logger.info("Resetting tracking data for new meeting")
        was_active = self.ticker.running or self.poller.running
        self.ticker.stop()
        self.poller.stop()
        self.state.accumulation.reset()
        self.state.poll_health = PollHealth()
        self.state.generation += 1
        self.poller = self._build_poller()
        if was_active and self.state.meeting.meeting_id:
            self.ticker.start()
            self.poller.start(self.state.meeting.meeting_id)
        self.persistence.save(self.state)

    async def retry(self) -> TrackerPhase:
        """Explicit user retry from the error view or after polling halted."""
        _logger.info("Retrying...")
        if not self.state.session.has_valid_token(self.clock()):
            self._to_unauthenticated()
            return self.state.phase
        if self.state.phase == TrackerPhase.MEETING_LINKED:
            self._restart_poller()
            self.start_tracking()
            return self.state.phase
        if self.state.phase == TrackerPhase.ERROR:
            self._transition(TrackerPhase.AUTHENTICATED)
        if self.state.phase == TrackerPhase.AUTHENTICATED:
            await self.link_meeting()
        return self.state.phase

    def logout(self) -> None:
        """Stop tracking and forget the session."""
        self.stop_tracking()
        self.state.session.clear()
        self._to_unauthenticated()

    def _to_unauthenticated(self) -> None:
        if self.state.phase != TrackerPhase.UNAUTHENTICATED:
            self._transition(TrackerPhase.UNAUTHENTICATED)
        self.state.auth_status = StatusMessage("Ready - Click authenticate to begin")

    async def _handshake(self, meet_sdk_param: str | None) -> str:
        self.state.auth_status = StatusMessage("Waiting for Meet SDK...", "info")
        try:
            await asyncio.wait_for(
                self.session_provider.wait_until_ready(),
                timeout=self.handshake_timeout_seconds,
            )
        except TimeoutError as exc:
            if not self.session_provider.is_available():
                raise HandshakeTimeoutError(
                    "Meet add-ons SDK not available at all"
                ) from exc
            _logger.warning("SDK not fully initialized, but trying anyway")

        project_number = parse_cloud_project_number(meet_sdk_param)
        self.state.auth_status = StatusMessage("Creating add-on session...", "info")
        try:
            info = await asyncio.wait_for(
                self._fetch_meeting_info(project_number),
                timeout=self.handshake_timeout_seconds,
            )
        except TimeoutError as exc:
            raise HandshakeTimeoutError(
                "Timed out waiting for meeting information"
            ) from exc
        except HandshakeError:
            raise
        except Exception as exc:
            _logger.exception("Meet SDK call failed")
            raise HandshakeFailedError(f"Meet SDK call failed: {exc}") from exc
        meeting_id = info.get("meetingId") if isinstance(info, dict) else None
        if not meeting_id:
            raise HandshakeFailedError("Could not get meeting information from Meet SDK")
        return str(meeting_id)

    async def _fetch_meeting_info(self, project_number: str) -> dict[str, object]:
        session = await self.session_provider.create_addon_session(project_number)
        side_panel = await session.create_side_panel_client()
        return await side_panel.get_meeting_info()

    def _restart_poller(self) -> None:
        self.poller.stop()
        self.state.poll_health = PollHealth()
        self.poller = self._build_poller()

    def _build_poller(self) -> ParticipantPoller:
        return ParticipantPoller(
            state=self.state,
            client=self.participant_client,
            persistence=self.persistence,
            interval_seconds=self.poll_interval_seconds,
            max_errors=self.max_poll_errors,
            backoff=self.backoff,
            clock=self.clock,
        )

    def _fail(self, message: str) -> None:
        self.stop_tracking()
        self.state.error_message = message
        self.state.phase = TrackerPhase.ERROR
        _logger.info("Tracker moved to %s", TrackerPhase.ERROR)
        self.persistence.save(self.state)

    def _transition(self, phase: TrackerPhase) -> None:
        current = self.state.phase
        if phase not in _ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(f"Cannot move from {current} to {phase}")
        if current == TrackerPhase.MEETING_LINKED and phase != current:
            self.ticker.stop()
            self.poller.stop()
        self.state.phase = phase
        if phase != TrackerPhase.ERROR:
            self.state.error_message = None
        _logger.info("Tracker moved from %s to %s", current, phase)
        self.persistence.save(self.state)
