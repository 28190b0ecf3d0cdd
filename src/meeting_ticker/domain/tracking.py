"""Domain state owned by the meeting tracker."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from meeting_ticker.domain.errors import ErrorKind


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class TrackerPhase(StrEnum):
    """Phases of the session and meeting identity state machine."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATING = "AUTHENTICATING"
    AUTHENTICATED = "AUTHENTICATED"
    MEETING_LINKED = "MEETING_LINKED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class StatusMessage:
    """User-facing status line with a severity level."""

    text: str
    level: str = "info"


@dataclass
class Session:
    """Authenticated session with the auth service."""

    session_id: str | None = None
    access_token: str | None = None
    authenticated: bool = False
    token_expires_at: datetime | None = None

    def has_valid_token(self, now: datetime) -> bool:
        """Return True when a bearer token is held and not known to be expired."""
        if not self.access_token:
            return False
        return self.token_expires_at is None or now < self.token_expires_at

    def clear(self) -> None:
        self.session_id = None
        self.access_token = None
        self.authenticated = False
        self.token_expires_at = None


@dataclass
class MeetingContext:
    """Identity of the meeting currently being tracked."""

    meeting_id: str | None = None


@dataclass
class AccumulationState:
    """Running person-seconds total for the linked meeting.

    ``total_person_seconds`` only grows between resets. ``elapsed_seconds`` is
    recomputed on every tick from ``start_time`` and is not persisted.
    """

    total_person_seconds: float = 0.0
    start_time: datetime | None = None
    current_participant_count: int = 0
    last_participant_update: datetime | None = None
    tracking: bool = False
    elapsed_seconds: float = 0.0

    def reset(self) -> None:
        self.total_person_seconds = 0.0
        self.start_time = None
        self.current_participant_count = 0
        self.last_participant_update = None
        self.elapsed_seconds = 0.0


@dataclass
class PollHealth:
    """Consecutive failure bookkeeping for the participant poller."""

    consecutive_errors: int = 0
    last_error: ErrorKind | None = None
    halted: bool = False


@dataclass
class TrackerState:
    """Single aggregate shared by the ticker, the poller and the tracker."""

    session: Session = field(default_factory=Session)
    meeting: MeetingContext = field(default_factory=MeetingContext)
    accumulation: AccumulationState = field(default_factory=AccumulationState)
    poll_health: PollHealth = field(default_factory=PollHealth)
    phase: TrackerPhase = TrackerPhase.UNAUTHENTICATED
    generation: int = 0
    auth_status: StatusMessage = StatusMessage("Ready - Click authenticate to begin")
    ticker_status: StatusMessage | None = None
    error_message: str | None = None
