"""Snapshot persistence for the tracker state."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from meeting_ticker.domain.errors import PersistenceError
from meeting_ticker.domain.tracking import (
    AccumulationState,
    MeetingContext,
    Session,
    TrackerState,
)

_logger = logging.getLogger(__name__)


class StateStore(Protocol):
    """Durable key/value storage for serialized snapshots."""

    def read(self, key: str) -> str | None:
        """Return the stored value for a key, if present."""

    def write(self, key: str, value: str) -> None:
        """Store a value under a key."""

    def remove(self, key: str) -> None:
        """Delete a key."""


class PersistedSnapshot(BaseModel):
    """Serialized projection of the session, meeting and accumulation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_id: str | None = Field(default=None, alias="sessionId")
    access_token: str | None = Field(default=None, alias="accessToken")
    authenticated: bool = Field(default=False, alias="isAuthenticated")
    tracking: bool = Field(default=False, alias="isTracking")
    start_time: datetime | None = Field(default=None, alias="startTime")
    total_person_seconds: float = Field(default=0.0, ge=0, alias="totalPersonSeconds")
    current_participant_count: int = Field(
        default=0, ge=0, alias="currentParticipantCount"
    )
    meeting_id: str | None = Field(default=None, alias="conferenceId")

    @classmethod
    def from_state(cls, state: TrackerState) -> "PersistedSnapshot":
        return cls(
            session_id=state.session.session_id,
            access_token=state.session.access_token,
            authenticated=state.session.authenticated,
            tracking=state.accumulation.tracking,
            start_time=state.accumulation.start_time,
            total_person_seconds=state.accumulation.total_person_seconds,
            current_participant_count=state.accumulation.current_participant_count,
            meeting_id=state.meeting.meeting_id,
        )

    def to_state(self) -> TrackerState:
        """Merge the snapshot into a fresh default state."""
        return TrackerState(
            session=Session(
                session_id=self.session_id,
                access_token=self.access_token,
                authenticated=self.authenticated,
            ),
            meeting=MeetingContext(meeting_id=self.meeting_id),
            accumulation=AccumulationState(
                total_person_seconds=self.total_person_seconds,
                start_time=self.start_time,
                current_participant_count=self.current_participant_count,
                tracking=self.tracking,
            ),
        )


@dataclass
class PersistenceAdapter:
    """Only component allowed to read or write durable tracker state."""

    store: StateStore
    key: str = "meetTicker_meetingState"

    def save(self, state: TrackerState) -> bool:
        """Write a snapshot; failures are logged and reported as False."""
        payload = PersistedSnapshot.from_state(state).model_dump_json(by_alias=True)
        try:
            self.store.write(self.key, payload)
        except PersistenceError as exc:
            _logger.warning("Failed to save state: %s", exc)
            return False
        return True

    def load(self) -> TrackerState:
        """Read the saved snapshot, falling back to a fresh state on any failure."""
        try:
            raw = self.store.read(self.key)
        except PersistenceError as exc:
            _logger.warning("Failed to load saved state: %s", exc)
            return TrackerState()
        if raw is None:
            return TrackerState()
        try:
            snapshot = PersistedSnapshot.model_validate_json(raw)
        except ValidationError as exc:
            _logger.warning(
                "Discarding unreadable saved state (%s errors)", exc.error_count()
            )
            return TrackerState()
        _logger.info(
            "Loaded saved state: meeting=%s total=%s",
            snapshot.meeting_id,
            snapshot.total_person_seconds,
        )
        return snapshot.to_state()

    def clear(self) -> None:
        """Remove the saved snapshot."""
        try:
            self.store.remove(self.key)
        except PersistenceError as exc:
            _logger.warning("Failed to clear saved state: %s", exc)
