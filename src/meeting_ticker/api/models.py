"""Pydantic models for the auth and participant endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class ParticipantCountRequest(BaseModel):
    """Body of a participant-count request."""

    model_config = ConfigDict(populate_by_name=True)

    conference_id: str | None = Field(default=None, alias="conferenceId")


class ParticipantCountResponse(BaseModel):
    """Participant count payload returned to the tracker."""

    model_config = ConfigDict(populate_by_name=True)

    conference_id: str = Field(alias="conferenceId")
    participant_count: int = Field(alias="participantCount")
    timestamp: str
    demo: bool | None = None


class TokenResponse(BaseModel):
    """Bearer token handed to the tracker."""

    access_token: str
    expires_in: int
