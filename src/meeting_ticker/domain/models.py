"""Value objects exchanged with external services."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TokenGrant:
    """Bearer token handed out by the auth service."""

    access_token: str
    expires_in: int | None = None


@dataclass(frozen=True)
class ParticipantCount:
    """Participant count reported for a conference."""

    conference_id: str
    participant_count: int
    timestamp: datetime | None = None


@dataclass(frozen=True)
class OAuthTokens:
    """Tokens returned by the OAuth authorization-code exchange."""

    access_token: str
    refresh_token: str | None
    expiry_date: datetime | None


@dataclass(frozen=True)
class TokenRecord:
    """Stored tokens for an authenticated session."""

    access_token: str
    refresh_token: str | None
    expiry_date: datetime | None
    created_at: datetime
