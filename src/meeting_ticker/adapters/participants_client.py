"""Client for the participant-count endpoint."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import httpx

from meeting_ticker.domain.errors import TransientPollError, poll_error_for_status
from meeting_ticker.domain.models import ParticipantCount


class ParticipantCountClient(Protocol):
    """Interface for reading the participant count of a conference."""

    async def fetch_count(
        self, access_token: str, conference_id: str
    ) -> ParticipantCount:
        """Return the current participant count or raise a ParticipantPollError."""


@dataclass
class HttpxParticipantCountClient(ParticipantCountClient):
    """HTTPX-backed participant-count client."""

    url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, path: str) -> "HttpxParticipantCountClient":
        """Create a participant client with a managed httpx session."""
        return cls(
            url=f"{base_url.rstrip('/')}{path}", http_client=httpx.AsyncClient()
        )

    async def fetch_count(
        self, access_token: str, conference_id: str
    ) -> ParticipantCount:
        """POST the conference id and parse the returned count."""
        try:
            response = await self.http_client.post(
                self.url,
                headers={"Authorization": f"Bearer {access_token}"},
                json={"conferenceId": conference_id},
                timeout=10,
            )
        except httpx.HTTPError as exc:
            raise TransientPollError(f"Network error: {exc}") from exc
        if response.is_error:
            raise poll_error_for_status(
                response.status_code,
                f"API error: {response.status_code} {_error_text(response)}",
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransientPollError("Invalid participant payload") from exc
        if not isinstance(payload, dict):
            raise TransientPollError("Invalid participant payload")
        return ParticipantCount(
            conference_id=str(payload.get("conferenceId", conference_id)),
            participant_count=_parse_count(payload.get("participantCount")),
            timestamp=_parse_timestamp(payload.get("timestamp")),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _parse_count(raw: object) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise TransientPollError(f"Invalid participant count: {raw!r}")
    return raw


def _parse_timestamp(raw: object) -> datetime | None:
    if not isinstance(raw, str):
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def _error_text(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return response.reason_phrase
