"""Google Meet REST API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

MEET_PAGE_SIZE = 100


class MeetApiClient(Protocol):
    """Interface for Google Meet conference record lookups."""

    async def list_participants(
        self, access_token: str, conference_id: str, page_token: str | None = None
    ) -> dict[str, object]:
        """Return one page of participants for a conference record."""


@dataclass
class HttpxMeetApiClient(MeetApiClient):
    """HTTPX-backed Google Meet client."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxMeetApiClient":
        """Create a Meet client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def list_participants(
        self, access_token: str, conference_id: str, page_token: str | None = None
    ) -> dict[str, object]:
        """List participants of ``conferenceRecords/<conference_id>``."""
        url = f"{self.base_url}/conferenceRecords/{conference_id}/participants"
        params: dict[str, object] = {"pageSize": MEET_PAGE_SIZE}
        if page_token:
            params["pageToken"] = page_token
        response = await self.http_client.get(
            url,
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=15,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
