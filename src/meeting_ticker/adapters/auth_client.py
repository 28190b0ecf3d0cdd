"""Client for the token endpoint of the auth service."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from meeting_ticker.domain.errors import TokenExchangeError
from meeting_ticker.domain.models import TokenGrant


class AuthClient(Protocol):
    """Interface for exchanging a session id for a bearer token."""

    async def fetch_token(self, session_id: str) -> TokenGrant:
        """Return the bearer token stored for a session."""


@dataclass
class HttpxAuthClient(AuthClient):
    """HTTPX-backed auth service client."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxAuthClient":
        """Create an auth client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def fetch_token(self, session_id: str) -> TokenGrant:
        """Retrieve the access token for a session id."""
        url = f"{self.base_url}/token"
        try:
            response = await self.http_client.get(
                url, params={"sessionId": session_id}, timeout=10
            )
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"Failed to get token: {exc}") from exc
        if response.is_error:
            raise TokenExchangeError(
                f"Failed to get token: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise TokenExchangeError("Auth service returned an invalid payload") from exc
        if not isinstance(payload, dict):
            raise TokenExchangeError("Auth service returned an invalid payload")
        access_token = payload.get("access_token")
        if not access_token:
            raise TokenExchangeError("Auth service returned no access token")
        expires_in = payload.get("expires_in")
        return TokenGrant(
            access_token=str(access_token),
            expires_in=int(expires_in) if isinstance(expires_in, int | float) else None,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
