"""Google OAuth 2.0 authorization-code client."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

import httpx

from meeting_ticker.domain.models import OAuthTokens

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class OAuthClient(Protocol):
    """Interface for the OAuth consent redirect and code exchange."""

    def authorization_url(self, state: str, scopes: list[str]) -> str:
        """Return the consent URL carrying ``state``."""

    async def exchange_code(self, code: str) -> OAuthTokens:
        """Exchange an authorization code for tokens."""


@dataclass
class GoogleOAuthClient(OAuthClient):
    """HTTPX-backed Google OAuth client."""

    client_id: str
    client_secret: str
    redirect_uri: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, client_id: str, client_secret: str, redirect_uri: str
    ) -> "GoogleOAuthClient":
        """Create an OAuth client with a managed httpx session."""
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            http_client=httpx.AsyncClient(),
        )

    def authorization_url(self, state: str, scopes: list[str]) -> str:
        """Build the offline-access consent URL."""
        url = httpx.URL(
            GOOGLE_AUTH_URI,
            params={
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "access_type": "offline",
                "prompt": "consent",
                "scope": " ".join(scopes),
                "state": state,
            },
        )
        return str(url)

    async def exchange_code(self, code: str) -> OAuthTokens:
        """Exchange an authorization code at Google's token endpoint."""
        response = await self.http_client.post(
            GOOGLE_TOKEN_URI,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
            timeout=15,
        )
        response.raise_for_status()
        payload = response.json()
        expires_in = payload.get("expires_in")
        expiry_date = None
        if isinstance(expires_in, int | float):
            expiry_date = datetime.now(tz=UTC) + timedelta(seconds=expires_in)
        return OAuthTokens(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expiry_date=expiry_date,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
