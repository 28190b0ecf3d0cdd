"""Application configuration."""

import os
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

# The ticker accumulates one count per elapsed second, so the period is not a setting.
TICK_PERIOD_SECONDS = 1.0

MEET_READ_SCOPE = "https://www.googleapis.com/auth/meet.meetings.read"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    auth_base_url: str = "http://localhost:8080"
    participants_path: str = "/participants"
    poll_interval_seconds: float = 5.0
    max_poll_errors: int = 3
    retry_delay_seconds: float = 5.0
    poll_backoff: Literal["fixed", "exponential"] = "fixed"
    handshake_timeout_ms: int = 10000
    state_file: Path = Path.home() / ".meeting_ticker" / "state.json"
    storage_key: str = "meetTicker_meetingState"
    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str | None = None
    oauth_scopes: str = MEET_READ_SCOPE
    token_ttl_seconds: int = 3600
    participant_source: Literal["demo", "meet_api"] = "demo"
    meet_api_base_url: str = "https://meet.googleapis.com/v2"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="MEETING_TICKER_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("poll_interval_seconds")
    @classmethod
    def _clamp_poll_interval(cls, value: float) -> float:
        return _clamp(value, 5.0, 300.0)

    @field_validator("max_poll_errors")
    @classmethod
    def _clamp_max_poll_errors(cls, value: int) -> int:
        return int(_clamp(value, 1, 10))

    @field_validator("retry_delay_seconds")
    @classmethod
    def _clamp_retry_delay(cls, value: float) -> float:
        return _clamp(value, 1.0, 30.0)

    @property
    def oauth_configured(self) -> bool:
        """Return True when the OAuth routes have everything they need."""
        return bool(self.client_id and self.client_secret and self.redirect_uri)

    @property
    def handshake_timeout_seconds(self) -> float:
        return self.handshake_timeout_ms / 1000


def parse_scopes(raw: str | None) -> list[str]:
    """Parse a comma or space separated list of OAuth scopes."""
    if raw is None:
        return []
    scopes: list[str] = []
    for chunk in raw.replace(",", " ").split():
        value = chunk.strip()
        if value and value not in scopes:
            scopes.append(value)
    return scopes


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
