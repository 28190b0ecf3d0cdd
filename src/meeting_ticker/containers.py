"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from meeting_ticker.adapters.auth_client import HttpxAuthClient
from meeting_ticker.adapters.file_state_store import JsonFileStateStore
from meeting_ticker.adapters.google_oauth_client import GoogleOAuthClient, OAuthClient
from meeting_ticker.adapters.meet_api_client import HttpxMeetApiClient
from meeting_ticker.adapters.meet_session import SessionProvider
from meeting_ticker.adapters.participants_client import HttpxParticipantCountClient
from meeting_ticker.config import Settings
from meeting_ticker.domain.tracking import TrackerState
from meeting_ticker.services.backoff import (
    BackoffPolicy,
    ExponentialBackoff,
    FixedInterval,
)
from meeting_ticker.services.participant_sources import (
    DemoParticipantSource,
    MeetApiParticipantSource,
    ParticipantSource,
)
from meeting_ticker.services.persistence import PersistenceAdapter
from meeting_ticker.services.token_store import InMemoryTokenStore, TokenStore
from meeting_ticker.services.tracker import MeetingTracker


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    token_store: TokenStore
    oauth_client: OAuthClient | None
    participant_source: ParticipantSource
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container for the API."""
    resolved_settings = settings or Settings()
    oauth_client: GoogleOAuthClient | None = None
    if resolved_settings.oauth_configured:
        oauth_client = GoogleOAuthClient.create(
            client_id=str(resolved_settings.client_id),
            client_secret=str(resolved_settings.client_secret),
            redirect_uri=str(resolved_settings.redirect_uri),
        )
    meet_client: HttpxMeetApiClient | None = None
    participant_source: ParticipantSource
    if resolved_settings.participant_source == "meet_api":
        meet_client = HttpxMeetApiClient.create(resolved_settings.meet_api_base_url)
        participant_source = MeetApiParticipantSource(meet_client)
    else:
        participant_source = DemoParticipantSource()

    async def close_resources() -> None:
        if oauth_client is not None:
            await oauth_client.close()
        if meet_client is not None:
            await meet_client.close()

    return AppContainer(
        settings=resolved_settings,
        token_store=InMemoryTokenStore(),
        oauth_client=oauth_client,
        participant_source=participant_source,
        close_resources=close_resources,
    )


@dataclass
class TrackerContainer:
    """Holds the client-side tracker and the resources it owns."""

    settings: Settings
    tracker: MeetingTracker
    close_resources: Callable[[], Awaitable[None]]


def build_tracker_container(
    session_provider: SessionProvider, settings: Settings | None = None
) -> TrackerContainer:
    """Create a tracker talking to the configured auth and participant services."""
    resolved_settings = settings or Settings()
    auth_client = HttpxAuthClient.create(resolved_settings.auth_base_url)
    participant_client = HttpxParticipantCountClient.create(
        resolved_settings.auth_base_url, resolved_settings.participants_path
    )
    persistence = PersistenceAdapter(
        store=JsonFileStateStore(resolved_settings.state_file),
        key=resolved_settings.storage_key,
    )
    tracker = MeetingTracker(
        state=TrackerState(),
        auth_client=auth_client,
        participant_client=participant_client,
        session_provider=session_provider,
        persistence=persistence,
        auth_base_url=resolved_settings.auth_base_url,
        poll_interval_seconds=resolved_settings.poll_interval_seconds,
        max_poll_errors=resolved_settings.max_poll_errors,
        handshake_timeout_seconds=resolved_settings.handshake_timeout_seconds,
        backoff=_build_backoff(resolved_settings),
    )

    async def close_resources() -> None:
        await auth_client.close()
        await participant_client.close()

    return TrackerContainer(
        settings=resolved_settings,
        tracker=tracker,
        close_resources=close_resources,
    )


def _build_backoff(settings: Settings) -> BackoffPolicy:
    if settings.poll_backoff == "exponential":
        return ExponentialBackoff(retry_delay_seconds=settings.retry_delay_seconds)
    return FixedInterval()
