"""Shared test fixtures."""

import asyncio
import random
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import httpx
import pytest

from meeting_ticker.adapters.auth_client import AuthClient
from meeting_ticker.adapters.google_oauth_client import OAuthClient
from meeting_ticker.adapters.meet_session import (
    AddonSession,
    SessionProvider,
    SidePanelClient,
    encode_meet_sdk_param,
)
from meeting_ticker.adapters.participants_client import ParticipantCountClient
from meeting_ticker.config import Settings
from meeting_ticker.containers import AppContainer
from meeting_ticker.domain.errors import PersistenceError, TokenExchangeError
from meeting_ticker.domain.models import OAuthTokens, ParticipantCount, TokenGrant
from meeting_ticker.domain.tracking import TrackerState
from meeting_ticker.services.participant_sources import DemoParticipantSource
from meeting_ticker.services.persistence import PersistenceAdapter, StateStore
from meeting_ticker.services.token_store import InMemoryTokenStore
from meeting_ticker.services.tracker import MeetingTracker

MEET_SDK_PARAM = encode_meet_sdk_param("1234567890")


@dataclass
class MutableClock:
    """Deterministic clock the tests move forward by hand."""

    now: datetime = field(
        default_factory=lambda: datetime(2024, 5, 6, 9, 30, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class InMemoryStateStore(StateStore):
    """In-memory key/value store for tests."""

    values: dict[str, str] = field(default_factory=dict)
    writes: int = 0

    def read(self, key: str) -> str | None:
        return self.values.get(key)

    def write(self, key: str, value: str) -> None:
        self.writes += 1
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)


@dataclass
class FailingStateStore(StateStore):
    """Store whose every operation fails like an unavailable disk."""

    def read(self, key: str) -> str | None:
        raise PersistenceError("storage unavailable")

    def write(self, key: str, value: str) -> None:
        raise PersistenceError("storage unavailable")

    def remove(self, key: str) -> None:
        raise PersistenceError("storage unavailable")


@dataclass
class FakeAuthClient(AuthClient):
    """Fake auth client that hands out a fixed token or fails."""

    grant: TokenGrant = field(
        default_factory=lambda: TokenGrant(access_token="access-token", expires_in=3600)
    )
    error: TokenExchangeError | None = None
    calls: list[str] = field(default_factory=list)

    async def fetch_token(self, session_id: str) -> TokenGrant:
        self.calls.append(session_id)
        if self.error is not None:
            raise self.error
        return self.grant


@dataclass
class FakeParticipantClient(ParticipantCountClient):
    """Fake count client replaying queued counts and errors."""

    results: list[int | Exception] = field(default_factory=list)
    default: int = 3
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def fetch_count(
        self, access_token: str, conference_id: str
    ) -> ParticipantCount:
        self.calls.append((access_token, conference_id))
        item = self.results.pop(0) if self.results else self.default
        if isinstance(item, Exception):
            raise item
        return ParticipantCount(conference_id=conference_id, participant_count=item)


@dataclass
class FakeSidePanelClient(SidePanelClient):
    meeting_id: str | None
    hang: bool = False

    async def get_meeting_info(self) -> dict[str, object]:
        if self.hang:
            await asyncio.Event().wait()
        if self.meeting_id is None:
            return {}
        return {"meetingId": self.meeting_id}


@dataclass
class FakeAddonSession(AddonSession):
    meeting_id: str | None
    hang: bool = False

    async def create_side_panel_client(self) -> SidePanelClient:
        return FakeSidePanelClient(self.meeting_id, hang=self.hang)


@dataclass
class FakeSessionProvider(SessionProvider):
    """Host integration whose readiness and meeting id tests control."""

    meeting_id: str | None = "abc"
    ready: bool = True
    available: bool = True
    error: Exception | None = None
    hang_meeting_info: bool = False
    project_numbers: list[str] = field(default_factory=list)

    def is_available(self) -> bool:
        return self.available

    async def wait_until_ready(self) -> None:
        if not self.ready:
            await asyncio.Event().wait()

    async def create_addon_session(self, cloud_project_number: str) -> AddonSession:
        self.project_numbers.append(cloud_project_number)
        if self.error is not None:
            raise self.error
        return FakeAddonSession(self.meeting_id, hang=self.hang_meeting_info)


@dataclass
class FakeOAuthClient(OAuthClient):
    """Fake OAuth client with a canned consent URL and token exchange."""

    tokens: OAuthTokens = field(
        default_factory=lambda: OAuthTokens(
            access_token="google-access-token",
            refresh_token="google-refresh-token",
            expiry_date=datetime.now(tz=UTC) + timedelta(hours=1),
        )
    )
    fail: bool = False
    codes: list[str] = field(default_factory=list)

    def authorization_url(self, state: str, scopes: list[str]) -> str:
        return f"https://consent.test/auth?state={state}&scope={'+'.join(scopes)}"

    async def exchange_code(self, code: str) -> OAuthTokens:
        self.codes.append(code)
        if self.fail:
            raise httpx.ConnectError("token endpoint unreachable")
        return self.tokens


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        auth_base_url="https://ticker.test",
        state_file=tmp_path / "state.json",
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="https://ticker.test/oauthcallback",
    )


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def state_store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def persistence(state_store: InMemoryStateStore) -> PersistenceAdapter:
    return PersistenceAdapter(store=state_store)


@pytest.fixture
def state() -> TrackerState:
    return TrackerState()


@pytest.fixture
def auth_client() -> FakeAuthClient:
    return FakeAuthClient()


@pytest.fixture
def participant_client() -> FakeParticipantClient:
    return FakeParticipantClient()


@pytest.fixture
def session_provider() -> FakeSessionProvider:
    return FakeSessionProvider()


@pytest.fixture
def tracker(
    state: TrackerState,
    auth_client: FakeAuthClient,
    participant_client: FakeParticipantClient,
    session_provider: FakeSessionProvider,
    persistence: PersistenceAdapter,
    clock: MutableClock,
) -> MeetingTracker:
    return MeetingTracker(
        state=state,
        auth_client=auth_client,
        participant_client=participant_client,
        session_provider=session_provider,
        persistence=persistence,
        auth_base_url="https://ticker.test",
        handshake_timeout_seconds=0.05,
        clock=clock,
    )


@pytest.fixture
def oauth_client() -> FakeOAuthClient:
    return FakeOAuthClient()


@pytest.fixture
def container(settings: Settings, oauth_client: FakeOAuthClient) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        token_store=InMemoryTokenStore(),
        oauth_client=oauth_client,
        participant_source=DemoParticipantSource(rng=random.Random(7)),
        close_resources=close_resources,
    )
