"""Add-on session providers for the conferencing host handshake."""

import asyncio
import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Protocol

from meeting_ticker.domain.errors import HandshakeFailedError

# Position of the cloud project number inside the decoded ``meet_sdk`` array.
_PROJECT_NUMBER_INDEX = 3


class SidePanelClient(Protocol):
    """Side-panel surface of an add-on session."""

    async def get_meeting_info(self) -> dict[str, object]:
        """Return meeting information, including ``meetingId``."""


class AddonSession(Protocol):
    """Session established with the conferencing host."""

    async def create_side_panel_client(self) -> SidePanelClient:
        """Create the side-panel client for this session."""


class SessionProvider(Protocol):
    """Host integration able to open add-on sessions."""

    def is_available(self) -> bool:
        """Return True when the host integration exists at all."""

    async def wait_until_ready(self) -> None:
        """Resolve once the host integration is fully initialized."""

    async def create_addon_session(self, cloud_project_number: str) -> AddonSession:
        """Open an add-on session for a cloud project."""


def parse_cloud_project_number(meet_sdk_param: str | None) -> str:
    """Extract the cloud project number from the host-supplied ``meet_sdk`` value."""
    if not meet_sdk_param:
        raise HandshakeFailedError("Meet SDK parameter missing")
    try:
        decoded = base64.b64decode(meet_sdk_param, validate=True)
        data = json.loads(decoded)
    except (binascii.Error, ValueError) as exc:
        raise HandshakeFailedError("Could not decode Meet SDK parameter") from exc
    if not isinstance(data, list) or len(data) <= _PROJECT_NUMBER_INDEX:
        raise HandshakeFailedError(
            "Could not determine cloud project number from Meet SDK"
        )
    project_number = data[_PROJECT_NUMBER_INDEX]
    if project_number in (None, ""):
        raise HandshakeFailedError(
            "Could not determine cloud project number from Meet SDK"
        )
    return str(project_number)


def encode_meet_sdk_param(cloud_project_number: str) -> str:
    """Build a ``meet_sdk`` value carrying the given cloud project number."""
    payload = [None] * _PROJECT_NUMBER_INDEX + [cloud_project_number]
    return base64.b64encode(json.dumps(payload).encode()).decode()


@dataclass
class StaticSidePanelClient(SidePanelClient):
    meeting_id: str

    async def get_meeting_info(self) -> dict[str, object]:
        return {"meetingId": self.meeting_id}


@dataclass
class StaticAddonSession(AddonSession):
    cloud_project_number: str
    meeting_id: str

    async def create_side_panel_client(self) -> SidePanelClient:
        return StaticSidePanelClient(self.meeting_id)


@dataclass
class StaticSessionProvider(SessionProvider):
    """Provider for a meeting whose id is known up front.

    Used when the tracker runs outside the conferencing host, e.g. from the
    terminal runner.
    """

    meeting_id: str
    _ready: asyncio.Event = field(default_factory=asyncio.Event, init=False)

    def __post_init__(self) -> None:
        self._ready.set()

    def is_available(self) -> bool:
        return True

    async def wait_until_ready(self) -> None:
        await self._ready.wait()

    async def create_addon_session(self, cloud_project_number: str) -> AddonSession:
        return StaticAddonSession(
            cloud_project_number=cloud_project_number, meeting_id=self.meeting_id
        )
