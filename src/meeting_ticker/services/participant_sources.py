"""Server-side sources of participant counts."""

import logging
import random
from dataclasses import dataclass, field
from typing import Protocol

from meeting_ticker.adapters.meet_api_client import MeetApiClient

_logger = logging.getLogger(__name__)


class ParticipantSource(Protocol):
    """Counts the participants of a conference."""

    demo: bool

    async def count_participants(self, access_token: str, conference_id: str) -> int:
        """Return the number of participants in a conference."""


@dataclass
class DemoParticipantSource(ParticipantSource):
    """Simulated counts for running without Meet API access."""

    low: int = 2
    high: int = 9
    rng: random.Random = field(default_factory=random.Random)
    demo: bool = True

    async def count_participants(self, access_token: str, conference_id: str) -> int:
        count = self.rng.randint(self.low, self.high)  # nosec B311
        _logger.info("Demo participant count for %s: %s", conference_id, count)
        return count


@dataclass
class MeetApiParticipantSource(ParticipantSource):
    """Counts participants by paging through the Meet conference record."""

    client: MeetApiClient
    demo: bool = False

    async def count_participants(self, access_token: str, conference_id: str) -> int:
        total = 0
        page_token: str | None = None
        while True:
            payload = await self.client.list_participants(
                access_token, conference_id, page_token
            )
            participants = payload.get("participants") or []
            total += len(participants) if isinstance(participants, list) else 0
            next_token = payload.get("nextPageToken")
            _logger.info(
                "Fetched %s participants, total so far: %s",
                len(participants) if isinstance(participants, list) else 0,
                total,
            )
            if not next_token:
                break
            page_token = str(next_token)
        _logger.info("Total participant count for %s: %s", conference_id, total)
        return total
