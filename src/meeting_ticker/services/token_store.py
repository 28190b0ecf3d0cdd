"""Short-lived token storage keyed by OAuth session id."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from meeting_ticker.domain.models import TokenRecord


class TokenStore(Protocol):
    """Storage interface for session tokens."""

    def get(self, session_id: str) -> TokenRecord | None:
        """Return stored tokens if present and not evicted."""

    def put(self, session_id: str, record: TokenRecord, ttl_seconds: int) -> None:
        """Store tokens for a session with a TTL in seconds."""

    def delete(self, session_id: str) -> None:
        """Forget a session."""


@dataclass
class _StoreEntry:
    record: TokenRecord
    evict_at: datetime


@dataclass
class InMemoryTokenStore(TokenStore):
    """In-memory token store; entries disappear after their TTL."""

    _entries: dict[str, _StoreEntry]

    def __init__(self) -> None:
        self._entries = {}

    def get(self, session_id: str) -> TokenRecord | None:
        """Return tokens for a session if the entry hasn't been evicted."""
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        if datetime.now(tz=UTC) >= entry.evict_at:
            self._entries.pop(session_id, None)
            return None
        return entry.record

    def put(self, session_id: str, record: TokenRecord, ttl_seconds: int) -> None:
        """Store tokens with a TTL."""
        evict_at = datetime.now(tz=UTC) + timedelta(seconds=ttl_seconds)
        self._entries[session_id] = _StoreEntry(record=record, evict_at=evict_at)

    def delete(self, session_id: str) -> None:
        self._entries.pop(session_id, None)
