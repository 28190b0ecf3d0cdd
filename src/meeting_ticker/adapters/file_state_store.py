"""JSON-file backed key/value store for persisted tracker state."""

import json
import os
from dataclasses import dataclass
from pathlib import Path

from meeting_ticker.domain.errors import PersistenceError
from meeting_ticker.services.persistence import StateStore


@dataclass
class JsonFileStateStore(StateStore):
    """Keeps string values under string keys in a single JSON document."""

    path: Path

    def read(self, key: str) -> str | None:
        """Return the value stored under a key, if present."""
        entries = self._load()
        value = entries.get(key)
        return value if isinstance(value, str) else None

    def write(self, key: str, value: str) -> None:
        """Store a value under a key, replacing the file atomically."""
        entries = self._load()
        entries[key] = value
        self._dump(entries)

    def remove(self, key: str) -> None:
        """Delete a key if present."""
        entries = self._load()
        if entries.pop(key, None) is not None:
            self._dump(entries)

    def _load(self) -> dict[str, object]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Failed to read {self.path}: {exc}") from exc
        return data if isinstance(data, dict) else {}

    def _dump(self, entries: dict[str, object]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceError(f"Failed to write {self.path}: {exc}") from exc
