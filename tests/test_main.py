"""Tests for the terminal runner."""

import asyncio
import json
from pathlib import Path

from meeting_ticker.config import Settings
from meeting_ticker.main import main, parse_args, run


def test_parse_args() -> None:
    args = parse_args(["--meeting-id", "abc", "--session-id", "s1", "--duration", "2"])

    assert args.meeting_id == "abc"
    assert args.session_id == "s1"
    assert args.duration == 2
    assert args.cloud_project_number == "0"


def test_run_without_session_asks_for_authentication(settings: Settings) -> None:
    exit_code = asyncio.run(run(parse_args(["--meeting-id", "abc"]), settings))

    assert exit_code == 1


def test_run_resumes_saved_session(settings: Settings) -> None:
    snapshot = {
        "sessionId": "sess-1",
        "accessToken": "tok",
        "isAuthenticated": True,
        "isTracking": True,
        "totalPersonSeconds": 120,
        "currentParticipantCount": 2,
        "conferenceId": "abc",
    }
    settings.state_file.write_text(
        json.dumps({settings.storage_key: json.dumps(snapshot)}), encoding="utf-8"
    )

    exit_code = asyncio.run(
        run(parse_args(["--meeting-id", "abc", "--duration", "0"]), settings)
    )

    assert exit_code == 0
    stored = json.loads(settings.state_file.read_text(encoding="utf-8"))
    saved = json.loads(stored[settings.storage_key])
    assert saved["conferenceId"] == "abc"
    assert saved["totalPersonSeconds"] == 120
    assert saved["isTracking"] is False


def test_main_without_session_returns_1(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MEETING_TICKER_STATE_FILE", str(tmp_path / "state.json"))

    assert main(["--meeting-id", "abc"]) == 1
