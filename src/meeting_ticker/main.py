"""Terminal runner for the meeting ticker."""

import argparse
import asyncio
import logging
import sys

from meeting_ticker.adapters.meet_session import (
    StaticSessionProvider,
    encode_meet_sdk_param,
)
from meeting_ticker.app_logging import configure_logging
from meeting_ticker.config import TICK_PERIOD_SECONDS, Settings
from meeting_ticker.containers import build_tracker_container
from meeting_ticker.domain.tracking import TrackerPhase
from meeting_ticker.services.view import render, render_line

_logger = logging.getLogger("meeting_ticker.main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="meeting-ticker",
        description="Show a live person-seconds ticker for a meeting.",
    )
    parser.add_argument("--meeting-id", required=True, help="Meeting to track")
    parser.add_argument(
        "--cloud-project-number",
        default="0",
        help="Cloud project number used for the add-on handshake",
    )
    parser.add_argument(
        "--session-id",
        help="Session id delivered by the OAuth callback page",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (runs until interrupted by default)",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, settings: Settings | None = None) -> int:
    """Resume or authenticate, link the meeting and log the ticker every second."""
    container = build_tracker_container(
        StaticSessionProvider(meeting_id=args.meeting_id), settings
    )
    tracker = container.tracker
    try:
        tracker.restore()
        if args.session_id:
            await tracker.complete_authentication(args.session_id)
        if tracker.phase != TrackerPhase.AUTHENTICATED:
            auth_url = f"{container.settings.auth_base_url.rstrip('/')}/auth"
            _logger.info("Not authenticated. Open %s and pass --session-id", auth_url)
            return 1

        await tracker.link_meeting(encode_meet_sdk_param(args.cloud_project_number))
        loop = asyncio.get_running_loop()
        deadline = None if args.duration is None else loop.time() + args.duration
        while deadline is None or loop.time() < deadline:
            view = render(tracker.state)
            _logger.info(render_line(view))
            if tracker.phase == TrackerPhase.ERROR:
                return 1
            await asyncio.sleep(TICK_PERIOD_SECONDS)
        return 0
    finally:
        if tracker.phase == TrackerPhase.MEETING_LINKED:
            tracker.stop_tracking()
        await container.close_resources()


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
