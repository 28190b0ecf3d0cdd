"""ASGI entrypoint for the meeting ticker API."""

from meeting_ticker.api.app import create_app
from meeting_ticker.containers import build_container

app = create_app(build_container())
