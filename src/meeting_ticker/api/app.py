"""FastAPI application factory."""

import html
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from uuid import uuid4

import httpx
from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from meeting_ticker.api.models import (
    ParticipantCountRequest,
    ParticipantCountResponse,
    TokenResponse,
)
from meeting_ticker.app_logging import configure_logging
from meeting_ticker.config import parse_scopes
from meeting_ticker.containers import AppContainer
from meeting_ticker.domain.models import TokenRecord

_DEFAULT_EXPIRES_IN = 3600


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    scopes = parse_scopes(container.settings.oauth_scopes)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.container.oauth_client is None:
            logger.warning("OAuth client is not configured; /auth will answer 503")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": _now_iso(),
            "service": "meeting-ticker",
        }

    @app.get("/auth", response_model=None)
    async def auth(request: Request) -> RedirectResponse | JSONResponse:
        """Redirect to the OAuth consent screen."""
        state_container: AppContainer = request.app.state.container
        if state_container.oauth_client is None:
            return _error(503, "OAuth is not configured")
        session_id = uuid4().hex
        url = state_container.oauth_client.authorization_url(session_id, scopes)
        logger.info("Redirecting to consent screen for session %s", session_id)
        return RedirectResponse(url)

    @app.get("/oauthcallback", response_model=None)
    async def oauth_callback(
        request: Request,
        code: str | None = None,
        state: str | None = None,
        error: str | None = None,
    ) -> HTMLResponse | JSONResponse:
        """Exchange the authorization code and hand the session id to the opener."""
        state_container: AppContainer = request.app.state.container
        if error:
            logger.warning("OAuth error: %s", error)
            return _error(400, f"OAuth error: {error}")
        if not code:
            return _error(400, "Authorization code not provided")
        if state_container.oauth_client is None:
            return _error(503, "OAuth is not configured")
        try:
            tokens = await state_container.oauth_client.exchange_code(code)
        except (httpx.HTTPError, KeyError, ValueError):
            logger.exception("OAuth callback error")
            return _error(500, "Failed to exchange authorization code")

        session_id = state or uuid4().hex
        state_container.token_store.put(
            session_id,
            TokenRecord(
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                expiry_date=tokens.expiry_date,
                created_at=datetime.now(tz=UTC),
            ),
            ttl_seconds=state_container.settings.token_ttl_seconds,
        )
        logger.info("Stored tokens for session %s", session_id)
        return HTMLResponse(_auth_success_page(session_id))

    @app.get("/token", response_model=None)
    async def token(
        request: Request,
        session_id: str | None = Query(default=None, alias="sessionId"),
        x_session_id: str | None = Header(default=None),
    ) -> JSONResponse:
        """Return the bearer token stored for a session."""
        state_container: AppContainer = request.app.state.container
        resolved_id = session_id or x_session_id
        if not resolved_id:
            return _error(400, "Session ID required")
        record = state_container.token_store.get(resolved_id)
        if record is None:
            return _error(404, "Session not found or expired")
        now = datetime.now(tz=UTC)
        if record.expiry_date is not None and now >= record.expiry_date:
            state_container.token_store.delete(resolved_id)
            return _error(401, "Token expired")
        expires_in = (
            int((record.expiry_date - now).total_seconds())
            if record.expiry_date is not None
            else _DEFAULT_EXPIRES_IN
        )
        body = TokenResponse(access_token=record.access_token, expires_in=expires_in)
        return JSONResponse(body.model_dump())

    @app.post("/participants", response_model=None)
    async def participants(
        request: Request,
        body: ParticipantCountRequest,
        authorization: str | None = Header(default=None),
    ) -> JSONResponse:
        """Return the participant count of a conference."""
        state_container: AppContainer = request.app.state.container
        if not authorization or not authorization.startswith("Bearer "):
            return _error(401, "Access token required in Authorization header")
        access_token = authorization.removeprefix("Bearer ")
        if not body.conference_id:
            return _error(400, "conferenceId is required in request body")

        source = state_container.participant_source
        logger.info("Fetching participant count for conference: %s", body.conference_id)
        try:
            count = await source.count_participants(access_token, body.conference_id)
        except httpx.HTTPStatusError as exc:
            logger.warning("Error fetching participant count: %s", exc)
            return _participant_error(exc.response.status_code, str(exc))
        except httpx.HTTPError as exc:
            logger.exception("Error fetching participant count")
            return _error(500, "Failed to fetch participant count", details=str(exc))

        response = ParticipantCountResponse(
            conference_id=body.conference_id,
            participant_count=count,
            timestamp=_now_iso(),
            demo=True if source.demo else None,
        )
        return JSONResponse(response.model_dump(by_alias=True, exclude_none=True))

    return app


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


def _error(status_code: int, message: str, details: str | None = None) -> JSONResponse:
    content: dict[str, str] = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _participant_error(status_code: int, details: str) -> JSONResponse:
    if status_code == 401:
        return _error(
            401, "Unauthorized - invalid or expired access token", details=details
        )
    if status_code == 403:
        return _error(
            403,
            "Forbidden - insufficient permissions or invalid conference ID",
            details=details,
        )
    if status_code == 404:
        return _error(404, "Conference not found", details=details)
    return _error(500, "Failed to fetch participant count", details=details)


def _auth_success_page(session_id: str) -> str:
    message = json.dumps({"type": "auth_success", "sessionId": session_id}).replace(
        "<", "\\u003c"
    )
    return _AUTH_SUCCESS_HTML.format(
        session_id=html.escape(session_id), message=message
    )


_AUTH_SUCCESS_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Authentication Success</title>
    <style>
      body {{ font-family: ui-sans-serif, system-ui, sans-serif; padding: 20px; text-align: center; }}
      .success {{ color: green; }}
      .session-id {{ background: #f0f0f0; padding: 10px; margin: 20px; font-family: monospace; }}
    </style>
  </head>
  <body>
    <h1 class="success">Authentication Successful!</h1>
    <p>You can now close this window and return to the Meeting Cost Ticker.</p>
    <div class="session-id"><strong>Session ID:</strong> {session_id}</div>
    <script>
      if (window.opener) {{
        window.opener.postMessage({message}, "*");
      }}
    </script>
  </body>
</html>
"""
