"""Pure projection of tracker state to what the panel shows."""

from dataclasses import dataclass

from meeting_ticker.domain.tracking import StatusMessage, TrackerPhase, TrackerState
from meeting_ticker.domain.units import (
    format_duration,
    participant_label,
    scale_person_seconds,
)

AUTH_VIEW = "auth"
TICKER_VIEW = "ticker"
ERROR_VIEW = "error"


@dataclass(frozen=True)
class TickerView:
    """Presentation mode plus the strings each mode displays."""

    mode: str
    ticker_value: str
    ticker_unit: str
    elapsed: str
    participants: str
    meeting_status: str
    status: StatusMessage | None
    error_message: str | None = None


def render(state: TrackerState) -> TickerView:
    """Map state to a view without touching it."""
    accumulation = state.accumulation
    scaled = scale_person_seconds(accumulation.total_person_seconds)
    if state.phase == TrackerPhase.ERROR:
        mode = ERROR_VIEW
        status = state.auth_status
    elif state.phase == TrackerPhase.MEETING_LINKED:
        mode = TICKER_VIEW
        status = state.ticker_status
    else:
        mode = AUTH_VIEW
        status = state.auth_status
    return TickerView(
        mode=mode,
        ticker_value=scaled.text,
        ticker_unit=scaled.unit,
        elapsed=format_duration(accumulation.elapsed_seconds),
        participants=participant_label(accumulation.current_participant_count),
        meeting_status="Active" if accumulation.tracking else "Stopped",
        status=status,
        error_message=(
            (state.error_message or "An unexpected error occurred")
            if mode == ERROR_VIEW
            else None
        ),
    )


def render_line(view: TickerView) -> str:
    """One-line text rendering used by the terminal runner."""
    if view.mode == ERROR_VIEW:
        return f"[error] {view.error_message}"
    if view.mode == AUTH_VIEW:
        return f"[auth] {view.status.text if view.status else ''}".rstrip()
    line = (
        f"{view.ticker_value} {view.ticker_unit} | {view.elapsed} | "
        f"{view.participants} | {view.meeting_status}"
    )
    if view.status:
        line = f"{line} | {view.status.text}"
    return line
