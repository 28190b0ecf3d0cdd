"""Person-seconds unit scaling and display formatting."""

import math
from dataclasses import dataclass

PERSON_SECONDS = "person-seconds"
PERSON_MINUTES = "person-minutes"
PERSON_HOURS = "person-hours"


@dataclass(frozen=True)
class ScaledValue:
    """A person-seconds total expressed in its display unit."""

    value: int
    unit: str

    @property
    def text(self) -> str:
        return format_number(self.value)


def scale_person_seconds(total_person_seconds: float) -> ScaledValue:
    """Pick the display unit for a total and round it to a whole number.

    Hours once the total reaches 60 person-minutes, minutes once it reaches one
    person-minute, seconds otherwise.
    """
    person_minutes = total_person_seconds / 60
    if person_minutes >= 60:
        return ScaledValue(_round_half_up(person_minutes / 60), PERSON_HOURS)
    if person_minutes >= 1:
        return ScaledValue(_round_half_up(person_minutes), PERSON_MINUTES)
    return ScaledValue(_round_half_up(total_person_seconds), PERSON_SECONDS)


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as ``1h 2m 3s``, ``2m 3s`` or ``3s``."""
    whole = max(0, math.floor(seconds))
    hours, remainder = divmod(whole, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_number(value: int) -> str:
    return f"{value:,}"


def participant_label(count: int) -> str:
    if count == 1:
        return "1 participant"
    return f"{count} participants"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
