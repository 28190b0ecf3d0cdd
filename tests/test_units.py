"""Tests for unit scaling and display formatting."""

import pytest

from meeting_ticker.domain.units import (
    PERSON_HOURS,
    PERSON_MINUTES,
    PERSON_SECONDS,
    format_duration,
    format_number,
    participant_label,
    scale_person_seconds,
)


@pytest.mark.parametrize(
    ("total", "value", "unit"),
    [
        (0, 0, PERSON_SECONDS),
        (59, 59, PERSON_SECONDS),
        (60, 1, PERSON_MINUTES),
        (89, 1, PERSON_MINUTES),
        (90, 2, PERSON_MINUTES),
        (180, 3, PERSON_MINUTES),
        (3599, 60, PERSON_MINUTES),
        (3600, 1, PERSON_HOURS),
        (5400, 2, PERSON_HOURS),
    ],
)
def test_scale_person_seconds_boundaries(total: int, value: int, unit: str) -> None:
    scaled = scale_person_seconds(total)

    assert scaled.value == value
    assert scaled.unit == unit


def test_scaled_value_text_uses_thousands_separator() -> None:
    scaled = scale_person_seconds(3600 * 1234)

    assert scaled.text == "1,234"
    assert format_number(999) == "999"


def test_format_duration() -> None:
    assert format_duration(0) == "0s"
    assert format_duration(45.9) == "45s"
    assert format_duration(123) == "2m 3s"
    assert format_duration(3723) == "1h 2m 3s"
    assert format_duration(-5) == "0s"


def test_participant_label() -> None:
    assert participant_label(1) == "1 participant"
    assert participant_label(0) == "0 participants"
    assert participant_label(4) == "4 participants"
