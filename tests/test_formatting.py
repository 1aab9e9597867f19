from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from chronicle.formatting import format_long, format_percentage, format_short, format_timer
from chronicle.storage.models import TimeEntry, TrackedTask


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(45, "45s"), (125, "2m 5s"), (5025, "1h 23m"), (0, "0s"), (59.9, "59s")],
)
def test_format_short(seconds: float, expected: str) -> None:
    assert format_short(seconds) == expected


def test_format_long_uses_singular_and_plural_units() -> None:
    assert format_long(3660) == "1 hour 1 minute"
    assert format_long(185) == "3 minutes 5 seconds"
    assert format_long(1) == "1 second"
    assert format_long(7200) == "2 hours 0 minutes"


def test_format_timer() -> None:
    assert format_timer(0) == "00:00"
    assert format_timer(1500) == "25:00"
    assert format_timer(3725) == "1:02:05"


def test_format_percentage_guards_goal_and_caps() -> None:
    assert format_percentage(30, 0) == "0%"
    assert format_percentage(30, 60) == "50%"
    assert format_percentage(1000, 10) == "999%"


def test_entry_formatted_duration_uses_end_time() -> None:
    start = datetime(2024, 3, 4, 9, 0, 0)
    entry = TimeEntry(task=TrackedTask(name="Write"), start_time=start)
    entry.stop(start + timedelta(seconds=125))

    assert entry.formatted_duration() == "2m 5s"
    assert not entry.is_running
