from __future__ import annotations

from datetime import datetime

import pytest

from chronicle.storage.models import DiaryEntry, TrackedTask, validate_color_hex


@pytest.mark.parametrize("color", ["#FFF", "#34c759", "#34C759CC"])
def test_hex_colors_accepted(color: str) -> None:
    assert validate_color_hex(color) == color
    assert TrackedTask(name="Task", color_hex=color).color_hex == color


@pytest.mark.parametrize("color", ["blue", "34C759", "#12", "#GGGGGG", "#1234567", "#FFF\n"])
def test_bad_hex_colors_rejected(color: str) -> None:
    with pytest.raises(ValueError):
        TrackedTask(name="Task", color_hex=color)


def test_diary_levels_are_clamped() -> None:
    low = DiaryEntry(content="rough day", mood_level=0, energy_level=-3)
    high = DiaryEntry(content="great day", mood_level=9, energy_level=6)

    assert (low.mood_level, low.energy_level) == (1, 1)
    assert (high.mood_level, high.energy_level) == (5, 5)


def test_diary_defaults_and_emoji() -> None:
    entry = DiaryEntry()

    assert (entry.mood_level, entry.energy_level) == (3, 3)
    assert entry.mood_emoji == "😐"
    assert entry.energy_emoji == "🔋"
    assert entry.modified_at == entry.created_at

    entry.edit(mood_level=5, energy_level=1)
    assert entry.mood_emoji == "😄"
    assert entry.energy_emoji == "🪫"


def test_diary_edit_clamps_and_touches_modified_at() -> None:
    created = datetime(2024, 3, 4, 9, 0)
    entry = DiaryEntry(content="draft", created_at=created)

    entry.edit(content="final", mood_level=42, at=datetime(2024, 3, 4, 10, 0))

    assert entry.content == "final"
    assert entry.mood_level == 5
    assert entry.energy_level == 3
    assert entry.created_at == created
    assert entry.modified_at == datetime(2024, 3, 4, 10, 0)
