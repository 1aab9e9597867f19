from __future__ import annotations

from datetime import date, datetime, timedelta
from uuid import uuid4

from chronicle.focus.goals import (
    goal_progress,
    record_streak,
    start_of_day,
    start_of_week,
    tracked_seconds,
)
from chronicle.storage.models import Goal, GoalType, Streak, TimeEntry, TrackedTask

NOW = datetime(2024, 3, 6, 15, 30)  # a Wednesday


def _entry(task: TrackedTask, start: datetime, minutes: float | None) -> TimeEntry:
    entry = TimeEntry(task=task, start_time=start)
    if minutes is not None:
        entry.stop(start + timedelta(minutes=minutes))
    return entry


def test_period_boundaries() -> None:
    assert start_of_day(NOW) == datetime(2024, 3, 6)
    assert start_of_week(NOW) == datetime(2024, 3, 4)
    assert start_of_week(datetime(2024, 3, 4, 0, 0)) == datetime(2024, 3, 4)


def test_tracked_seconds_counts_running_entries_to_now() -> None:
    task = TrackedTask(name="Write")
    entries = [
        _entry(task, NOW - timedelta(hours=3), 30),
        _entry(task, NOW - timedelta(minutes=10), None),
        _entry(task, NOW - timedelta(days=2), 60),
    ]

    assert tracked_seconds(entries, start_of_day(NOW), NOW) == 40 * 60


def test_daily_goal_progress() -> None:
    task = TrackedTask(name="Write")
    other = TrackedTask(name="Email")
    goal = Goal(task_id=task.id, target_minutes=60)
    entries = [
        _entry(task, NOW - timedelta(hours=2), 45),
        _entry(other, NOW - timedelta(hours=1), 45),
    ]

    progress = goal_progress(goal, entries, NOW)

    assert progress.tracked_seconds == 45 * 60
    assert progress.progress == 0.75
    assert not progress.is_complete
    assert progress.remaining_seconds == 15 * 60
    assert progress.percentage == "75%"


def test_weekly_goal_counts_whole_week_and_can_exceed_target() -> None:
    task = TrackedTask(name="Gym")
    goal = Goal(task_id=task.id, target_minutes=60, goal_type=GoalType.WEEKLY)
    entries = [
        _entry(task, datetime(2024, 3, 4, 7, 0), 60),
        _entry(task, datetime(2024, 3, 5, 7, 0), 30),
        _entry(task, datetime(2024, 3, 1, 7, 0), 90),
    ]

    progress = goal_progress(goal, entries, NOW)

    assert progress.tracked_seconds == 90 * 60
    assert progress.progress == 1.5
    assert progress.is_complete
    assert progress.remaining_seconds == 0


def test_streak_counts_consecutive_days() -> None:
    streak = Streak(task_id=uuid4())
    day = date(2024, 3, 1)

    streak.update(True, day)
    assert streak.current_streak == 1

    streak.update(True, day)
    assert streak.current_streak == 1

    streak.update(True, day + timedelta(days=1))
    streak.update(True, day + timedelta(days=2))
    assert streak.current_streak == 3
    assert streak.longest_streak == 3

    streak.update(True, day + timedelta(days=5))
    assert streak.current_streak == 1
    assert streak.longest_streak == 3


def test_streak_ignores_missed_days() -> None:
    streak = Streak(task_id=uuid4())
    streak.update(False, date(2024, 3, 1))

    assert streak.current_streak == 0
    assert streak.last_completed_date is None
    assert not streak.is_active(date(2024, 3, 1))


def test_streak_activity_window() -> None:
    streak = Streak(task_id=uuid4())
    streak.update(True, date(2024, 3, 1))

    assert streak.is_active(date(2024, 3, 1))
    assert streak.days_until_break(date(2024, 3, 1)) == 1
    assert streak.is_active(date(2024, 3, 2))
    assert streak.days_until_break(date(2024, 3, 2)) == 0
    assert not streak.is_active(date(2024, 3, 3))


def test_record_streak_creates_streak_for_completed_goal() -> None:
    task = TrackedTask(name="Write")
    goal = Goal(task_id=task.id, target_minutes=30)
    progress = goal_progress(goal, [_entry(task, NOW - timedelta(hours=1), 30)], NOW)

    streak = record_streak(None, progress, NOW.date())

    assert streak.task_id == task.id
    assert streak.current_streak == 1
    assert streak.last_completed_date == NOW.date()
