"""Goal progress and streak bookkeeping over tracked time entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

from chronicle.formatting import format_percentage, format_short
from chronicle.storage.models import Goal, GoalType, Streak, TimeEntry

logger = logging.getLogger(__name__)


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: datetime) -> datetime:
    """Midnight on the Monday of ``now``'s week."""
    return start_of_day(now) - timedelta(days=now.weekday())


def period_start(goal_type: GoalType, now: datetime) -> datetime:
    if goal_type == GoalType.WEEKLY:
        return start_of_week(now)
    return start_of_day(now)


def tracked_seconds(
    entries: Iterable[TimeEntry], since: datetime, now: datetime | None = None
) -> float:
    """Total duration of entries that started at or after ``since``.

    Running entries count up to ``now``.
    """
    now = now or datetime.now()
    total = 0.0
    for entry in entries:
        if entry.start_time >= since:
            total += max(0.0, entry.duration(now))
    return total


@dataclass
class GoalProgress:
    """A goal measured against the time tracked in its current period."""
    goal: Goal
    tracked_seconds: float

    @property
    def progress(self) -> float:
        """Tracked over target. Not capped, so an exceeded goal reads above 1."""
        target = self.goal.target_seconds
        if target <= 0:
            return 0.0
        return self.tracked_seconds / target

    @property
    def is_complete(self) -> bool:
        return self.goal.target_seconds > 0 and self.tracked_seconds >= self.goal.target_seconds

    @property
    def remaining_seconds(self) -> float:
        return max(0.0, self.goal.target_seconds - self.tracked_seconds)

    @property
    def percentage(self) -> str:
        return format_percentage(self.tracked_seconds, self.goal.target_seconds)

    def get_summary(self) -> dict:
        return {
            "task_id": str(self.goal.task_id),
            "goal_type": self.goal.goal_type.value,
            "target": format_short(self.goal.target_seconds),
            "tracked": format_short(self.tracked_seconds),
            "remaining": format_short(self.remaining_seconds),
            "percentage": self.percentage,
            "is_complete": self.is_complete,
        }


def goal_progress(
    goal: Goal, entries: Iterable[TimeEntry], now: datetime | None = None
) -> GoalProgress:
    """Measure ``goal`` against the entries of its task in the current period."""
    now = now or datetime.now()
    since = period_start(goal.goal_type, now)
    own = [entry for entry in entries if entry.task_id == goal.task_id]
    return GoalProgress(goal=goal, tracked_seconds=tracked_seconds(own, since, now))


def record_streak(
    streak: Streak | None, progress: GoalProgress, today: date | None = None
) -> Streak:
    """Fold today's outcome for a daily goal into the task's streak.

    Creates the streak on first use. Callers stage the returned streak
    with the repository.
    """
    if streak is None:
        streak = Streak(task_id=progress.goal.task_id)

    before = streak.current_streak
    streak.update(progress.is_complete, today)
    if streak.current_streak != before:
        logger.info(
            f"Streak for task {streak.task_id}: {streak.current_streak} day(s) "
            f"(longest {streak.longest_streak})"
        )
    return streak
