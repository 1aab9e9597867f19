"""Focus features: Pomodoro phases and timer, goals and streaks."""

from chronicle.focus.goals import GoalProgress, goal_progress, record_streak, tracked_seconds
from chronicle.focus.phases import PhaseKind, PhaseTransition, PomodoroPhase
from chronicle.focus.pomodoro import PomodoroTimer
from chronicle.focus.scheduler import AsyncioScheduler, Scheduler

__all__ = [
    "AsyncioScheduler",
    "GoalProgress",
    "PhaseKind",
    "PhaseTransition",
    "PomodoroPhase",
    "PomodoroTimer",
    "Scheduler",
    "goal_progress",
    "record_streak",
    "tracked_seconds",
]
