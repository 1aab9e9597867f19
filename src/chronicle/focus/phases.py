"""Pure Pomodoro phase state machine.

Given the current phase and a task's settings, computes the next phase, how
long it lasts and whether its countdown should start on its own. No clocks,
no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from chronicle.storage.models import PomodoroSettings


class PhaseKind(Enum):
    """Kind of Pomodoro phase."""
    IDLE = "idle"
    WORKING = "working"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"


_DISPLAY_NAMES = {
    PhaseKind.IDLE: "Idle",
    PhaseKind.WORKING: "Working",
    PhaseKind.SHORT_BREAK: "Short Break",
    PhaseKind.LONG_BREAK: "Long Break",
}


@dataclass(frozen=True)
class PomodoroPhase:
    """One segment of a Pomodoro cycle.

    ``session``/``total`` are set for working phases; ``session`` holds the
    completed session number for a short break.
    """
    kind: PhaseKind = PhaseKind.IDLE
    session: int = 0
    total: int = 0

    @classmethod
    def idle(cls) -> PomodoroPhase:
        return cls(PhaseKind.IDLE)

    @classmethod
    def working(cls, session: int, total: int) -> PomodoroPhase:
        return cls(PhaseKind.WORKING, session, total)

    @classmethod
    def short_break(cls, after_session: int) -> PomodoroPhase:
        return cls(PhaseKind.SHORT_BREAK, after_session)

    @classmethod
    def long_break(cls) -> PomodoroPhase:
        return cls(PhaseKind.LONG_BREAK)

    @property
    def is_active(self) -> bool:
        return self.kind != PhaseKind.IDLE

    @property
    def after_session(self) -> int:
        return self.session

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self.kind]

    def __str__(self) -> str:
        if self.kind == PhaseKind.WORKING:
            return f"working({self.session}/{self.total})"
        if self.kind == PhaseKind.SHORT_BREAK:
            return f"short_break(after {self.session})"
        return self.kind.value


@dataclass(frozen=True)
class PhaseTransition:
    """Result of advancing the state machine."""
    phase: PomodoroPhase
    duration_seconds: float
    should_auto_start: bool


def phase_duration(phase: PomodoroPhase, settings: PomodoroSettings) -> float:
    """Full length of a phase in seconds (0 for idle)."""
    if phase.kind == PhaseKind.WORKING:
        return settings.work_seconds
    elif phase.kind == PhaseKind.SHORT_BREAK:
        return settings.short_break_seconds
    elif phase.kind == PhaseKind.LONG_BREAK:
        return settings.long_break_seconds
    return 0.0


def first_phase(settings: PomodoroSettings) -> PhaseTransition:
    """Opening phase of a fresh cycle. Always starts its clock."""
    phase = PomodoroPhase.working(1, settings.sessions_before_long_break)
    return PhaseTransition(phase, settings.work_seconds, True)


def next_phase(current: PomodoroPhase, settings: PomodoroSettings) -> PhaseTransition | None:
    """Phase that follows ``current``, or None when idle."""
    if current.kind == PhaseKind.WORKING:
        if current.session >= current.total:
            phase = PomodoroPhase.long_break()
        else:
            phase = PomodoroPhase.short_break(current.session)
        return PhaseTransition(
            phase, phase_duration(phase, settings), settings.auto_start_breaks
        )

    if current.kind == PhaseKind.SHORT_BREAK:
        phase = PomodoroPhase.working(
            current.after_session + 1, settings.sessions_before_long_break
        )
        return PhaseTransition(phase, settings.work_seconds, settings.auto_start_work)

    if current.kind == PhaseKind.LONG_BREAK:
        phase = PomodoroPhase.working(1, settings.sessions_before_long_break)
        return PhaseTransition(phase, settings.work_seconds, settings.auto_start_work)

    return None


def phase_progress(
    phase: PomodoroPhase, settings: PomodoroSettings, time_remaining: float
) -> float:
    """Fraction of the phase elapsed, clamped to [0, 1]."""
    total = phase_duration(phase, settings)
    if total <= 0:
        return 0.0
    elapsed = total - time_remaining
    return min(1.0, max(0.0, elapsed / total))


COMPLETION_MESSAGES = {
    PhaseKind.WORKING: ("Work Session Complete!", "Time for a break. Great work!"),
    PhaseKind.SHORT_BREAK: ("Break Over", "Ready to get back to work?"),
    PhaseKind.LONG_BREAK: ("Long Break Over", "Feeling refreshed? Let's continue!"),
}
