"""Pomodoro timer driving the phase state machine against the wall clock."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from chronicle.focus.phases import (
    COMPLETION_MESSAGES,
    PhaseKind,
    PomodoroPhase,
    first_phase,
    next_phase,
    phase_duration,
    phase_progress,
)
from chronicle.focus.scheduler import AsyncioScheduler, Cancellable, Scheduler
from chronicle.notifications.notifier import Notifier
from chronicle.storage.models import PomodoroSettings

logger = logging.getLogger(__name__)

NOTIFICATION_CATEGORY = "pomodoro"


class PomodoroTimer:
    """Pomodoro timer with phase deadlines and completion polling.

    A running phase has a ``phase_end_time``. While it does, the timer polls
    every ``poll_interval`` seconds and advances once the deadline has
    passed. A phase entered without auto-start has no end time and waits
    for ``resume()``.

    Usage:
        timer = PomodoroTimer(notifier=notifier)
        timer.start(task.pomodoro_settings)
        timer.skip()     # advance to the next phase now
        timer.resume()   # start the clock of a waiting phase
        timer.reset()    # back to session 1
        timer.stop()     # idle
    """

    POLL_INTERVAL = 0.5  # seconds

    def __init__(
        self,
        notifier: Notifier | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] = datetime.now,
        poll_interval: float = POLL_INTERVAL,
        on_phase_complete: Callable[[PomodoroPhase], None] | None = None,
    ):
        self._notifier = notifier
        self._scheduler = scheduler or AsyncioScheduler()
        self._clock = clock
        self.poll_interval = poll_interval
        self.on_phase_complete = on_phase_complete

        self._phase = PomodoroPhase.idle()
        self._phase_end_time: datetime | None = None
        self._settings: PomodoroSettings | None = None
        self._poll: Cancellable | None = None
        self.completed_work_sessions = 0

    # State

    @property
    def phase(self) -> PomodoroPhase:
        return self._phase

    @property
    def phase_end_time(self) -> datetime | None:
        return self._phase_end_time

    @property
    def settings(self) -> PomodoroSettings | None:
        return self._settings

    @property
    def time_remaining(self) -> float:
        """Seconds left in the running phase, 0 when no clock is running."""
        if self._phase_end_time is None:
            return 0.0
        return max(0.0, (self._phase_end_time - self._clock()).total_seconds())

    @property
    def progress(self) -> float:
        """Fraction of the running phase elapsed (0 when idle or waiting)."""
        if self._settings is None or self._phase_end_time is None:
            return 0.0
        return phase_progress(self._phase, self._settings, self.time_remaining)

    @property
    def is_waiting(self) -> bool:
        """Phase entered but its countdown not started."""
        return self._phase.is_active and self._phase_end_time is None

    @property
    def is_running(self) -> bool:
        return self._phase_end_time is not None

    # Controls

    def start(self, settings: PomodoroSettings) -> None:
        """Begin a fresh cycle at session 1 with a running clock."""
        # Changes to the task's settings apply from the next start
        self._settings = settings.copy()
        self.completed_work_sessions = 0
        transition = first_phase(self._settings)
        self._start_phase(transition.phase, transition.duration_seconds)
        logger.info(f"Pomodoro started: {self._phase}")

    def stop(self) -> None:
        """Return to idle and cancel the clock and pending notifications."""
        was_active = self._phase.is_active
        self._phase = PomodoroPhase.idle()
        self._phase_end_time = None
        self._settings = None
        self._stop_polling()
        self._cancel_notifications()
        if was_active:
            logger.info("Pomodoro stopped")

    def skip(self) -> None:
        """Advance to the next phase regardless of time remaining."""
        self._advance()

    def resume(self) -> None:
        """Start the clock of a waiting phase with its full duration."""
        if not self.is_waiting or self._settings is None:
            return
        self._start_phase(self._phase, phase_duration(self._phase, self._settings))
        logger.info(f"Pomodoro resumed: {self._phase}")

    def reset(self) -> None:
        """Restart the cycle at session 1, discarding current progress."""
        if self._settings is None:
            return
        transition = first_phase(self._settings)
        self._start_phase(transition.phase, transition.duration_seconds)
        logger.info("Pomodoro reset to session 1")

    def check_phase_completion(self) -> None:
        """Poll tick: advance once the running phase's deadline has passed."""
        if self._phase_end_time is None or self.time_remaining > 0:
            return

        completed = self._phase
        self._advance()
        self._play_completion_cue(completed)

    # Internals

    def _advance(self) -> None:
        if self._settings is None:
            return

        transition = next_phase(self._phase, self._settings)
        if transition is None:
            return

        if self._phase.kind == PhaseKind.WORKING:
            self.completed_work_sessions += 1

        if transition.should_auto_start:
            self._start_phase(transition.phase, transition.duration_seconds)
        else:
            self._set_phase_waiting(transition.phase)

        logger.info(
            f"Pomodoro phase: {self._phase}"
            f"{'' if transition.should_auto_start else ' (waiting)'}"
        )

    def _start_phase(self, phase: PomodoroPhase, duration: float) -> None:
        self._phase = phase
        self._phase_end_time = self._clock() + timedelta(seconds=duration)
        self._start_polling()
        self._cancel_notifications()
        self._schedule_notification(phase, duration)

    def _set_phase_waiting(self, phase: PomodoroPhase) -> None:
        self._phase = phase
        self._phase_end_time = None
        self._stop_polling()
        self._cancel_notifications()

    def _start_polling(self) -> None:
        self._stop_polling()
        try:
            self._poll = self._scheduler.call_every(
                self.poll_interval, self.check_phase_completion
            )
        except RuntimeError as e:
            logger.warning(f"Phase completion polling unavailable: {e}")

    def _stop_polling(self) -> None:
        if self._poll is not None:
            self._poll.cancel()
            self._poll = None

    def _schedule_notification(self, phase: PomodoroPhase, duration: float) -> None:
        if self._notifier is None or phase.kind not in COMPLETION_MESSAGES:
            return

        title, body = COMPLETION_MESSAGES[phase.kind]
        try:
            self._notifier.schedule_one_shot(duration, title, body, NOTIFICATION_CATEGORY)
        except Exception as e:
            logger.warning(f"Failed to schedule Pomodoro notification: {e}")

    def _cancel_notifications(self) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.cancel_all(NOTIFICATION_CATEGORY)
        except Exception as e:
            logger.warning(f"Failed to cancel Pomodoro notifications: {e}")

    def _play_completion_cue(self, completed: PomodoroPhase) -> None:
        if self.on_phase_complete is None:
            return
        try:
            self.on_phase_complete(completed)
        except Exception as e:
            logger.error(f"Error in on_phase_complete callback: {e}")

    def get_summary(self) -> dict:
        """Get a summary of the current timer state."""
        return {
            "phase": self._phase.kind.value,
            "phase_label": str(self._phase),
            "is_running": self.is_running,
            "is_waiting": self.is_waiting,
            "time_remaining_seconds": round(self.time_remaining),
            "progress": round(self.progress, 3),
            "completed_work_sessions": self.completed_work_sessions,
            "phase_end_time": self._phase_end_time.isoformat() if self._phase_end_time else None,
        }
