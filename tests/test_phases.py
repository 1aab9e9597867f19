from __future__ import annotations

from conftest import make_settings

from chronicle.focus.phases import (
    PhaseKind,
    PomodoroPhase,
    first_phase,
    next_phase,
    phase_duration,
    phase_progress,
)


def test_first_phase_always_auto_starts() -> None:
    settings = make_settings(auto_start_breaks=False, auto_start_work=False)
    transition = first_phase(settings)

    assert transition.phase == PomodoroPhase.working(1, 4)
    assert transition.duration_seconds == 25 * 60
    assert transition.should_auto_start


def test_working_before_last_session_goes_to_short_break() -> None:
    settings = make_settings(auto_start_breaks=False)
    transition = next_phase(PomodoroPhase.working(2, 4), settings)

    assert transition.phase == PomodoroPhase.short_break(2)
    assert transition.duration_seconds == 5 * 60
    assert not transition.should_auto_start


def test_last_working_session_goes_to_long_break() -> None:
    transition = next_phase(PomodoroPhase.working(4, 4), make_settings())

    assert transition.phase.kind == PhaseKind.LONG_BREAK
    assert transition.duration_seconds == 15 * 60


def test_breaks_return_to_work_with_auto_start_work() -> None:
    settings = make_settings(auto_start_work=False)

    after_short = next_phase(PomodoroPhase.short_break(1), settings)
    assert after_short.phase == PomodoroPhase.working(2, 4)
    assert not after_short.should_auto_start

    after_long = next_phase(PomodoroPhase.long_break(), settings)
    assert after_long.phase == PomodoroPhase.working(1, 4)


def test_idle_has_no_next_phase() -> None:
    assert next_phase(PomodoroPhase.idle(), make_settings()) is None
    assert phase_duration(PomodoroPhase.idle(), make_settings()) == 0


def test_progress_is_clamped() -> None:
    settings = make_settings()
    working = PomodoroPhase.working(1, 4)

    assert phase_progress(working, settings, 25 * 60) == 0.0
    assert phase_progress(working, settings, 0) == 1.0
    assert phase_progress(working, settings, 30 * 60) == 0.0
    assert phase_progress(working, settings, -10) == 1.0
    assert phase_progress(PomodoroPhase.idle(), settings, 0) == 0.0


def test_phase_labels() -> None:
    assert str(PomodoroPhase.working(2, 4)) == "working(2/4)"
    assert str(PomodoroPhase.short_break(1)) == "short_break(after 1)"
    assert PomodoroPhase.long_break().display_name == "Long Break"
    assert not PomodoroPhase.idle().is_active
