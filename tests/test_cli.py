from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from chronicle.cli.main import _repo, app
from chronicle.core.config import get_config
from chronicle.core.orchestrator import Orchestrator

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CHRONICLE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CHRONICLE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("CHRONICLE_CONFIG_DIR", str(tmp_path / "config"))
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_start_status_stop() -> None:
    result = runner.invoke(app, ["add-task", "Writing", "--favorite"])
    assert result.exit_code == 0, result.output
    assert "Created task" in result.output

    result = runner.invoke(app, ["start", "writing"])
    assert result.exit_code == 0, result.output
    assert "Tracking" in result.output

    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0, result.output
    assert "Writing" in result.output

    result = runner.invoke(app, ["stop"])
    assert result.exit_code == 0, result.output
    assert "Stopped" in result.output

    result = runner.invoke(app, ["stop"])
    assert "Nothing is being tracked" in result.output


def test_unknown_task_exits_with_error() -> None:
    result = runner.invoke(app, ["start", "nope"])

    assert result.exit_code == 1
    assert "No task matching" in result.output


def test_log_lists_entries() -> None:
    runner.invoke(app, ["add-task", "Reading"])
    runner.invoke(app, ["start", "Reading"])
    runner.invoke(app, ["stop"])

    result = runner.invoke(app, ["log"])
    assert result.exit_code == 0, result.output
    assert "Reading" in result.output


def test_config_show() -> None:
    result = runner.invoke(app, ["config-show"])

    assert result.exit_code == 0, result.output
    assert "Pomodoro" in result.output


def test_geofence_exit_stops_what_enter_started() -> None:
    runner.invoke(app, ["add-task", "Office work"])
    result = runner.invoke(app, ["add-place", "Office", "52.5", "13.4", "--task", "Office work"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["geofence", "enter", "Office"])
    assert result.exit_code == 0, result.output
    assert "Arrived at Office" in result.output
    assert "Office work" in runner.invoke(app, ["status"]).output

    result = runner.invoke(app, ["geofence", "exit", "Office"])
    assert result.exit_code == 0, result.output
    assert "Left Office" in result.output

    result = runner.invoke(app, ["status"])
    assert "Nothing is being tracked" in result.output


def test_add_task_rejects_bad_color() -> None:
    result = runner.invoke(app, ["add-task", "Paint", "--color", "blue"])

    assert result.exit_code == 2
    assert runner.invoke(app, ["tasks"]).output.count("Paint") == 0


def test_note_links_running_task_and_shows_in_diary() -> None:
    runner.invoke(app, ["add-task", "Reading"])
    runner.invoke(app, ["start", "Reading"])

    result = runner.invoke(app, ["note", "Finished chapter three", "--mood", "9", "--energy", "2"])
    assert result.exit_code == 0, result.output
    assert "Noted" in result.output
    assert "Reading" in result.output

    result = runner.invoke(app, ["diary"])
    assert result.exit_code == 0, result.output
    assert "Finished chapter three" in result.output
    assert "😄 5" in result.output


def test_diary_empty() -> None:
    result = runner.invoke(app, ["diary"])

    assert result.exit_code == 0, result.output
    assert "No diary entries" in result.output


def test_repo_requires_started_orchestrator() -> None:
    orchestrator = Orchestrator(get_config())

    with pytest.raises(RuntimeError):
        _repo(orchestrator)
