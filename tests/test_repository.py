from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest
from conftest import FailingRepository, make_settings, make_task

from chronicle.errors import SaveFailed
from chronicle.storage.database import Database
from chronicle.storage.models import (
    DiaryEntry,
    Goal,
    GoalType,
    GPSPoint,
    Place,
    Streak,
    TimeEntry,
)
from chronicle.storage.repository import SqliteRepository


async def test_task_round_trips_with_pomodoro_settings(repository: SqliteRepository) -> None:
    task = await make_task(
        repository, "Deep work", color_hex="#FF9500", is_favorite=True,
        pomodoro_settings=make_settings(work_minutes=50, auto_start_work=False),
    )

    loaded = await repository.fetch_task(task.id)

    assert loaded.name == "Deep work"
    assert loaded.color_hex == "#FF9500"
    assert loaded.is_favorite
    assert loaded.pomodoro_settings.work_minutes == 50
    assert loaded.pomodoro_settings.is_enabled
    assert not loaded.pomodoro_settings.auto_start_work


async def test_update_overwrites_existing_row(repository: SqliteRepository) -> None:
    task = await make_task(repository, "Draft")
    task.name = "Final"
    task.is_archived = True
    repository.update(task)
    await repository.save()

    assert (await repository.fetch_task(task.id)).name == "Final"
    assert await repository.fetch_tasks() == []
    assert len(await repository.fetch_tasks(include_archived=True)) == 1


async def test_repeated_staging_writes_once(repository: SqliteRepository) -> None:
    task = await make_task(repository, "Write")
    entry = TimeEntry(task=task, start_time=datetime(2024, 3, 4, 9, 0))
    repository.insert(entry)
    entry.stop(datetime(2024, 3, 4, 10, 0))
    repository.update(entry)
    await repository.save()

    entries = await repository.fetch_entries()
    assert len(entries) == 1
    assert entries[0].end_time == datetime(2024, 3, 4, 10, 0)
    assert entries[0].task.name == "Write"


async def test_open_entries_are_most_recent_first(repository: SqliteRepository) -> None:
    task = await make_task(repository, "Write")
    start = datetime(2024, 3, 4, 9, 0)
    for hours in (0, 2, 1):
        repository.insert(TimeEntry(task=task, start_time=start + timedelta(hours=hours)))
    closed = TimeEntry(task=task, start_time=start + timedelta(hours=5))
    closed.stop(start + timedelta(hours=6))
    repository.insert(closed)
    await repository.save()

    open_entries = await repository.fetch_open_entries()

    assert [entry.start_time.hour for entry in open_entries] == [11, 10, 9]


async def test_entries_filtered_by_start_and_task(repository: SqliteRepository) -> None:
    a = await make_task(repository, "A")
    b = await make_task(repository, "B")
    start = datetime(2024, 3, 4, 9, 0)
    repository.insert(TimeEntry(task=a, start_time=start - timedelta(days=1)))
    repository.insert(TimeEntry(task=a, start_time=start))
    repository.insert(TimeEntry(task=b, start_time=start))
    await repository.save()

    assert len(await repository.fetch_entries(since=start)) == 2
    only_a = await repository.fetch_entries(since=start, task_id=a.id)
    assert [entry.task.name for entry in only_a] == ["A"]


async def test_gps_trail_is_loaded_with_entry(repository: SqliteRepository) -> None:
    task = await make_task(repository, "Run")
    entry = TimeEntry(task=task, start_time=datetime(2024, 3, 4, 9, 0))
    repository.insert(entry)
    late = GPSPoint(1.0, 1.0, timestamp=datetime(2024, 3, 4, 9, 5), time_entry_id=entry.id)
    early = GPSPoint(2.0, 2.0, timestamp=datetime(2024, 3, 4, 9, 1), time_entry_id=entry.id)
    repository.insert(late)
    repository.insert(early)
    await repository.save()

    loaded = (await repository.fetch_open_entries())[0]

    assert len(loaded.gps_trail) == 2
    assert [point.latitude for point in loaded.sorted_trail()] == [2.0, 1.0]


def test_negative_speed_is_clamped() -> None:
    assert GPSPoint(0.0, 0.0, speed=-1.0).speed == 0.0


async def test_favorites_exclude_archived_and_follow_sort_order(
    repository: SqliteRepository,
) -> None:
    await make_task(repository, "Second", is_favorite=True, sort_order=2)
    await make_task(repository, "First", is_favorite=True, sort_order=1)
    await make_task(repository, "Archived", is_favorite=True, is_archived=True, sort_order=0)
    await make_task(repository, "Not favorite", sort_order=0)

    favorites = await repository.fetch_favorite_tasks()

    assert [task.name for task in favorites] == ["First", "Second"]


async def test_places_and_geofenced_places(repository: SqliteRepository) -> None:
    task = await make_task(repository, "Office work")
    office = Place(
        name="Office", latitude=52.5, longitude=13.4, radius=150,
        is_geofence_enabled=True, auto_start_task_id=task.id,
    )
    home = Place(name="Home", latitude=52.4, longitude=13.3)
    repository.insert(office)
    repository.insert(home)
    await repository.save()

    loaded = await repository.fetch_place(office.id)
    assert loaded.auto_start_task_id == task.id
    assert loaded.radius == 150
    assert loaded.region.identifier == str(office.id)
    assert [place.name for place in await repository.fetch_places()] == ["Home", "Office"]
    assert [place.name for place in await repository.fetch_geofenced_places()] == ["Office"]


async def test_goals_and_streaks(repository: SqliteRepository) -> None:
    task = await make_task(repository, "Read")
    goal = Goal(task_id=task.id, target_minutes=30, goal_type=GoalType.WEEKLY)
    inactive = Goal(task_id=task.id, is_active=False)
    streak = Streak(task_id=task.id, current_streak=3, longest_streak=5)
    streak.last_completed_date = datetime(2024, 3, 4).date()
    for entity in (goal, inactive, streak):
        repository.insert(entity)
    await repository.save()

    goals = await repository.fetch_goals()
    assert [(g.target_minutes, g.goal_type) for g in goals] == [(30, GoalType.WEEKLY)]
    assert len(await repository.fetch_goals(active_only=False)) == 2

    loaded = await repository.fetch_streak(task.id)
    assert (loaded.current_streak, loaded.longest_streak) == (3, 5)
    assert loaded.last_completed_date == datetime(2024, 3, 4).date()


async def test_failed_save_keeps_staged_changes(db: Database) -> None:
    repository = FailingRepository(db)
    place = Place(name="Office", latitude=0.0, longitude=0.0)
    repository.insert(place)

    with pytest.raises(SaveFailed) as excinfo:
        await repository.save()

    assert isinstance(excinfo.value.underlying, OSError)
    assert repository.has_pending_changes
    assert await repository.fetch_places() == []

    repository.failing = False
    await repository.save()
    assert not repository.has_pending_changes
    assert [p.name for p in await repository.fetch_places()] == ["Office"]


async def test_transaction_rolls_back_on_error(repository: SqliteRepository) -> None:
    orphan = GPSPoint(0.0, 0.0)  # time_entry_id is required
    good = Place(name="Office", latitude=0.0, longitude=0.0)
    repository.insert(good)
    repository.insert(orphan)

    with pytest.raises(SaveFailed):
        await repository.save()

    assert await repository.fetch_places() == []


async def test_backup_copies_database(db: Database, tmp_path: Path) -> None:
    path = await db.backup(tmp_path / "backups")

    assert path.exists()
    assert path.name.startswith("chronicle_")


async def test_diary_entries_filter_by_task_and_date(repository: SqliteRepository) -> None:
    task = await make_task(repository, "Write")
    office = Place(name="Office", latitude=52.5, longitude=13.4)
    repository.insert(office)
    old = DiaryEntry(content="last week", created_at=datetime(2024, 2, 20, 18, 0))
    linked = DiaryEntry(
        content="good session",
        mood_level=4,
        energy_level=7,
        task_id=task.id,
        place_id=office.id,
        created_at=datetime(2024, 3, 4, 18, 0),
    )
    loose = DiaryEntry(content="tired", created_at=datetime(2024, 3, 4, 21, 0))
    for entry in (old, linked, loose):
        repository.insert(entry)
    await repository.save()

    recent = await repository.fetch_diary_entries(since=datetime(2024, 3, 4))
    assert [entry.content for entry in recent] == ["tired", "good session"]

    for_task = await repository.fetch_diary_entries(task_id=task.id)
    assert len(for_task) == 1
    assert for_task[0].energy_level == 5
    assert for_task[0].place_id == office.id

    assert len(await repository.fetch_diary_entries()) == 3
