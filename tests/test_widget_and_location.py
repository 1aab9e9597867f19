from __future__ import annotations

import asyncio
from datetime import datetime
from uuid import uuid4

import pytest

from chronicle.notifications.notifier import AsyncioNotifier, Notification
from chronicle.storage.models import GeofenceRegion
from chronicle.trackers.location import (
    AccuracyMode,
    AuthorizationStatus,
    LocationSample,
    LocationService,
)
from chronicle.widget.provider import JsonWidgetStore, PendingAction, SharedActiveTask, SharedTask


def test_widget_active_task_set_and_cleared(widget: JsonWidgetStore) -> None:
    shared = SharedActiveTask(
        id=uuid4(), name="Write", color_hex="#34C759", start_time=datetime(2024, 3, 4, 9, 0)
    )
    widget.set_active_task(shared)
    assert widget.get_active_task() == shared

    widget.clear_active_task()
    assert widget.get_active_task() is None


def test_widget_favorites(widget: JsonWidgetStore) -> None:
    tasks = [SharedTask(id=uuid4(), name=name, color_hex="#007AFF") for name in ("A", "B")]
    widget.set_favorite_tasks(tasks)

    assert widget.get_favorite_tasks() == tasks


def test_pending_action_round_trip_and_clear(widget: JsonWidgetStore) -> None:
    assert widget.get_pending_action() is None

    action = PendingAction(kind="stop", task_id=uuid4())
    widget.set_pending_action(action)
    assert widget.get_pending_action() == action

    widget.clear_pending_action()
    assert widget.get_pending_action() is None
    widget.clear_pending_action()


def test_unknown_pending_action_kind_is_ignored(widget: JsonWidgetStore) -> None:
    widget.widget_dir.mkdir(parents=True)
    (widget.widget_dir / "pending_action.json").write_text(
        f'{{"kind": "pause", "task_id": "{uuid4()}"}}'
    )

    assert widget.get_pending_action() is None


def test_accuracy_modes() -> None:
    assert AccuracyMode.HIGH.distance_filter == 5
    assert AccuracyMode.BALANCED.desired_accuracy == 10
    assert AccuracyMode.LOW.distance_filter == 100
    assert AccuracyMode("balanced").display_name == "Balanced"


def test_authorization_capabilities() -> None:
    assert not AuthorizationStatus.DENIED.can_track_location
    assert AuthorizationStatus.WHEN_IN_USE.can_track_location
    assert not AuthorizationStatus.WHEN_IN_USE.can_use_geofencing
    assert AuthorizationStatus.ALWAYS.can_use_geofencing


async def test_samples_only_delivered_while_updating() -> None:
    location = LocationService()
    received: list[LocationSample] = []

    async def on_sample(sample: LocationSample) -> None:
        received.append(sample)

    location.subscribe(on_sample)
    await location.emit_sample(LocationSample(1.0, 1.0))
    assert received == []

    assert location.start_updates()
    await location.emit_sample(LocationSample(2.0, 2.0))
    location.stop_updates()
    await location.emit_sample(LocationSample(3.0, 3.0))

    assert [sample.latitude for sample in received] == [2.0]


async def test_region_events_need_monitoring() -> None:
    location = LocationService()
    entered: list[str] = []

    async def on_enter(region_id: str) -> None:
        entered.append(region_id)

    async def on_exit(region_id: str) -> None:
        pass

    location.subscribe_geofence(on_enter, on_exit)
    region = GeofenceRegion("office", 0.0, 0.0, 100.0)

    await location.emit_enter("office")
    assert entered == []

    location.start_monitoring(region)
    await location.emit_enter("office")
    assert entered == ["office"]

    location.stop_monitoring(region)
    assert location.monitored_regions == []


def test_denied_location_cannot_start() -> None:
    location = LocationService(authorization_status=AuthorizationStatus.DENIED)

    assert not location.start_updates()
    assert not location.is_tracking
    assert not location.start_monitoring(GeofenceRegion("x", 0.0, 0.0, 50.0))


async def test_notifier_delivers_and_cancels_by_category() -> None:
    delivered: list[Notification] = []
    notifier = AsyncioNotifier(on_deliver=delivered.append)
    assert await notifier.request_permission()

    notifier.schedule_one_shot(0, "Arrived", "body", category="geofence")
    notifier.schedule_one_shot(60, "Break Over", "body", category="pomodoro")
    notifier.schedule_one_shot(60, "Other", "body", category="geofence")

    notifier.cancel_all("pomodoro")
    assert [n.title for n in notifier.pending] == ["Arrived", "Other"]

    await asyncio.sleep(0.01)
    assert [n.title for n in delivered] == ["Arrived"]

    notifier.cancel_all()
    assert notifier.pending == []


def test_notifier_needs_running_loop() -> None:
    notifier = AsyncioNotifier()
    with pytest.raises(RuntimeError):
        notifier.schedule_one_shot(1, "title", "body")
