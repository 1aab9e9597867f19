"""CLI commands for Chronicle using Typer."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from chronicle import __version__
from chronicle.core.config import get_config
from chronicle.core.orchestrator import Orchestrator
from chronicle.focus.goals import goal_progress, record_streak
from chronicle.focus.phases import PomodoroPhase
from chronicle.formatting import format_long, format_short, format_timer
from chronicle.notifications.notifier import Notification
from chronicle.storage.models import (
    DiaryEntry,
    Goal,
    GoalType,
    Place,
    TrackedTask,
    validate_color_hex,
)
from chronicle.storage.repository import Repository
from chronicle.trackers.location import LocationSample
from chronicle.widget.provider import JsonWidgetStore, PendingAction

T = TypeVar("T")

app = typer.Typer(
    name="chronicle",
    help="Personal time tracking with Pomodoro focus cycles and geofences.",
    add_completion=False,
)
geofence_app = typer.Typer(help="Simulate geofence events for saved places.")
app.add_typer(geofence_app, name="geofence")

console = Console()

_verbose = False


def setup_logging(
    log_level: str, log_file: Path | None = None, console_level: str = "WARNING"
) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    stream = logging.StreamHandler()
    stream.setLevel(getattr(logging, console_level.upper(), logging.WARNING))
    handlers: list[logging.Handler] = [stream]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # Reduce noise from external libraries
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to the console"),
) -> None:
    """Chronicle time tracker."""
    global _verbose
    _verbose = verbose


def _print_notification(notification: Notification) -> None:
    console.print(f"[bold magenta]🔔 {notification.title}[/bold magenta] {notification.body}")


def _play_cue(phase: PomodoroPhase) -> None:
    console.bell()


def _run(fn: Callable[[Orchestrator], Awaitable[T]]) -> T:
    """Run ``fn`` against a started orchestrator and shut it down afterwards."""
    config = get_config()
    setup_logging(
        config.log_level,
        config.log_dir / "chronicle.log",
        console_level=config.log_level if _verbose else "WARNING",
    )

    async def runner() -> T:
        orchestrator = Orchestrator(
            config, on_notification=_print_notification, on_phase_complete=_play_cue
        )
        await orchestrator.start()
        try:
            return await fn(orchestrator)
        finally:
            await orchestrator.stop()

    return asyncio.run(runner())


def _repo(orchestrator: Orchestrator) -> Repository:
    if orchestrator.repository is None:
        raise RuntimeError("Orchestrator not started")
    return orchestrator.repository


def _check_color(value: str) -> str:
    try:
        return validate_color_hex(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


async def _find_task(repository: Repository, key: str) -> TrackedTask:
    """Resolve a task by id, id prefix or case-insensitive name."""
    tasks = await repository.fetch_tasks(include_archived=True)
    lowered = key.lower()
    for task in tasks:
        if str(task.id) == lowered or task.name.lower() == lowered:
            return task
    matches = [task for task in tasks if str(task.id).startswith(lowered)]
    if len(matches) == 1:
        return matches[0]
    console.print(f"[red]No task matching '{key}'[/red]")
    raise typer.Exit(1)


async def _find_place(repository: Repository, key: str) -> Place:
    for place in await repository.fetch_places():
        if str(place.id).startswith(key.lower()) or place.name.lower() == key.lower():
            return place
    console.print(f"[red]No place matching '{key}'[/red]")
    raise typer.Exit(1)


def _report_error(orchestrator: Orchestrator) -> None:
    tracker = orchestrator.tracker
    if tracker is not None and tracker.last_error is not None:
        console.print(f"[yellow]Warning: {tracker.last_error}[/yellow]")


# Tasks


@app.command(name="add-task")
def add_task(
    name: str = typer.Argument(..., help="Task name"),
    color: str = typer.Option(
        "#007AFF", "--color", "-c", help="Hex color (#RGB, #RRGGBB or #RRGGBBAA)",
        callback=_check_color,
    ),
    icon: str = typer.Option(None, "--icon", "-i", help="Icon name"),
    favorite: bool = typer.Option(False, "--favorite", "-f", help="Show on the widget"),
    pomodoro: bool = typer.Option(False, "--pomodoro", "-p", help="Run Pomodoro cycles"),
    work: int = typer.Option(None, "--work", help="Work minutes"),
    short_break: int = typer.Option(None, "--short-break", help="Short break minutes"),
    long_break: int = typer.Option(None, "--long-break", help="Long break minutes"),
    sessions: int = typer.Option(None, "--sessions", help="Sessions before a long break"),
) -> None:
    """Create a task."""

    async def create(orchestrator: Orchestrator) -> TrackedTask:
        repository = _repo(orchestrator)
        settings = orchestrator.config.pomodoro.default_settings(enabled=pomodoro)
        if work is not None:
            settings.work_minutes = work
        if short_break is not None:
            settings.short_break_minutes = short_break
        if long_break is not None:
            settings.long_break_minutes = long_break
        if sessions is not None:
            settings.sessions_before_long_break = sessions

        existing = await repository.fetch_tasks(include_archived=True)
        task = TrackedTask(
            name=name,
            color_hex=color,
            icon_name=icon,
            is_favorite=favorite,
            sort_order=len(existing),
            pomodoro_settings=settings,
        )
        repository.insert(task)
        await repository.save()
        if favorite:
            await orchestrator.tracker.sync_favorite_tasks()
        return task

    task = _run(create)
    console.print(f"[green]Created task[/green] {task.name} [dim]{str(task.id)[:8]}[/dim]")


@app.command()
def tasks(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include archived tasks"),
) -> None:
    """List tasks."""

    async def fetch(orchestrator: Orchestrator) -> tuple[list[TrackedTask], TrackedTask | None]:
        found = await _repo(orchestrator).fetch_tasks(include_archived=show_all)
        return found, orchestrator.tracker.active_task

    found, active = _run(fetch)
    if not found:
        console.print("[dim]No tasks yet. Use 'chronicle add-task' to create one.[/dim]")
        return

    table = Table(title="Tasks", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Favorite", justify="center")
    table.add_column("Pomodoro")
    table.add_column("Status")

    for task in found:
        settings = task.pomodoro_settings
        pomodoro = (
            f"{settings.work_minutes}/{settings.short_break_minutes}/"
            f"{settings.long_break_minutes} x{settings.sessions_before_long_break}"
            if settings and settings.is_enabled
            else "-"
        )
        if active is not None and active.id == task.id:
            status = "[green bold]TRACKING[/green bold]"
        elif task.is_archived:
            status = "[dim]archived[/dim]"
        else:
            status = ""
        table.add_row(
            str(task.id)[:8],
            f"[{task.color_hex}]●[/{task.color_hex}] {task.name}",
            "★" if task.is_favorite else "",
            pomodoro,
            status,
        )

    console.print(table)


@app.command()
def archive(task: str = typer.Argument(..., help="Task name or id")) -> None:
    """Archive a task, keeping its history."""

    async def do_archive(orchestrator: Orchestrator) -> TrackedTask:
        repository = _repo(orchestrator)
        found = await _find_task(repository, task)
        if orchestrator.tracker.is_tracking(found):
            await orchestrator.tracker.stop_current_entry()
        found.is_archived = True
        repository.update(found)
        await repository.save()
        await orchestrator.tracker.sync_favorite_tasks()
        return found

    archived = _run(do_archive)
    console.print(f"[yellow]Archived[/yellow] {archived.name}")


# Tracking


@app.command()
def start(task: str = typer.Argument(..., help="Task name or id")) -> None:
    """Start tracking a task, stopping whatever is running."""

    async def do_start(orchestrator: Orchestrator) -> str:
        found = await _find_task(_repo(orchestrator), task)
        await orchestrator.tracker.start_task(found)
        _report_error(orchestrator)
        return found.name

    name = _run(do_start)
    console.print(f"[green]Tracking[/green] {name}")


@app.command()
def switch(task: str = typer.Argument(..., help="Task name or id")) -> None:
    """Stop the running task and start another."""

    async def do_switch(orchestrator: Orchestrator) -> tuple[str | None, str]:
        found = await _find_task(_repo(orchestrator), task)
        previous = orchestrator.tracker.active_task
        await orchestrator.tracker.switch_task(found)
        _report_error(orchestrator)
        return (previous.name if previous else None), found.name

    previous, name = _run(do_switch)
    if previous:
        console.print(f"[yellow]Stopped[/yellow] {previous}")
    console.print(f"[green]Tracking[/green] {name}")


@app.command()
def stop() -> None:
    """Stop the running task."""

    async def do_stop(orchestrator: Orchestrator) -> tuple[str, float] | None:
        tracker = orchestrator.tracker
        entry = tracker.active_entry
        if entry is None:
            return None
        await tracker.stop_current_entry()
        _report_error(orchestrator)
        return (entry.task.name if entry.task else "(deleted task)"), entry.duration()

    result = _run(do_stop)
    if result is None:
        console.print("[dim]Nothing is being tracked.[/dim]")
        return
    name, duration = result
    console.print(f"[yellow]Stopped[/yellow] {name} after {format_long(duration)}")


@app.command()
def status() -> None:
    """Show what is being tracked."""
    info = _run(_status)

    if not info["tracking"]:
        console.print(Panel(
            "[dim]Nothing is being tracked.[/dim]\nUse 'chronicle start <task>' to begin.",
            title="Chronicle",
            border_style="dim",
        ))
        return

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    table.add_row("Task", f"[bold]{info['task']}[/bold]")
    table.add_row("Started", info["started_at"])
    table.add_row("Elapsed", info["elapsed"])

    pomodoro = info["pomodoro"]
    if pomodoro["phase"] != "idle":
        remaining = (
            "waiting" if pomodoro["is_waiting"]
            else format_timer(pomodoro["time_remaining_seconds"])
        )
        table.add_row("Pomodoro", f"{pomodoro['phase_label']} ({remaining})")
    if info["gps_points"]:
        table.add_row("GPS points", str(info["gps_points"]))
    if info["stale_open_entries"]:
        table.add_row(
            "Warning", f"[yellow]{info['stale_open_entries']} other open entries[/yellow]"
        )
    if info["last_error"]:
        table.add_row("Last error", f"[red]{info['last_error']}[/red]")

    console.print(Panel(table, title="Chronicle", border_style="green"))


async def _status(orchestrator: Orchestrator) -> dict[str, Any]:
    return orchestrator.get_status()


@app.command()
def focus(
    task: str = typer.Argument(None, help="Task to start (defaults to the running one)"),
    auto_resume: bool = typer.Option(
        False, "--auto-resume", help="Start waiting phases without prompting"
    ),
) -> None:
    """Run the Pomodoro timer in the foreground with a live countdown.

    Press Ctrl+C to leave. The time entry keeps running.
    """

    async def run_focus(orchestrator: Orchestrator) -> None:
        tracker = orchestrator.tracker
        if task:
            await tracker.start_task(await _find_task(_repo(orchestrator), task))

        active = tracker.active_task
        if active is None:
            console.print("[red]Nothing is being tracked. Pass a task to start one.[/red]")
            raise typer.Exit(1)

        if not tracker.pomodoro_state.is_active:
            settings = active.pomodoro_settings or orchestrator.config.pomodoro.default_settings()
            tracker.pomodoro.start(settings)

        console.print(f"[green]Focusing on[/green] {active.name}. Press Ctrl+C to stop.\n")
        with Live(console=console, refresh_per_second=4, transient=True) as live:
            while True:
                timer = tracker.pomodoro
                if timer.is_waiting:
                    if auto_resume:
                        tracker.resume_pomodoro()
                        continue
                    live.stop()
                    await asyncio.to_thread(
                        input, f"{timer.phase.display_name} is ready. Press Enter to start. "
                    )
                    tracker.resume_pomodoro()
                    live.start()
                    continue

                live.update(
                    f"🍅 [bold]{timer.phase.display_name}[/bold] {timer.phase} "
                    f"[cyan]{format_timer(timer.time_remaining)}[/cyan] "
                    f"({timer.progress * 100:.0f}%) | "
                    f"{timer.completed_work_sessions} completed"
                )
                await asyncio.sleep(0.25)

    try:
        _run(run_focus)
    except KeyboardInterrupt:
        console.print("\n[yellow]Focus stopped. The entry is still running.[/yellow]")


@app.command()
def log(
    days: int = typer.Option(1, "--days", "-d", help="Days of history"),
    task: str = typer.Option(None, "--task", "-t", help="Only entries for this task"),
) -> None:
    """Show recent time entries."""

    async def fetch(orchestrator: Orchestrator):
        repository = _repo(orchestrator)
        task_id = (await _find_task(repository, task)).id if task else None
        since = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
        since -= timedelta(days=days - 1)
        return await repository.fetch_entries(since=since, task_id=task_id)

    entries = _run(fetch)
    if not entries:
        console.print("[dim]No entries in this period.[/dim]")
        return

    table = Table(title=f"Time Entries (last {days} day(s))", header_style="bold cyan")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Task")
    table.add_column("Duration", justify="right")
    table.add_column("GPS", justify="right")

    total = 0.0
    for entry in entries:
        total += entry.duration()
        table.add_row(
            entry.start_time.strftime("%a %H:%M"),
            entry.end_time.strftime("%H:%M") if entry.end_time else "[green]running[/green]",
            entry.task.name if entry.task else "[dim](deleted)[/dim]",
            entry.formatted_duration(),
            str(len(entry.gps_trail)) if entry.gps_trail else "",
        )

    console.print(table)
    console.print(f"Total: [bold]{format_short(total)}[/bold]")


# Goals


@app.command(name="add-goal")
def add_goal(
    task: str = typer.Argument(..., help="Task name or id"),
    minutes: int = typer.Option(60, "--minutes", "-m", help="Target minutes"),
    weekly: bool = typer.Option(False, "--weekly", "-w", help="Weekly instead of daily"),
) -> None:
    """Set a daily or weekly time goal for a task."""

    async def create(orchestrator: Orchestrator) -> Goal:
        repository = _repo(orchestrator)
        found = await _find_task(repository, task)
        goal = Goal(
            task_id=found.id,
            target_minutes=minutes,
            goal_type=GoalType.WEEKLY if weekly else GoalType.DAILY,
        )
        repository.insert(goal)
        await repository.save()
        return goal

    goal = _run(create)
    console.print(
        f"[green]Goal set:[/green] {goal.target_minutes} min {goal.goal_type.value}"
    )


@app.command()
def goals() -> None:
    """Show progress toward active goals and daily streaks."""

    async def measure(orchestrator: Orchestrator):
        repository = _repo(orchestrator)
        now = datetime.now()
        since = now.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=7)
        entries = await repository.fetch_entries(since=since)

        rows = []
        for goal in await repository.fetch_goals():
            task = await repository.fetch_task(goal.task_id)
            progress = goal_progress(goal, entries, now)
            streak = None
            if goal.goal_type == GoalType.DAILY:
                streak = record_streak(
                    await repository.fetch_streak(goal.task_id), progress, now.date()
                )
                repository.update(streak)
            rows.append((task, progress, streak))
        await repository.save()
        return rows

    rows = _run(measure)
    if not rows:
        console.print("[dim]No goals set. Use 'chronicle add-goal' to create one.[/dim]")
        return

    table = Table(title="Goals", header_style="bold cyan")
    table.add_column("Task")
    table.add_column("Period")
    table.add_column("Tracked", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Streak", justify="right")

    for task, progress, streak in rows:
        summary = progress.get_summary()
        pct_style = "green" if progress.is_complete else "yellow"
        table.add_row(
            task.name if task else "[dim](deleted)[/dim]",
            summary["goal_type"],
            summary["tracked"],
            summary["target"],
            f"[{pct_style}]{summary['percentage']}[/{pct_style}]",
            f"{streak.current_streak} (best {streak.longest_streak})" if streak else "-",
        )

    console.print(table)


# Diary


@app.command()
def note(
    content: str = typer.Argument(..., help="What happened"),
    mood: int = typer.Option(3, "--mood", "-m", help="Mood from 1 (very low) to 5 (very high)"),
    energy: int = typer.Option(3, "--energy", "-e", help="Energy from 1 to 5"),
    task: str = typer.Option(
        None, "--task", "-t", help="Task to link (defaults to the running one)"
    ),
    place: str = typer.Option(None, "--place", help="Place to link"),
) -> None:
    """Write a diary entry. Mood and energy are clamped to 1-5."""

    async def create(orchestrator: Orchestrator) -> tuple[DiaryEntry, str | None]:
        repository = _repo(orchestrator)
        linked = await _find_task(repository, task) if task else orchestrator.tracker.active_task
        place_id = (await _find_place(repository, place)).id if place else None
        entry = DiaryEntry(
            content=content,
            mood_level=mood,
            energy_level=energy,
            task_id=linked.id if linked else None,
            place_id=place_id,
        )
        repository.insert(entry)
        await repository.save()
        return entry, linked.name if linked else None

    entry, task_name = _run(create)
    suffix = f" [dim]({task_name})[/dim]" if task_name else ""
    console.print(f"[green]Noted[/green] {entry.mood_emoji} {entry.energy_emoji}{suffix}")


@app.command()
def diary(
    days: int = typer.Option(7, "--days", "-d", help="Days of history"),
    task: str = typer.Option(None, "--task", "-t", help="Only entries for this task"),
) -> None:
    """Show recent diary entries."""

    async def fetch(orchestrator: Orchestrator):
        repository = _repo(orchestrator)
        task_id = (await _find_task(repository, task)).id if task else None
        since = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
        since -= timedelta(days=days - 1)
        rows = []
        for entry in await repository.fetch_diary_entries(since=since, task_id=task_id):
            linked = await repository.fetch_task(entry.task_id) if entry.task_id else None
            rows.append((entry, linked))
        return rows

    rows = _run(fetch)
    if not rows:
        console.print("[dim]No diary entries in this period.[/dim]")
        return

    table = Table(title=f"Diary (last {days} day(s))", header_style="bold cyan")
    table.add_column("When")
    table.add_column("Mood", justify="center")
    table.add_column("Energy", justify="center")
    table.add_column("Task")
    table.add_column("Note")

    for entry, linked in rows:
        table.add_row(
            entry.created_at.strftime("%a %H:%M"),
            f"{entry.mood_emoji} {entry.mood_level}",
            f"{entry.energy_emoji} {entry.energy_level}",
            linked.name if linked else "",
            entry.content,
        )

    console.print(table)


# Places and geofences


@app.command(name="add-place")
def add_place(
    name: str = typer.Argument(..., help="Place name"),
    latitude: float = typer.Argument(..., help="Latitude"),
    longitude: float = typer.Argument(..., help="Longitude"),
    radius: float = typer.Option(100.0, "--radius", "-r", help="Radius in meters"),
    task: str = typer.Option(None, "--task", "-t", help="Task to start on arrival"),
    geofence: bool = typer.Option(True, "--geofence/--no-geofence", help="Monitor this place"),
    auto_stop: bool = typer.Option(
        True, "--auto-stop/--no-auto-stop", help="Stop tracking on leaving"
    ),
) -> None:
    """Save a place, optionally starting a task when you arrive."""

    async def create(orchestrator: Orchestrator) -> Place:
        repository = _repo(orchestrator)
        task_id = (await _find_task(repository, task)).id if task else None
        place = Place(
            name=name,
            latitude=latitude,
            longitude=longitude,
            radius=radius,
            is_geofence_enabled=geofence,
            auto_start_task_id=task_id,
            auto_stop_on_exit=auto_stop,
        )
        repository.insert(place)
        await repository.save()
        orchestrator.geofences.start_monitoring(place)
        return place

    place = _run(create)
    console.print(f"[green]Saved place[/green] {place.name} [dim]{str(place.id)[:8]}[/dim]")


@app.command()
def places() -> None:
    """List saved places."""

    async def fetch(orchestrator: Orchestrator):
        repository = _repo(orchestrator)
        rows = []
        for place in await repository.fetch_places():
            task = (
                await repository.fetch_task(place.auto_start_task_id)
                if place.auto_start_task_id
                else None
            )
            rows.append((place, task))
        return rows

    rows = _run(fetch)
    if not rows:
        console.print("[dim]No places saved.[/dim]")
        return

    table = Table(title="Places", header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Location")
    table.add_column("Radius", justify="right")
    table.add_column("Geofence", justify="center")
    table.add_column("Auto-start")
    table.add_column("Auto-stop", justify="center")

    for place, task in rows:
        table.add_row(
            str(place.id)[:8],
            place.name,
            f"{place.latitude:.5f}, {place.longitude:.5f}",
            f"{place.radius:.0f}m",
            "✓" if place.is_geofence_enabled else "",
            task.name if task else "",
            "✓" if place.auto_stop_on_exit else "",
        )

    console.print(table)


async def _geofence_event(orchestrator: Orchestrator, place_key: str, entering: bool) -> None:
    place = await _find_place(_repo(orchestrator), place_key)
    location = orchestrator.location
    if entering:
        await location.emit_enter(str(place.id))
    else:
        await location.emit_exit(str(place.id))
    # Let the immediate notification fire before shutdown
    await asyncio.sleep(0.05)
    _report_error(orchestrator)


@geofence_app.command("enter")
def geofence_enter(place: str = typer.Argument(..., help="Place name or id")) -> None:
    """Simulate arriving at a place."""
    _run(lambda orchestrator: _geofence_event(orchestrator, place, entering=True))


@geofence_app.command("exit")
def geofence_exit(place: str = typer.Argument(..., help="Place name or id")) -> None:
    """Simulate leaving a place."""
    _run(lambda orchestrator: _geofence_event(orchestrator, place, entering=False))


@app.command()
def gps(
    latitude: float = typer.Argument(..., help="Latitude"),
    longitude: float = typer.Argument(..., help="Longitude"),
    accuracy: float = typer.Option(10.0, "--accuracy", "-a", help="Horizontal accuracy (m)"),
    altitude: float = typer.Option(0.0, "--altitude", help="Altitude (m)"),
    speed: float = typer.Option(0.0, "--speed", help="Speed (m/s)"),
) -> None:
    """Feed a location sample to the running entry's GPS trail."""

    async def feed(orchestrator: Orchestrator) -> int:
        tracker = orchestrator.tracker
        if not orchestrator.config.tracking.gps_trail_enabled:
            console.print("[yellow]GPS trails are disabled (tracking.gps_trail_enabled)[/yellow]")
            return 0
        before = len(tracker.active_entry.gps_trail) if tracker.active_entry else 0
        await orchestrator.location.emit_sample(
            LocationSample(
                latitude=latitude,
                longitude=longitude,
                altitude=altitude,
                horizontal_accuracy=accuracy,
                speed=speed,
            )
        )
        after = len(tracker.active_entry.gps_trail) if tracker.active_entry else 0
        return after - before

    added = _run(feed)
    console.print("[green]Point recorded[/green]" if added else "[dim]Sample discarded[/dim]")


# Widget


@app.command(name="widget-action")
def widget_action(
    kind: str = typer.Argument(..., help="start or stop"),
    task: str = typer.Argument(..., help="Task name or id"),
) -> None:
    """Queue a widget tap and apply it as the app would on launch."""
    if kind not in PendingAction.KINDS:
        console.print(f"[red]Unknown action '{kind}', expected start or stop[/red]")
        raise typer.Exit(1)

    async def queue(orchestrator: Orchestrator) -> None:
        found = await _find_task(_repo(orchestrator), task)
        orchestrator.widget.set_pending_action(PendingAction(kind=kind, task_id=found.id))
        await orchestrator.tracker.process_pending_action()
        _report_error(orchestrator)

    _run(queue)
    status()


@app.command(name="widget-show")
def widget_show() -> None:
    """Show the state currently shared with widgets."""
    config = get_config()
    store = JsonWidgetStore(config.widget_dir)

    active = store.get_active_task()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Active", f"{active.name} since {active.start_time:%H:%M}" if active else "-")
    for index, shared in enumerate(store.get_favorite_tasks(), start=1):
        table.add_row(f"Favorite {index}", shared.name)
    pending = store.get_pending_action()
    if pending:
        table.add_row("Pending", f"{pending.kind} {pending.task_id}")

    console.print(Panel(table, title="Widget", border_style="blue"))


# Maintenance


@app.command()
def backup() -> None:
    """Copy the database to the backups directory."""

    async def do_backup(orchestrator: Orchestrator) -> Path:
        return await orchestrator.db.backup(orchestrator.config.backup_dir)

    path = _run(do_backup)
    console.print(f"[green]Backed up to[/green] {path}")


@app.command(name="config-show")
def config_show() -> None:
    """Show current configuration."""
    config = get_config()

    table = Table(title="Chronicle Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value")

    # Paths
    table.add_row("[bold]Paths[/bold]", "")
    table.add_row("  Data Directory", str(config.data_dir))
    table.add_row("  Log Directory", str(config.log_dir))
    table.add_row("  Config File", str(config.config_file))
    table.add_row("  Database", str(config.db_path))
    table.add_row("  Widget Directory", str(config.widget_dir))

    # Tracking
    table.add_row("[bold]Tracking[/bold]", "")
    table.add_row("  GPS Trail", str(config.tracking.gps_trail_enabled))
    table.add_row("  Max GPS Accuracy", f"{config.tracking.max_gps_accuracy_meters:.0f}m")
    table.add_row("  Accuracy Mode", config.tracking.accuracy_mode)

    # Pomodoro
    p = config.pomodoro
    table.add_row("[bold]Pomodoro[/bold]", "")
    table.add_row("  Poll Interval", f"{p.poll_interval_seconds}s")
    table.add_row("  Durations", f"{p.work_minutes}/{p.short_break_minutes}/{p.long_break_minutes} min")
    table.add_row("  Sessions", str(p.sessions_before_long_break))
    table.add_row("  Auto-start", f"breaks={p.auto_start_breaks} work={p.auto_start_work}")

    # Other
    table.add_row("[bold]Geofences[/bold]", str(config.geofence.enabled))
    table.add_row("[bold]Notifications[/bold]", str(config.notifications.enabled))
    table.add_row("[bold]Widget Favorites[/bold]", str(config.widget.max_favorites))

    console.print(table)


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"Chronicle v{__version__}")


if __name__ == "__main__":
    app()
