"""Human-readable formatting for elapsed durations."""

from __future__ import annotations


def _split(seconds: float) -> tuple[int, int, int]:
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return hours, minutes, secs


def format_short(seconds: float) -> str:
    """Format as "Xh Ym", "Xm Ys" or "Xs" depending on magnitude."""
    hours, minutes, secs = _split(seconds)
    if hours > 0:
        return f"{hours}h {minutes}m"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_long(seconds: float) -> str:
    """Format as "X hours Y minutes" or "X minutes Y seconds"."""
    hours, minutes, secs = _split(seconds)
    if hours > 0:
        return f"{_plural(hours, 'hour')} {_plural(minutes, 'minute')}"
    elif minutes > 0:
        return f"{_plural(minutes, 'minute')} {_plural(secs, 'second')}"
    return _plural(secs, "second")


def format_timer(seconds: float) -> str:
    """Format as MM:SS, or H:MM:SS once past an hour."""
    hours, minutes, secs = _split(seconds)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_percentage(value: float, goal: float) -> str:
    """Format value as a percentage of goal, capped at 999%."""
    if goal <= 0:
        return "0%"
    percentage = min(value / goal * 100, 999)
    return f"{percentage:.0f}%"
