"""Chronicle - personal time tracking with Pomodoro focus cycles."""

__version__ = "0.3.0"
