"""Widget state sharing."""

from chronicle.widget.provider import (
    JsonWidgetStore,
    PendingAction,
    SharedActiveTask,
    SharedTask,
    WidgetSync,
)

__all__ = ["JsonWidgetStore", "PendingAction", "SharedActiveTask", "SharedTask", "WidgetSync"]
