"""Core components."""

from chronicle.core.config import Config, get_config
from chronicle.core.orchestrator import Orchestrator
from chronicle.core.tracker import TimeTracker

__all__ = ["Config", "get_config", "Orchestrator", "TimeTracker"]
