"""Configuration management with Pydantic and YAML support."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chronicle.storage.models import PomodoroSettings

DEFAULT_CONFIG_DIR = Path.home() / ".config/chronicle"


class TrackingConfig(BaseModel):
    """Time entry and GPS trail configuration."""

    gps_trail_enabled: bool = Field(default=False, description="Record GPS trails while tracking")
    max_gps_accuracy_meters: float = Field(
        default=100.0, gt=0, description="Discard samples at or above this accuracy"
    )
    accuracy_mode: str = Field(default="balanced", pattern="^(high|balanced|low)$")


class PomodoroConfig(BaseModel):
    """Pomodoro timer configuration and defaults for new tasks."""

    poll_interval_seconds: float = Field(default=0.5, gt=0, le=10)
    work_minutes: int = Field(default=25, ge=1, le=180)
    short_break_minutes: int = Field(default=5, ge=1, le=60)
    long_break_minutes: int = Field(default=15, ge=1, le=120)
    sessions_before_long_break: int = Field(default=4, ge=1, le=12)
    auto_start_breaks: bool = True
    auto_start_work: bool = False

    def default_settings(self, enabled: bool = False) -> PomodoroSettings:
        """Settings for a newly created task."""
        return PomodoroSettings(
            work_minutes=self.work_minutes,
            short_break_minutes=self.short_break_minutes,
            long_break_minutes=self.long_break_minutes,
            sessions_before_long_break=self.sessions_before_long_break,
            is_enabled=enabled,
            auto_start_breaks=self.auto_start_breaks,
            auto_start_work=self.auto_start_work,
        )


class GeofenceConfig(BaseModel):
    """Place-based auto start/stop configuration."""

    enabled: bool = True


class WidgetConfig(BaseModel):
    """Widget sync configuration."""

    max_favorites: int = Field(default=4, ge=1, le=8)


class NotificationConfig(BaseModel):
    """Local notification configuration."""

    enabled: bool = True


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CHRONICLE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/chronicle")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".local/state/chronicle/logs")
    config_dir: Path = Field(default_factory=lambda: DEFAULT_CONFIG_DIR)

    # Log level
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Sub-configurations
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    pomodoro: PomodoroConfig = Field(default_factory=PomodoroConfig)
    geofence: GeofenceConfig = Field(default_factory=GeofenceConfig)
    widget: WidgetConfig = Field(default_factory=WidgetConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    @property
    def db_path(self) -> Path:
        """Path to SQLite database."""
        return self.data_dir / "chronicle.db"

    @property
    def widget_dir(self) -> Path:
        """Directory shared with widgets."""
        return self.data_dir / "widget"

    @property
    def backup_dir(self) -> Path:
        return self.data_dir / "backups"

    @property
    def geofence_state_path(self) -> Path:
        """Remembers which place auto-started the running entry."""
        return self.data_dir / "geofence_state.json"

    @property
    def config_file(self) -> Path:
        """Path to YAML config file."""
        return self.config_dir / "config.yaml"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.widget_dir.mkdir(parents=True, exist_ok=True)

        # Location trails are personal data
        os.chmod(self.data_dir, 0o700)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from YAML file, environment variables, and defaults.

        Priority (highest to lowest):
        1. YAML config file
        2. Environment variables
        3. Default values
        """
        config_path = config_path or DEFAULT_CONFIG_DIR / "config.yaml"

        yaml_config: dict[str, Any] = {}
        if config_path.exists():
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}

        # Init data outranks env vars in pydantic-settings
        return cls(**yaml_config)

    def save(self, config_path: Path | None = None) -> None:
        """Save current configuration to YAML file."""
        config_path = config_path or self.config_file
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)
        for key in ["data_dir", "log_dir", "config_dir"]:
            if key in data:
                data[key] = str(data[key])

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        os.chmod(config_path, 0o600)


@lru_cache
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.load()
