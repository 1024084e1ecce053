"""
loadctl Settings

Process-level settings for the controller infrastructure layer:
- Environment-based configuration (``LOADCTL_`` prefix)
- Type-safe settings with Pydantic
- JSON file round trip

These settings locate the controller home directories and tune the file
watchers. The reloadable controller properties themselves live in
:class:`loadctl.config.store.ConfigStore`.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_CLUSTER_LISTENER_PORT = 40003
DEFAULT_POLL_DELAY_MS = 2000


class LogLevel(str, Enum):
    """Logging levels for loadctl."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class WatchSettings(BaseModel):
    """File watcher configuration."""
    enabled: bool = True
    poll_delay_ms: int = Field(default=DEFAULT_POLL_DELAY_MS, ge=10)


class ClusterDefaults(BaseModel):
    """Defaults used when the controller properties omit cluster values."""
    listener_port: int = Field(default=DEFAULT_CLUSTER_LISTENER_PORT, ge=1, le=65535)


class ControllerSettings(BaseSettings):
    """
    Settings for the controller infrastructure.

    All values can be overridden through environment variables, e.g.
    ``LOADCTL_HOME=/srv/loadctl`` or ``LOADCTL_WATCH__POLL_DELAY_MS=500``.
    """

    home: Path = Field(default_factory=lambda: Path.home() / ".loadctl")
    ex_home: Path = Field(default_factory=lambda: Path.home() / ".loadctl_ex")
    template_dir: Optional[Path] = Field(
        default=None, description="Default files copied into a fresh home"
    )

    watch: WatchSettings = Field(default_factory=WatchSettings)
    cluster: ClusterDefaults = Field(default_factory=ClusterDefaults)

    log_level: LogLevel = LogLevel.INFO
    json_logs: bool = False

    model_config = {
        "env_prefix": "LOADCTL_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }

    @field_validator("home", "ex_home", "template_dir", mode="before")
    @classmethod
    def ensure_path(cls, v: Any) -> Path:
        """Ensure value is converted to Path."""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @classmethod
    def from_file(cls, config_path: Path) -> "ControllerSettings":
        """Load settings from a JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = json.load(f)

        return cls(**config_data)

    def to_file(self, config_path: Path) -> None:
        """Save settings to a JSON file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)


# Used by the CLI only; library code takes settings explicitly.
_settings: Optional[ControllerSettings] = None


def get_settings() -> ControllerSettings:
    """Get the process settings instance."""
    global _settings
    if _settings is None:
        _settings = ControllerSettings()
    return _settings


def set_settings(settings: ControllerSettings) -> None:
    """Set the process settings instance."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset the process settings to default."""
    global _settings
    _settings = None
