"""Configuration management using Pydantic settings with optional file persistence."""

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Paths ---

APP_NAME = "research-console"


def get_config_dir() -> Path:
    """Get the configuration directory (e.g. ~/.config/research-console)."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", Path.home() / ".config")).expanduser()
    else:
        base = Path("~/.config").expanduser()

    path = base / APP_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


CONFIG_FILE = get_config_dir() / "config.json"


def load_config_file() -> dict[str, Any]:
    """Load settings from the JSON config file if it exists."""
    if not CONFIG_FILE.exists():
        return {}

    try:
        text = CONFIG_FILE.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config_file(config_data: dict[str, Any]) -> None:
    """Save settings to the JSON config file."""
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(config_data, indent=2), encoding="utf-8")


class ApiSettings(BaseSettings):
    """Research API connection configuration."""

    model_config = SettingsConfigDict(env_prefix="RC_API_")

    base_url: str = Field(default="http://127.0.0.1:3000", description="Base URL of the research API")
    timeout: float = Field(default=30.0, description="Connect/request timeout in seconds (progress streams have no read timeout)")


class StorageSettings(BaseSettings):
    """Local persistence configuration."""

    model_config = SettingsConfigDict(env_prefix="RC_STORAGE_")

    directory: Optional[str] = Field(default=None, description="Directory holding query-storage.json (default: config dir)")

    def get_directory(self) -> Path:
        """Get the storage directory, creating if needed."""
        if self.directory:
            path = Path(self.directory).expanduser()
        else:
            path = get_config_dir()
        path.mkdir(parents=True, exist_ok=True)
        return path


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="RC_LOG_")

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False, description="Render structured logs as JSON instead of console lines")


class TrackerSettings(BaseSettings):
    """Progress tracking behaviour."""

    model_config = SettingsConfigDict(env_prefix="RC_TRACKER_")

    max_reconnects: int = Field(default=3, description="Reconnect attempts after the progress stream is interrupted")
    reconnect_delay: float = Field(default=2.0, description="Seconds to wait before reconnecting")


class AppSettings(BaseSettings):
    """Root application settings.

    Priority: Environment Variables > Config File > Defaults
    """

    model_config = SettingsConfigDict(env_prefix="RC_", extra="ignore")

    api: ApiSettings = Field(default_factory=ApiSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)

    def save(self) -> Path:
        """Save current configuration to file."""
        save_config_file(self.model_dump(mode="json", exclude_none=True))
        return CONFIG_FILE


def _load_settings() -> AppSettings:
    """Load settings with file config as base, env vars overlay."""
    file_data = load_config_file()
    # Pydantic will overlay env vars on top
    return AppSettings(**file_data)


settings = _load_settings()
