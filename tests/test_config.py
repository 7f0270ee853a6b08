"""Tests for configuration loading and persistence."""

import json

import pytest

import research_console.config as config_mod
from research_console.config import ApiSettings, AppSettings, LoggingSettings, StorageSettings, TrackerSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove RC_* variables so defaults are observable."""
    import os

    for var in list(os.environ.keys()):
        if var.startswith("RC_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    monkeypatch.setattr(config_mod, "CONFIG_FILE", path)
    return path


class TestDefaults:
    """Default values of each settings section."""

    def test_api_defaults(self):
        api = ApiSettings()
        assert api.base_url == "http://127.0.0.1:3000"
        assert api.timeout == 30.0

    def test_logging_defaults(self):
        assert LoggingSettings().level == "INFO"
        assert LoggingSettings().json_output is False

    def test_tracker_defaults(self):
        tracker = TrackerSettings()
        assert tracker.max_reconnects == 3
        assert tracker.reconnect_delay == 2.0


class TestEnvironment:
    """Environment variables override defaults."""

    def test_api_env_prefix(self, monkeypatch):
        monkeypatch.setenv("RC_API_BASE_URL", "https://research.example.org")
        monkeypatch.setenv("RC_API_TIMEOUT", "5")
        api = ApiSettings()
        assert api.base_url == "https://research.example.org"
        assert api.timeout == 5.0

    def test_nested_sections_read_env(self, monkeypatch):
        monkeypatch.setenv("RC_TRACKER_MAX_RECONNECTS", "0")
        monkeypatch.setenv("RC_LOG_LEVEL", "DEBUG")
        settings = AppSettings()
        assert settings.tracker.max_reconnects == 0
        assert settings.logging.level == "DEBUG"

    def test_storage_directory(self, monkeypatch, tmp_path):
        target = tmp_path / "store"
        monkeypatch.setenv("RC_STORAGE_DIRECTORY", str(target))
        assert StorageSettings().get_directory() == target
        assert target.is_dir()


class TestConfigFile:
    """JSON config file persistence."""

    def test_missing_file(self, config_file):
        assert config_mod.load_config_file() == {}

    def test_empty_file(self, config_file):
        config_file.write_text("   ", encoding="utf-8")
        assert config_mod.load_config_file() == {}

    def test_invalid_json(self, config_file):
        config_file.write_text("{oops", encoding="utf-8")
        assert config_mod.load_config_file() == {}

    def test_non_object_json(self, config_file):
        config_file.write_text("[1, 2]", encoding="utf-8")
        assert config_mod.load_config_file() == {}

    def test_save_round_trip(self, config_file):
        settings = AppSettings(api=ApiSettings(base_url="http://localhost:9000"))
        assert settings.save() == config_file

        data = json.loads(config_file.read_text(encoding="utf-8"))
        assert data["api"]["base_url"] == "http://localhost:9000"
        assert "directory" not in data["storage"]

        reloaded = AppSettings(**config_mod.load_config_file())
        assert reloaded.api.base_url == "http://localhost:9000"
