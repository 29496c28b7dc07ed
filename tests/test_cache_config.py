"""Unit tests for sync configuration."""

from pathlib import Path

import pytest

from quizsync.cache import config as config_module
from quizsync.cache.config import SyncConfig, get_global_config, set_global_config
from quizsync.remote import DEFAULT_BASE_URL


@pytest.fixture(autouse=True)
def reset_global_config():
    """Reset the global configuration around each test."""
    set_global_config(None)
    yield
    set_global_config(None)


class TestSyncConfig:
    """Test configuration defaults and persistence."""

    def test_defaults(self):
        """Test default values."""
        config = SyncConfig()
        assert config.cache_dir == Path.home() / ".quizsync_cache"
        assert config.base_url == DEFAULT_BASE_URL
        assert config.shuffle is True
        assert config.repair_corrupt_cache is False

    def test_string_cache_dir_converted(self):
        """Test that a string cache_dir becomes an expanded Path."""
        config = SyncConfig(cache_dir="~/quiz")
        assert config.cache_dir == Path.home() / "quiz"

    def test_save_and_load(self, tmp_path):
        """Test round trip through a config file."""
        config = SyncConfig(
            cache_dir=tmp_path / "cache",
            shuffle=False,
            repair_corrupt_cache=True,
            lock_timeout=5,
        )
        config_path = tmp_path / "config.json"
        config.save(config_path)

        loaded = SyncConfig.load(config_path)
        assert loaded == config

    def test_load_missing_file_gives_defaults(self, tmp_path):
        """Test that a missing file yields defaults."""
        assert SyncConfig.load(tmp_path / "missing.json") == SyncConfig()

    def test_from_env(self, tmp_path, monkeypatch):
        """Test environment variable overrides."""
        monkeypatch.setenv("QUIZSYNC_CACHE_DIR", str(tmp_path))
        monkeypatch.setenv("QUIZSYNC_BASE_URL", "https://mirror.example.org")
        monkeypatch.setenv("QUIZSYNC_SHUFFLE", "false")
        monkeypatch.setenv("QUIZSYNC_LOCK_TIMEOUT", "2.5")

        config = SyncConfig.from_env()

        assert config.cache_dir == tmp_path
        assert config.base_url == "https://mirror.example.org"
        assert config.shuffle is False
        assert config.lock_timeout == 2.5


class TestGlobalConfig:
    """Test the process-global configuration."""

    def test_set_and_get(self, tmp_path):
        """Test that set_global_config replaces the global instance."""
        config = SyncConfig(cache_dir=tmp_path)
        set_global_config(config)
        assert get_global_config() is config

    def test_lazy_load_from_env(self, tmp_path, monkeypatch):
        """Test that the global config falls back to the environment."""
        monkeypatch.setattr(
            config_module, "DEFAULT_CACHE_DIR", tmp_path / "no-config-here"
        )
        monkeypatch.setenv("QUIZSYNC_CACHE_DIR", str(tmp_path))

        assert get_global_config().cache_dir == tmp_path
