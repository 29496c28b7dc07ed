"""Sync and cache configuration management."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from quizsync.remote import DEFAULT_BASE_URL

DEFAULT_CACHE_DIR = Path.home() / ".quizsync_cache"


@dataclass
class SyncConfig:
    """Configuration for content synchronization.

    Attributes:
        cache_dir: Directory holding one <name>.json file per content set
        base_url: Root URL of the remote question pool
        shuffle: Shuffle the records handed out after each successful sync
        repair_corrupt_cache: If True, a cache file that no longer decodes is
            overwritten with a valid remote payload instead of failing the sync
        lock_timeout: Seconds to wait for the per-name cache lock
        max_workers: Worker threads for background syncs
    """

    cache_dir: Path = DEFAULT_CACHE_DIR
    base_url: str = DEFAULT_BASE_URL
    shuffle: bool = True
    repair_corrupt_cache: bool = False
    lock_timeout: float = 30
    max_workers: int = 4

    def __post_init__(self):
        """Ensure cache_dir is an expanded Path."""
        if self.cache_dir is None:
            self.cache_dir = DEFAULT_CACHE_DIR
        self.cache_dir = Path(self.cache_dir).expanduser()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "SyncConfig":
        """Load configuration from file.

        Args:
            config_path: Path to config file. If None, uses default location.

        Returns:
            SyncConfig instance (defaults if the file does not exist)
        """
        if config_path is None:
            config_path = DEFAULT_CACHE_DIR / "config.json"

        if not config_path.exists():
            return cls()

        with open(config_path, "r") as f:
            data = json.load(f)

        if "cache_dir" in data:
            data["cache_dir"] = Path(data["cache_dir"])

        return cls(**data)

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to file.

        Args:
            config_path: Path to config file. If None, uses cache_dir/config.json.
        """
        if config_path is None:
            config_path = self.cache_dir / "config.json"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "cache_dir": str(self.cache_dir),
            "base_url": self.base_url,
            "shuffle": self.shuffle,
            "repair_corrupt_cache": self.repair_corrupt_cache,
            "lock_timeout": self.lock_timeout,
            "max_workers": self.max_workers,
        }

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Create configuration from environment variables.

        Environment variables:
            QUIZSYNC_CACHE_DIR: Cache directory path
            QUIZSYNC_BASE_URL: Root URL of the question pool
            QUIZSYNC_SHUFFLE: Shuffle records after sync (true/false)
            QUIZSYNC_LOCK_TIMEOUT: Lock timeout in seconds

        Returns:
            SyncConfig instance
        """
        config = cls()

        if os.getenv("QUIZSYNC_CACHE_DIR"):
            config.cache_dir = Path(os.getenv("QUIZSYNC_CACHE_DIR")).expanduser()

        if os.getenv("QUIZSYNC_BASE_URL"):
            config.base_url = os.getenv("QUIZSYNC_BASE_URL")

        if os.getenv("QUIZSYNC_SHUFFLE"):
            config.shuffle = os.getenv("QUIZSYNC_SHUFFLE", "").lower() == "true"

        if os.getenv("QUIZSYNC_LOCK_TIMEOUT"):
            config.lock_timeout = float(os.getenv("QUIZSYNC_LOCK_TIMEOUT"))

        return config


# Global sync configuration instance
_global_config: Optional[SyncConfig] = None


def get_global_config() -> SyncConfig:
    """Get global sync configuration.

    Returns:
        Global SyncConfig instance
    """
    global _global_config
    if _global_config is None:
        # Config file wins when present, then environment, then defaults
        config_path = DEFAULT_CACHE_DIR / "config.json"
        try:
            if config_path.exists():
                _global_config = SyncConfig.load(config_path)
            else:
                _global_config = SyncConfig.from_env()
        except (OSError, ValueError, TypeError):
            _global_config = SyncConfig.from_env()
    return _global_config


def set_global_config(config: Optional[SyncConfig]) -> None:
    """Set global sync configuration.

    Args:
        config: SyncConfig instance to use globally, or None to reload lazily
    """
    global _global_config
    _global_config = config
