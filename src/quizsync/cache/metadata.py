"""Cache metadata management."""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from filelock import FileLock
from typing_extensions import TypedDict


class CacheEntry(TypedDict, total=False):
    """Bookkeeping for one cached content set."""

    name: str
    filename: str
    record_count: int
    size_bytes: int
    cached_at: str  # ISO 8601, last time the file was written
    last_checked: str  # ISO 8601, last sync attempt
    last_outcome: str  # SyncOutcome value of the last attempt


_STAT_KEYS = ("syncs", "fresh_hits", "updates", "fallbacks", "failures")


def _entry_for(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Get the mutable entry for a name, replacing anything that is not a dict."""
    entry = data["entries"].get(name)
    if not isinstance(entry, dict):
        entry = data["entries"][name] = {"name": name}
    return entry


class CacheMetadata:
    """Manages cache metadata for a cache directory.

    The metadata file (.cache_meta.json) tracks:
    - Per-content-set cache entries (record count, size, timestamps)
    - Sync statistics (fresh hits, updates, fallbacks, failures)

    The cached payload files remain the source of truth; metadata is
    bookkeeping and may be missing or rebuilt at any time.
    """

    def __init__(self, cache_dir: Path):
        """Initialize cache metadata manager.

        Args:
            cache_dir: Directory where cache metadata is stored
        """
        self.cache_dir = Path(cache_dir)
        self.meta_path = self.cache_dir / ".cache_meta.json"
        self._file_lock = FileLock(self.cache_dir / ".locks" / "meta.lock")
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load metadata from file or create new."""
        data = None
        if self.meta_path.exists():
            try:
                with open(self.meta_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (ValueError, OSError):
                # Undecodable or unreadable metadata
                data = None

        if (
            isinstance(data, dict)
            and isinstance(data.get("entries"), dict)
            and isinstance(data.get("stats"), dict)
        ):
            self._data = data
        else:
            # Missing or corrupted metadata, start fresh
            self._initialize_new()

    def _initialize_new(self) -> None:
        """Initialize new metadata structure."""
        self._data = {
            "schema_version": "1.0",
            "created_at": datetime.now(timezone.utc).isoformat(),
            "entries": {},
            "stats": {key: 0 for key in _STAT_KEYS},
        }

    def save(self) -> None:
        """Save metadata to file."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        with open(self.meta_path, "w") as f:
            json.dump(self._data, f, indent=2)

    def _update(self, mutate) -> None:
        """Reload, apply ``mutate`` to the data dict and save, under lock."""
        (self.cache_dir / ".locks").mkdir(parents=True, exist_ok=True)
        with self._lock, self._file_lock:
            self._load()
            mutate(self._data)
            self.save()

    def get_entry(self, name: str) -> Optional[CacheEntry]:
        """Get cache metadata for a content set.

        Args:
            name: Content set name

        Returns:
            Entry dict or None if nothing has been recorded
        """
        entry = self._data["entries"].get(name)
        return entry if isinstance(entry, dict) else None

    def record_write(
        self,
        name: str,
        filename: str,
        record_count: int,
        size_bytes: int,
    ) -> None:
        """Record that a content set's cache file was (re)written.

        Args:
            name: Content set name
            filename: Cache file name
            record_count: Number of records decoded from the written bytes
            size_bytes: Size of the written file
        """
        now = datetime.now(timezone.utc).isoformat()

        def mutate(data):
            entry = _entry_for(data, name)
            entry.update(
                {
                    "filename": filename,
                    "record_count": record_count,
                    "size_bytes": size_bytes,
                    "cached_at": now,
                }
            )

        self._update(mutate)

    def record_outcome(self, name: str, outcome: str) -> None:
        """Record the outcome of a sync attempt.

        Args:
            name: Content set name
            outcome: SyncOutcome value
        """
        now = datetime.now(timezone.utc).isoformat()
        stat_key = {
            "used_fresh_cache": "fresh_hits",
            "updated_from_remote": "updates",
            "fell_back_to_cache": "fallbacks",
            "failed": "failures",
        }.get(outcome)

        def mutate(data):
            stats = data["stats"]
            stats["syncs"] = stats.get("syncs", 0) + 1
            if stat_key:
                stats[stat_key] = stats.get(stat_key, 0) + 1
            entry = _entry_for(data, name)
            entry["last_checked"] = now
            entry["last_outcome"] = outcome

        self._update(mutate)

    def remove_entry(self, name: str) -> None:
        """Remove a content set from metadata.

        Args:
            name: Content set name
        """

        def mutate(data):
            data["entries"].pop(name, None)

        self._update(mutate)

    def get_stats(self) -> Dict[str, int]:
        """Get sync statistics.

        Returns:
            Statistics dict
        """
        return dict(self._data["stats"])

    def get_all_entries(self) -> Dict[str, CacheEntry]:
        """Get all recorded entries.

        Returns:
            Dict mapping content set names to entries
        """
        return dict(self._data["entries"])
