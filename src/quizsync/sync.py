"""Sync orchestrator: keeps a local copy of each question pool usable.

For a content set name the orchestrator decides whether to use the cached
copy, replace it with a fresh download, or fall back to it when the remote
source is unavailable. Each attempt runs as a small state machine:

    UNCACHED -> FETCHING  -> READY | ERROR     (no cached copy)
    UNCACHED -> COMPARING -> READY | ERROR     (cached copy present)

ERROR is never sticky; the next request starts again from UNCACHED.
"""

import logging
import random
import threading
import warnings
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from filelock import FileLock, Timeout

from quizsync.cache.config import SyncConfig, get_global_config
from quizsync.cache.metadata import CacheMetadata
from quizsync.cache.store import LocalCacheStore
from quizsync.cache.validation import Staleness, compare_counts
from quizsync.content import Record, parse_records
from quizsync.errors import (
    InvalidRecord,
    MalformedContent,
    QuizSyncError,
    StorageError,
    UnknownName,
)
from quizsync.remote import RemoteFetcher, normalize_name

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """Where a content set is in its current sync attempt."""

    UNCACHED = "uncached"
    FETCHING = "fetching"
    COMPARING = "comparing"
    READY = "ready"
    ERROR = "error"


class SyncOutcome(str, Enum):
    """Result kind of one sync attempt."""

    USED_FRESH_CACHE = "used_fresh_cache"
    UPDATED_FROM_REMOTE = "updated_from_remote"
    FELL_BACK_TO_CACHE = "fell_back_to_cache"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync attempt.

    Attributes:
        name: Normalized content set name
        outcome: What the orchestrator did
        records: Usable records in presentation order (empty on failure)
        reason: The error behind a FAILED outcome
        cache_written: True if this attempt wrote the cache file
    """

    name: str
    outcome: SyncOutcome
    records: tuple[Record, ...] = ()
    reason: Optional[QuizSyncError] = None
    cache_written: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome is not SyncOutcome.FAILED

    @property
    def state(self) -> SyncState:
        return SyncState.READY if self.ok else SyncState.ERROR


SyncListener = Callable[[SyncResult], Any]


class SyncOrchestrator:
    """Synchronizes named content sets against their remote source.

    Components are injectable so the fetch, storage and shuffle behavior can
    be swapped (tests pass fakes; the CLI uses the defaults).

    Examples:
        >>> with SyncOrchestrator() as orchestrator:
        ...     result = orchestrator.sync('technician')
        ...     if result.ok:
        ...         first = result.records[0]

        Background use, at most one in-flight sync per name:

        >>> future = orchestrator.submit('general')
        >>> future.add_done_callback(lambda f: show(f.result()))
    """

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        fetcher: Optional[RemoteFetcher] = None,
        store: Optional[LocalCacheStore] = None,
        rng: Optional[random.Random] = None,
        track_metadata: bool = True,
    ):
        """Initialize orchestrator.

        Args:
            config: Sync configuration (uses global if None)
            fetcher: Remote fetcher (built from config.base_url if None)
            store: Local cache store (built from config.cache_dir if None)
            rng: Random source for shuffling handed-out records
            track_metadata: Keep cache metadata and statistics up to date
        """
        self.config = config or get_global_config()
        self.fetcher = fetcher or RemoteFetcher(self.config.base_url)
        self.store = store or LocalCacheStore(self.config.cache_dir)
        self.metadata = CacheMetadata(self.store.cache_dir) if track_metadata else None
        self._rng = rng or random.Random()

        self._listeners: List[SyncListener] = []
        self._states: Dict[str, SyncState] = {}
        self._executor: Optional[ThreadPoolExecutor] = None
        self._inflight: Dict[str, Future] = {}
        self._inflight_lock = threading.Lock()

    def __enter__(self) -> "SyncOrchestrator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # =========================================================================
    # Listeners and state
    # =========================================================================

    def add_listener(self, listener: SyncListener) -> None:
        """Register a callable notified with every SyncResult.

        Args:
            listener: Called with the result after each sync attempt
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: SyncListener) -> None:
        """Unregister a listener added with add_listener."""
        self._listeners.remove(listener)

    def state(self, name: str) -> SyncState:
        """Get the current sync state of a content set.

        Args:
            name: Content set name

        Returns:
            Last state reached (UNCACHED if never synced)
        """
        return self._states.get(normalize_name(name), SyncState.UNCACHED)

    def _set_state(self, key: str, state: SyncState) -> None:
        logger.debug(f"'{key}' -> {state.value}")
        self._states[key] = state

    # =========================================================================
    # Synchronization
    # =========================================================================

    def sync(self, name: str) -> SyncResult:
        """Synchronize a content set in the calling thread.

        Never raises for the errors of the quizsync taxonomy; they are
        reported as a FAILED result with the error as ``reason``.

        Args:
            name: Content set name or display label (case-insensitive)

        Returns:
            SyncResult with shuffled records on success
        """
        key = normalize_name(name)
        self._set_state(key, SyncState.UNCACHED)

        try:
            self.fetcher.resolve(key)
        except UnknownName as e:
            return self._finish(key, SyncResult(key, SyncOutcome.FAILED, reason=e))

        try:
            self.store.lock_dir.mkdir(parents=True, exist_ok=True)
            with FileLock(
                self.store.lock_path(key), timeout=self.config.lock_timeout
            ):
                result = self._sync_locked(key)
        except Timeout as e:
            error = StorageError(
                f"Timeout acquiring lock for '{key}' after "
                f"{self.config.lock_timeout} seconds"
            )
            error.__cause__ = e
            result = SyncResult(key, SyncOutcome.FAILED, reason=error)
        except OSError as e:
            error = StorageError(f"Cannot lock cache for '{key}': {e}")
            error.__cause__ = e
            result = SyncResult(key, SyncOutcome.FAILED, reason=error)

        return self._finish(key, result)

    def submit(self, name: str) -> "Future[SyncResult]":
        """Synchronize a content set in the background.

        If a sync for the same name is already pending, its future is
        returned instead of starting a second one. A future that has not
        started yet can be cancelled; a running fetch cannot.

        Args:
            name: Content set name or display label (case-insensitive)

        Returns:
            Future resolving to the SyncResult
        """
        key = normalize_name(name)
        with self._inflight_lock:
            pending = self._inflight.get(key)
            if pending is not None and not pending.done():
                logger.debug(f"Sync for '{key}' already in flight")
                return pending

            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.config.max_workers,
                    thread_name_prefix="quizsync",
                )
            future = self._executor.submit(self.sync, key)
            self._inflight[key] = future

        future.add_done_callback(lambda f: self._clear_inflight(key, f))
        return future

    def _clear_inflight(self, key: str, future: Future) -> None:
        with self._inflight_lock:
            if self._inflight.get(key) is future:
                del self._inflight[key]

    def close(self) -> None:
        """Wait for background syncs and release worker threads."""
        with self._inflight_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def _sync_locked(self, key: str) -> SyncResult:
        """Run the sync with the per-name lock already acquired."""
        if not self.store.exists(key):
            self._set_state(key, SyncState.FETCHING)
            return self._fetch_uncached(key)

        self._set_state(key, SyncState.COMPARING)
        return self._compare_with_remote(key)

    def _fetch_uncached(self, key: str) -> SyncResult:
        """First download: nothing to fall back to, so every failure is final."""
        try:
            data = self.fetcher.fetch(key)
            records = parse_records(data)
        except QuizSyncError as e:
            logger.error(f"Cannot load '{key}' and no cached copy exists: {e}")
            return SyncResult(key, SyncOutcome.FAILED, reason=e)

        written = self._write_cache(key, data, records)
        return SyncResult(
            key, SyncOutcome.UPDATED_FROM_REMOTE, records, cache_written=written
        )

    def _compare_with_remote(self, key: str) -> SyncResult:
        """Cached copy present: refresh it if the remote count differs."""
        try:
            remote_data = self.fetcher.fetch(key)
            remote_records = parse_records(remote_data)
        except QuizSyncError as e:
            logger.warning(f"Remote check for '{key}' failed, using cache: {e}")
            return self._fall_back(key)

        try:
            local_records = parse_records(self.store.read(key))
        except QuizSyncError as e:
            if self.config.repair_corrupt_cache:
                logger.warning(f"Cached copy of '{key}' unusable, replacing: {e}")
                return self._replace(key, remote_data, remote_records)
            logger.warning(f"Cached copy of '{key}' unusable: {e}")
            return self._fall_back(key)

        verdict = compare_counts(local_records, remote_records)
        logger.debug(
            f"'{key}': {len(local_records)} cached vs "
            f"{len(remote_records)} remote records, {verdict.value}"
        )
        if verdict is Staleness.STALE:
            return self._replace(key, remote_data, remote_records)

        return SyncResult(key, SyncOutcome.USED_FRESH_CACHE, local_records)

    def _replace(
        self, key: str, data: bytes, records: tuple[Record, ...]
    ) -> SyncResult:
        written = self._write_cache(key, data, records)
        return SyncResult(
            key, SyncOutcome.UPDATED_FROM_REMOTE, records, cache_written=written
        )

    def _fall_back(self, key: str) -> SyncResult:
        """Decode the existing cache after the remote side failed."""
        try:
            records = parse_records(self.store.read(key))
        except (MalformedContent, InvalidRecord) as e:
            logger.error(f"Cached copy of '{key}' cannot be decoded: {e}")
            error = MalformedContent(f"Cached copy of '{key}' is unusable: {e}")
            error.__cause__ = e
            return SyncResult(key, SyncOutcome.FAILED, reason=error)
        except QuizSyncError as e:
            logger.error(f"Cached copy of '{key}' cannot be read: {e}")
            return SyncResult(key, SyncOutcome.FAILED, reason=e)

        return SyncResult(key, SyncOutcome.FELL_BACK_TO_CACHE, records)

    def _write_cache(self, key: str, data: bytes, records: tuple[Record, ...]) -> bool:
        """Persist fetched bytes; a storage failure leaves them usable uncached."""
        try:
            path = self.store.write(key, data)
        except StorageError as e:
            logger.warning(f"Fetched '{key}' but could not cache it: {e}")
            return False

        if self.metadata is not None:
            try:
                self.metadata.record_write(
                    key,
                    path.name,
                    len(records),
                    len(data),
                )
            except Exception as e:
                logger.error(f"Error updating cache metadata: {e}")
                # Not critical - file is cached even if metadata update fails
                warnings.warn(f"Cache metadata update failed for {key}: {e}")
        return True

    def _finish(self, key: str, result: SyncResult) -> SyncResult:
        """Shuffle, record and announce a finished attempt."""
        if result.ok and self.config.shuffle:
            shuffled = list(result.records)
            self._rng.shuffle(shuffled)
            result = replace(result, records=tuple(shuffled))

        self._set_state(key, result.state)

        if result.ok:
            logger.info(
                f"Synced '{key}': {result.outcome.value}, "
                f"{len(result.records)} records"
            )
        else:
            logger.info(f"Sync of '{key}' failed: {result.reason}")

        # Only content sets with a cache entry get bookkeeping
        if self.metadata is not None and self.store.exists(key):
            try:
                self.metadata.record_outcome(key, result.outcome.value)
            except Exception as e:
                logger.error(f"Error updating cache metadata: {e}")
                warnings.warn(f"Cache metadata update failed for {key}: {e}")

        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception(f"Sync listener {listener!r} failed for '{key}'")

        return result

    # =========================================================================
    # Inspection
    # =========================================================================

    def cached_records(self, name: str) -> tuple[Record, ...]:
        """Decode the cached copy of a content set without touching the network.

        Args:
            name: Content set name

        Returns:
            Records in cached order

        Raises:
            NotFound: If nothing is cached
            MalformedContent: If the cached bytes do not decode
            InvalidRecord: If a cached record is invalid
        """
        return parse_records(self.store.read(normalize_name(name)))

    def get_status(self, name: str) -> Dict[str, Any]:
        """Get cache status for a content set.

        Args:
            name: Content set name

        Returns:
            Status dict with location, cache path and recorded metadata

        Raises:
            UnknownName: If the name is not a known content set
        """
        key = normalize_name(name)
        url = self.fetcher.resolve(key)
        path = self.store.path_for(key)
        entry = (self.metadata.get_entry(key) if self.metadata else None) or {}

        return {
            "name": key,
            "url": url,
            "cached": self.store.exists(key),
            "cache_path": str(path),
            "state": self.state(key).value,
            "record_count": entry.get("record_count"),
            "size_bytes": entry.get("size_bytes"),
            "cached_at": entry.get("cached_at"),
            "last_checked": entry.get("last_checked"),
            "last_outcome": entry.get("last_outcome"),
        }

    def get_stats(self) -> Dict[str, Any]:
        """Get sync statistics for this cache directory.

        Returns:
            Statistics dict
        """
        stats: Dict[str, Any] = self.metadata.get_stats() if self.metadata else {}
        stats["cache_dir"] = str(self.store.cache_dir)
        return stats

    def clear(self, name: str) -> bool:
        """Remove the cached copy of a content set.

        Args:
            name: Content set name

        Returns:
            True if a cached file was removed
        """
        key = normalize_name(name)
        self.store.lock_dir.mkdir(parents=True, exist_ok=True)
        with FileLock(self.store.lock_path(key), timeout=self.config.lock_timeout):
            removed = self.store.remove(key)
        if self.metadata is not None:
            self.metadata.remove_entry(key)
        self._states.pop(key, None)
        return removed
