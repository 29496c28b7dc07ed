"""Local cache store for content set payloads.

Holds one file per content set, named after the lower-cased set name. The
store only moves bytes; decoding is the parser's job.
"""

import errno
import logging
from pathlib import Path
from typing import Union

from quizsync.errors import NotFound, StorageError

logger = logging.getLogger(__name__)


class LocalCacheStore:
    """Durable per-device storage of raw content set bytes.

    No expiry and no size cap: an entry lives until it is overwritten or
    explicitly removed.

    Examples:
        >>> store = LocalCacheStore('/tmp/quizsync')
        >>> store.write('Technician', b'[]').name
        'technician.json'
        >>> store.path_for('TECHNICIAN').name
        'technician.json'
    """

    def __init__(self, cache_dir: Union[str, Path]):
        """Initialize store.

        Args:
            cache_dir: Directory for cached files (created lazily on write)
        """
        self.cache_dir = Path(cache_dir)
        self.lock_dir = self.cache_dir / ".locks"

    @staticmethod
    def _key(name: str) -> str:
        return name.strip().lower()

    def path_for(self, name: str) -> Path:
        """Get cache file path for a content set.

        Args:
            name: Content set name

        Returns:
            Path to <lowercased-name>.json inside the cache directory
        """
        return self.cache_dir / f"{self._key(name)}.json"

    def lock_path(self, name: str) -> Path:
        """Get lock file path for a content set.

        Args:
            name: Content set name

        Returns:
            Path to the lock file guarding this content set
        """
        return self.lock_dir / f"{self._key(name)}.lock"

    def exists(self, name: str) -> bool:
        """Check if a content set is cached.

        Args:
            name: Content set name

        Returns:
            True if a cache file exists
        """
        return self.path_for(name).is_file()

    def read(self, name: str) -> bytes:
        """Read cached bytes.

        Args:
            name: Content set name

        Returns:
            Cached bytes

        Raises:
            NotFound: If the file is absent or unreadable
        """
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFound(f"No cached copy of '{name}' at {path}") from e
        except OSError as e:
            raise NotFound(f"Cannot read cached copy of '{name}': {e}") from e

    def write(self, name: str, data: bytes) -> Path:
        """Write bytes to the cache, replacing any previous copy.

        Writes go to a temp file which is then renamed over the target, so a
        failed write never leaves a truncated cache file behind.

        Args:
            name: Content set name
            data: Raw payload

        Returns:
            Path of the written cache file

        Raises:
            StorageError: If the directory cannot be created or the file
                cannot be written (permissions, disk full)
        """
        cache_path = self.path_for(name)
        temp_path = cache_path.with_suffix(cache_path.suffix + ".tmp")

        try:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Cannot create cache directory {cache_path.parent}: {e}"
            ) from e

        try:
            with open(temp_path, "wb") as f:
                f.write(data)
            temp_path.replace(cache_path)
        except OSError as e:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as cleanup_error:
                    logger.warning(
                        f"Failed to clean up temp file {temp_path}: {cleanup_error}"
                    )
            if e.errno == errno.ENOSPC:
                raise StorageError(f"Disk full while caching '{name}'") from e
            raise StorageError(f"Cannot write cache file {cache_path}: {e}") from e

        logger.debug(f"Cached {len(data)} bytes for '{name}' at {cache_path}")
        return cache_path

    def remove(self, name: str) -> bool:
        """Delete a cached content set.

        Only used for explicit user-driven clears; syncs never delete.

        Args:
            name: Content set name

        Returns:
            True if a file was removed
        """
        path = self.path_for(name)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Cannot remove cache file {path}: {e}") from e
        return True
