"""Remote fetcher for question pools.

Each content set name maps to one fixed file in the public question pool
repository. Retrieval goes through cloudfiles, which handles https:// paths
the same way it handles bucket paths.
"""

import logging
from typing import Any, Callable, Optional

import cloudfiles

from quizsync.errors import TransportError, UnknownName

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = (
    "https://raw.githubusercontent.com/russolsen/ham_radio_question_pool/master"
)

CONTENT_PATHS = {
    "technician": "technician-2022-2026/technician.json",
    "general": "general-2023-2027/general.json",
    "extra": "extra-2024-2028/extra.json",
}

# Labels on the test selection screen read "Technician Class" etc.
_LABEL_SUFFIX = " class"


def normalize_name(name: str) -> str:
    """Convert a content set name or display label to its table key.

    Args:
        name: Name such as 'technician', 'General' or 'Extra Class'

    Returns:
        Lower-cased key

    Examples:
        >>> normalize_name('Technician Class')
        'technician'
        >>> normalize_name('GENERAL')
        'general'
    """
    key = name.strip().lower()
    if key.endswith(_LABEL_SUFFIX):
        key = key[: -len(_LABEL_SUFFIX)].rstrip()
    return key


def content_names() -> list[str]:
    """Names of all known content sets."""
    return list(CONTENT_PATHS)


class RemoteFetcher:
    """Downloads the raw bytes of a content set.

    One attempt per call; no retry or backoff. Failures surface as
    TransportError so the orchestrator can fall back to the cache.

    Examples:
        >>> fetcher = RemoteFetcher()
        >>> fetcher.resolve('Extra')
        'https://raw.githubusercontent.com/russolsen/ham_radio_question_pool/master/extra-2024-2028/extra.json'
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        client_factory: Optional[Callable[[str], Any]] = None,
    ):
        """Initialize fetcher.

        Args:
            base_url: Root URL the content paths are relative to
            client_factory: Callable returning an object with ``get()`` for a
                URL (defaults to cloudfiles.CloudFile)
        """
        self.base_url = base_url.rstrip("/")
        self._client_factory = client_factory or cloudfiles.CloudFile

    def resolve(self, name: str) -> str:
        """Get the remote URL for a content set.

        Args:
            name: Content set name (case-insensitive)

        Returns:
            Full URL of the content set file

        Raises:
            UnknownName: If the name is not in the location table
        """
        key = normalize_name(name)
        path = CONTENT_PATHS.get(key)
        if path is None:
            raise UnknownName(
                f"Unknown content set '{name}'. "
                f"Known sets: {', '.join(CONTENT_PATHS)}"
            )
        return f"{self.base_url}/{path}"

    def fetch(self, name: str) -> bytes:
        """Retrieve the raw bytes of a content set.

        Args:
            name: Content set name (case-insensitive)

        Returns:
            Response body

        Raises:
            UnknownName: If the name is not in the location table
            TransportError: On connectivity failure, timeout, or a
                non-success response
        """
        url = self.resolve(name)
        logger.debug(f"Fetching {url}")

        try:
            data = self._client_factory(url).get()
        except Exception as e:
            raise TransportError(f"Failed to fetch {url}: {e}") from e

        # cloudfiles reports a missing object as None rather than raising
        if data is None:
            raise TransportError(f"No content returned for {url}")

        logger.debug(f"Fetched {len(data)} bytes from {url}")
        return bytes(data)
