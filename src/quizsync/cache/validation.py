"""Cache freshness checks.

Freshness is decided by comparing record counts only. Edits that keep the
number of questions the same are not detected; this matches the behavior the
deployed app relies on and is deliberately left as is.
"""

from enum import Enum
from typing import Sequence


class Staleness(str, Enum):
    """Verdict of comparing a cached content set with a fetched one."""

    FRESH = "fresh"
    STALE = "stale"


def compare_counts(local: Sequence, remote: Sequence) -> Staleness:
    """Decide whether the cached records are stale.

    Args:
        local: Records decoded from the cache file
        remote: Records decoded from the fetched payload

    Returns:
        Staleness.STALE if the record counts differ, else Staleness.FRESH

    Examples:
        >>> compare_counts([1, 2], [1, 2, 3])
        <Staleness.STALE: 'stale'>
    """
    if len(local) != len(remote):
        return Staleness.STALE
    return Staleness.FRESH

