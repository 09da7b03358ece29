"""
Staleness check between a cached snapshot and what the client already holds.

The client sends back the (last_modified, last_scanned) pair of the snapshot
it last received. If that is still the newest full scan of an unchanged
directory, nothing needs to be sent.
"""
from enum import Enum
from typing import Optional

from ..models import DirectorySnapshot


class Freshness(Enum):
    NOT_MODIFIED = 'not_modified'
    NEEDS_RESCAN = 'needs_rescan'


class FreshnessGate:
    """Pure comparison; deciding when to re-stat the directory is the caller's job."""

    def resolve(self,
                cached: Optional[DirectorySnapshot],
                known_last_modified: Optional[int],
                known_last_scanned: Optional[int]) -> Freshness:
        if cached is None or cached.is_partial or cached.last_scanned == 0:
            return Freshness.NEEDS_RESCAN
        if known_last_modified is None or known_last_scanned is None:
            return Freshness.NEEDS_RESCAN
        if cached.last_modified != known_last_modified:
            return Freshness.NEEDS_RESCAN
        # the client must hold exactly this scan
        if known_last_scanned != cached.last_scanned:
            return Freshness.NEEDS_RESCAN
        return Freshness.NOT_MODIFIED


def resolve_freshness(cached: Optional[DirectorySnapshot],
                      known_last_modified: Optional[int],
                      known_last_scanned: Optional[int]) -> Freshness:
    return FreshnessGate().resolve(cached, known_last_modified, known_last_scanned)
