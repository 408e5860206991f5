"""
Repository sources.

A source fetches a rig's raw issue content and a revision token. The
aggregator only depends on :class:`RepositorySource`; transports plug in
behind it.
"""

from allbeads.models.rig import SyncMode
from allbeads.sources.base import FetchResult, RepositorySource
from allbeads.sources.git import GitSource
from allbeads.sources.local import LocalSource
from allbeads.sources.memory import MemorySource


def create_source(sync_mode: SyncMode = SyncMode.FETCH, timeout: int = 120) -> RepositorySource:
    """Build the default source for a sync mode."""
    return GitSource(sync_mode=sync_mode, timeout=timeout)


__all__ = [
    "FetchResult",
    "RepositorySource",
    "GitSource",
    "LocalSource",
    "MemorySource",
    "create_source",
]
