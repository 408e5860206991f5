"""
Exception types for AllBeads.

Only configuration problems are fatal. Source and cache failures are raised
by the components that detect them and converted into report entries by
their callers, so a single bad repository never takes the graph down.
"""

from __future__ import annotations


class AllBeadsError(Exception):
    """Base class for all AllBeads errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AllBeadsError):
    """Raised when the configuration cannot drive an aggregation (e.g. zero rigs)."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class SourceError(AllBeadsError):
    """Base class for repository source failures."""

    def __init__(self, rig: str, message: str):
        super().__init__(f"{rig}: {message}")
        self.rig = rig
        self.reason = message


class SourceUnreachable(SourceError):
    """The repository could not be fetched (network, auth, timeout, missing clone)."""


class SourceUninitialized(SourceError):
    """The repository exists but carries no issue-tracking data yet."""


class CacheUnavailable(AllBeadsError):
    """The cache store could not be opened, read or written."""
