"""
Base class for repository sources.

A source turns a rig into its current raw issue-tracking content plus a
freshness token (the revision). Sources are transport-agnostic from the
aggregator's point of view and never retry on their own: retry policy
belongs to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from allbeads.models.rig import Rig


class FetchResult(BaseModel):
    """Raw content of a rig's issues file at a given revision."""

    content: str = Field(description="Line-delimited JSON records")
    revision: str = Field(description="Freshness token (commit hash or content digest)")


class RepositorySource(ABC):
    """
    Base class for all repository sources.

    Subclasses implement :meth:`fetch`, which must be idempotent for a given
    revision and must signal failures with
    :class:`~allbeads.errors.SourceUnreachable` (transport problems, fall
    back to cached data) or :class:`~allbeads.errors.SourceUninitialized`
    (no issue data yet, treat as empty).

    Example:
        >>> class StaticSource(RepositorySource):
        ...     name = "static"
        ...
        ...     async def fetch(self, rig):
        ...         return FetchResult(content="", revision="0")
    """

    name: str = "source"

    @abstractmethod
    async def fetch(self, rig: Rig) -> FetchResult:
        """
        Fetch the current issue content of a rig.

        Args:
            rig: Rig to fetch

        Returns:
            FetchResult with content and revision

        Raises:
            SourceUnreachable: If the repository cannot be reached
            SourceUninitialized: If the repository has no issue data
        """
        pass
