"""
In-memory source.

Serves content held by the caller. Embedding applications use it to feed
the aggregator from their own transport, and tests use it to script rig
contents, failures and completion order.
"""

from __future__ import annotations

import asyncio

from allbeads.errors import SourceUnreachable
from allbeads.models.rig import Rig
from allbeads.sources.base import FetchResult, RepositorySource
from allbeads.sources.local import content_revision


class MemorySource(RepositorySource):
    """
    Source backed by a dict of rig name -> content (or exception to raise).

    Example:
        >>> source = MemorySource({"alpha": alpha_jsonl})
        >>> source.set("beta", SourceUnreachable("beta", "offline"))
    """

    name = "memory"

    def __init__(
        self,
        contents: dict[str, str | Exception] | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.contents: dict[str, str | Exception] = dict(contents or {})
        self.delays: dict[str, float] = dict(delays or {})
        self.fetch_counts: dict[str, int] = {}

    def set(self, rig: str, content: str | Exception) -> None:
        self.contents[rig] = content

    async def fetch(self, rig: Rig) -> FetchResult:
        self.fetch_counts[rig.name] = self.fetch_counts.get(rig.name, 0) + 1

        delay = self.delays.get(rig.name, 0.0)
        if delay:
            await asyncio.sleep(delay)

        if rig.name not in self.contents:
            raise SourceUnreachable(rig.name, "no content registered")
        content = self.contents[rig.name]
        if isinstance(content, Exception):
            raise content
        return FetchResult(content=content, revision=content_revision(content))
