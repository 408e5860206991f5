"""
Shadow synchronization bookkeeping.

Shadows are rebuilt by every aggregation pass; this module works out which
of them actually changed between two snapshots, and which are affected by a
set of bead deltas, so sync hooks only see what moved.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Union

from pydantic import BaseModel, Field

from allbeads.graph.federated import FederatedGraph
from allbeads.models.ids import make_uri
from allbeads.models.shadow import ShadowBead
from allbeads.sheriff.diff import BeadDelta

SyncHook = Callable[[list[ShadowBead]], Union[Awaitable[None], None]]


class SyncResult(BaseModel):
    """Shadow ids created, updated or newly stale between two snapshots."""

    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    stale: list[str] = Field(default_factory=list)

    @property
    def changes(self) -> int:
        return len(self.created) + len(self.updated) + len(self.stale)

    @property
    def changed_ids(self) -> list[str]:
        return sorted({*self.created, *self.updated, *self.stale})


class ShadowSync:
    """Compares shadow sets and selects the shadows touched by bead changes."""

    @staticmethod
    def compare(old: FederatedGraph | None, new: FederatedGraph) -> SyncResult:
        """Classify every shadow of ``new`` against its counterpart in ``old``."""
        result = SyncResult()
        previous = old.shadows if old is not None else {}

        for sid in sorted(new.shadows):
            shadow = new.shadows[sid]
            before = previous.get(sid)
            if before is None:
                result.created.append(sid)
            elif shadow.stale and not before.stale:
                result.stale.append(sid)
            elif not shadow.mirrors(before):
                result.updated.append(sid)

        return result

    @staticmethod
    def touched(graph: FederatedGraph, deltas: list[BeadDelta]) -> list[ShadowBead]:
        """Shadows whose target or owning epic appears in ``deltas``."""
        changed_ids = {d.bead_id for d in deltas}
        changed_uris = {make_uri(d.origin, d.bead_id) for d in deltas if d.origin}

        touched = []
        for sid in sorted(graph.shadows):
            shadow = graph.shadows[sid]
            if shadow.pointer in changed_uris or shadow.owner in changed_ids:
                touched.append(shadow)
        return touched
