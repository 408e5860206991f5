"""
Graph diffing.

Compares two snapshots bead by bead. A bead that disappears from the newer
snapshot is not a change: its rig may simply have been unreachable.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from allbeads.graph.federated import FederatedGraph
from allbeads.models.bead import Status


class DeltaKind(str, Enum):
    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    CLOSED = "closed"


class BeadDelta(BaseModel):
    """One bead-level change between two snapshots."""

    kind: DeltaKind
    bead_id: str
    origin: str | None = None
    old_status: Status | None = None
    new_status: Status

    def to_summary(self) -> str:
        if self.kind == DeltaKind.CREATED:
            return f"{self.bead_id} created ({self.new_status.value})"
        old = self.old_status.value if self.old_status else "?"
        return f"{self.bead_id} {old} -> {self.new_status.value}"


def diff_graphs(old: FederatedGraph | None, new: FederatedGraph) -> list[BeadDelta]:
    """
    List bead-level changes from ``old`` to ``new``, ordered by bead id.

    With no previous graph every bead counts as created.
    """
    deltas: list[BeadDelta] = []

    for bead_id in sorted(new.beads):
        bead = new.beads[bead_id]
        before = old.get(bead_id) if old is not None else None

        if before is None:
            deltas.append(BeadDelta(
                kind=DeltaKind.CREATED,
                bead_id=bead_id,
                origin=bead.origin,
                new_status=bead.status,
            ))
        elif before.status != bead.status:
            kind = DeltaKind.CLOSED if bead.is_terminal else DeltaKind.STATUS_CHANGED
            deltas.append(BeadDelta(
                kind=kind,
                bead_id=bead_id,
                origin=bead.origin,
                old_status=before.status,
                new_status=bead.status,
            ))

    return deltas
