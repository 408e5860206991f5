"""
Federated graph.

The merged, queryable dependency graph spanning every configured rig. Beads
live in an arena keyed by id; edges are id references resolved through
derived indices, so dependency cycles need no special handling and every
query is a pure read. A dependency on an id that is not in the graph is an
unresolved external reference, never an error.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from allbeads.graph.cycles import find_cycles
from allbeads.models.bead import Bead, Priority, Status
from allbeads.models.ids import BeadId, RigId, parse_uri
from allbeads.models.rig import Rig
from allbeads.models.shadow import ShadowBead


class CrossRepoEdge(BaseModel):
    """A dependency edge whose ends belong to different rigs."""

    source: BeadId
    target: str
    source_rig: str | None = None
    target_rig: str | None = None
    resolved: bool = Field(default=False, description="Target is present in the graph")


class GraphStats(BaseModel):
    """Counts over a graph."""

    total_beads: int = 0
    total_shadows: int = 0
    total_rigs: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)
    by_origin: dict[str, int] = Field(default_factory=dict)
    ready: int = 0
    blocked: int = 0
    cross_repo_edges: int = 0
    unresolved_references: int = 0
    stale_shadows: int = 0


class FederatedGraph(BaseModel):
    """
    Merged dependency graph over all rigs.

    Build it once from beads, shadows and rig descriptors; the derived
    indices (resolved dependencies, dependents, origins) are computed at
    construction and the graph is immutable afterwards.

    Example:
        >>> graph = FederatedGraph.from_beads(beads)
        >>> [b.id for b in graph.ready()]
        ['a1']
    """

    model_config = ConfigDict(frozen=True)

    beads: dict[BeadId, Bead] = Field(default_factory=dict)
    shadows: dict[BeadId, ShadowBead] = Field(default_factory=dict)
    rigs: dict[RigId, Rig] = Field(default_factory=dict)

    _dependencies: dict[str, list[str]] = PrivateAttr(default_factory=dict)
    _dependents: dict[str, list[str]] = PrivateAttr(default_factory=dict)
    _unresolved: list[tuple[str, str]] = PrivateAttr(default_factory=list)
    _by_origin: dict[str, list[str]] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        dependencies: dict[str, set[str]] = {bead_id: set() for bead_id in self.beads}
        unresolved: list[tuple[str, str]] = []

        for bead_id, bead in self.beads.items():
            for ref in bead.depends_on:
                target = self.resolve(ref)
                if target is None:
                    unresolved.append((bead_id, ref))
                else:
                    dependencies[bead_id].add(target)
            # "X blocks Y" is the reverse of "Y depends on X".
            for ref in bead.blocks:
                target = self.resolve(ref)
                if target is not None and target != bead_id:
                    dependencies[target].add(bead_id)

        dependents: dict[str, set[str]] = {bead_id: set() for bead_id in self.beads}
        for bead_id, targets in dependencies.items():
            for target in targets:
                dependents[target].add(bead_id)

        by_origin: dict[str, list[str]] = {}
        for bead_id in sorted(self.beads):
            origin = self.beads[bead_id].origin or ""
            by_origin.setdefault(origin, []).append(bead_id)

        self._dependencies = {k: sorted(v) for k, v in dependencies.items()}
        self._dependents = {k: sorted(v) for k, v in dependents.items()}
        self._unresolved = sorted(unresolved)
        self._by_origin = by_origin

    @classmethod
    def from_beads(
        cls,
        beads: list[Bead],
        shadows: list[ShadowBead] | None = None,
        rigs: list[Rig] | None = None,
    ) -> "FederatedGraph":
        """Build a graph from lists; later beads with the same id replace earlier ones."""
        return cls(
            beads={b.id: b for b in beads},
            shadows={s.id: s for s in shadows or []},
            rigs={r.name: r for r in rigs or []},
        )

    # ── Lookup ────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.beads)

    def __contains__(self, bead_id: object) -> bool:
        return bead_id in self.beads

    def get(self, bead_id: str) -> Bead | None:
        return self.beads.get(BeadId(bead_id))

    def resolve(self, ref: str) -> BeadId | None:
        """
        Resolve a dependency entry to a bead id present in the graph.

        Plain ids resolve when present. ``bead://rig/id`` URIs resolve when
        the bead is present and was aggregated from that rig (or carries no
        origin).
        """
        parsed = parse_uri(ref)
        if parsed is None:
            return BeadId(ref) if ref in self.beads else None
        rig, bead_id = parsed
        bead = self.beads.get(bead_id)
        if bead is None or (bead.origin is not None and bead.origin != rig):
            return None
        return bead_id

    def dependencies_of(self, bead_id: str) -> list[Bead]:
        """Present beads that ``bead_id`` depends on."""
        return [self.beads[d] for d in self._dependencies.get(bead_id, [])]

    def dependents_of(self, bead_id: str) -> list[Bead]:
        """Present beads that depend on ``bead_id``."""
        return [self.beads[d] for d in self._dependents.get(bead_id, [])]

    def by_origin(self, rig: str) -> list[Bead]:
        return [self.beads[b] for b in self._by_origin.get(rig, [])]

    @property
    def origins(self) -> list[str]:
        return sorted(o for o in self._by_origin if o)

    # ── Work queries ──────────────────────────────────────────────────

    @staticmethod
    def _sort_key(bead: Bead) -> tuple[int, str]:
        return bead.priority.value, bead.id

    def _open_dependencies(self, bead_id: str) -> list[str]:
        return [d for d in self._dependencies.get(bead_id, []) if not self.beads[d].is_terminal]

    def ready(self) -> list[Bead]:
        """
        Open beads with no unresolved blocking dependency.

        A dependency absent from the graph counts as satisfied, as does a
        closed or tombstoned one.
        """
        ready = [
            bead for bead_id, bead in self.beads.items()
            if bead.status == Status.OPEN and not self._open_dependencies(bead_id)
        ]
        return sorted(ready, key=self._sort_key)

    def blocked(self) -> list[Bead]:
        """Open or in-progress beads with at least one present, unfinished dependency."""
        blocked = [
            bead for bead_id, bead in self.beads.items()
            if bead.status in (Status.OPEN, Status.IN_PROGRESS) and self._open_dependencies(bead_id)
        ]
        return sorted(blocked, key=self._sort_key)

    def blockers_of(self, bead_id: str) -> list[Bead]:
        """Unfinished dependencies currently blocking ``bead_id``."""
        return [self.beads[d] for d in self._open_dependencies(bead_id)]

    def unresolved_references(self) -> list[tuple[str, str]]:
        """``(bead_id, reference)`` pairs pointing outside the graph."""
        return list(self._unresolved)

    def find_cycles(self, roots: list[str] | None = None) -> list[list[str]]:
        """Dependency cycles as ordered id lists; reported, never broken."""
        return find_cycles(self._dependencies, roots=roots)

    # ── Cross-repo edges ──────────────────────────────────────────────

    def _target_rig(self, ref: str) -> str | None:
        parsed = parse_uri(ref)
        if parsed is not None:
            return parsed[0]
        target = self.beads.get(BeadId(ref))
        return target.origin if target else None

    def is_cross_repo(self, source_id: str, ref: str) -> bool:
        """
        Whether the edge ``source_id -> ref`` crosses rigs.

        True when both ends carry different origins. URI references name
        their rig explicitly, so they are classified even when unresolved.
        """
        source = self.beads.get(BeadId(source_id))
        if source is None or source.origin is None:
            return False
        target_rig = self._target_rig(ref)
        return target_rig is not None and target_rig != source.origin

    def cross_repo_edges(self) -> list[CrossRepoEdge]:
        edges = []
        for bead_id in sorted(self.beads):
            bead = self.beads[bead_id]
            for ref in bead.depends_on:
                if self.is_cross_repo(bead_id, ref):
                    edges.append(CrossRepoEdge(
                        source=bead_id,
                        target=ref,
                        source_rig=bead.origin,
                        target_rig=self._target_rig(ref),
                        resolved=self.resolve(ref) is not None,
                    ))
        return edges

    # ── Shadows ───────────────────────────────────────────────────────

    def shadows_for(self, epic_id: str) -> list[ShadowBead]:
        return [s for _, s in sorted(self.shadows.items()) if s.owner == epic_id]

    def shadow_by_pointer(self, pointer: str) -> list[ShadowBead]:
        return [s for _, s in sorted(self.shadows.items()) if s.pointer == pointer]

    # ── Views ─────────────────────────────────────────────────────────

    def filter_by_origin(self, *rigs: str) -> "FederatedGraph":
        """Sub-graph holding only beads (and their shadows) from the given rigs."""
        wanted = set(rigs)
        beads = {k: b for k, b in self.beads.items() if b.origin in wanted}
        shadows = {k: s for k, s in self.shadows.items() if s.owner in beads}
        return FederatedGraph(
            beads=beads,
            shadows=shadows,
            rigs={k: r for k, r in self.rigs.items() if k in wanted},
        )

    def stats(self) -> GraphStats:
        """Counts by status, priority and origin."""
        by_status = {s.value: 0 for s in Status}
        by_priority = {p.label: 0 for p in Priority}
        by_origin: dict[str, int] = {}
        for bead in self.beads.values():
            by_status[bead.status.value] += 1
            by_priority[bead.priority.label] += 1
            origin = bead.origin or "unknown"
            by_origin[origin] = by_origin.get(origin, 0) + 1

        return GraphStats(
            total_beads=len(self.beads),
            total_shadows=len(self.shadows),
            total_rigs=len(self.rigs),
            by_status=by_status,
            by_priority=by_priority,
            by_origin=dict(sorted(by_origin.items())),
            ready=len(self.ready()),
            blocked=len(self.blocked()),
            cross_repo_edges=len(self.cross_repo_edges()),
            unresolved_references=len(self._unresolved),
            stale_shadows=sum(1 for s in self.shadows.values() if s.stale),
        )

    # ── Serialization ─────────────────────────────────────────────────

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-safe representation used by the cache."""
        return self.model_dump(mode="json")

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "FederatedGraph":
        return cls.model_validate(data)
