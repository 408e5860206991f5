"""
Shadow bead models.

A shadow bead is a pointer record inside an aggregating context for an epic
owned by a member rig (or by an external tracker). It mirrors the target's
descriptive fields and status but never owns them: every aggregation pass
refreshes it, and when the target cannot be reached the previous copy is
kept and flagged stale instead of being deleted.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from allbeads.models.bead import Bead, IssueType, Priority, Status
from allbeads.models.ids import BeadId, make_uri, parse_uri

# Free-form statuses used by external trackers.
EXTERNAL_STATUS_ALIASES = {
    "todo": Status.OPEN,
    "to do": Status.OPEN,
    "new": Status.OPEN,
    "in progress": Status.IN_PROGRESS,
    "in review": Status.IN_PROGRESS,
    "done": Status.CLOSED,
    "resolved": Status.CLOSED,
    "won't do": Status.CLOSED,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ShadowBead(BaseModel):
    """Mirror of a bead (or external item) living in another context."""

    model_config = ConfigDict(frozen=True)

    id: BeadId = Field(description="Shadow identifier")
    pointer: str = Field(description="bead:// URI or external URI of the target")
    summary: str = Field(description="Mirrored title")
    status: Status = Field(default=Status.OPEN, description="Mirrored status")
    context: str = Field(default="", description="Aggregating context holding the shadow")
    owner: BeadId | None = Field(default=None, description="Epic that declared the reference")
    priority: Priority | None = Field(default=None)
    issue_type: IssueType | None = Field(default=None)
    description: str | None = Field(default=None)
    labels: set[str] = Field(default_factory=set)
    cross_repo_dependencies: list[str] = Field(default_factory=list)
    cross_repo_blocks: list[str] = Field(default_factory=list)
    external_ref: str | None = Field(default=None)
    last_synced: datetime = Field(
        default_factory=_now,
        description="Update time of the target content this shadow mirrors",
    )
    stale: bool = Field(default=False, description="Target was unreachable on the last pass")

    @field_serializer("labels")
    def _serialize_labels(self, labels: set[str]) -> list[str]:
        return sorted(labels)

    @property
    def target(self) -> tuple[str, str] | None:
        """``(rig, bead)`` for ``bead://`` pointers, None for external ones."""
        return parse_uri(self.pointer)

    @property
    def has_cross_repo_blockers(self) -> bool:
        return bool(self.cross_repo_dependencies)

    def mark_stale(self) -> "ShadowBead":
        """Copy of this shadow flagged stale; mirrored fields are left untouched."""
        return self.model_copy(update={"stale": True})

    def mirrors(self, other: "ShadowBead") -> bool:
        """True when both shadows carry the same mirrored content."""
        return (
            self.summary == other.summary
            and self.status == other.status
            and self.priority == other.priority
            and self.issue_type == other.issue_type
            and self.description == other.description
            and self.labels == other.labels
            and self.cross_repo_dependencies == other.cross_repo_dependencies
            and self.cross_repo_blocks == other.cross_repo_blocks
            and self.external_ref == other.external_ref
            and self.stale == other.stale
        )

    @classmethod
    def external(cls, id: str, summary: str, uri: str) -> "ShadowBeadBuilder":
        """Start building a shadow for an item in an external tracker."""
        return ShadowBeadBuilder(id, summary, uri)

    @classmethod
    def for_bead(
        cls,
        id: str,
        target: Bead,
        rig: str,
        context: str,
        owner: str | None = None,
        synced_at: datetime | None = None,
    ) -> "ShadowBead":
        """
        Build a shadow mirroring a native bead.

        Local dependency ids of the target are qualified with the target's
        rig so the shadow only ever carries URIs.
        """
        builder = (
            ShadowBeadBuilder(id, target.title, make_uri(rig, target.id))
            .with_status(target.status)
            .with_priority(target.priority)
            .with_issue_type(target.issue_type)
            .with_context(context)
            .with_labels(target.labels)
        )
        if owner:
            builder = builder.with_owner(owner)
        if target.description:
            builder = builder.with_description(target.description)
        for ref in target.depends_on:
            builder = builder.with_dependency(ref if parse_uri(ref) else make_uri(rig, ref))
        for ref in target.blocks:
            builder = builder.with_block(ref if parse_uri(ref) else make_uri(rig, ref))
        # Stamped with the target's update time, never the wall clock.
        return builder.with_synced_at(synced_at or target.updated_at).build()


class ShadowBeadBuilder:
    """
    Incremental builder for shadow beads.

    Starts from the required fields and applies optional setters, so adapters
    for other trackers produce the same shape without subclassing.

    Example:
        >>> shadow = (
        ...     ShadowBead.external("gh-42", "Migrate auth", "https://github.com/acme/api/issues/42")
        ...     .with_status("In Progress")
        ...     .with_priority(1)
        ...     .build()
        ... )
    """

    def __init__(self, id: str, summary: str, pointer: str):
        self._fields: dict[str, Any] = {
            "id": BeadId(id),
            "summary": summary,
            "pointer": pointer,
            "labels": set(),
            "cross_repo_dependencies": [],
            "cross_repo_blocks": [],
        }

    def with_status(self, status: Status | str) -> "ShadowBeadBuilder":
        """Set the mirrored status; unknown external statuses map to open."""
        if isinstance(status, Status):
            self._fields["status"] = status
            return self
        text = status.strip().lower()
        if text in EXTERNAL_STATUS_ALIASES:
            self._fields["status"] = EXTERNAL_STATUS_ALIASES[text]
        else:
            try:
                self._fields["status"] = Status.parse(text)
            except ValueError:
                self._fields["status"] = Status.OPEN
        return self

    def with_priority(self, priority: Priority | int | str) -> "ShadowBeadBuilder":
        self._fields["priority"] = Priority.parse(priority)
        return self

    def with_issue_type(self, issue_type: IssueType | str) -> "ShadowBeadBuilder":
        self._fields["issue_type"] = IssueType(issue_type)
        return self

    def with_description(self, description: str) -> "ShadowBeadBuilder":
        self._fields["description"] = description
        return self

    def with_context(self, context: str) -> "ShadowBeadBuilder":
        self._fields["context"] = context
        return self

    def with_owner(self, owner: str) -> "ShadowBeadBuilder":
        self._fields["owner"] = BeadId(owner)
        return self

    def with_external_ref(self, external_ref: str) -> "ShadowBeadBuilder":
        self._fields["external_ref"] = external_ref
        return self

    def with_label(self, label: str) -> "ShadowBeadBuilder":
        self._fields["labels"].add(label)
        return self

    def with_labels(self, labels: set[str]) -> "ShadowBeadBuilder":
        self._fields["labels"].update(labels)
        return self

    def with_dependency(self, uri: str) -> "ShadowBeadBuilder":
        if uri not in self._fields["cross_repo_dependencies"]:
            self._fields["cross_repo_dependencies"].append(uri)
        return self

    def with_block(self, uri: str) -> "ShadowBeadBuilder":
        if uri not in self._fields["cross_repo_blocks"]:
            self._fields["cross_repo_blocks"].append(uri)
        return self

    def with_synced_at(self, synced_at: datetime) -> "ShadowBeadBuilder":
        self._fields["last_synced"] = synced_at
        return self

    def stale(self, stale: bool = True) -> "ShadowBeadBuilder":
        self._fields["stale"] = stale
        return self

    def build(self) -> ShadowBead:
        return ShadowBead(**self._fields)
