"""
Bead models.

A bead is one unit of tracked work, native to exactly one rig. The engine
never edits business fields locally: beads are created by parsing a source
record and replaced wholesale when the owning repository changes them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from allbeads.models.ids import BeadId, RigId, is_bead_uri
from allbeads.utils.helpers import deduplicate


class Status(str, Enum):
    """Lifecycle status of a bead."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DEFERRED = "deferred"
    CLOSED = "closed"
    TOMBSTONE = "tombstone"

    @property
    def is_terminal(self) -> bool:
        """Closed and tombstoned beads no longer block anything."""
        return self in (Status.CLOSED, Status.TOMBSTONE)

    @classmethod
    def parse(cls, value: Any) -> "Status":
        """Parse a status, accepting case and separator variations ("In Progress")."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace(" ", "_").replace("-", "_")
        return cls(normalized)


class Priority(IntEnum):
    """Priority levels, P0 (critical) through P4 (backlog)."""

    P0 = 0
    P1 = 1
    P2 = 2
    P3 = 3
    P4 = 4

    @property
    def label(self) -> str:
        return f"P{self.value}"

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        """
        Parse a priority from ``2``, ``"2"`` or ``"P2"``.

        Values above 4 clamp to P4; negative or non-numeric values are rejected.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"invalid priority: {value!r}")
        if isinstance(value, str):
            text = value.strip().upper()
            if text.startswith("P"):
                text = text[1:]
            if not text.isdigit():
                raise ValueError(f"invalid priority: {value!r}")
            value = int(text)
        if not isinstance(value, int) or value < 0:
            raise ValueError(f"invalid priority: {value!r}")
        return cls(min(value, cls.P4.value))


class IssueType(str, Enum):
    """Kind of work a bead tracks."""

    BUG = "bug"
    FEATURE = "feature"
    TASK = "task"
    EPIC = "epic"
    CHORE = "chore"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Bead(BaseModel):
    """
    One unit of tracked work.

    ``depends_on`` entries are either bead ids or ``bead://`` URIs naming a
    bead in another rig. ``origin`` is set by the aggregator and records the
    rig the bead was read from.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: BeadId = Field(min_length=1, description="Bead identifier")
    title: str = Field(min_length=1, description="Short summary")
    description: str | None = Field(default=None)
    status: Status = Field(default=Status.OPEN)
    priority: Priority = Field(default=Priority.P2)
    issue_type: IssueType = Field(default=IssueType.TASK)
    created_at: datetime
    updated_at: datetime
    created_by: str | None = Field(default=None)
    assignee: str | None = Field(default=None)
    labels: set[str] = Field(default_factory=set)
    depends_on: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("depends_on", "dependencies"),
    )
    blocks: list[str] = Field(default_factory=list)
    notes: str | None = Field(default=None)
    origin: RigId | None = Field(default=None, description="Rig the bead was aggregated from")

    @model_validator(mode="before")
    @classmethod
    def _drop_self_references(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        bead_id = data.get("id")
        if bead_id is None:
            return data
        cleaned = dict(data)
        for key in ("depends_on", "dependencies", "blocks"):
            refs = cleaned.get(key)
            if isinstance(refs, (list, tuple)):
                cleaned[key] = [ref for ref in refs if ref != bead_id]
        return cleaned

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> Status:
        return Status.parse(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _parse_priority(cls, value: Any) -> Priority:
        return Priority.parse(value)

    @field_validator("issue_type", mode="before")
    @classmethod
    def _parse_issue_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_validator("depends_on", "blocks")
    @classmethod
    def _dedupe_refs(cls, value: list[str]) -> list[str]:
        return deduplicate(ref for ref in value if ref)

    @field_validator("labels", mode="before")
    @classmethod
    def _labels_from_sequence(cls, value: Any) -> Any:
        if value is None:
            return set()
        return value

    @field_serializer("labels")
    def _serialize_labels(self, labels: set[str]) -> list[str]:
        return sorted(labels)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_epic(self) -> bool:
        return self.issue_type == IssueType.EPIC

    @property
    def local_dependencies(self) -> list[BeadId]:
        """Dependency ids that are plain bead ids (not cross-repo URIs)."""
        return [BeadId(ref) for ref in self.depends_on if not is_bead_uri(ref)]

    @property
    def cross_repo_refs(self) -> list[str]:
        """All ``bead://`` references declared in ``depends_on`` and ``blocks``."""
        return deduplicate(ref for ref in [*self.depends_on, *self.blocks] if is_bead_uri(ref))

    def with_origin(self, rig: str) -> "Bead":
        """Return a copy tagged with the rig it was read from."""
        return self.model_copy(update={"origin": RigId(rig)})

    def to_summary(self) -> str:
        """Get a brief one-line summary."""
        return f"[{self.priority.label}] {self.id} {self.title} ({self.status.value})"
