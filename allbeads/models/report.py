"""
Aggregation report models.

Every degradation the engine tolerates (an unreachable rig, a malformed
line, an id collision, a dependency cycle) is accumulated here and returned
alongside the graph instead of being raised.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class IssueKind(str, Enum):
    """Kinds of degradation recorded in a report."""

    SOURCE_UNREACHABLE = "source_unreachable"
    SOURCE_UNINITIALIZED = "source_uninitialized"
    RECORD_MALFORMED = "record_malformed"
    ID_COLLISION = "id_collision"
    CYCLE_DETECTED = "cycle_detected"
    CACHE_UNAVAILABLE = "cache_unavailable"
    DUPLICATE_RIG = "duplicate_rig"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class RecordErrorKind(str, Enum):
    """Why a source line was skipped."""

    MALFORMED_JSON = "malformed-json"
    MISSING_REQUIRED_FIELD = "missing-required-field"
    UNKNOWN_STATUS = "unknown-status"
    INVALID_FIELD = "invalid-field"


class RecordError(BaseModel):
    """A source line that could not be turned into a bead."""

    line: int = Field(description="1-based physical line number")
    kind: RecordErrorKind
    message: str
    bead_id: str | None = Field(default=None, description="Record id, when it could be read")

    def to_summary(self) -> str:
        where = f"line {self.line}"
        if self.bead_id:
            where += f" ({self.bead_id})"
        return f"{where}: {self.kind.value}: {self.message}"


class RigOutcome(BaseModel):
    """What happened to one rig during an aggregation pass."""

    rig: str
    ok: bool = True
    revision: str | None = None
    bead_count: int = 0
    record_errors: list[RecordError] = Field(default_factory=list)
    error: str | None = None
    from_cache: bool = Field(default=False, description="Beads carried over from the previous snapshot")
    attempts: int = 0
    duration_seconds: float = 0.0


class ReportEntry(BaseModel):
    """One recorded degradation."""

    kind: IssueKind
    severity: Severity = Severity.WARNING
    message: str
    rig: str | None = None
    bead_id: str | None = None
    details: list[str] = Field(default_factory=list)

    def to_summary(self) -> str:
        scope = f"[{self.rig}] " if self.rig else ""
        return f"{self.severity.value.upper()} {self.kind.value}: {scope}{self.message}"


class AggregationReport(BaseModel):
    """Accumulated outcomes and degradations of one aggregation pass."""

    started_at: datetime = Field(default_factory=_now)
    finished_at: datetime | None = None
    outcomes: list[RigOutcome] = Field(default_factory=list)
    entries: list[ReportEntry] = Field(default_factory=list)

    def add(
        self,
        kind: IssueKind,
        message: str,
        severity: Severity = Severity.WARNING,
        rig: str | None = None,
        bead_id: str | None = None,
        details: list[str] | None = None,
    ) -> ReportEntry:
        entry = ReportEntry(
            kind=kind,
            severity=severity,
            message=message,
            rig=rig,
            bead_id=bead_id,
            details=details or [],
        )
        self.entries.append(entry)
        return entry

    def by_kind(self, kind: IssueKind) -> list[ReportEntry]:
        return [e for e in self.entries if e.kind == kind]

    def outcome(self, rig: str) -> RigOutcome | None:
        for outcome in self.outcomes:
            if outcome.rig == rig:
                return outcome
        return None

    @property
    def failed_rigs(self) -> list[str]:
        return [o.rig for o in self.outcomes if not o.ok]

    @property
    def has_errors(self) -> bool:
        return any(e.severity == Severity.ERROR for e in self.entries)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def summary(self) -> dict[str, int]:
        """Count entries per kind."""
        counts: dict[str, int] = {}
        for entry in self.entries:
            counts[entry.kind.value] = counts.get(entry.kind.value, 0) + 1
        return counts
