"""AllBeads models package."""

from allbeads.models.bead import Bead, IssueType, Priority, Status
from allbeads.models.config import (
    AggregatorConfig,
    AllBeadsConfig,
    CacheConfig,
    CollisionPolicy,
    LoggingConfig,
    SheriffConfig,
    validate_config,
)
from allbeads.models.ids import BeadId, RigId, is_bead_uri, make_uri, parse_uri
from allbeads.models.report import (
    AggregationReport,
    IssueKind,
    RecordError,
    RecordErrorKind,
    ReportEntry,
    RigOutcome,
    Severity,
)
from allbeads.models.rig import AuthStrategy, Rig, SyncMode
from allbeads.models.shadow import ShadowBead, ShadowBeadBuilder

__all__ = [
    # Beads
    "Bead",
    "IssueType",
    "Priority",
    "Status",
    # Identifiers
    "BeadId",
    "RigId",
    "is_bead_uri",
    "make_uri",
    "parse_uri",
    # Rigs
    "AuthStrategy",
    "Rig",
    "SyncMode",
    # Shadows
    "ShadowBead",
    "ShadowBeadBuilder",
    # Reports
    "AggregationReport",
    "IssueKind",
    "RecordError",
    "RecordErrorKind",
    "ReportEntry",
    "RigOutcome",
    "Severity",
    # Config
    "AggregatorConfig",
    "AllBeadsConfig",
    "CacheConfig",
    "CollisionPolicy",
    "LoggingConfig",
    "SheriffConfig",
    "validate_config",
]
