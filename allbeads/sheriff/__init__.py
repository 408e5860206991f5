"""
Sheriff: the polling daemon that keeps the federated graph fresh.
"""

from allbeads.sheriff.daemon import (
    CycleResult,
    DaemonState,
    EventKind,
    SheriffDaemon,
    SheriffEvent,
    SheriffStats,
)
from allbeads.sheriff.diff import BeadDelta, DeltaKind, diff_graphs
from allbeads.sheriff.sync import ShadowSync, SyncHook, SyncResult

__all__ = [
    "CycleResult",
    "DaemonState",
    "EventKind",
    "SheriffDaemon",
    "SheriffEvent",
    "SheriffStats",
    "BeadDelta",
    "DeltaKind",
    "diff_graphs",
    "ShadowSync",
    "SyncHook",
    "SyncResult",
]
