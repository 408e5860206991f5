"""
Sheriff daemon for AllBeads.

A long-running task that keeps the federated graph fresh. Each cycle polls
every rig through the aggregator, diffs the result against the last known
snapshot, stores the new snapshot and hands changed shadows to the sync
hooks, then sleeps until the next poll.

State machine::

    Idle -> (Polling -> Diffing -> Syncing -> Sleeping)* -> Stopped

Only the Sleeping state is interruptible: a stop request made while a cycle
is running takes effect once that cycle has finished.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable

from pydantic import BaseModel, Field

from allbeads.core.aggregator import Aggregator
from allbeads.core.cache import GraphCache
from allbeads.errors import CacheUnavailable, ConfigurationError
from allbeads.graph.federated import FederatedGraph
from allbeads.models.config import SheriffConfig
from allbeads.models.report import AggregationReport
from allbeads.models.rig import Rig
from allbeads.models.shadow import ShadowBead
from allbeads.sheriff.diff import BeadDelta, diff_graphs
from allbeads.sheriff.sync import ShadowSync, SyncHook, SyncResult
from allbeads.utils.logger import get_logger

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DaemonState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    DIFFING = "diffing"
    SYNCING = "syncing"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


class EventKind(str, Enum):
    STARTED = "started"
    POLL_STARTED = "poll_started"
    POLL_COMPLETED = "poll_completed"
    RIG_FAILED = "rig_failed"
    BEAD_CHANGED = "bead_changed"
    SHADOW_SYNCED = "shadow_synced"
    ERROR = "error"
    STOPPED = "stopped"


class SheriffEvent(BaseModel):
    """Something the daemon did, delivered to the ``on_event`` callback."""

    kind: EventKind
    timestamp: datetime = Field(default_factory=_now)
    message: str = ""
    rig: str | None = None
    bead_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class CycleResult(BaseModel):
    """Outcome of one poll cycle."""

    cycle: int
    graph: FederatedGraph
    report: AggregationReport
    deltas: list[BeadDelta] = Field(default_factory=list)
    sync: SyncResult = Field(default_factory=SyncResult)
    touched: list[str] = Field(default_factory=list, description="Shadow ids handed to sync hooks")
    duration_seconds: float = 0.0


class SheriffStats(BaseModel):
    """Running counters of a daemon."""

    state: DaemonState = DaemonState.IDLE
    cycles: int = 0
    failed_fetches: int = 0
    total_changes: int = 0
    last_cycle_at: datetime | None = None
    last_cycle_duration: float | None = None
    poll_interval_seconds: float = 5.0


class SheriffDaemon:
    """
    Background synchronization daemon.

    Example:
        >>> daemon = SheriffDaemon(config.sheriff, config.rigs, aggregator, cache=cache)
        >>> task = asyncio.create_task(daemon.run())
        >>> ...
        >>> daemon.stop()
        >>> await task
    """

    def __init__(
        self,
        config: SheriffConfig,
        rigs: list[Rig],
        aggregator: Aggregator,
        cache: GraphCache | None = None,
        on_event: Callable[[SheriffEvent], None] | None = None,
        sync_hooks: Iterable[SyncHook] = (),
    ):
        """
        Initialize the daemon.

        Args:
            config: Poll interval settings
            rigs: Rigs to poll, in configuration order
            aggregator: Aggregator used for every poll
            cache: Snapshot cache; seeds the first diff and receives every new snapshot
            on_event: Callback for daemon events
            sync_hooks: Callables receiving the shadows touched by a cycle

        Raises:
            ConfigurationError: If no rig is configured
        """
        if not rigs:
            raise ConfigurationError("Sheriff needs at least one rig to poll", field="rigs")

        self.rigs = list(rigs)
        self.aggregator = aggregator
        self.cache = cache
        self.on_event = on_event
        self.sync_hooks = list(sync_hooks)

        self.poll_interval = config.poll_interval_seconds
        self.state = DaemonState.IDLE
        self.last_graph: FederatedGraph | None = None

        self._seeded = False
        self._stopping = False
        self._wake = asyncio.Event()
        self._cycle_lock = asyncio.Lock()
        self._cycles = 0
        self._failed_fetches = 0
        self._total_changes = 0
        self._last_cycle_at: datetime | None = None
        self._last_cycle_duration: float | None = None

    # ── Control ───────────────────────────────────────────────────────

    def stop(self) -> None:
        """Request shutdown; an in-flight cycle finishes first."""
        if not self._stopping:
            logger.info("Sheriff stop requested")
        self._stopping = True
        self._wake.set()

    def trigger(self) -> None:
        """Wake a sleeping daemon for an immediate poll."""
        self._wake.set()

    def set_poll_interval(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError("poll interval must be positive")
        self.poll_interval = seconds

    @property
    def is_running(self) -> bool:
        return self.state not in (DaemonState.IDLE, DaemonState.STOPPED)

    def stats(self) -> SheriffStats:
        return SheriffStats(
            state=self.state,
            cycles=self._cycles,
            failed_fetches=self._failed_fetches,
            total_changes=self._total_changes,
            last_cycle_at=self._last_cycle_at,
            last_cycle_duration=self._last_cycle_duration,
            poll_interval_seconds=self.poll_interval,
        )

    # ── Main loop ─────────────────────────────────────────────────────

    async def run(self) -> None:
        """
        Poll until :meth:`stop` is called.

        Failures inside a cycle are reported as error events and the daemon
        keeps going; only configuration errors end the loop early.
        """
        logger.info("Sheriff started: %d rig(s), polling every %.1fs", len(self.rigs), self.poll_interval)
        self._emit(EventKind.STARTED, f"polling {len(self.rigs)} rig(s)")

        try:
            while not self._stopping:
                try:
                    await self.run_cycle()
                except ConfigurationError:
                    raise
                except Exception as e:
                    logger.exception("Sheriff cycle failed")
                    self._emit(EventKind.ERROR, f"cycle failed: {e}")

                if self._stopping:
                    break
                await self._sleep()
        finally:
            self.state = DaemonState.STOPPED
            logger.info("Sheriff stopped after %d cycle(s)", self._cycles)
            self._emit(EventKind.STOPPED, f"stopped after {self._cycles} cycle(s)")

    async def _sleep(self) -> None:
        self.state = DaemonState.SLEEPING
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            pass
        self._wake.clear()

    def _seed_from_cache(self) -> None:
        self._seeded = True
        if self.last_graph is not None or self.cache is None:
            return
        snapshot = self.cache.load()
        if snapshot is not None:
            logger.info(
                "Seeded sheriff from cached snapshot (%d beads, age %.0fs)",
                len(snapshot.graph),
                snapshot.age.total_seconds(),
            )
            self.last_graph = snapshot.graph

    async def run_cycle(self) -> CycleResult:
        """
        Run one Polling -> Diffing -> Syncing cycle.

        Returns:
            CycleResult for the cycle
        """
        async with self._cycle_lock:
            start_time = time.time()
            self._cycles += 1
            cycle = self._cycles

            if not self._seeded:
                self._seed_from_cache()
            previous = self.last_graph

            self.state = DaemonState.POLLING
            self._emit(EventKind.POLL_STARTED, f"cycle {cycle}", data={"cycle": cycle})
            result = await self.aggregator.aggregate(self.rigs, previous=previous)

            for outcome in result.report.outcomes:
                if not outcome.ok:
                    self._failed_fetches += 1
                    self._emit(EventKind.RIG_FAILED, outcome.error or "unreachable", rig=outcome.rig)

            self.state = DaemonState.DIFFING
            deltas = diff_graphs(previous, result.graph)
            for delta in deltas:
                self._emit(
                    EventKind.BEAD_CHANGED,
                    delta.to_summary(),
                    rig=delta.origin,
                    bead_id=delta.bead_id,
                    data={"kind": delta.kind.value},
                )
            sync = ShadowSync.compare(previous, result.graph)

            self.state = DaemonState.SYNCING
            self._store(result.graph)

            touched = self._touched(result.graph, deltas, sync)
            if touched:
                await self._run_hooks(touched)
            for sid in sync.changed_ids:
                self._emit(EventKind.SHADOW_SYNCED, f"shadow {sid} refreshed", bead_id=sid)

            self.last_graph = result.graph
            duration = time.time() - start_time
            changes = len(deltas) + sync.changes
            self._total_changes += changes
            self._last_cycle_at = _now()
            self._last_cycle_duration = duration
            self.state = DaemonState.IDLE

            logger.info(
                "Sheriff cycle %d: %d bead change(s), %d shadow change(s), %d failed rig(s) in %.2fs",
                cycle,
                len(deltas),
                sync.changes,
                len(result.report.failed_rigs),
                duration,
                extra={"cycle": cycle},
            )
            self._emit(
                EventKind.POLL_COMPLETED,
                f"cycle {cycle} completed",
                data={"cycle": cycle, "rigs_polled": len(result.report.outcomes), "changes": changes},
            )

            return CycleResult(
                cycle=cycle,
                graph=result.graph,
                report=result.report,
                deltas=deltas,
                sync=sync,
                touched=[s.id for s in touched],
                duration_seconds=duration,
            )

    def _store(self, graph: FederatedGraph) -> None:
        if self.cache is None:
            return
        try:
            self.cache.store(graph)
        except CacheUnavailable as e:
            logger.warning("Could not store snapshot: %s", e.message)
            self._emit(EventKind.ERROR, f"cache unavailable: {e.message}")

    @staticmethod
    def _touched(graph: FederatedGraph, deltas: list[BeadDelta], sync: SyncResult) -> list[ShadowBead]:
        touched = {s.id: s for s in ShadowSync.touched(graph, deltas)}
        for sid in sync.changed_ids:
            touched.setdefault(sid, graph.shadows[sid])
        return [touched[sid] for sid in sorted(touched)]

    async def _run_hooks(self, shadows: list[ShadowBead]) -> None:
        for hook in self.sync_hooks:
            name = getattr(hook, "__name__", type(hook).__name__)
            try:
                outcome = hook(shadows)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.warning("Sync hook %s failed: %s", name, e)
                self._emit(EventKind.ERROR, f"sync hook {name} failed: {e}")

    def _emit(
        self,
        kind: EventKind,
        message: str = "",
        rig: str | None = None,
        bead_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        if self.on_event is None:
            return
        event = SheriffEvent(kind=kind, message=message, rig=rig, bead_id=bead_id, data=data or {})
        try:
            self.on_event(event)
        except Exception as e:
            logger.warning("Event callback failed on %s: %s", kind.value, e)
