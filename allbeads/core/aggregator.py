"""
Aggregator for AllBeads.

One aggregation pass turns the configured rigs into a single
:class:`FederatedGraph`: every rig is fetched and parsed concurrently, the
results are merged in configuration order, shadow beads are synthesized for
cross-repository epic references, and every degradation met on the way is
recorded in an :class:`AggregationReport`. A pass has no side effects; the
caller decides what to do with the result (store it, diff it, print it).
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone

from pydantic import BaseModel, Field
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from allbeads.errors import ConfigurationError, SourceUninitialized, SourceUnreachable
from allbeads.graph.federated import FederatedGraph
from allbeads.models.bead import Bead
from allbeads.models.config import AggregatorConfig, AllBeadsConfig, CollisionPolicy
from allbeads.models.ids import BeadId, RigId, parse_uri
from allbeads.models.report import (
    AggregationReport,
    IssueKind,
    ReportEntry,
    RigOutcome,
    Severity,
)
from allbeads.models.rig import Rig
from allbeads.models.shadow import ShadowBead, ShadowBeadBuilder
from allbeads.parser.records import RecordParser
from allbeads.sources import RepositorySource, create_source
from allbeads.utils.logger import get_logger

logger = get_logger(__name__)


def shadow_id(epic_id: str, target_id: str) -> BeadId:
    """Identifier of the shadow an epic holds for a referenced bead."""
    return BeadId(f"shadow-{epic_id}-{target_id}")


class AggregatorOptions(BaseModel):
    """Tuning for one aggregator."""

    concurrency: int = Field(default=4, ge=1, description="Maximum rigs fetched in parallel")
    fetch_timeout: int = Field(default=120, ge=1, description="Per-fetch timeout for sources that honour it")
    max_retries: int = Field(default=0, ge=0, description="Extra attempts for unreachable rigs")
    retry_wait_seconds: float = Field(default=1.0, ge=0.0)
    collision_policy: CollisionPolicy = Field(default=CollisionPolicy.LAST_WRITE_WINS)
    contexts: list[str] = Field(default_factory=list, description="Only aggregate rigs in these contexts")

    @classmethod
    def from_config(cls, config: AggregatorConfig, contexts: list[str] | None = None) -> "AggregatorOptions":
        return cls(
            concurrency=config.concurrency,
            fetch_timeout=config.fetch_timeout,
            max_retries=config.max_retries,
            retry_wait_seconds=config.retry_wait_seconds,
            collision_policy=config.collision_policy,
            contexts=contexts or [],
        )


class AggregationResult(BaseModel):
    """Graph plus report of one aggregation pass."""

    graph: FederatedGraph
    report: AggregationReport


class _RigFetch(BaseModel):
    """Per-rig intermediate result; merged in configuration order."""

    rig: Rig
    beads: list[Bead] = Field(default_factory=list)
    outcome: RigOutcome
    entries: list[ReportEntry] = Field(default_factory=list)


class Aggregator:
    """
    Fetches, parses and merges rigs into a federated graph.

    Example:
        >>> aggregator = Aggregator(MemorySource({"alpha": content}))
        >>> result = await aggregator.aggregate(rigs)
        >>> print(len(result.graph), result.report.summary())
    """

    def __init__(
        self,
        source: RepositorySource,
        options: AggregatorOptions | None = None,
    ):
        """
        Initialize the aggregator.

        Args:
            source: Source used to fetch every rig
            options: Concurrency, retry and merge options
        """
        self.source = source
        self.options = options or AggregatorOptions()

    @classmethod
    def from_config(cls, config: AllBeadsConfig, contexts: list[str] | None = None) -> "Aggregator":
        """Build an aggregator with the git source configured by ``config``."""
        source = create_source(
            sync_mode=config.aggregator.sync_mode,
            timeout=config.aggregator.fetch_timeout,
        )
        return cls(source, AggregatorOptions.from_config(config.aggregator, contexts))

    async def aggregate(
        self,
        rigs: list[Rig],
        previous: FederatedGraph | None = None,
    ) -> AggregationResult:
        """
        Run one aggregation pass.

        Args:
            rigs: Rigs in configuration order
            previous: Last known graph; beads of unreachable rigs and shadows
                of unreachable targets are carried forward from it

        Returns:
            AggregationResult with the merged graph and the report

        Raises:
            ConfigurationError: If no rig is left to aggregate
        """
        report = AggregationReport()
        selected = self._select_rigs(rigs, report)

        logger.info("Aggregating %d rig(s)", len(selected))
        semaphore = asyncio.Semaphore(self.options.concurrency)
        # gather keeps argument order, so merging below follows configuration order.
        fetched = await asyncio.gather(
            *(self._fetch_rig(rig, semaphore, previous) for rig in selected)
        )

        for item in fetched:
            report.outcomes.append(item.outcome)
            report.entries.extend(item.entries)

        beads = self._merge(fetched, report)
        rigs_by_name = {rig.name: rig for rig in selected}
        unreachable = {item.rig.name for item in fetched if not item.outcome.ok}
        shadows = self._synthesize_shadows(beads, rigs_by_name, previous, unreachable)

        graph = FederatedGraph(beads=beads, shadows=shadows, rigs=rigs_by_name)

        for cycle in graph.find_cycles():
            chain = " -> ".join([*cycle, cycle[0]])
            logger.warning("Dependency cycle: %s", chain, extra={"cycle": cycle})
            report.add(
                IssueKind.CYCLE_DETECTED,
                f"dependency cycle {chain}",
                bead_id=cycle[0],
                details=list(cycle),
            )

        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Aggregated %d bead(s), %d shadow(s) from %d rig(s) in %.2fs (%d failed)",
            len(graph.beads),
            len(graph.shadows),
            len(selected),
            report.duration_seconds,
            len(report.failed_rigs),
        )
        return AggregationResult(graph=graph, report=report)

    def _select_rigs(self, rigs: list[Rig], report: AggregationReport) -> list[Rig]:
        contexts = set(self.options.contexts)
        selected: list[Rig] = []
        seen: set[str] = set()

        for rig in rigs:
            if contexts and rig.context not in contexts:
                continue
            if rig.name in seen:
                logger.warning("Rig %s is configured more than once; using the first entry", rig.name)
                report.add(
                    IssueKind.DUPLICATE_RIG,
                    "rig configured more than once, later entry ignored",
                    rig=rig.name,
                )
                continue
            seen.add(rig.name)
            selected.append(rig)

        if not selected:
            scope = f" in contexts {', '.join(sorted(contexts))}" if contexts else ""
            raise ConfigurationError(f"No rigs to aggregate{scope}", field="rigs")
        return selected

    async def _fetch_with_retry(self, rig: Rig) -> tuple[str, str, int]:
        attempts = 0
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.options.max_retries + 1),
            wait=wait_exponential(multiplier=self.options.retry_wait_seconds, max=30),
            retry=retry_if_exception_type(SourceUnreachable),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                if attempts > 1:
                    logger.info("Retrying rig %s (attempt %d)", rig.name, attempts, extra={"rig": rig.name})
                result = await self.source.fetch(rig)
        return result.content, result.revision, attempts

    async def _fetch_rig(
        self,
        rig: Rig,
        semaphore: asyncio.Semaphore,
        previous: FederatedGraph | None,
    ) -> _RigFetch:
        outcome = RigOutcome(rig=rig.name)
        fetch = _RigFetch(rig=rig, outcome=outcome)
        start_time = time.time()

        async with semaphore:
            try:
                content, revision, attempts = await self._fetch_with_retry(rig)
            except SourceUninitialized as e:
                logger.info("Rig %s has no issue data: %s", rig.name, e.reason, extra={"rig": rig.name})
                outcome.attempts = 1
                fetch.entries.append(ReportEntry(
                    kind=IssueKind.SOURCE_UNINITIALIZED,
                    severity=Severity.INFO,
                    message=e.reason,
                    rig=rig.name,
                ))
                outcome.duration_seconds = time.time() - start_time
                return fetch
            except Exception as e:
                reason = e.reason if isinstance(e, SourceUnreachable) else f"{type(e).__name__}: {e}"
                self._mark_unreachable(fetch, reason, previous)
                outcome.attempts = self.options.max_retries + 1 if isinstance(e, SourceUnreachable) else 1
                outcome.duration_seconds = time.time() - start_time
                return fetch

        parser = RecordParser()
        by_id: dict[str, Bead] = {}
        for bead in parser.parse(content):
            if bead.id in by_id:
                logger.debug("Rig %s repeats bead %s; later line wins", rig.name, bead.id)
            by_id[bead.id] = bead.with_origin(rig.name)

        fetch.beads = list(by_id.values())
        outcome.revision = revision
        outcome.attempts = attempts
        outcome.bead_count = len(fetch.beads)
        outcome.record_errors = list(parser.errors)
        outcome.duration_seconds = time.time() - start_time

        if parser.errors:
            logger.warning(
                "Rig %s: skipped %d malformed record(s)",
                rig.name,
                len(parser.errors),
                extra={"rig": rig.name},
            )
            for error in parser.errors:
                fetch.entries.append(ReportEntry(
                    kind=IssueKind.RECORD_MALFORMED,
                    message=error.to_summary(),
                    rig=rig.name,
                    bead_id=error.bead_id,
                ))

        logger.debug(
            "Rig %s: %d bead(s) at %s",
            rig.name,
            len(fetch.beads),
            revision[:12],
            extra={"rig": rig.name, "revision": revision},
        )
        return fetch

    def _mark_unreachable(self, fetch: _RigFetch, reason: str, previous: FederatedGraph | None) -> None:
        rig = fetch.rig
        fetch.outcome.ok = False
        fetch.outcome.error = reason

        carried = previous.by_origin(rig.name) if previous is not None else []
        if carried:
            fetch.beads = list(carried)
            fetch.outcome.from_cache = True
            fetch.outcome.bead_count = len(carried)
            message = f"{reason} (serving {len(carried)} bead(s) from the last snapshot)"
        else:
            message = reason

        logger.warning("Rig %s unreachable: %s", rig.name, message, extra={"rig": rig.name})
        fetch.entries.append(ReportEntry(
            kind=IssueKind.SOURCE_UNREACHABLE,
            message=message,
            rig=rig.name,
        ))

    def _merge(self, fetched: list[_RigFetch], report: AggregationReport) -> dict[BeadId, Bead]:
        merged: dict[BeadId, Bead] = {}
        strict = self.options.collision_policy == CollisionPolicy.STRICT

        for item in fetched:
            for bead in item.beads:
                existing = merged.get(bead.id)
                if existing is None:
                    merged[bead.id] = bead
                    continue

                if strict:
                    kept = existing
                    severity = Severity.ERROR
                # Ties go to the later rig in configuration order.
                elif bead.updated_at >= existing.updated_at:
                    kept = bead
                    severity = Severity.WARNING
                else:
                    kept = existing
                    severity = Severity.WARNING

                merged[bead.id] = kept
                report.add(
                    IssueKind.ID_COLLISION,
                    f"bead {bead.id} published by {existing.origin} and {bead.origin}; keeping {kept.origin}",
                    severity=severity,
                    rig=bead.origin,
                    bead_id=bead.id,
                    details=[str(existing.origin), str(bead.origin)],
                )
                logger.warning(
                    "Bead id collision on %s between %s and %s; keeping %s",
                    bead.id,
                    existing.origin,
                    bead.origin,
                    kept.origin,
                    extra={"bead_id": bead.id},
                )

        return merged

    def _synthesize_shadows(
        self,
        beads: dict[BeadId, Bead],
        rigs_by_name: dict[RigId, Rig],
        previous: FederatedGraph | None,
        unreachable: set[str] | None = None,
    ) -> dict[BeadId, ShadowBead]:
        unreachable = unreachable or set()
        shadows: dict[BeadId, ShadowBead] = {}

        for epic_id in sorted(beads):
            epic = beads[epic_id]
            if not epic.is_epic:
                continue
            rig = rigs_by_name.get(epic.origin) if epic.origin else None
            context = rig.context if rig else "default"

            for ref in epic.cross_repo_refs:
                parsed = parse_uri(ref)
                if parsed is None:
                    continue
                target_rig, target_id = parsed
                sid = shadow_id(epic_id, target_id)
                if sid in shadows:
                    continue

                target = beads.get(target_id)
                if target is not None and target.origin == target_rig:
                    shadow = ShadowBead.for_bead(sid, target, target_rig, context, owner=epic_id)
                    # Targets carried over from the last snapshot are not current.
                    if target_rig in unreachable:
                        shadow = shadow.mark_stale()
                        logger.debug("Shadow %s mirrors cached %s; marked stale", sid, ref)
                    shadows[sid] = shadow
                    continue

                prior = previous.shadows.get(sid) if previous is not None else None
                if prior is not None and prior.pointer == ref:
                    shadows[sid] = prior.mark_stale()
                else:
                    shadows[sid] = (
                        ShadowBeadBuilder(sid, target_id, ref)
                        .with_context(context)
                        .with_owner(epic_id)
                        .with_synced_at(epic.updated_at)
                        .stale()
                        .build()
                    )
                logger.debug("Shadow %s target %s unavailable; marked stale", sid, ref)

        return shadows
