"""
SQLite snapshot cache for AllBeads.

Persists the last aggregated graph so reads can be served without touching
any repository. A snapshot is always replaced as a whole inside one
``BEGIN IMMEDIATE`` transaction, so a reader sees either the previous or the
new snapshot and never a mix of both. The cache does not interpret its TTL:
it reports the snapshot's age and callers decide whether that is fresh.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from allbeads.core.aggregator import Aggregator
from allbeads.errors import CacheUnavailable
from allbeads.graph.federated import FederatedGraph
from allbeads.models.config import CONFIG_HOME
from allbeads.models.report import AggregationReport
from allbeads.models.rig import Rig
from allbeads.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_PATH = CONFIG_HOME / "cache.db"
SNAPSHOT_KEY = "snapshot"
CAPTURED_AT_KEY = "captured_at"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CachedSnapshot(BaseModel):
    """A graph read back from the cache."""

    model_config = ConfigDict(frozen=True)

    graph: FederatedGraph
    captured_at: datetime

    @property
    def age(self) -> timedelta:
        return _now() - self.captured_at

    def is_fresh(self, ttl_seconds: float) -> bool:
        """True while the snapshot is younger than ``ttl_seconds``."""
        return self.age <= timedelta(seconds=ttl_seconds)


class CacheStats(BaseModel):
    """Summary of the cache contents."""

    path: str
    exists: bool = False
    bead_count: int = 0
    rig_count: int = 0
    captured_at: datetime | None = None
    age_seconds: float | None = None
    size_bytes: int = 0


class GraphCache:
    """
    SQLite-backed store for the last aggregated graph.

    Stores the full snapshot as JSON plus one row per bead, so simple
    status/origin queries can run without rebuilding the graph.

    Example:
        >>> cache = GraphCache("~/.config/allbeads/cache.db")
        >>> cache.store(result.graph)
        >>> snapshot = cache.load()
        >>> if snapshot and snapshot.is_fresh(300):
        ...     graph = snapshot.graph
    """

    def __init__(self, path: str | Path = DEFAULT_CACHE_PATH):
        """
        Initialize the cache.

        Args:
            path: SQLite file; parent directories are created on first write
        """
        self.path = Path(path).expanduser()

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path, timeout=10.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            self._init_db(conn)
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _init_db(self, conn: sqlite3.Connection) -> None:
        """Initialize the database schema."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS cache_metadata (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS beads (
                id TEXT PRIMARY KEY,
                origin TEXT,
                status TEXT NOT NULL,
                priority INTEGER NOT NULL,
                issue_type TEXT NOT NULL,
                data TEXT NOT NULL,
                cached_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS rigs (
                name TEXT PRIMARY KEY,
                data TEXT NOT NULL
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_beads_status ON beads(status)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_beads_origin ON beads(origin)")

    def store(self, graph: FederatedGraph, captured_at: datetime | None = None) -> datetime:
        """
        Replace the cached snapshot with ``graph``.

        Args:
            graph: Graph to persist
            captured_at: Capture time (defaults to now)

        Returns:
            The capture timestamp written

        Raises:
            CacheUnavailable: If the store cannot be written
        """
        captured_at = captured_at or _now()
        stamp = captured_at.isoformat()
        snapshot = json.dumps(graph.to_snapshot(), sort_keys=True)

        try:
            conn = self._connect()
        except (sqlite3.Error, OSError) as e:
            raise CacheUnavailable(f"cannot open cache {self.path}: {e}") from e

        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.execute("DELETE FROM beads")
                conn.execute("DELETE FROM rigs")
                conn.execute("DELETE FROM cache_metadata")
                conn.executemany(
                    """
                    INSERT INTO beads (id, origin, status, priority, issue_type, data, cached_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    [
                        (
                            bead.id,
                            bead.origin,
                            bead.status.value,
                            bead.priority.value,
                            bead.issue_type.value,
                            bead.model_dump_json(),
                            stamp,
                        )
                        for bead in graph.beads.values()
                    ],
                )
                conn.executemany(
                    "INSERT INTO rigs (name, data) VALUES (?, ?)",
                    [(rig.name, rig.model_dump_json()) for rig in graph.rigs.values()],
                )
                conn.executemany(
                    "INSERT INTO cache_metadata (key, value, updated_at) VALUES (?, ?, ?)",
                    [(SNAPSHOT_KEY, snapshot, stamp), (CAPTURED_AT_KEY, stamp, stamp)],
                )
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            raise CacheUnavailable(f"cannot write cache {self.path}: {e}") from e
        finally:
            conn.close()

        logger.debug("Cached %d bead(s) at %s", len(graph.beads), stamp)
        return captured_at

    def _read_metadata(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            conn = self._connect()
        except (sqlite3.Error, OSError) as e:
            raise CacheUnavailable(f"cannot open cache {self.path}: {e}") from e
        try:
            rows = conn.execute("SELECT key, value FROM cache_metadata").fetchall()
        except sqlite3.Error as e:
            raise CacheUnavailable(f"cannot read cache {self.path}: {e}") from e
        finally:
            conn.close()
        return {row["key"]: row["value"] for row in rows}

    def load(self) -> CachedSnapshot | None:
        """
        Load the cached snapshot.

        Returns:
            CachedSnapshot, or None when the cache is absent, empty or
            unreadable (the problem is logged, never raised)
        """
        try:
            metadata = self._read_metadata()
            if SNAPSHOT_KEY not in metadata or CAPTURED_AT_KEY not in metadata:
                return None
            graph = FederatedGraph.from_snapshot(json.loads(metadata[SNAPSHOT_KEY]))
            captured_at = datetime.fromisoformat(metadata[CAPTURED_AT_KEY])
        except CacheUnavailable as e:
            logger.warning("Cache unavailable: %s", e.message)
            return None
        except (ValueError, ValidationError) as e:
            logger.warning("Cache at %s is corrupt, ignoring it: %s", self.path, e)
            return None

        return CachedSnapshot(graph=graph, captured_at=captured_at)

    def clear(self) -> None:
        """Remove every cached row."""
        if not self.path.exists():
            return
        try:
            conn = self._connect()
            try:
                conn.execute("BEGIN IMMEDIATE")
                conn.execute("DELETE FROM beads")
                conn.execute("DELETE FROM rigs")
                conn.execute("DELETE FROM cache_metadata")
                conn.execute("COMMIT")
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise CacheUnavailable(f"cannot clear cache {self.path}: {e}") from e
        logger.info("Cleared cache at %s", self.path)

    def stats(self) -> CacheStats:
        """Summarize the cache without rebuilding the graph."""
        stats = CacheStats(path=str(self.path), exists=self.path.exists())
        if not stats.exists:
            return stats
        stats.size_bytes = self.path.stat().st_size

        try:
            conn = self._connect()
            try:
                stats.bead_count = conn.execute("SELECT COUNT(*) FROM beads").fetchone()[0]
                stats.rig_count = conn.execute("SELECT COUNT(*) FROM rigs").fetchone()[0]
                row = conn.execute(
                    "SELECT value FROM cache_metadata WHERE key = ?", (CAPTURED_AT_KEY,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning("Cache unavailable: %s", e)
            return stats

        if row:
            stats.captured_at = datetime.fromisoformat(row["value"])
            stats.age_seconds = (_now() - stats.captured_at).total_seconds()
        return stats

    def query_beads(
        self,
        status: str | None = None,
        origin: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Read cached bead rows, optionally filtered.

        Args:
            status: Filter by status value
            origin: Filter by rig name

        Returns:
            Bead dicts ordered by priority then id
        """
        if not self.path.exists():
            return []

        clauses = []
        params: list[Any] = []
        if status:
            clauses.append("status = ?")
            params.append(status)
        if origin:
            clauses.append("origin = ?")
            params.append(origin)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    f"SELECT data FROM beads {where} ORDER BY priority, id", params
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise CacheUnavailable(f"cannot read cache {self.path}: {e}") from e

        return [json.loads(row["data"]) for row in rows]

    def cached_rigs(self) -> list[Rig]:
        """Rig descriptors stored with the last snapshot."""
        if not self.path.exists():
            return []
        try:
            conn = self._connect()
            try:
                rows = conn.execute("SELECT data FROM rigs ORDER BY name").fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise CacheUnavailable(f"cannot read cache {self.path}: {e}") from e
        return [Rig.model_validate_json(row["data"]) for row in rows]


async def load_or_aggregate(
    cache: GraphCache | None,
    aggregator: Aggregator,
    rigs: list[Rig],
    ttl_seconds: float,
    use_cache: bool = True,
) -> tuple[FederatedGraph, AggregationReport | None]:
    """
    Serve a fresh cached graph, or aggregate and refresh the cache.

    A stale snapshot is still handed to the aggregator as fallback data for
    rigs that turn out to be unreachable. The cache always holds the
    whole-system graph: when the aggregator is scoped to some contexts, a
    fresh snapshot is served filtered to those rigs and a new pass is never
    stored.

    Returns:
        ``(graph, report)``; report is None when the cache was served
    """
    contexts = set(aggregator.options.contexts)
    scoped = [r.name for r in rigs if r.context in contexts] if contexts else None

    snapshot = cache.load() if cache is not None else None
    if use_cache and snapshot is not None and snapshot.is_fresh(ttl_seconds):
        logger.debug("Serving cached graph (age %.0fs)", snapshot.age.total_seconds())
        if scoped is not None:
            return snapshot.graph.filter_by_origin(*scoped), None
        return snapshot.graph, None

    result = await aggregator.aggregate(rigs, previous=snapshot.graph if snapshot else None)
    if cache is not None and scoped is None:
        try:
            cache.store(result.graph)
        except CacheUnavailable as e:
            logger.warning("Could not refresh cache: %s", e.message)
    elif scoped is not None:
        logger.debug("Context-scoped pass over %s; cache left unchanged", ", ".join(scoped))
    return result.graph, result.report
