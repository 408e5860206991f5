"""
Tests for the SQLite snapshot cache.
"""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from allbeads.core.aggregator import Aggregator, AggregatorOptions
from allbeads.core.cache import CachedSnapshot, GraphCache, load_or_aggregate
from allbeads.errors import SourceUnreachable
from allbeads.graph import FederatedGraph
from allbeads.models.shadow import ShadowBead
from allbeads.sources import MemorySource


class TestGraphCache:
    """Tests for GraphCache class."""

    @pytest.fixture
    def cache(self, tmp_path):
        """Create a GraphCache in a temporary directory."""
        return GraphCache(tmp_path / "cache" / "cache.db")

    @pytest.fixture
    def graph(self, make_bead, make_rig):
        target = make_bead("a2", origin="alpha", depends_on=["a1"], labels=["api", "core"])
        return FederatedGraph.from_beads(
            [
                make_bead("a1", origin="alpha", priority=0),
                target,
                make_bead("b1", origin="beta", status="closed"),
                make_bead("e1", origin="boss", issue_type="epic", depends_on=["bead://alpha/a2"]),
            ],
            shadows=[ShadowBead.for_bead("shadow-e1-a2", target, "alpha", "default", owner="e1")],
            rigs=[make_rig("alpha"), make_rig("beta"), make_rig("boss")],
        )

    def test_load_missing_cache(self, cache):
        assert cache.load() is None
        assert not cache.path.exists()

    def test_store_and_load(self, cache, graph):
        cache.store(graph)
        snapshot = cache.load()

        assert snapshot is not None
        assert snapshot.graph == graph
        assert snapshot.age < timedelta(seconds=5)
        assert snapshot.is_fresh(300)

    def test_store_replaces_previous_snapshot(self, cache, graph, make_bead):
        cache.store(graph)
        smaller = FederatedGraph.from_beads([make_bead("z1", origin="zeta")])
        cache.store(smaller)

        assert cache.load().graph == smaller
        assert [row["id"] for row in cache.query_beads()] == ["z1"]
        assert cache.stats().rig_count == 0

    def test_uses_wal_journal(self, cache, graph):
        cache.store(graph)
        conn = sqlite3.connect(cache.path)
        try:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        finally:
            conn.close()
        assert mode.lower() == "wal"

    def test_corrupt_file_is_a_miss(self, cache):
        cache.path.parent.mkdir(parents=True)
        cache.path.write_bytes(b"this is not a database" * 100)
        assert cache.load() is None

    def test_corrupt_snapshot_is_a_miss(self, cache, graph):
        cache.store(graph)
        conn = sqlite3.connect(cache.path)
        try:
            conn.execute("UPDATE cache_metadata SET value = '{broken' WHERE key = 'snapshot'")
            conn.commit()
        finally:
            conn.close()
        assert cache.load() is None

    def test_clear(self, cache, graph):
        cache.store(graph)
        cache.clear()
        assert cache.load() is None
        assert cache.stats().bead_count == 0

    def test_clear_missing_cache(self, cache):
        cache.clear()
        assert not cache.path.exists()

    def test_stats(self, cache, graph):
        assert not cache.stats().exists
        cache.store(graph)
        stats = cache.stats()
        assert stats.exists
        assert stats.bead_count == 4
        assert stats.rig_count == 3
        assert stats.captured_at is not None
        assert stats.age_seconds < 5

    def test_query_beads(self, cache, graph):
        cache.store(graph)
        open_alpha = cache.query_beads(status="open", origin="alpha")
        assert [row["id"] for row in open_alpha] == ["a1", "a2"]
        assert open_alpha[1]["labels"] == ["api", "core"]
        assert [row["id"] for row in cache.query_beads(status="closed")] == ["b1"]

    def test_cached_rigs(self, cache, graph):
        cache.store(graph)
        assert [r.name for r in cache.cached_rigs()] == ["alpha", "beta", "boss"]


class TestCachedSnapshot:
    """Tests for TTL helpers."""

    def test_freshness(self, make_bead):
        old = datetime.now(timezone.utc) - timedelta(minutes=10)
        snapshot = CachedSnapshot(graph=FederatedGraph.from_beads([make_bead("a1")]), captured_at=old)
        assert not snapshot.is_fresh(300)
        assert snapshot.is_fresh(3600)


class TestLoadOrAggregate:
    """Tests for the cache-aware read path."""

    @pytest.fixture
    def source(self, record, jsonl):
        return MemorySource({"alpha": jsonl(record("a1"))})

    @pytest.mark.asyncio
    async def test_aggregates_and_stores_on_miss(self, tmp_path, source, make_rig):
        cache = GraphCache(tmp_path / "cache.db")
        graph, report = await load_or_aggregate(
            cache, Aggregator(source), [make_rig("alpha")], ttl_seconds=300
        )
        assert report is not None
        assert "a1" in graph
        assert cache.load().graph == graph

    @pytest.mark.asyncio
    async def test_serves_fresh_cache(self, tmp_path, source, make_rig):
        cache = GraphCache(tmp_path / "cache.db")
        rigs = [make_rig("alpha")]
        await load_or_aggregate(cache, Aggregator(source), rigs, ttl_seconds=300)
        graph, report = await load_or_aggregate(cache, Aggregator(source), rigs, ttl_seconds=300)

        assert report is None
        assert "a1" in graph
        assert source.fetch_counts == {"alpha": 1}

    @pytest.mark.asyncio
    async def test_use_cache_false_refreshes(self, tmp_path, source, make_rig):
        cache = GraphCache(tmp_path / "cache.db")
        rigs = [make_rig("alpha")]
        await load_or_aggregate(cache, Aggregator(source), rigs, ttl_seconds=300)
        _, report = await load_or_aggregate(cache, Aggregator(source), rigs, ttl_seconds=300, use_cache=False)
        assert report is not None
        assert source.fetch_counts == {"alpha": 2}

    @pytest.mark.asyncio
    async def test_stale_cache_is_fallback(self, tmp_path, source, make_rig):
        cache = GraphCache(tmp_path / "cache.db")
        rigs = [make_rig("alpha")]
        await load_or_aggregate(cache, Aggregator(source), rigs, ttl_seconds=300)

        source.set("alpha", SourceUnreachable("alpha", "offline"))
        options = AggregatorOptions(retry_wait_seconds=0)
        graph, report = await load_or_aggregate(cache, Aggregator(source, options), rigs, ttl_seconds=0)

        assert "a1" in graph
        assert report.outcome("alpha").from_cache

    @pytest.mark.asyncio
    async def test_context_scoped_pass_keeps_full_snapshot(self, tmp_path, record, jsonl, make_rig):
        cache = GraphCache(tmp_path / "cache.db")
        source = MemorySource({
            "alpha": jsonl(record("a1")),
            "boss": jsonl(record("e1", issue_type="epic")),
        })
        rigs = [make_rig("alpha"), make_rig("boss", context="work")]
        await load_or_aggregate(cache, Aggregator(source), rigs, ttl_seconds=300)

        scoped = Aggregator(source, AggregatorOptions(contexts=["work"]))
        graph, report = await load_or_aggregate(cache, scoped, rigs, ttl_seconds=300, use_cache=False)
        assert report is not None
        assert sorted(graph.beads) == ["e1"]

        full, _ = await load_or_aggregate(cache, Aggregator(source), rigs, ttl_seconds=300)
        assert sorted(full.beads) == ["a1", "e1"]

    @pytest.mark.asyncio
    async def test_context_scoped_read_filters_cache(self, tmp_path, record, jsonl, make_rig):
        cache = GraphCache(tmp_path / "cache.db")
        source = MemorySource({
            "alpha": jsonl(record("a1")),
            "boss": jsonl(record("e1", issue_type="epic")),
        })
        rigs = [make_rig("alpha"), make_rig("boss", context="work")]
        await load_or_aggregate(cache, Aggregator(source), rigs, ttl_seconds=300)

        scoped = Aggregator(source, AggregatorOptions(contexts=["work"]))
        graph, report = await load_or_aggregate(cache, scoped, rigs, ttl_seconds=300)

        assert report is None
        assert sorted(graph.beads) == ["e1"]
        assert source.fetch_counts == {"alpha": 1, "boss": 1}
