"""
Tests for the federated graph and cycle detection.
"""

import pytest

from allbeads.graph import FederatedGraph, find_cycles, normalize_cycle
from allbeads.models.shadow import ShadowBead


@pytest.fixture
def scenario(make_bead):
    """alpha {a1 open, a2 open -> a1}, beta {b1 closed}."""
    return FederatedGraph.from_beads([
        make_bead("a1", origin="alpha", priority=1),
        make_bead("a2", origin="alpha", depends_on=["a1"]),
        make_bead("b1", origin="beta", status="closed"),
    ])


class TestFindCycles:
    """Tests for the pure cycle finder."""

    def test_no_cycles(self):
        assert find_cycles({"a": ["b"], "b": ["c"], "c": []}) == []

    @pytest.mark.parametrize("start", ["A", "B", "C"])
    def test_triangle_reported_once_from_any_start(self, start):
        adjacency = {"A": ["B"], "B": ["C"], "C": ["A"]}
        assert find_cycles(adjacency, roots=[start]) == [["A", "B", "C"]]

    def test_two_disjoint_cycles(self):
        adjacency = {"a": ["b"], "b": ["a"], "x": ["y"], "y": ["x"]}
        assert find_cycles(adjacency) == [["a", "b"], ["x", "y"]]

    def test_unknown_successors_are_leaves(self):
        assert find_cycles({"a": ["missing"]}) == []

    def test_long_chain_does_not_recurse(self):
        adjacency = {str(i): [str(i + 1)] for i in range(5000)}
        adjacency["5000"] = ["0"]
        cycles = find_cycles(adjacency)
        assert len(cycles) == 1
        assert len(cycles[0]) == 5001

    def test_normalize_cycle(self):
        assert normalize_cycle(["c", "a", "b"]) == ("a", "b", "c")


class TestReadyAndBlocked:
    """Tests for work queries."""

    def test_scenario(self, scenario):
        assert [b.id for b in scenario.ready()] == ["a1"]
        assert [b.id for b in scenario.blocked()] == ["a2"]

    def test_after_closing_dependency(self, make_bead):
        graph = FederatedGraph.from_beads([
            make_bead("a1", origin="alpha", status="closed"),
            make_bead("a2", origin="alpha", depends_on=["a1"]),
            make_bead("b1", origin="beta", status="closed"),
        ])
        assert [b.id for b in graph.ready()] == ["a2"]
        assert graph.blocked() == []

    def test_ready_and_blocked_disjoint(self, make_bead):
        graph = FederatedGraph.from_beads([
            make_bead("x", depends_on=["y"]),
            make_bead("y", status="in_progress", depends_on=["z"]),
            make_bead("z"),
            make_bead("w", status="blocked"),
        ])
        ready = {b.id for b in graph.ready()}
        blocked = {b.id for b in graph.blocked()}
        assert ready == {"z"}
        assert blocked == {"x", "y"}
        assert not ready & blocked

    def test_missing_dependency_does_not_block(self, make_bead):
        graph = FederatedGraph.from_beads([make_bead("a1", depends_on=["nowhere"])])
        assert [b.id for b in graph.ready()] == ["a1"]
        assert graph.unresolved_references() == [("a1", "nowhere")]

    def test_ready_sorted_by_priority_then_id(self, make_bead):
        graph = FederatedGraph.from_beads([
            make_bead("b", priority=2),
            make_bead("a", priority=2),
            make_bead("c", priority=0),
        ])
        assert [b.id for b in graph.ready()] == ["c", "a", "b"]

    def test_blocks_edge_counts_as_dependency(self, make_bead):
        graph = FederatedGraph.from_beads([
            make_bead("gate", blocks=["work"]),
            make_bead("work"),
        ])
        assert [b.id for b in graph.blocked()] == ["work"]
        assert [b.id for b in graph.blockers_of("work")] == ["gate"]

    def test_uri_dependency_resolves_by_origin(self, make_bead):
        graph = FederatedGraph.from_beads([
            make_bead("e1", origin="boss", depends_on=["bead://alpha/a2"]),
            make_bead("a2", origin="alpha"),
        ])
        assert [b.id for b in graph.dependencies_of("e1")] == ["a2"]
        assert [b.id for b in graph.dependents_of("a2")] == ["e1"]

    def test_uri_with_wrong_rig_is_unresolved(self, make_bead):
        graph = FederatedGraph.from_beads([
            make_bead("e1", origin="boss", depends_on=["bead://beta/a2"]),
            make_bead("a2", origin="alpha"),
        ])
        assert graph.dependencies_of("e1") == []
        assert graph.unresolved_references() == [("e1", "bead://beta/a2")]


class TestGraphCycles:
    """Tests for cycle queries on a graph."""

    def test_cycle_reported_not_broken(self, make_bead):
        graph = FederatedGraph.from_beads([
            make_bead("A", depends_on=["B"]),
            make_bead("B", depends_on=["C"]),
            make_bead("C", depends_on=["A"]),
        ])
        assert graph.find_cycles() == [["A", "B", "C"]]
        assert graph.find_cycles(roots=["C"]) == [["A", "B", "C"]]
        assert len(graph.blocked()) == 3


class TestCrossRepo:
    """Tests for cross-repository edges."""

    def test_edges(self, make_bead):
        graph = FederatedGraph.from_beads([
            make_bead("a1", origin="alpha", depends_on=["b1", "a0", "bead://gamma/g1"]),
            make_bead("a0", origin="alpha"),
            make_bead("b1", origin="beta"),
        ])
        assert graph.is_cross_repo("a1", "b1")
        assert not graph.is_cross_repo("a1", "a0")
        assert graph.is_cross_repo("a1", "bead://gamma/g1")

        edges = graph.cross_repo_edges()
        assert [(e.target, e.target_rig, e.resolved) for e in edges] == [
            ("b1", "beta", True),
            ("bead://gamma/g1", "gamma", False),
        ]


class TestViews:
    """Tests for filtered views, shadows and stats."""

    def test_filter_by_origin(self, scenario):
        alpha = scenario.filter_by_origin("alpha")
        assert sorted(alpha.beads) == ["a1", "a2"]
        assert "b1" not in alpha

    def test_shadow_lookup(self, make_bead):
        target = make_bead("a2", origin="alpha")
        shadow = ShadowBead.for_bead("shadow-e1-a2", target, "alpha", "default", owner="e1")
        graph = FederatedGraph.from_beads(
            [make_bead("e1", origin="boss", issue_type="epic"), target],
            shadows=[shadow],
        )
        assert graph.shadows_for("e1") == [shadow]
        assert graph.shadow_by_pointer("bead://alpha/a2") == [shadow]

    def test_stats(self, scenario):
        stats = scenario.stats()
        assert stats.total_beads == 3
        assert stats.by_status["open"] == 2
        assert stats.by_status["closed"] == 1
        assert stats.by_priority["P1"] == 1
        assert stats.by_origin == {"alpha": 2, "beta": 1}
        assert stats.ready == 1
        assert stats.blocked == 1

    def test_lookup(self, scenario):
        assert len(scenario) == 3
        assert "a1" in scenario
        assert scenario.get("zz") is None
        assert scenario.origins == ["alpha", "beta"]


class TestSnapshot:
    """Tests for snapshot serialization."""

    def test_round_trip(self, scenario):
        restored = FederatedGraph.from_snapshot(scenario.to_snapshot())
        assert restored == scenario
        assert [b.id for b in restored.ready()] == ["a1"]

    def test_equality_ignores_insertion_order(self, make_bead):
        beads = [make_bead("a1"), make_bead("a2", depends_on=["a1"])]
        assert FederatedGraph.from_beads(beads) == FederatedGraph.from_beads(list(reversed(beads)))
