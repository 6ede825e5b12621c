"""Tests for reason graph construction."""

import pytest

from triadic.verification.graph import GraphBuilder, ReasonGraph, Relation, VertexType


def _simple_builder() -> GraphBuilder:
    b = GraphBuilder()
    b.premise("p1", "vital_score = 0.3")
    b.rule("r1", "C1: vital_score < 0.5 → critical")
    b.conclusion("c1", "critical = true")
    b.conclusion("c2", "priority = HIGH")
    b.edge("p1", "r1", Relation.INPUT)
    b.edge("r1", "c1", Relation.ENTAILS)
    b.edge("c1", "c2", Relation.DETERMINES)
    return b


class TestGraphBuilder:
    """Tests for declaring and pruning reason graphs."""

    def test_build_keeps_participating_vertices(self) -> None:
        """Test a graph where every vertex participates."""
        graph = _simple_builder().build()

        assert [v.id for v in graph.vertices] == ["p1", "r1", "c1", "c2"]
        assert len(graph.edges) == 3

    def test_rule_without_conclusion_is_pruned(self) -> None:
        """Test that a rule feeding no conclusion is dropped with its edges."""
        b = _simple_builder()
        b.premise("p2", "age = 30")
        b.rule("r2", "R-AGE: age ≥ 65")
        b.edge("p2", "r2", Relation.INPUT)

        graph = b.build()

        assert not graph.has_vertex("r2")
        assert not graph.has_vertex("p2")
        assert all(e.source != "p2" for e in graph.edges)

    def test_unused_premise_is_pruned(self) -> None:
        """Test that a premise feeding nothing is dropped."""
        b = _simple_builder()
        b.premise("p9", "unused = 1")

        assert not b.build().has_vertex("p9")

    def test_conclusions_always_kept(self) -> None:
        """Test that an isolated conclusion survives pruning."""
        b = _simple_builder()
        b.conclusion("c9", "risk_score = 0.10")

        graph = b.build()

        assert graph.has_vertex("c9")
        assert [v.id for v in graph.vertices_of(VertexType.CONCLUSION)] == ["c1", "c2", "c9"]

    def test_edge_into_premise_rejected(self) -> None:
        """Test that premises cannot have incoming edges."""
        b = _simple_builder()

        with pytest.raises(ValueError, match="premise"):
            b.edge("r1", "p1", Relation.ENTAILS)

    def test_edge_to_undeclared_vertex_rejected(self) -> None:
        """Test that edges only connect declared vertices."""
        b = _simple_builder()

        with pytest.raises(ValueError, match="undeclared"):
            b.edge("r1", "c99", Relation.ENTAILS)

    def test_duplicate_vertex_rejected(self) -> None:
        """Test that vertex ids are unique."""
        b = _simple_builder()

        with pytest.raises(ValueError, match="twice"):
            b.conclusion("c1", "critical = false")

    def test_cycle_rejected(self) -> None:
        """Test that a cyclic declaration cannot be built."""
        b = _simple_builder()
        b.rule("r2", "feedback")
        b.edge("c2", "r2", Relation.INPUT)
        b.edge("r2", "c1", Relation.DETERMINES)

        with pytest.raises(ValueError, match="cycle"):
            b.build()


class TestReasonGraph:
    """Tests for graph queries and hashing."""

    def test_depth_counts_longest_path(self) -> None:
        """Test depth as the longest path in edges."""
        assert _simple_builder().build().depth() == 3

    def test_empty_graph_depth(self) -> None:
        """Test the depth of a graph without edges."""
        assert ReasonGraph(vertices=(), edges=()).depth() == 0

    def test_hash_is_deterministic(self) -> None:
        """Test that identical declarations hash identically."""
        assert _simple_builder().build().compute_hash() == _simple_builder().build().compute_hash()

    def test_hash_covers_labels(self) -> None:
        """Test that changing a label changes the hash."""
        b = GraphBuilder()
        b.premise("p1", "vital_score = 0.4")
        b.rule("r1", "C1: vital_score < 0.5 → critical")
        b.conclusion("c1", "critical = true")
        b.conclusion("c2", "priority = HIGH")
        b.edge("p1", "r1", Relation.INPUT)
        b.edge("r1", "c1", Relation.ENTAILS)
        b.edge("c1", "c2", Relation.DETERMINES)

        assert b.build().compute_hash() != _simple_builder().build().compute_hash()

    def test_dict_round_trip(self) -> None:
        """Test that the JSON form rebuilds the same graph."""
        graph = _simple_builder().build()
        data = graph.to_dict()

        assert data["edges"][0] == {"from": "p1", "to": "r1", "relation": "input"}
        assert ReasonGraph.from_dict(data) == graph

    def test_vertex_lookup(self) -> None:
        """Test vertex lookup by id."""
        graph = _simple_builder().build()

        assert graph.vertex("r1").type == VertexType.RULE
        assert graph.successors("c1") == ["c2"]
        with pytest.raises(KeyError):
            graph.vertex("missing")
