"""
Unit tests for the funnel graph model.

Tests:
- Adding, updating, moving and removing nodes
- Adding, updating and removing connections
- Cascade delete and derived connection lists
- Id uniqueness over the graph's lifetime
- Whole-graph replace, clear and stats
"""

import pytest

from models import (
    Connection, EdgeStyle, FunnelNode, GraphModel, NodeCategory, Position,
    DEFAULT_CURVATURE, DEFAULT_EDGE_STYLE, is_valid_curvature
)
from conftest import assert_graph_consistent


class TestNodes:
    """Tests for node operations."""

    def test_add_node(self, empty_graph):
        node = empty_graph.add_node(FunnelNode(id="n1", label="Step"))
        assert node is not None
        assert empty_graph.get_node("n1") is node
        assert len(empty_graph) == 1

    def test_add_node_resets_connection_ids(self, empty_graph):
        node = FunnelNode(id="n1", connection_ids=["ghost"])
        empty_graph.add_node(node)
        assert node.connection_ids == []

    def test_add_duplicate_id_rejected(self, two_node_graph):
        result = two_node_graph.add_node(FunnelNode(id="a", label="Other"))
        assert result is None
        assert two_node_graph.get_node("a").label == "A"

    def test_removed_id_not_reusable(self, two_node_graph):
        two_node_graph.remove_node("a")
        assert two_node_graph.add_node(FunnelNode(id="a")) is None

    def test_create_node_from_template(self, empty_graph):
        node = empty_graph.create_node("email", Position(10, 20))
        assert node is not None
        assert node.type == "email"
        assert node.category == NodeCategory.COMMUNICATION
        assert node.id.startswith("email-")
        assert node.position == Position(10, 20)

    def test_create_node_unknown_template(self, empty_graph):
        assert empty_graph.create_node("fax", Position(0, 0)) is None
        assert len(empty_graph) == 0

    def test_update_node(self, two_node_graph):
        assert two_node_graph.update_node("a", label="Renamed", config={"automation": True})
        node = two_node_graph.get_node("a")
        assert node.label == "Renamed"
        assert node.is_automated

    def test_update_node_rejects_id_and_derived_fields(self, two_node_graph):
        assert not two_node_graph.update_node("a", id="z")
        assert not two_node_graph.update_node("a", connection_ids=["b"])
        assert two_node_graph.get_node("a").id == "a"

    def test_update_node_rejects_bad_category(self, two_node_graph):
        assert not two_node_graph.update_node("a", category="system")
        assert two_node_graph.get_node("a").category == NodeCategory.CUSTOM

    def test_update_missing_node(self, empty_graph):
        assert not empty_graph.update_node("nope", label="x")

    def test_move_node(self, two_node_graph):
        assert two_node_graph.move_node("a", 55, 66)
        assert two_node_graph.get_node("a").position == Position(55, 66)

    def test_remove_missing_node(self, empty_graph):
        assert empty_graph.remove_node("nope") is None


class TestConnections:
    """Tests for connection operations."""

    def test_add_edge_defaults(self, two_node_graph):
        edge = two_node_graph.add_edge("a", "b")
        assert edge is not None
        assert edge.style == DEFAULT_EDGE_STYLE == EdgeStyle.CURVED
        assert edge.curvature == DEFAULT_CURVATURE == 0.5
        assert edge.label is None
        assert edge.id.startswith("conn-")
        assert two_node_graph.get_node("a").connection_ids == ["b"]
        assert_graph_consistent(two_node_graph)

    def test_self_loop_rejected(self, two_node_graph):
        assert two_node_graph.add_edge("a", "a") is None
        assert two_node_graph.connections == {}

    def test_unknown_endpoint_rejected(self, two_node_graph):
        assert two_node_graph.add_edge("a", "ghost") is None
        assert two_node_graph.add_edge("ghost", "b") is None
        assert two_node_graph.connections == {}

    @pytest.mark.parametrize("curvature", [0, -0.1, 1.5, "steep", None])
    def test_invalid_curvature_rejected(self, two_node_graph, curvature):
        assert two_node_graph.add_edge("a", "b", curvature=curvature) is None

    def test_duplicate_edges_between_same_nodes_allowed(self, two_node_graph):
        first = two_node_graph.add_edge("a", "b")
        second = two_node_graph.add_edge("a", "b")
        assert first.id != second.id
        assert two_node_graph.get_node("a").connection_ids == ["b", "b"]

    def test_edge_id_cannot_reuse_node_id(self, two_node_graph):
        assert two_node_graph.add_edge("a", "b", edge_id="a") is None

    def test_remove_edge(self, chain_graph):
        edge = chain_graph.remove_edge("e1")
        assert edge.id == "e1"
        assert chain_graph.get_node("a").connection_ids == []
        assert chain_graph.remove_edge("e1") is None
        assert_graph_consistent(chain_graph)

    def test_update_edge_fields(self, chain_graph):
        assert chain_graph.update_edge("e1", label="Renamed", style=EdgeStyle.ORTHOGONAL, curvature=0.8)
        edge = chain_graph.get_edge("e1")
        assert edge.label == "Renamed"
        assert edge.style == EdgeStyle.ORTHOGONAL
        assert edge.curvature == 0.8

    def test_update_edge_rejects_bad_values(self, chain_graph):
        assert not chain_graph.update_edge("e1", curvature=0)
        assert not chain_graph.update_edge("e1", style="curved")
        assert not chain_graph.update_edge("e1", control_points=[Position(0, 0)])
        assert not chain_graph.update_edge("e1", id="other")
        assert chain_graph.get_edge("e1").curvature == 0.5

    def test_update_edge_endpoints(self, chain_graph):
        assert chain_graph.update_edge("e1", from_id="c")
        assert chain_graph.get_node("a").connection_ids == []
        assert chain_graph.get_node("c").connection_ids == ["b"]
        assert_graph_consistent(chain_graph)

    def test_update_edge_endpoint_rules(self, chain_graph):
        assert not chain_graph.update_edge("e1", to_id="a")
        assert not chain_graph.update_edge("e1", to_id="ghost")
        edge = chain_graph.get_edge("e1")
        assert (edge.from_id, edge.to_id) == ("a", "b")

    def test_control_points(self, chain_graph):
        points = [Position(100, 0), Position(200, 50)]
        assert chain_graph.update_edge("e1", control_points=points)
        assert chain_graph.get_edge("e1").control_points == points
        assert chain_graph.update_edge("e1", control_points=None)


class TestCascade:
    """Removing a node removes exactly its incident connections."""

    def test_remove_middle_node(self, chain_graph):
        chain_graph.remove_node("b")
        assert chain_graph.connections == {}
        assert chain_graph.get_node("a").connection_ids == []
        assert_graph_consistent(chain_graph)

    def test_remove_node_keeps_unrelated_edges(self, starter_graph):
        incident = {e.id for e in starter_graph.incident_edges("end-1")}
        before = set(starter_graph.connections)

        starter_graph.remove_node("end-1")

        assert set(starter_graph.connections) == before - incident
        assert starter_graph.get_node("qual-1").connection_ids == ["contact-1"]
        assert_graph_consistent(starter_graph)

    def test_remove_every_node(self, starter_graph):
        for node_id in list(starter_graph.nodes):
            starter_graph.remove_node(node_id)
            assert_graph_consistent(starter_graph)
        assert starter_graph.connections == {}


class TestWholeGraph:
    """Tests for validate, replace, clear and stats."""

    def test_validate_detects_dangling(self, chain_graph):
        chain_graph.connections["bad"] = Connection(id="bad", from_id="a", to_id="ghost")
        problems = chain_graph.validate()
        assert any("unknown node ghost" in p for p in problems)

    def test_validate_detects_stale_connection_ids(self, chain_graph):
        chain_graph.get_node("a").connection_ids = []
        assert chain_graph.validate()
        chain_graph.refresh_derived()
        assert chain_graph.validate() == []

    def test_replace_with(self, empty_graph, starter_graph):
        empty_graph.add_node(FunnelNode(id="old"))
        empty_graph.replace_with(starter_graph)

        assert "old" not in empty_graph.nodes
        assert set(empty_graph.nodes) == set(starter_graph.nodes)
        assert_graph_consistent(empty_graph)
        # New lifetime: the discarded id is free again
        assert empty_graph.add_node(FunnelNode(id="old")) is not None
        assert empty_graph.add_node(FunnelNode(id="start-1")) is None

    def test_clear(self, starter_graph):
        starter_graph.clear()
        assert len(starter_graph) == 0
        assert starter_graph.connections == {}

    def test_stats(self, starter_graph):
        stats = starter_graph.stats()
        assert stats.nodes == 6
        assert stats.connections == 5
        assert stats.automated == 1
        assert stats.labeled == 5

    def test_new_id_unique(self, empty_graph):
        ids = {empty_graph.new_id("x") for _ in range(50)}
        assert len(ids) == 50
        assert all(i.startswith("x-") for i in ids)


class TestCurvature:

    @pytest.mark.parametrize("value,expected", [
        (0.05, True), (1.0, True), (0.5, True), ("0.3", True),
        (0.0, False), (1.01, False), (-1, False), (None, False), ("abc", False),
    ])
    def test_is_valid_curvature(self, value, expected):
        assert is_valid_curvature(value) is expected
