"""
Unit tests for funnel serialization and the persistence gateway.

Tests:
- Graph to dict and back
- Strict loading of malformed data
- Gateway save/list/load/delete against an in-memory store
"""

import json

import pytest

from models import Connection, EdgeStyle, NodeCategory, Position
from services.persistence import (
    FunnelNameError, PersistenceError, PersistenceGateway, SavedFunnel,
    deserialize_graph, serialize_graph
)
from conftest import assert_graph_consistent, graph_signature


class MemoryStore:
    """Store double with fixed timestamps."""

    def __init__(self, records=None):
        self.records = list(records or [])
        self.created = []

    def list(self, owner_id):
        return [r for r in self.records if r.get("owner") in (None, owner_id)]

    def create(self, record, owner_id):
        self.created.append((record, owner_id))
        stored = dict(record, updated_at="2026-01-01T00:00:00+00:00")
        self.records.append(stored)
        return stored

    def delete(self, funnel_id, owner_id):
        before = len(self.records)
        self.records = [r for r in self.records if r["id"] != funnel_id]
        return len(self.records) != before


def node_data(node_id, **overrides):
    data = {
        "id": node_id,
        "type": "custom",
        "category": "custom",
        "label": node_id.upper(),
        "position": {"x": 0, "y": 0},
    }
    data.update(overrides)
    return data


class TestSerializeGraph:

    def test_node_layout(self, chain_graph):
        chain_graph.get_node("a").config = {"automation": True}
        data = serialize_graph(chain_graph)

        node = data["nodes"][0]
        assert node == {
            "id": "a",
            "type": "custom",
            "category": "custom",
            "label": "A",
            "description": "",
            "icon": "circle",
            "color": None,
            "position": {"x": 0, "y": 0},
            "config": {"automation": True},
            "connectionIds": ["b"],
        }

    def test_connection_layout(self, chain_graph):
        data = serialize_graph(chain_graph)
        assert data["connections"][1] == {
            "id": "e2",
            "from": "b",
            "to": "c",
            "label": "Second",
            "style": "straight",
            "curvature": 0.5,
        }

    def test_control_points_written_when_set(self, chain_graph):
        chain_graph.update_edge("e1", control_points=[Position(1, 2), Position(3, 4)])
        data = serialize_graph(chain_graph)
        assert data["connections"][0]["controlPoints"] == [{"x": 1, "y": 2}, {"x": 3, "y": 4}]

    def test_output_is_json(self, starter_graph):
        text = json.dumps(serialize_graph(starter_graph))
        assert "Proposal sent" in text

    def test_connection_ids_recomputed(self, chain_graph):
        chain_graph.get_node("a").connection_ids = ["stale"]
        data = serialize_graph(chain_graph)
        assert data["nodes"][0]["connectionIds"] == ["b"]

    def test_inconsistent_graph_rejected(self, chain_graph):
        chain_graph.connections["bad"] = Connection(id="bad", from_id="a", to_id="ghost")
        with pytest.raises(PersistenceError):
            serialize_graph(chain_graph)


class TestDeserializeGraph:

    def test_round_trip(self, starter_graph):
        loaded = deserialize_graph(serialize_graph(starter_graph))
        assert graph_signature(loaded) == graph_signature(starter_graph)
        assert_graph_consistent(loaded)

    def test_round_trip_keeps_control_points(self, chain_graph):
        chain_graph.update_edge("e1", control_points=[Position(1, 2), Position(3, 4)])
        loaded = deserialize_graph(serialize_graph(chain_graph))
        assert loaded.get_edge("e1").control_points == [Position(1, 2), Position(3, 4)]

    def test_stored_connection_ids_ignored(self):
        data = {
            "nodes": [node_data("a", connectionIds=["zzz"]), node_data("b")],
            "connections": [{"id": "e", "from": "a", "to": "b"}],
        }
        graph = deserialize_graph(data)
        assert graph.get_node("a").connection_ids == ["b"]

    def test_defaults_for_missing_fields(self):
        data = {
            "nodes": [{"id": "a", "type": "email"}, {"id": "b"}],
            "connections": [{"id": "e", "from": "a", "to": "b"}],
        }
        graph = deserialize_graph(data)
        assert graph.get_node("a").category == NodeCategory.COMMUNICATION
        assert graph.get_node("b").type == "custom"
        edge = graph.get_edge("e")
        assert edge.style == EdgeStyle.CURVED
        assert edge.curvature == 0.5
        assert edge.label is None

    def test_unknown_category_falls_back(self):
        data = {"nodes": [node_data("a", type="proposal", category="sales"),
                          node_data("b", category="sales")]}
        graph = deserialize_graph(data)
        assert graph.get_node("a").category == NodeCategory.CONVERSION
        assert graph.get_node("b").category == NodeCategory.CUSTOM

    def test_unknown_style_falls_back(self):
        data = {
            "nodes": [node_data("a"), node_data("b")],
            "connections": [{"id": "e", "from": "a", "to": "b", "style": "zigzag"}],
        }
        assert deserialize_graph(data).get_edge("e").style == EdgeStyle.CURVED

    def test_empty(self):
        graph = deserialize_graph({})
        assert graph.nodes == {} and graph.connections == {}

    def test_loaded_ids_are_reserved(self):
        graph = deserialize_graph({"nodes": [node_data("a"), node_data("b")]})
        assert graph.add_edge("a", "b", edge_id="a") is None

    @pytest.mark.parametrize("data", [
        [],
        {"nodes": {}},
        {"nodes": [{"label": "no id"}]},
        {"nodes": [node_data("a"), node_data("a")]},
        {"nodes": [node_data("a", position="here")]},
        {"nodes": [node_data("a", position={"x": "left", "y": 0})]},
        {"nodes": [node_data("a", config=["automation"])]},
        {"nodes": [node_data("a")], "connections": [{"id": "e", "from": "a", "to": "ghost"}]},
        {"nodes": [node_data("a")], "connections": [{"id": "e", "from": "a", "to": "a"}]},
        {"nodes": [node_data("a"), node_data("b")],
         "connections": [{"from": "a", "to": "b"}]},
        {"nodes": [node_data("a"), node_data("b")],
         "connections": [{"id": "e", "from": "a", "to": "b"},
                         {"id": "e", "from": "b", "to": "a"}]},
        {"nodes": [node_data("a"), node_data("b")],
         "connections": [{"id": "e", "from": "a", "to": "b", "curvature": 0}]},
        {"nodes": [node_data("a"), node_data("b")],
         "connections": [{"id": "e", "from": "a", "to": "b",
                          "controlPoints": [{"x": 0, "y": 0}]}]},
        {"nodes": [node_data("a"), node_data("b")],
         "connections": [{"id": "e", "from": ["a"], "to": "b"}]},
        {"nodes": [node_data("a", type=["x"], category="bogus")]},
    ])
    def test_malformed_data_rejected(self, data):
        with pytest.raises(PersistenceError):
            deserialize_graph(data)


class TestSavedFunnel:

    def test_from_record(self):
        funnel = SavedFunnel.from_record({
            "id": 7,
            "name": "Leads",
            "graph": {"nodes": [node_data("a")], "connections": []},
            "updated_at": "2026-03-01",
        })
        assert funnel.id == "7"
        assert funnel.name == "Leads"
        assert len(funnel.nodes) == 1
        assert funnel.graph_data == {"nodes": funnel.nodes, "connections": []}

    @pytest.mark.parametrize("record", [
        None, "id", {"name": "no id"}, {"id": "x", "name": "n", "graph": "oops"},
    ])
    def test_malformed_record(self, record):
        with pytest.raises(PersistenceError):
            SavedFunnel.from_record(record)


class TestPersistenceGateway:

    @pytest.fixture
    def store(self):
        return MemoryStore()

    @pytest.fixture
    def memory_gateway(self, store):
        return PersistenceGateway(store, "owner-1")

    def test_save(self, memory_gateway, store, chain_graph):
        saved = memory_gateway.save(chain_graph, "  Sales  ")
        assert saved.name == "Sales"
        assert saved.updated_at == "2026-01-01T00:00:00+00:00"
        assert len(saved.nodes) == 3

        record, owner = store.created[0]
        assert owner == "owner-1"
        assert record["id"] == saved.id

    def test_save_always_creates_new_record(self, memory_gateway, store, chain_graph):
        first = memory_gateway.save(chain_graph, "Sales")
        second = memory_gateway.save(chain_graph, "Sales")
        assert first.id != second.id
        assert len(store.records) == 2

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected(self, memory_gateway, store, chain_graph, name):
        with pytest.raises(FunnelNameError):
            memory_gateway.save(chain_graph, name)
        assert store.created == []

    def test_save_does_not_touch_graph(self, memory_gateway, chain_graph):
        before = graph_signature(chain_graph)
        memory_gateway.save(chain_graph, "Sales")
        assert graph_signature(chain_graph) == before

    def test_submit_without_ack(self, chain_graph):
        class SilentStore(MemoryStore):
            def create(self, record, owner_id):
                return None

        gateway = PersistenceGateway(SilentStore(), "owner-1")
        record = gateway.prepare_record(chain_graph, "Quiet")
        saved = gateway.submit(record)
        assert saved.id == record["id"]
        assert saved.updated_at is None

    def test_list_newest_first(self):
        store = MemoryStore([
            {"id": "1", "name": "Old", "graph": {}, "updated_at": "2026-01-01T00:00:00"},
            {"id": "2", "name": "New", "graph": {}, "updated_at": "2026-05-01T00:00:00"},
            {"id": "3", "name": "Mid", "graph": {}, "updated_at": "2026-03-01T00:00:00"},
        ])
        funnels = PersistenceGateway(store, "me").list_funnels()
        assert [f.name for f in funnels] == ["New", "Mid", "Old"]

    def test_load(self, memory_gateway, starter_graph):
        saved = memory_gateway.save(starter_graph, "Starter")
        loaded = memory_gateway.load(saved)
        assert graph_signature(loaded) == graph_signature(starter_graph)
        assert loaded is not starter_graph

    def test_load_record_dict(self, memory_gateway, chain_graph):
        memory_gateway.save(chain_graph, "Chain")
        record = memory_gateway.store.records[0]
        assert set(memory_gateway.load(record).nodes) == {"a", "b", "c"}

    def test_load_malformed(self, memory_gateway):
        bad = SavedFunnel(id="x", name="Bad", nodes=[node_data("a")],
                          connections=[{"id": "e", "from": "a", "to": "ghost"}])
        with pytest.raises(PersistenceError):
            memory_gateway.load(bad)

    def test_delete(self, memory_gateway, chain_graph):
        saved = memory_gateway.save(chain_graph, "Chain")
        assert memory_gateway.delete(saved.id)
        assert not memory_gateway.delete(saved.id)
        assert memory_gateway.list_funnels() == []
