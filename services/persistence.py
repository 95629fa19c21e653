"""
Saving and loading funnels.

Funnels are stored as records owned by a user: an id, a display name,
the serialized graph and the time of the last write. The gateway turns
graphs into records and back; the actual storage is delegated to a
FunnelStore (see funnel_stores.py).

Serialized graph layout:

    {
      "nodes": [{"id", "type", "category", "label", "description", "icon",
                 "color", "position": {"x", "y"}, "config", "connectionIds"}],
      "connections": [{"id", "from", "to", "label", "style", "curvature",
                       "controlPoints"}]
    }
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol, Union

from models import (
    Connection,
    EdgeStyle,
    FunnelNode,
    GraphModel,
    NodeCategory,
    Position,
    DEFAULT_CURVATURE,
    DEFAULT_EDGE_STYLE,
    get_template,
)

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """A funnel could not be saved, listed, loaded or deleted."""


class FunnelNameError(PersistenceError):
    """The funnel name is empty."""


@dataclass
class SavedFunnel:
    """A stored funnel as listed for the user."""
    id: str
    name: str
    nodes: list = field(default_factory=list)
    connections: list = field(default_factory=list)
    updated_at: Optional[str] = None

    @property
    def graph_data(self) -> dict:
        return {"nodes": self.nodes, "connections": self.connections}

    @classmethod
    def from_record(cls, record: dict) -> "SavedFunnel":
        """Build from a store record ({id, name, graph, updated_at})."""
        if not isinstance(record, dict) or "id" not in record:
            raise PersistenceError(f"Malformed funnel record: {record!r}")
        graph = record.get("graph") or {}
        if not isinstance(graph, dict):
            raise PersistenceError(f"Funnel {record['id']} has a malformed graph")
        return cls(
            id=str(record["id"]),
            name=record.get("name", ""),
            nodes=graph.get("nodes", []),
            connections=graph.get("connections", []),
            updated_at=record.get("updated_at"),
        )


class FunnelStore(Protocol):
    """
    Owner-scoped storage of funnel records.

    Records are dicts with keys id, name, graph ({nodes, connections}) and
    updated_at. Implementations raise PersistenceError on failure.
    """

    def list(self, owner_id: str) -> list[dict]:
        ...

    def create(self, record: dict, owner_id: str) -> dict:
        ...

    def delete(self, funnel_id: str, owner_id: str) -> bool:
        ...


# ----------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------

def _serialize_node(node: FunnelNode) -> dict:
    return {
        "id": node.id,
        "type": node.type,
        "category": node.category.name.lower(),
        "label": node.label,
        "description": node.description,
        "icon": node.icon,
        "color": node.color,
        "position": {
            "x": node.position.x,
            "y": node.position.y
        },
        "config": dict(node.config),
        "connectionIds": list(node.connection_ids),
    }


def _serialize_connection(edge: Connection) -> dict:
    data = {
        "id": edge.id,
        "from": edge.from_id,
        "to": edge.to_id,
        "label": edge.label,
        "style": edge.style.name.lower(),
        "curvature": edge.curvature,
    }
    if edge.control_points:
        data["controlPoints"] = [{"x": p.x, "y": p.y} for p in edge.control_points]
    return data


def serialize_graph(graph: GraphModel) -> dict:
    """
    Convert a graph to a JSON-serializable dictionary.

    Derived connection lists are recomputed first so the output is always
    consistent with the connections.

    Raises:
        PersistenceError: If the graph breaks a structural invariant
    """
    graph.refresh_derived()
    problems = graph.validate()
    if problems:
        raise PersistenceError("Funnel is inconsistent: " + "; ".join(problems))

    return {
        "nodes": [_serialize_node(node) for node in graph.nodes.values()],
        "connections": [_serialize_connection(edge) for edge in graph.connections.values()],
    }


def _position(data, what: str) -> Position:
    if not isinstance(data, dict):
        raise PersistenceError(f"{what} has no valid position")
    try:
        return Position(x=float(data.get("x", 0)), y=float(data.get("y", 0)))
    except (TypeError, ValueError):
        raise PersistenceError(f"{what} has a non-numeric position")


def _deserialize_node(data: dict) -> FunnelNode:
    if not isinstance(data, dict) or not data.get("id"):
        raise PersistenceError(f"Node without id: {data!r}")

    node_type = data.get("type", "custom")
    if not isinstance(node_type, str):
        raise PersistenceError(f"Node {data['id']} has a malformed type")

    # Unknown categories fall back to the template's, then custom
    category_str = str(data.get("category", "")).upper()
    try:
        category = NodeCategory[category_str]
    except KeyError:
        template = get_template(node_type)
        category = template.category if template else NodeCategory.CUSTOM

    config = data.get("config") or {}
    if not isinstance(config, dict):
        raise PersistenceError(f"Node {data['id']} has a malformed config")

    return FunnelNode(
        id=str(data["id"]),
        type=node_type,
        category=category,
        label=data.get("label", ""),
        description=data.get("description", ""),
        icon=data.get("icon", "circle"),
        color=data.get("color"),
        position=_position(data.get("position", {}), f"Node {data['id']}"),
        config=dict(config),
    )


def _deserialize_connection(data: dict, graph: GraphModel) -> Connection:
    if not isinstance(data, dict) or not data.get("id"):
        raise PersistenceError(f"Connection without id: {data!r}")
    edge_id = str(data["id"])
    from_id = data.get("from")
    to_id = data.get("to")
    if not isinstance(from_id, str) or not isinstance(to_id, str):
        raise PersistenceError(f"Connection {edge_id} has malformed endpoints")

    if from_id not in graph.nodes or to_id not in graph.nodes:
        raise PersistenceError(f"Connection {edge_id} references a missing node ({from_id} -> {to_id})")
    if from_id == to_id:
        raise PersistenceError(f"Connection {edge_id} is a self-loop")

    style_str = str(data.get("style", DEFAULT_EDGE_STYLE.name)).upper()
    try:
        style = EdgeStyle[style_str]
    except KeyError:
        style = DEFAULT_EDGE_STYLE

    edge = graph.add_edge(
        from_id,
        to_id,
        label=data.get("label"),
        style=style,
        curvature=data.get("curvature", DEFAULT_CURVATURE),
        edge_id=edge_id,
    )
    if edge is None:
        raise PersistenceError(f"Connection {edge_id} is invalid (duplicate id or bad curvature)")

    points = data.get("controlPoints")
    if points:
        if not isinstance(points, list) or len(points) != 2:
            raise PersistenceError(f"Connection {edge_id} must have exactly two control points")
        edge.control_points = [_position(p, f"Connection {edge_id}") for p in points]

    return edge


def deserialize_graph(data: dict) -> GraphModel:
    """
    Build a fresh graph from serialized data.

    Stored connectionIds are ignored and recomputed from the connections.

    Raises:
        PersistenceError: On malformed or dangling content
    """
    if not isinstance(data, dict):
        raise PersistenceError("Funnel data is not an object")

    nodes = data.get("nodes", [])
    connections = data.get("connections", [])
    if not isinstance(nodes, list) or not isinstance(connections, list):
        raise PersistenceError("Funnel nodes and connections must be lists")

    graph = GraphModel()

    # First pass: nodes
    for node_data in nodes:
        node = _deserialize_node(node_data)
        if graph.add_node(node) is None:
            raise PersistenceError(f"Duplicate node id {node.id}")

    # Second pass: connections
    for edge_data in connections:
        _deserialize_connection(edge_data, graph)

    problems = graph.validate()
    if problems:
        raise PersistenceError("; ".join(problems))
    return graph


# ----------------------------------------------------------------------
# Gateway
# ----------------------------------------------------------------------

class PersistenceGateway:
    """
    Saves, lists, loads and deletes the current owner's funnels.

    save() is split into prepare_record(), which snapshots the graph and
    must run where the graph lives, and submit(), which only talks to the
    store and can run on a worker thread.
    """

    def __init__(self, store: FunnelStore, owner_id: str):
        self.store = store
        self.owner_id = owner_id

    def prepare_record(self, graph: GraphModel, name: str) -> dict:
        """
        Snapshot a graph into a new record.

        Raises:
            FunnelNameError: If the name is empty or blank
            PersistenceError: If the graph is inconsistent
        """
        if name is None or not name.strip():
            raise FunnelNameError("Enter a name for the funnel")

        return {
            "id": str(uuid.uuid4()),
            "name": name.strip(),
            "graph": serialize_graph(graph),
        }

    def submit(self, record: dict) -> SavedFunnel:
        """Write a prepared record to the store."""
        ack = self.store.create(record, self.owner_id)
        logger.info(f"Saved funnel '{record['name']}' ({record['id']})")
        return SavedFunnel.from_record(ack or record)

    def save(self, graph: GraphModel, name: str) -> SavedFunnel:
        """Save a graph under a name as a new record."""
        return self.submit(self.prepare_record(graph, name))

    def list_funnels(self) -> list[SavedFunnel]:
        """The owner's funnels, most recently updated first."""
        funnels = [SavedFunnel.from_record(r) for r in self.store.list(self.owner_id)]
        funnels.sort(key=lambda f: f.updated_at or "", reverse=True)
        return funnels

    def load(self, funnel: Union[SavedFunnel, dict]) -> GraphModel:
        """
        Parse a stored funnel into a fresh, validated graph.

        Nothing is applied to the editor here; the caller swaps the graph
        in once this returns.
        """
        if isinstance(funnel, dict):
            funnel = SavedFunnel.from_record(funnel)
        graph = deserialize_graph(funnel.graph_data)
        logger.info(f"Loaded funnel '{funnel.name}': {len(graph.nodes)} nodes, "
                    f"{len(graph.connections)} connections")
        return graph

    def delete(self, funnel_id: str) -> bool:
        deleted = self.store.delete(funnel_id, self.owner_id)
        if deleted:
            logger.info(f"Deleted funnel {funnel_id}")
        return deleted
