"""
Funnel graph data models.

These models hold the funnel being edited: typed nodes placed on the
canvas and the directed connections between them.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

logger = logging.getLogger(__name__)


class NodeCategory(Enum):
    """
    Functional family of a funnel node.

    Determines the default color and where the node appears in the palette.
    """
    ACQUISITION = auto()    # Where leads come from (forms, ads, referrals)
    SYSTEM = auto()         # Internal processing (CRM entry, scoring)
    COMMUNICATION = auto()  # Outreach steps (email, WhatsApp, calls)
    CONVERSION = auto()     # Proposal, closing and exit points
    CUSTOM = auto()         # User-defined node with literal fields


class EdgeStyle(Enum):
    """How a connection is drawn between two ports."""
    STRAIGHT = auto()
    CURVED = auto()
    ORTHOGONAL = auto()


DEFAULT_EDGE_STYLE = EdgeStyle.CURVED
DEFAULT_CURVATURE = 0.5
DEFAULT_EDGE_LABEL = "New connection"


@dataclass
class Position:
    """2D position on the canvas."""
    x: float = 0.0
    y: float = 0.0

    def to_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass
class FunnelNode:
    """
    A step of the funnel.

    Attributes:
        id: Unique identifier
        type: Template key, or "custom"
        category: Functional family
        label: Display name
        description: Free text shown under the label
        icon: Symbolic icon name
        color: Optional color override (hex string)
        position: Canvas position of the top-left corner
        config: Opaque metadata (automation, delay, conditions, actions)
        connection_ids: Targets of outgoing connections. Maintained by
            GraphModel; never assign it directly.
    """
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    type: str = "custom"
    category: NodeCategory = NodeCategory.CUSTOM
    label: str = ""
    description: str = ""
    icon: str = "circle"
    color: Optional[str] = None
    position: Position = field(default_factory=Position)
    config: dict = field(default_factory=dict)
    connection_ids: list[str] = field(default_factory=list)

    @property
    def is_automated(self) -> bool:
        return bool(self.config.get("automation"))


@dataclass
class Connection:
    """
    A directed, styled link from one node's outgoing port to another
    node's incoming port.
    """
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    from_id: str = ""
    to_id: str = ""
    label: Optional[str] = None
    style: EdgeStyle = DEFAULT_EDGE_STYLE
    curvature: float = DEFAULT_CURVATURE
    control_points: Optional[list[Position]] = None


@dataclass
class FunnelStats:
    """Summary counters shown in the palette sidebar."""
    nodes: int = 0
    connections: int = 0
    automated: int = 0
    labeled: int = 0


# Fields that update_node / update_edge may replace
NODE_FIELDS = ("type", "category", "label", "description", "icon", "color", "position", "config")
EDGE_FIELDS = ("from_id", "to_id", "label", "style", "curvature", "control_points")


def is_valid_curvature(value) -> bool:
    """Curvature must lie in (0, 1]."""
    try:
        return 0.0 < float(value) <= 1.0
    except (TypeError, ValueError):
        return False


class GraphModel:
    """
    Root model containing the funnel graph.

    All structural rules live here: connections always reference live
    nodes, removing a node removes its connections in the same step, and
    each node's connection_ids mirrors its outgoing connections.
    """

    def __init__(self):
        self.nodes: dict[str, FunnelNode] = {}
        self.connections: dict[str, Connection] = {}
        # Ids handed out during this graph's lifetime, including removed ones
        self._used_ids: set[str] = set()

    def __len__(self) -> int:
        return len(self.nodes)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node: FunnelNode) -> Optional[FunnelNode]:
        """
        Add a node to the graph.

        Returns None (and changes nothing) if the id is already in use or
        was used earlier by a removed node or connection.
        """
        if not node.id or node.id in self._used_ids:
            logger.warning(f"Rejected node with duplicate id '{node.id}'")
            return None

        node.connection_ids = []
        self.nodes[node.id] = node
        self._used_ids.add(node.id)
        logger.debug(f"Added node {node.id} ({node.type})")
        return node

    def create_node(self, template_key: str, position: Position, **overrides) -> Optional[FunnelNode]:
        """Create a node from a catalog template and add it."""
        from .templates import node_from_template

        node = node_from_template(template_key, position, node_id=self.new_id(template_key), **overrides)
        if node is None:
            return None
        return self.add_node(node)

    def remove_node(self, node_id: str) -> Optional[FunnelNode]:
        """Remove a node and every connection touching it."""
        if node_id not in self.nodes:
            return None

        incident = self.incident_edges(node_id)
        touched = {edge.from_id for edge in incident}
        for edge in incident:
            del self.connections[edge.id]

        node = self.nodes.pop(node_id)
        touched.discard(node_id)
        self._refresh_connection_ids(*touched)

        logger.debug(f"Removed node {node_id} and {len(incident)} connection(s)")
        return node

    def update_node(self, node_id: str, **fields) -> bool:
        """
        Replace fields on a node.

        Only NODE_FIELDS may be replaced; id and connection_ids cannot.
        """
        node = self.nodes.get(node_id)
        if node is None:
            return False

        unknown = set(fields) - set(NODE_FIELDS)
        if unknown:
            logger.warning(f"Rejected update of {sorted(unknown)} on node {node_id}")
            return False

        if "category" in fields and not isinstance(fields["category"], NodeCategory):
            return False

        for name, value in fields.items():
            setattr(node, name, value)
        return True

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        """Set a node's top-left position."""
        return self.update_node(node_id, position=Position(x, y))

    def get_node(self, node_id: str) -> Optional[FunnelNode]:
        """Get a node by ID."""
        return self.nodes.get(node_id)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def add_edge(
        self,
        from_id: str,
        to_id: str,
        label: Optional[str] = None,
        style: EdgeStyle = DEFAULT_EDGE_STYLE,
        curvature: float = DEFAULT_CURVATURE,
        edge_id: Optional[str] = None
    ) -> Optional[Connection]:
        """
        Connect two nodes.

        Returns None without touching the graph for self-loops, unknown
        endpoints, an invalid curvature or a reused id.
        """
        if from_id == to_id:
            logger.warning(f"Rejected self-loop on node {from_id}")
            return None
        if from_id not in self.nodes or to_id not in self.nodes:
            logger.warning(f"Rejected connection {from_id} -> {to_id}: unknown node")
            return None
        if not is_valid_curvature(curvature):
            return None

        if edge_id is None:
            edge_id = self.new_id("conn")
        elif edge_id in self._used_ids:
            logger.warning(f"Rejected connection with duplicate id '{edge_id}'")
            return None

        edge = Connection(
            id=edge_id,
            from_id=from_id,
            to_id=to_id,
            label=label,
            style=style,
            curvature=float(curvature),
        )
        self.connections[edge.id] = edge
        self._used_ids.add(edge.id)
        self._refresh_connection_ids(from_id)

        logger.debug(f"Added connection {edge.id}: {from_id} -> {to_id}")
        return edge

    def remove_edge(self, edge_id: str) -> Optional[Connection]:
        """Remove a connection."""
        edge = self.connections.pop(edge_id, None)
        if edge is None:
            return None
        self._refresh_connection_ids(edge.from_id)
        logger.debug(f"Removed connection {edge_id}")
        return edge

    def update_edge(self, edge_id: str, **fields) -> bool:
        """
        Replace fields on a connection.

        Endpoint changes follow the same rules as add_edge.
        """
        edge = self.connections.get(edge_id)
        if edge is None:
            return False

        unknown = set(fields) - set(EDGE_FIELDS)
        if unknown:
            logger.warning(f"Rejected update of {sorted(unknown)} on connection {edge_id}")
            return False

        if "style" in fields and not isinstance(fields["style"], EdgeStyle):
            return False
        if "curvature" in fields and not is_valid_curvature(fields["curvature"]):
            logger.warning(f"Rejected curvature {fields['curvature']!r} on connection {edge_id}")
            return False
        if "control_points" in fields:
            points = fields["control_points"]
            if points is not None and len(points) != 2:
                return False

        new_from = fields.get("from_id", edge.from_id)
        new_to = fields.get("to_id", edge.to_id)
        if new_from == new_to or new_from not in self.nodes or new_to not in self.nodes:
            logger.warning(f"Rejected endpoint change on connection {edge_id}")
            return False

        old_from = edge.from_id
        for name, value in fields.items():
            if name == "curvature":
                value = float(value)
            setattr(edge, name, value)

        self._refresh_connection_ids(old_from, edge.from_id)
        return True

    def get_edge(self, edge_id: str) -> Optional[Connection]:
        """Get a connection by ID."""
        return self.connections.get(edge_id)

    def incident_edges(self, node_id: str) -> list[Connection]:
        """All connections that start or end at a node."""
        return [
            edge for edge in self.connections.values()
            if edge.from_id == node_id or edge.to_id == node_id
        ]

    def outgoing_edges(self, node_id: str) -> list[Connection]:
        return [edge for edge in self.connections.values() if edge.from_id == node_id]

    def connection_ids(self, node_id: str) -> list[str]:
        """Targets of a node's outgoing connections, in creation order."""
        return [edge.to_id for edge in self.outgoing_edges(node_id)]

    # ------------------------------------------------------------------
    # Whole-graph operations
    # ------------------------------------------------------------------

    def new_id(self, prefix: str) -> str:
        """Generate an id never used in this graph."""
        while True:
            candidate = f"{prefix}-{uuid.uuid4().hex[:8]}"
            if candidate not in self._used_ids:
                return candidate

    def _refresh_connection_ids(self, *node_ids: str):
        for node_id in node_ids:
            node = self.nodes.get(node_id)
            if node is not None:
                node.connection_ids = self.connection_ids(node_id)

    def refresh_derived(self):
        """Recompute connection_ids on every node."""
        self._refresh_connection_ids(*self.nodes.keys())

    def validate(self) -> list[str]:
        """
        Check structural invariants.

        Returns:
            List of problems; empty when the graph is consistent
        """
        problems = []
        for edge in self.connections.values():
            if edge.from_id not in self.nodes:
                problems.append(f"connection {edge.id} starts at unknown node {edge.from_id}")
            if edge.to_id not in self.nodes:
                problems.append(f"connection {edge.id} ends at unknown node {edge.to_id}")
            if edge.from_id == edge.to_id:
                problems.append(f"connection {edge.id} is a self-loop")
            if not is_valid_curvature(edge.curvature):
                problems.append(f"connection {edge.id} has invalid curvature {edge.curvature!r}")
        if set(self.nodes) & set(self.connections):
            problems.append("node and connection ids overlap")
        for node in self.nodes.values():
            if node.connection_ids != self.connection_ids(node.id):
                problems.append(f"node {node.id} has stale connection_ids")
        return problems

    def replace_with(self, other: "GraphModel"):
        """
        Take over another graph's nodes and connections wholesale.

        Starts a new id lifetime; the other graph should not be used after.
        """
        self.nodes = other.nodes
        self.connections = other.connections
        self._used_ids = set(self.nodes) | set(self.connections)
        self.refresh_derived()
        logger.debug(f"Graph replaced: {len(self.nodes)} nodes, {len(self.connections)} connections")

    def clear(self):
        """Remove all nodes and connections."""
        self.nodes = {}
        self.connections = {}
        self._used_ids = set()

    def stats(self) -> FunnelStats:
        return FunnelStats(
            nodes=len(self.nodes),
            connections=len(self.connections),
            automated=sum(1 for n in self.nodes.values() if n.is_automated),
            labeled=sum(1 for c in self.connections.values() if c.label),
        )
