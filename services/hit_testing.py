"""
Hit testing on the funnel canvas.

Resolves a canvas point to the element under it. Nodes are tried
topmost first, each node's ports before its body, so a node covers
whatever lies beneath it. Later nodes are drawn above earlier ones and
the selected node is drawn above all. Nodes win over connections, and
within connections a label pill wins over the line itself.
"""

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from models import FunnelNode, GraphModel
from .connection_router import (
    EdgeRoute, PORT_RADIUS, incoming_port, node_contains, outgoing_port
)


class HitKind(Enum):
    """What a canvas point landed on."""
    OUTGOING_PORT = auto()
    INCOMING_PORT = auto()
    NODE = auto()
    EDGE_LABEL = auto()
    EDGE = auto()
    CANVAS = auto()


@dataclass
class HitResult:
    """Element found under a canvas point."""
    kind: HitKind = HitKind.CANVAS
    node_id: Optional[str] = None
    edge_id: Optional[str] = None

    @property
    def is_port(self) -> bool:
        return self.kind in (HitKind.OUTGOING_PORT, HitKind.INCOMING_PORT)

    @property
    def is_node(self) -> bool:
        """Port or body of a node."""
        return self.node_id is not None

    @property
    def is_edge(self) -> bool:
        return self.kind in (HitKind.EDGE, HitKind.EDGE_LABEL)

    @property
    def is_canvas(self) -> bool:
        return self.kind == HitKind.CANVAS


def nodes_top_down(graph: GraphModel, selected_node_id: Optional[str] = None) -> list[FunnelNode]:
    """Nodes in picking order, topmost first."""
    ordered = list(reversed(list(graph.nodes.values())))
    if selected_node_id in graph.nodes:
        selected = graph.nodes[selected_node_id]
        ordered.remove(selected)
        ordered.insert(0, selected)
    return ordered


def _within(point: tuple[float, float], x: float, y: float, radius: float) -> bool:
    return math.hypot(x - point[0], y - point[1]) <= radius


def hit_test(
    graph: GraphModel,
    x: float,
    y: float,
    routes: Optional[dict[str, EdgeRoute]] = None,
    selected_node_id: Optional[str] = None
) -> HitResult:
    """
    Find what lies under a canvas point.

    Args:
        graph: Graph being edited
        x, y: Canvas coordinates
        routes: Routed connections, as returned by ConnectionRouter.route_all
        selected_node_id: Node drawn above all others

    Returns:
        HitResult describing the element, CANVAS if nothing was hit
    """
    # Ports overhang the node edge, so a node's ports are tried before its
    # body, but a node drawn above covers everything beneath it
    for node in nodes_top_down(graph, selected_node_id):
        if _within(outgoing_port(node), x, y, PORT_RADIUS):
            return HitResult(HitKind.OUTGOING_PORT, node_id=node.id)
        if _within(incoming_port(node), x, y, PORT_RADIUS):
            return HitResult(HitKind.INCOMING_PORT, node_id=node.id)
        if node_contains(node, x, y):
            return HitResult(HitKind.NODE, node_id=node.id)

    if routes:
        # Connections drawn later sit on top
        top_down = list(reversed(list(routes.values())))
        for route in top_down:
            if route.pill is not None and route.pill.contains(x, y):
                return HitResult(HitKind.EDGE_LABEL, edge_id=route.edge_id)
        for route in top_down:
            if route.hit(x, y):
                return HitResult(HitKind.EDGE, edge_id=route.edge_id)

    return HitResult(HitKind.CANVAS)
