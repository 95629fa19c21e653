"""
Connection routing.

Computes the drawn path of every connection from its endpoint nodes'
ports, the anchor and pill of its label, and the wide hit path used for
pointer picking. Paths can be exported as SVG path data.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from models import (
    Connection, EdgeStyle, FunnelNode, GraphModel, Position, DEFAULT_CURVATURE
)

logger = logging.getLogger(__name__)

# Node box geometry in canvas pixels
NODE_WIDTH = 240
NODE_HEIGHT = 160
PORT_OFFSET_Y = 80
PORT_RADIUS = 12

# Strokes
VISIBLE_STROKE_WIDTH = 2
HOVER_STROKE_WIDTH = 3
HIT_STROKE_WIDTH = 24

# Curved routes never bend further than this
MAX_CURVE_OFFSET = 200

# Labels
LABEL_OFFSET = 30
LABEL_CHAR_WIDTH = 8
LABEL_HEIGHT = 24
LABEL_RADIUS = 12

# Line segments used to approximate a cubic for distance queries
CURVE_SAMPLES = 32

Point = tuple[float, float]


def outgoing_port(node: FunnelNode) -> Point:
    """Center of the node's outgoing port (right side)."""
    return (node.position.x + NODE_WIDTH, node.position.y + PORT_OFFSET_Y)


def incoming_port(node: FunnelNode) -> Point:
    """Center of the node's incoming port (left side)."""
    return (node.position.x, node.position.y + PORT_OFFSET_Y)


def node_contains(node: FunnelNode, x: float, y: float) -> bool:
    """Whether a canvas point lies inside the node box."""
    return (node.position.x <= x <= node.position.x + NODE_WIDTH and
            node.position.y <= y <= node.position.y + NODE_HEIGHT)


def _fmt(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _lerp(p: Point, q: Point, t: float) -> Point:
    return (p[0] + (q[0] - p[0]) * t, p[1] + (q[1] - p[1]) * t)


def _distance_to_segment(px: float, py: float, a: Point, b: Point) -> float:
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px - a[0], py - a[1])
    t = ((px - a[0]) * dx + (py - a[1]) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (a[0] + t * dx), py - (a[1] + t * dy))


def cubic_point(p0: Point, c1: Point, c2: Point, p3: Point, t: float) -> Point:
    """Point on a cubic Bezier at parameter t."""
    u = 1 - t
    a = u * u * u
    b = 3 * u * u * t
    c = 3 * u * t * t
    d = t * t * t
    return (
        a * p0[0] + b * c1[0] + c * c2[0] + d * p3[0],
        a * p0[1] + b * c1[1] + c * c2[1] + d * p3[1],
    )


def cubic_tangent(p0: Point, c1: Point, c2: Point, p3: Point, t: float) -> Point:
    """First derivative of a cubic Bezier at parameter t."""
    u = 1 - t
    a = 3 * u * u
    b = 6 * u * t
    c = 3 * t * t
    return (
        a * (c1[0] - p0[0]) + b * (c2[0] - c1[0]) + c * (p3[0] - c2[0]),
        a * (c1[1] - p0[1]) + b * (c2[1] - c1[1]) + c * (p3[1] - c2[1]),
    )


def up_normal(tangent: Point) -> Point:
    """
    Unit normal of a tangent that points up-screen (negative y).

    Vertical tangents get the left-pointing normal; a zero tangent gets
    straight up.
    """
    tx, ty = tangent
    length = math.hypot(tx, ty)
    if length == 0:
        return (0.0, -1.0)
    nx, ny = -ty / length, tx / length
    if ny > 0 or (ny == 0 and nx > 0):
        nx, ny = -nx, -ny
    return (nx, ny)


def curve_controls(a: Point, b: Point, curvature: float) -> tuple[Point, Point]:
    """
    Control points of a curved route.

    The offset grows with the endpoint distance, capped at MAX_CURVE_OFFSET,
    and is applied along the dominant axis.
    """
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    strength = min(math.hypot(dx, dy) * curvature, MAX_CURVE_OFFSET)
    if abs(dx) > abs(dy):
        return (a[0] + strength, a[1]), (b[0] - strength, b[1])
    return (a[0], a[1] + strength), (b[0], b[1] - strength)


@dataclass
class LabelPill:
    """Rounded rectangle behind a connection label."""
    x: float
    y: float
    width: float
    height: float = LABEL_HEIGHT
    radius: float = LABEL_RADIUS

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, px: float, py: float) -> bool:
        return (self.x <= px <= self.x + self.width and
                self.y <= py <= self.y + self.height)


@dataclass
class EdgeRoute:
    """
    Geometry of one routed connection.

    For straight and orthogonal routes `points` are polyline vertices; for
    curved routes they are the cubic's start, two controls and end.
    """
    edge_id: str
    style: EdgeStyle
    points: list[Point] = field(default_factory=list)
    label_anchor: Point = (0.0, 0.0)
    label_normal: Point = (0.0, -1.0)
    label: Optional[str] = None
    pill: Optional[LabelPill] = None

    @property
    def start(self) -> Point:
        return self.points[0]

    @property
    def end(self) -> Point:
        return self.points[-1]

    @property
    def is_curve(self) -> bool:
        return self.style == EdgeStyle.CURVED

    def polyline(self) -> list[Point]:
        """Vertices approximating the route."""
        if not self.is_curve:
            return list(self.points)
        p0, c1, c2, p3 = self.points
        return [cubic_point(p0, c1, c2, p3, i / CURVE_SAMPLES) for i in range(CURVE_SAMPLES + 1)]

    def distance_to(self, x: float, y: float) -> float:
        """Shortest distance from a canvas point to the route."""
        vertices = self.polyline()
        if len(vertices) == 1:
            return math.hypot(x - vertices[0][0], y - vertices[0][1])
        return min(
            _distance_to_segment(x, y, vertices[i], vertices[i + 1])
            for i in range(len(vertices) - 1)
        )

    def hit(self, x: float, y: float, width: float = HIT_STROKE_WIDTH) -> bool:
        """Whether a point falls on the hit path of the given stroke width."""
        return self.distance_to(x, y) <= width / 2

    def to_svg(self) -> str:
        """SVG path data for the route."""
        first = self.points[0]
        parts = [f"M {_fmt(first[0])} {_fmt(first[1])}"]
        if self.is_curve:
            _, c1, c2, p3 = self.points
            parts.append(
                f"C {_fmt(c1[0])} {_fmt(c1[1])} {_fmt(c2[0])} {_fmt(c2[1])} "
                f"{_fmt(p3[0])} {_fmt(p3[1])}"
            )
        else:
            for px, py in self.points[1:]:
                parts.append(f"L {_fmt(px)} {_fmt(py)}")
        return " ".join(parts)


def _polyline_midpoint(points: list[Point]) -> tuple[Point, Point]:
    """Arc-length midpoint of a polyline and the tangent there."""
    lengths = [math.dist(points[i], points[i + 1]) for i in range(len(points) - 1)]
    total = sum(lengths)
    if total == 0:
        return points[0], (0.0, 0.0)

    remaining = total / 2
    for i, length in enumerate(lengths):
        if remaining <= length:
            a, b = points[i], points[i + 1]
            return _lerp(a, b, remaining / length), (b[0] - a[0], b[1] - a[1])
        remaining -= length

    a, b = points[-2], points[-1]
    return b, (b[0] - a[0], b[1] - a[1])


def _drop_zero_segments(points: list[Point]) -> list[Point]:
    kept = [points[0]]
    for point in points[1:]:
        if point != kept[-1]:
            kept.append(point)
    return kept


def label_pill(label: str, anchor: Point, normal: Point) -> LabelPill:
    """Pill sized to the label, offset from the anchor along the normal."""
    width = LABEL_CHAR_WIDTH * len(label)
    cx = anchor[0] + normal[0] * LABEL_OFFSET
    cy = anchor[1] + normal[1] * LABEL_OFFSET
    return LabelPill(x=cx - width / 2, y=cy - LABEL_HEIGHT / 2, width=width)


def route_points(
    a: Point,
    b: Point,
    style: EdgeStyle = EdgeStyle.CURVED,
    curvature: float = DEFAULT_CURVATURE,
    control_points: Optional[list[Position]] = None,
    edge_id: str = "",
    label: Optional[str] = None
) -> EdgeRoute:
    """
    Route between two port centers.

    Curvature only affects curved routes; explicit control points replace
    the computed ones.
    """
    if style == EdgeStyle.STRAIGHT:
        points = [a, b]
        anchor = _lerp(a, b, 0.5)
        tangent = (b[0] - a[0], b[1] - a[1])
    elif style == EdgeStyle.ORTHOGONAL:
        mx = (a[0] + b[0]) / 2
        points = _drop_zero_segments([a, (mx, a[1]), (mx, b[1]), b])
        if len(points) == 1:
            anchor, tangent = points[0], (0.0, 0.0)
        else:
            anchor, tangent = _polyline_midpoint(points)
    else:
        if control_points and len(control_points) == 2:
            c1 = control_points[0].to_tuple()
            c2 = control_points[1].to_tuple()
        else:
            c1, c2 = curve_controls(a, b, curvature)
        points = [a, c1, c2, b]
        anchor = cubic_point(a, c1, c2, b, 0.5)
        tangent = cubic_tangent(a, c1, c2, b, 0.5)

    normal = up_normal(tangent)
    route = EdgeRoute(
        edge_id=edge_id,
        style=style,
        points=points,
        label_anchor=anchor,
        label_normal=normal,
        label=label,
    )
    if label:
        route.pill = label_pill(label, anchor, normal)
    return route


class ConnectionRouter:
    """Routes connections of a graph for rendering and hit-testing."""

    def route(self, edge: Connection, source: FunnelNode, target: FunnelNode) -> EdgeRoute:
        """Route one connection between its endpoint nodes."""
        return route_points(
            outgoing_port(source),
            incoming_port(target),
            style=edge.style,
            curvature=edge.curvature,
            control_points=edge.control_points,
            edge_id=edge.id,
            label=edge.label,
        )

    def route_all(self, graph: GraphModel) -> dict[str, EdgeRoute]:
        """
        Route every connection.

        Connections whose endpoint node is missing are skipped with a
        warning rather than failing the whole render.
        """
        routes = {}
        for edge in graph.connections.values():
            source = graph.nodes.get(edge.from_id)
            target = graph.nodes.get(edge.to_id)
            if source is None or target is None:
                logger.warning(
                    f"Skipping connection {edge.id}: missing endpoint "
                    f"{edge.from_id if source is None else edge.to_id}"
                )
                continue
            routes[edge.id] = self.route(edge, source, target)
        return routes

    def preview(self, source: FunnelNode, cursor: Point) -> EdgeRoute:
        """Route of the connection being drawn from a node to the cursor."""
        return route_points(outgoing_port(source), cursor, style=EdgeStyle.STRAIGHT)

    def export_svg(self, graph: GraphModel) -> dict[str, str]:
        """SVG path data of every routable connection, keyed by id."""
        return {edge_id: route.to_svg() for edge_id, route in self.route_all(graph).items()}
