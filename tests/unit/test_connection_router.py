"""
Unit tests for connection routing.

Tests:
- Port positions
- Straight, curved and orthogonal routes
- Label anchors, normals and pills
- Hit paths and SVG export
"""

import math

import pytest

from models import Connection, EdgeStyle, FunnelNode, GraphModel, Position
from services.connection_router import (
    ConnectionRouter, LabelPill, MAX_CURVE_OFFSET, NODE_HEIGHT, NODE_WIDTH,
    curve_controls, incoming_port, node_contains, outgoing_port,
    route_points, up_normal
)


class TestPorts:

    def test_port_positions(self):
        node = FunnelNode(position=Position(100, 150))
        assert outgoing_port(node) == (340, 230)
        assert incoming_port(node) == (100, 230)

    def test_node_contains(self):
        node = FunnelNode(position=Position(0, 0))
        assert node_contains(node, 0, 0)
        assert node_contains(node, NODE_WIDTH, NODE_HEIGHT)
        assert not node_contains(node, NODE_WIDTH + 1, 10)


class TestUpNormal:

    def test_horizontal_tangent_points_up(self):
        assert up_normal((10, 0)) == pytest.approx((0, -1))
        assert up_normal((-10, 0)) == pytest.approx((0, -1))

    def test_diagonal_tangent_points_up(self):
        nx, ny = up_normal((100, 100))
        assert ny < 0
        assert nx == pytest.approx(math.sqrt(0.5))

    def test_vertical_tangent_points_left(self):
        assert up_normal((0, 50)) == pytest.approx((-1, 0))
        assert up_normal((0, -50)) == pytest.approx((-1, 0))

    def test_zero_tangent(self):
        assert up_normal((0, 0)) == (0.0, -1.0)


class TestCurvedRoutes:

    def test_controls_follow_dominant_axis(self):
        c1, c2 = curve_controls((0, 0), (100, 10), 0.5)
        assert c1[1] == 0 and c2[1] == 10
        c1, c2 = curve_controls((0, 0), (0, 300), 0.5)
        assert c1 == (0, 150) and c2 == (0, 150)

    def test_offset_is_capped(self):
        c1, c2 = curve_controls((0, 0), (1000, 0), 1.0)
        assert c1 == (MAX_CURVE_OFFSET, 0)
        assert c2 == (1000 - MAX_CURVE_OFFSET, 0)

    def test_curved_route(self):
        route = route_points((340, 230), (400, 230), EdgeStyle.CURVED, 0.5, label="Go")
        assert route.points == [(340, 230), (370, 230), (370, 230), (400, 230)]
        assert route.label_anchor == pytest.approx((370, 230))
        assert route.label_normal == pytest.approx((0, -1))

    def test_label_pill_geometry(self):
        route = route_points((340, 230), (400, 230), EdgeStyle.CURVED, 0.5, label="Go")
        pill = route.pill
        assert pill.width == 16
        assert pill.height == 24
        assert pill.center == pytest.approx((370, 200))

    def test_no_pill_without_label(self):
        assert route_points((0, 0), (100, 0)).pill is None
        assert route_points((0, 0), (100, 0), label="").pill is None

    def test_explicit_control_points(self):
        route = route_points(
            (0, 0), (100, 0), EdgeStyle.CURVED,
            control_points=[Position(10, -50), Position(90, -50)],
        )
        assert route.points[1] == (10, -50)
        assert route.points[2] == (90, -50)


class TestStraightAndOrthogonal:

    def test_straight_route(self):
        route = route_points((240, 80), (800, 80), EdgeStyle.STRAIGHT)
        assert route.points == [(240, 80), (800, 80)]
        assert route.label_anchor == (520, 80)

    def test_curvature_ignored_for_straight(self):
        a = route_points((0, 0), (100, 50), EdgeStyle.STRAIGHT, 0.1)
        b = route_points((0, 0), (100, 50), EdgeStyle.STRAIGHT, 0.9)
        assert a.points == b.points

    def test_orthogonal_route(self):
        route = route_points((240, 80), (400, 300), EdgeStyle.ORTHOGONAL)
        assert route.points == [(240, 80), (320, 80), (320, 300), (400, 300)]
        # Arc-length midpoint falls on the vertical segment
        assert route.label_anchor == pytest.approx((320, 190))
        assert route.label_normal == pytest.approx((-1, 0))

    def test_orthogonal_drops_zero_length_segments(self):
        route = route_points((0, 100), (200, 100), EdgeStyle.ORTHOGONAL)
        assert route.points == [(0, 100), (100, 100), (200, 100)]
        assert route.label_anchor == pytest.approx((100, 100))

    def test_orthogonal_degenerate(self):
        route = route_points((5, 5), (5, 5), EdgeStyle.ORTHOGONAL)
        assert route.points == [(5, 5)]
        assert route.label_normal == (0.0, -1.0)


class TestHitPath:

    def test_hit_within_half_stroke(self):
        route = route_points((340, 230), (400, 230))
        assert route.hit(370, 240)
        assert not route.hit(370, 243)

    def test_hit_custom_width(self):
        route = route_points((0, 0), (100, 0), EdgeStyle.STRAIGHT)
        assert route.hit(50, 4, width=10)
        assert not route.hit(50, 6, width=10)

    def test_distance_beyond_endpoints(self):
        route = route_points((0, 0), (100, 0), EdgeStyle.STRAIGHT)
        assert route.distance_to(-30, 40) == pytest.approx(50)

    def test_pill_contains(self):
        pill = LabelPill(x=0, y=0, width=40)
        assert pill.contains(20, 12)
        assert not pill.contains(41, 12)


class TestSvg:

    def test_curve_path(self):
        route = route_points((340, 230), (400, 230))
        assert route.to_svg() == "M 340 230 C 370 230 370 230 400 230"

    def test_polyline_path(self):
        route = route_points((0, 100), (200, 100), EdgeStyle.ORTHOGONAL)
        assert route.to_svg() == "M 0 100 L 100 100 L 200 100"

    def test_fractional_coordinates(self):
        route = route_points((0.126, -0.001), (10.5, 3), EdgeStyle.STRAIGHT)
        assert route.to_svg() == "M 0.13 0 L 10.5 3"


class TestConnectionRouter:

    def test_route_uses_ports(self, router, two_node_graph):
        edge = two_node_graph.add_edge("a", "b", label="Go")
        route = router.route(edge, two_node_graph.get_node("a"), two_node_graph.get_node("b"))
        assert route.start == (340, 230)
        assert route.end == (400, 230)
        assert route.edge_id == edge.id
        assert route.label == "Go"

    def test_route_all_skips_dangling(self, router, chain_graph):
        chain_graph.connections["bad"] = Connection(id="bad", from_id="a", to_id="ghost")
        routes = router.route_all(chain_graph)
        assert set(routes) == {"e1", "e2"}

    def test_route_follows_node_moves(self, router, chain_graph):
        before = router.route_all(chain_graph)["e1"].end
        chain_graph.move_node("b", 500, 100)
        after = router.route_all(chain_graph)["e1"].end
        assert before == (400, 80)
        assert after == (500, 180)

    def test_preview(self, router, two_node_graph):
        route = router.preview(two_node_graph.get_node("a"), (600, 400))
        assert route.style == EdgeStyle.STRAIGHT
        assert route.points == [(340, 230), (600, 400)]

    def test_export_svg(self, router, chain_graph):
        paths = router.export_svg(chain_graph)
        assert set(paths) == {"e1", "e2"}
        assert paths["e1"].startswith("M 240 80 C")
        assert paths["e2"] == "M 640 80 L 800 80"

    def test_export_empty(self, router):
        assert router.export_svg(GraphModel()) == {}
