"""
Unit tests for input dispatch.

Tests:
- Pointer gestures (connect, drag, pan, select)
- Keyboard shortcuts and wheel zoom
- Node placement and custom nodes
- Rejected mutations reported as notices
"""

import pytest

from models import EdgeStyle, Position
from services.drag_controller import DragMode
from services.input_controller import (
    Button, Command, InputController, KeyEvent, Modifier, PointerEvent,
    WheelEvent
)


def down(controller, x, y, **kwargs):
    return controller.pointer_down(PointerEvent(x, y, **kwargs))


def move(controller, x, y):
    return controller.pointer_move(PointerEvent(x, y))


def up(controller, x, y):
    return controller.pointer_up(PointerEvent(x, y))


class TestConnectionGesture:

    def test_draw_connection(self, controller):
        assert down(controller, 340, 230) == Command.START_CONNECTION
        assert controller.mode == DragMode.DRAWING_CONNECTION

        assert move(controller, 500, 200) == Command.TRACK_CONNECTION
        assert controller.drag.cursor == (500, 200)

        assert up(controller, 400, 230) == Command.COMPLETE_CONNECTION
        edges = list(controller.graph.connections.values())
        assert len(edges) == 1
        assert (edges[0].from_id, edges[0].to_id) == ("a", "b")
        assert edges[0].style == EdgeStyle.CURVED
        assert edges[0].curvature == 0.5
        assert controller.graph.get_node("a").connection_ids == ["b"]
        assert controller.mode == DragMode.IDLE

    def test_release_on_body_completes(self, controller):
        down(controller, 340, 230)
        assert up(controller, 500, 200) == Command.COMPLETE_CONNECTION
        assert len(controller.graph.connections) == 1

    def test_release_on_canvas_keeps_drawing(self, controller):
        down(controller, 340, 230)
        assert up(controller, 900, 900) == Command.NONE
        assert controller.drag.is_drawing

    def test_click_canvas_cancels(self, controller):
        down(controller, 340, 230)
        up(controller, 900, 900)
        assert down(controller, 900, 900) == Command.CANCEL_CONNECTION
        assert controller.mode == DragMode.IDLE
        assert controller.graph.connections == {}

    def test_click_source_keeps_drawing(self, controller):
        down(controller, 340, 230)
        up(controller, 900, 900)
        assert down(controller, 200, 200) == Command.TRACK_CONNECTION
        assert controller.drag.is_drawing

    def test_click_target_completes(self, controller):
        down(controller, 340, 230)
        up(controller, 900, 900)
        assert down(controller, 500, 200) == Command.COMPLETE_CONNECTION

    def test_escape_cancels(self, controller):
        down(controller, 340, 230)
        assert controller.key_down(KeyEvent("Escape")) == Command.CANCEL_CONNECTION
        assert controller.mode == DragMode.IDLE

    def test_rejected_connection_is_noticed(self, controller, monkeypatch):
        received = []
        controller.on_notice = received.append
        monkeypatch.setattr(controller.graph, "add_edge", lambda *a, **k: None)

        down(controller, 340, 230)
        assert up(controller, 400, 230) == Command.CANCEL_CONNECTION
        assert controller.mode == DragMode.IDLE
        assert received == ["Could not connect a to b"]
        assert controller.notices == received

    def test_starting_clears_selection(self, controller):
        controller.selection.select_node("b")
        down(controller, 340, 230)
        assert controller.selection.is_empty


class TestNodeDragAndSelection:

    def test_drag_node(self, controller):
        assert down(controller, 200, 200) == Command.START_NODE_DRAG
        assert controller.selection.selected_node_id == "a"

        assert move(controller, 250, 260) == Command.MOVE_NODE
        assert controller.graph.get_node("a").position == Position(150, 210)

        assert up(controller, 250, 260) == Command.COMMIT_NODE_DRAG
        assert controller.mode == DragMode.IDLE

    def test_incoming_port_selects_only(self, controller):
        assert down(controller, 400, 230) == Command.SELECT_NODE
        assert controller.selection.selected_node_id == "b"
        assert controller.mode == DragMode.IDLE

    def test_click_canvas_clears_selection(self, controller):
        controller.selection.select_node("a")
        assert down(controller, 900, 900) == Command.CLEAR_SELECTION
        assert controller.selection.is_empty

    def test_click_edge_label_edits_edge(self, controller):
        edge = controller.graph.add_edge("a", "b", label="Go")
        assert down(controller, 370, 200) == Command.EDIT_EDGE
        assert controller.selection.editing_edge_id == edge.id

    def test_click_edge_line_edits_edge(self, controller):
        edge = controller.graph.add_edge("a", "b")
        assert down(controller, 370, 235) == Command.EDIT_EDGE
        assert controller.selection.editing_edge_id == edge.id

    def test_hover_tracked_when_idle(self, controller):
        assert move(controller, 200, 200) == Command.NONE
        assert controller.hover.node_id == "a"

    def test_secondary_button_ignored(self, controller):
        assert down(controller, 200, 200, button=Button.SECONDARY) == Command.NONE


class TestPan:

    def test_middle_button_pans(self, controller):
        assert down(controller, 1000, 1000, button=Button.MIDDLE) == Command.START_PAN
        assert move(controller, 1010, 1020) == Command.PAN
        assert (controller.viewport.x, controller.viewport.y) == (10, 20)
        assert up(controller, 1010, 1020) == Command.END_PAN

    def test_middle_button_over_node_pans(self, controller):
        assert down(controller, 200, 200, button=Button.MIDDLE) == Command.START_PAN

    def test_alt_drag_on_canvas_pans(self, controller):
        assert down(controller, 900, 900, modifiers=Modifier.ALT) == Command.START_PAN


class TestCoordinates:

    def test_hit_uses_viewport_and_origin(self, controller):
        controller.viewport.zoom = 2.0
        controller.origin = (100, 50)
        assert down(controller, 780, 510) == Command.START_CONNECTION
        assert controller.drag.from_node_id == "a"


class TestKeyboardAndWheel:

    def test_delete_selected_node(self, controller):
        controller.graph.add_edge("a", "b")
        controller.selection.select_node("a")
        assert controller.key_down(KeyEvent("Delete")) == Command.DELETE_NODE
        assert list(controller.graph.nodes) == ["b"]
        assert controller.graph.connections == {}
        assert controller.selection.is_empty

    def test_backspace_deletes_edge(self, controller):
        edge = controller.graph.add_edge("a", "b")
        controller.selection.edit_edge(edge.id)
        assert controller.key_down(KeyEvent("Backspace")) == Command.DELETE_EDGE
        assert controller.graph.connections == {}
        assert len(controller.graph.nodes) == 2

    def test_delete_without_selection(self, controller):
        assert controller.key_down(KeyEvent("Delete")) == Command.NONE

    def test_escape_clears_selection(self, controller):
        controller.selection.select_node("a")
        assert controller.key_down(KeyEvent("Escape")) == Command.CLEAR_SELECTION
        assert controller.selection.is_empty

    @pytest.mark.parametrize("modifier", [Modifier.CTRL, Modifier.META])
    def test_save_shortcut(self, controller, modifier):
        calls = []
        controller.on_save_requested = lambda: calls.append(True)
        assert controller.key_down(KeyEvent("s", modifier)) == Command.REQUEST_SAVE
        assert calls == [True]

    def test_undo_ignored(self, controller):
        assert controller.key_down(KeyEvent("z", Modifier.CTRL)) == Command.NONE
        assert len(controller.graph.nodes) == 2

    def test_wheel_zoom(self, controller):
        assert controller.wheel(WheelEvent(-120, Modifier.CTRL)) == Command.ZOOM
        assert controller.viewport.zoom == pytest.approx(1.1)
        controller.wheel(WheelEvent(120, Modifier.META))
        assert controller.viewport.zoom == pytest.approx(1.0)

    def test_wheel_without_modifier_scrolls(self, controller):
        assert controller.wheel(WheelEvent(-120)) == Command.NONE
        assert controller.viewport.zoom == 1.0

    def test_wheel_zoom_clamped(self, controller):
        for _ in range(30):
            controller.wheel(WheelEvent(-120, Modifier.CTRL))
        assert controller.viewport.zoom == 2.0


class TestEditingCommands:

    def test_add_node_at_view_center(self, empty_controller):
        node = empty_controller.add_node_from_template("email", view_center=(600, 400))
        assert node.position == Position(480, 320)
        assert node.id.startswith("email-")
        assert empty_controller.selection.selected_node_id == node.id

    def test_add_node_default_position(self, empty_controller):
        node = empty_controller.add_node_from_template("whatsapp")
        assert node.position == Position(200, 200)

    def test_add_node_cancels_draw(self, controller):
        down(controller, 340, 230)
        controller.add_node_from_template("email")
        assert controller.mode == DragMode.IDLE

    def test_unknown_template(self, empty_controller):
        assert empty_controller.add_node_from_template("fax") is None
        assert empty_controller.notices == ["Unknown node type 'fax'"]
        assert empty_controller.graph.nodes == {}

    def test_add_custom_node(self, empty_controller):
        node = empty_controller.add_custom_node("  Webinar ", icon="calendar")
        assert node.label == "Webinar"
        assert node.id.startswith("custom-")
        assert node.id in empty_controller.graph.nodes

    def test_custom_node_needs_label(self, empty_controller):
        assert empty_controller.add_custom_node("   ") is None
        assert empty_controller.notices == ["A custom node needs a name"]

    def test_delete_source_while_drawing(self, controller):
        down(controller, 340, 230)
        assert controller.delete_node("a") == Command.DELETE_NODE
        assert controller.mode == DragMode.IDLE

    def test_delete_unknown(self, controller):
        assert controller.delete_node("ghost") == Command.NONE
        assert controller.delete_edge("ghost") == Command.NONE

    def test_select_and_edit_by_id(self, controller):
        edge = controller.graph.add_edge("a", "b")
        assert controller.select_node("b") == Command.SELECT_NODE
        assert controller.edit_edge(edge.id) == Command.EDIT_EDGE
        assert controller.selection.selected_node_id is None
        assert controller.select_node("ghost") == Command.NONE

    def test_new_funnel_with_starter(self, controller):
        controller.viewport.pan(50, 50)
        controller.selection.select_node("a")
        controller.new_funnel(starter=True)
        assert len(controller.graph.nodes) == 6
        assert controller.selection.is_empty
        assert (controller.viewport.x, controller.viewport.y) == (0, 0)

    def test_new_empty_funnel(self, controller):
        controller.new_funnel()
        assert controller.graph.nodes == {}
        assert controller.graph.connections == {}

    def test_apply_loaded_graph_keeps_identity(self, controller, starter_graph):
        graph = controller.graph
        down(controller, 340, 230)
        controller.apply_loaded_graph(starter_graph)
        assert controller.graph is graph
        assert controller.drag.graph is graph
        assert set(graph.nodes) == set(starter_graph.nodes)
        assert controller.mode == DragMode.IDLE


def test_default_construction():
    controller = InputController()
    assert controller.graph.nodes == {}
    assert controller.viewport.zoom == 1.0
