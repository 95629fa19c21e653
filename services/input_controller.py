"""
Input dispatch for the funnel editor.

Turns toolkit-neutral pointer, keyboard and wheel events into editor
commands. Each handler resolves to exactly one Command, applies it to
the graph, viewport, selection and drag state, and returns it so the
view knows what to repaint or which panel to refresh.
"""

import logging
from dataclasses import dataclass
from enum import Enum, Flag, auto
from typing import Callable, Optional

from models import (
    FunnelNode,
    GraphModel,
    Position,
    SelectionManager,
    ViewportTransform,
    ZOOM_STEP,
    build_starter_funnel,
    custom_node,
)
from .connection_router import ConnectionRouter, EdgeRoute, NODE_HEIGHT, NODE_WIDTH
from .drag_controller import DragController, DragMode
from .hit_testing import HitKind, HitResult, hit_test

logger = logging.getLogger(__name__)


class Button(Enum):
    """Pointer buttons."""
    PRIMARY = auto()
    MIDDLE = auto()
    SECONDARY = auto()


class Modifier(Flag):
    """Keyboard modifiers held during an event."""
    NONE = 0
    CTRL = auto()
    META = auto()
    ALT = auto()
    SHIFT = auto()


# Ctrl on Linux/Windows, Cmd on macOS
ZOOM_MODIFIERS = Modifier.CTRL | Modifier.META
COMMAND_MODIFIERS = Modifier.CTRL | Modifier.META
PAN_MODIFIER = Modifier.ALT

DELETE_KEYS = ("Delete", "Backspace")


@dataclass
class PointerEvent:
    """Pointer position in screen pixels relative to the window."""
    x: float
    y: float
    button: Button = Button.PRIMARY
    modifiers: Modifier = Modifier.NONE


@dataclass
class KeyEvent:
    """Key name as the toolkit reports it ("Delete", "Escape", "s", ...)."""
    key: str
    modifiers: Modifier = Modifier.NONE


@dataclass
class WheelEvent:
    """Vertical wheel delta; positive scrolls down."""
    delta_y: float
    modifiers: Modifier = Modifier.NONE


class Command(Enum):
    """Outcome of handling one input event."""
    NONE = auto()
    SELECT_NODE = auto()
    START_NODE_DRAG = auto()
    MOVE_NODE = auto()
    COMMIT_NODE_DRAG = auto()
    START_PAN = auto()
    PAN = auto()
    END_PAN = auto()
    START_CONNECTION = auto()
    TRACK_CONNECTION = auto()
    COMPLETE_CONNECTION = auto()
    CANCEL_CONNECTION = auto()
    EDIT_EDGE = auto()
    CLEAR_SELECTION = auto()
    DELETE_NODE = auto()
    DELETE_EDGE = auto()
    ZOOM = auto()
    REQUEST_SAVE = auto()


class InputController:
    """
    Central dispatcher between input events and the editing engine.

    Rejected mutations never raise: they are recorded in `notices` and
    passed to the optional notice callback.
    """

    def __init__(
        self,
        graph: Optional[GraphModel] = None,
        viewport: Optional[ViewportTransform] = None,
        selection: Optional[SelectionManager] = None,
        router: Optional[ConnectionRouter] = None,
        zoom_step: float = ZOOM_STEP,
        on_notice: Optional[Callable[[str], None]] = None,
        on_save_requested: Optional[Callable[[], None]] = None
    ):
        self.graph = graph if graph is not None else GraphModel()
        self.viewport = viewport if viewport is not None else ViewportTransform()
        self.selection = selection if selection is not None else SelectionManager()
        self.router = router if router is not None else ConnectionRouter()
        self.drag = DragController(self.graph, self.viewport)
        self.zoom_step = zoom_step
        self.on_notice = on_notice
        self.on_save_requested = on_save_requested

        # Top-left of the canvas element in window pixels
        self.origin: tuple[float, float] = (0.0, 0.0)
        self.hover = HitResult()
        self.notices: list[str] = []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def notice(self, message: str):
        """Record a user-facing message."""
        logger.info(message)
        self.notices.append(message)
        if self.on_notice:
            self.on_notice(message)

    def to_canvas(self, x: float, y: float) -> tuple[float, float]:
        return self.viewport.screen_to_canvas(x, y, self.origin)

    def routes(self) -> dict[str, EdgeRoute]:
        return self.router.route_all(self.graph)

    def hit(self, canvas_x: float, canvas_y: float) -> HitResult:
        return hit_test(
            self.graph, canvas_x, canvas_y,
            routes=self.routes(),
            selected_node_id=self.selection.selected_node_id,
        )

    @property
    def mode(self) -> DragMode:
        return self.drag.mode

    # ------------------------------------------------------------------
    # Pointer
    # ------------------------------------------------------------------

    def pointer_down(self, event: PointerEvent) -> Command:
        cx, cy = self.to_canvas(event.x, event.y)

        if self.drag.is_drawing:
            return self._pointer_down_while_drawing(event, cx, cy)
        if not self.drag.is_idle:
            # Another gesture is already running
            return Command.NONE

        if event.button == Button.MIDDLE:
            self.drag.begin_pan(event.x, event.y)
            return Command.START_PAN
        if event.button != Button.PRIMARY:
            return Command.NONE

        hit = self.hit(cx, cy)

        if hit.kind == HitKind.OUTGOING_PORT:
            self.selection.clear()
            self.drag.begin_connection(hit.node_id, cx, cy)
            return Command.START_CONNECTION

        if hit.kind == HitKind.INCOMING_PORT:
            self.selection.select_node(hit.node_id)
            return Command.SELECT_NODE

        if hit.kind == HitKind.NODE:
            self.selection.select_node(hit.node_id)
            self.drag.begin_node_drag(hit.node_id, cx, cy)
            return Command.START_NODE_DRAG

        if hit.is_edge:
            self.selection.edit_edge(hit.edge_id)
            return Command.EDIT_EDGE

        if event.modifiers & PAN_MODIFIER:
            self.drag.begin_pan(event.x, event.y)
            return Command.START_PAN

        self.selection.clear()
        return Command.CLEAR_SELECTION

    def _pointer_down_while_drawing(self, event: PointerEvent, cx: float, cy: float) -> Command:
        if event.button != Button.PRIMARY:
            return Command.NONE

        hit = self.hit(cx, cy)
        if hit.is_node:
            if hit.node_id == self.drag.from_node_id:
                # Clicking the source again keeps drawing
                self.drag.cursor = (cx, cy)
                return Command.TRACK_CONNECTION
            return self._complete_connection(hit.node_id)

        self.drag.cancel_connection()
        return Command.CANCEL_CONNECTION

    def _complete_connection(self, to_node_id: str) -> Command:
        from_node_id = self.drag.from_node_id
        edge = self.drag.complete_connection(to_node_id)
        if edge is None:
            self.notice(f"Could not connect {from_node_id} to {to_node_id}")
            return Command.CANCEL_CONNECTION
        logger.info(f"Connected {edge.from_id} -> {edge.to_id}")
        return Command.COMPLETE_CONNECTION

    def pointer_move(self, event: PointerEvent) -> Command:
        cx, cy = self.to_canvas(event.x, event.y)
        mode = self.drag.mode
        self.drag.move(event.x, event.y, cx, cy)

        if mode == DragMode.DRAGGING_NODE:
            return Command.MOVE_NODE
        if mode == DragMode.PANNING_CANVAS:
            return Command.PAN
        if mode == DragMode.DRAWING_CONNECTION:
            return Command.TRACK_CONNECTION

        self.hover = self.hit(cx, cy)
        return Command.NONE

    def pointer_up(self, event: PointerEvent) -> Command:
        mode = self.drag.mode

        if mode == DragMode.DRAGGING_NODE:
            self.drag.end_node_drag()
            return Command.COMMIT_NODE_DRAG

        if mode == DragMode.PANNING_CANVAS:
            self.drag.end_pan()
            return Command.END_PAN

        if mode == DragMode.DRAWING_CONNECTION:
            cx, cy = self.to_canvas(event.x, event.y)
            hit = self.hit(cx, cy)
            if hit.is_node and hit.node_id != self.drag.from_node_id:
                return self._complete_connection(hit.node_id)

        return Command.NONE

    # ------------------------------------------------------------------
    # Keyboard and wheel
    # ------------------------------------------------------------------

    def key_down(self, event: KeyEvent) -> Command:
        key = event.key

        if event.modifiers & COMMAND_MODIFIERS:
            if key.lower() == "s":
                if self.on_save_requested:
                    self.on_save_requested()
                return Command.REQUEST_SAVE
            # Undo is not supported; Ctrl+Z and other shortcuts are ignored
            return Command.NONE

        if key in DELETE_KEYS:
            return self.delete_selected()

        if key == "Escape":
            cancelled = self.drag.cancel_connection()
            self.selection.clear()
            return Command.CANCEL_CONNECTION if cancelled else Command.CLEAR_SELECTION

        return Command.NONE

    def wheel(self, event: WheelEvent) -> Command:
        """Zoom with the zoom modifier held; otherwise let the view scroll."""
        if not event.modifiers & ZOOM_MODIFIERS or event.delta_y == 0:
            return Command.NONE
        self.viewport.zoom_by(-self.zoom_step if event.delta_y > 0 else self.zoom_step)
        return Command.ZOOM

    # ------------------------------------------------------------------
    # Editing commands
    # ------------------------------------------------------------------

    def select_node(self, node_id: str) -> Command:
        """Select a node from outside the canvas (e.g. a list)."""
        if node_id not in self.graph.nodes:
            return Command.NONE
        self.drag.cancel_connection()
        self.selection.select_node(node_id)
        return Command.SELECT_NODE

    def edit_edge(self, edge_id: str) -> Command:
        if edge_id not in self.graph.connections:
            return Command.NONE
        self.drag.cancel_connection()
        self.selection.edit_edge(edge_id)
        return Command.EDIT_EDGE

    def delete_selected(self) -> Command:
        """Delete the selected node, or the connection being edited."""
        if self.selection.selected_node_id is not None:
            return self.delete_node(self.selection.selected_node_id)
        if self.selection.editing_edge_id is not None:
            return self.delete_edge(self.selection.editing_edge_id)
        return Command.NONE

    def delete_node(self, node_id: str) -> Command:
        node = self.graph.remove_node(node_id)
        if node is None:
            return Command.NONE
        if node_id in (self.drag.node_id, self.drag.from_node_id):
            self.drag.reset()
        self.selection.prune(self.graph)
        self.hover = HitResult()
        logger.info(f"Deleted node {node.label or node_id}")
        return Command.DELETE_NODE

    def delete_edge(self, edge_id: str) -> Command:
        if self.graph.remove_edge(edge_id) is None:
            return Command.NONE
        self.selection.prune(self.graph)
        self.hover = HitResult()
        return Command.DELETE_EDGE

    def _placement(self, view_center: Optional[tuple[float, float]]) -> Position:
        """Top-left position that centers a new node on a screen point."""
        if view_center is None:
            return Position(200, 200)
        cx, cy = self.to_canvas(*view_center)
        return Position(cx - NODE_WIDTH / 2, cy - NODE_HEIGHT / 2)

    def add_node_from_template(
        self,
        template_key: str,
        view_center: Optional[tuple[float, float]] = None
    ) -> Optional[FunnelNode]:
        """
        Add a catalog node at the center of the visible canvas.

        Args:
            template_key: Catalog key
            view_center: Screen point at the middle of the visible area;
                without it the node lands at (200, 200)
        """
        node = self.graph.create_node(template_key, self._placement(view_center))
        if node is None:
            self.notice(f"Unknown node type '{template_key}'")
            return None
        self.selection.select_node(node.id)
        self.drag.cancel_connection()
        logger.info(f"Added {node.label} node")
        return node

    def add_custom_node(
        self,
        label: str,
        description: str = "",
        icon: str = "circle",
        color: Optional[str] = None,
        view_center: Optional[tuple[float, float]] = None
    ) -> Optional[FunnelNode]:
        """Add a user-defined node with literal fields."""
        if not label.strip():
            self.notice("A custom node needs a name")
            return None
        node = custom_node(
            label.strip(), self._placement(view_center),
            description=description, icon=icon, color=color,
            node_id=self.graph.new_id("custom"),
        )
        if self.graph.add_node(node) is None:
            self.notice("Could not add custom node")
            return None
        self.selection.select_node(node.id)
        self.drag.cancel_connection()
        return node

    def apply_loaded_graph(self, snapshot: GraphModel):
        """Replace the whole graph in one step and reset interaction state."""
        self.graph.replace_with(snapshot)
        self.selection.clear()
        self.drag.reset()
        self.hover = HitResult()

    def new_funnel(self, starter: bool = False):
        """Start over with an empty graph, or the sample funnel."""
        if starter:
            self.apply_loaded_graph(build_starter_funnel())
        else:
            self.graph.clear()
            self.selection.clear()
            self.drag.reset()
            self.hover = HitResult()
        self.viewport.reset()
