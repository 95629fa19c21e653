"""
Drag gesture state machine.

Classifies pointer gestures into moving a node, panning the canvas or
drawing a new connection. Only one gesture is active at a time; starting
another while one is in progress is refused.
"""

import logging
from enum import Enum, auto
from typing import Optional

from models import (
    Connection, DEFAULT_EDGE_LABEL, GraphModel, Position, ViewportTransform
)

logger = logging.getLogger(__name__)


class DragMode(Enum):
    """Gesture currently in progress."""
    IDLE = auto()
    DRAGGING_NODE = auto()
    PANNING_CANVAS = auto()
    DRAWING_CONNECTION = auto()


class DragController:
    """
    Tracks the active pointer gesture and applies its effect.

    Node drags write the live position to the graph on every move and
    commit it on release. Pans shift the viewport by screen-pixel deltas.
    Connection draws follow the cursor until completed on another node or
    cancelled.
    """

    def __init__(self, graph: GraphModel, viewport: ViewportTransform):
        self.graph = graph
        self.viewport = viewport
        self.mode = DragMode.IDLE
        self.node_id: Optional[str] = None
        self.from_node_id: Optional[str] = None
        self._grab_offset: tuple[float, float] = (0.0, 0.0)
        self._last_screen: tuple[float, float] = (0.0, 0.0)
        # Canvas position of the pointer while drawing a connection
        self.cursor: tuple[float, float] = (0.0, 0.0)

    @property
    def is_idle(self) -> bool:
        return self.mode == DragMode.IDLE

    @property
    def is_drawing(self) -> bool:
        return self.mode == DragMode.DRAWING_CONNECTION

    def reset(self):
        """Drop any gesture without applying it."""
        self.mode = DragMode.IDLE
        self.node_id = None
        self.from_node_id = None
        self._grab_offset = (0.0, 0.0)

    # ------------------------------------------------------------------
    # Gesture start
    # ------------------------------------------------------------------

    def begin_node_drag(self, node_id: str, canvas_x: float, canvas_y: float) -> bool:
        """Start moving a node, keeping the pointer's offset inside it."""
        if not self.is_idle:
            return False
        node = self.graph.get_node(node_id)
        if node is None:
            return False

        self.mode = DragMode.DRAGGING_NODE
        self.node_id = node_id
        self._grab_offset = (canvas_x - node.position.x, canvas_y - node.position.y)
        return True

    def begin_pan(self, screen_x: float, screen_y: float) -> bool:
        if not self.is_idle:
            return False
        self.mode = DragMode.PANNING_CANVAS
        self._last_screen = (screen_x, screen_y)
        return True

    def begin_connection(self, from_node_id: str, canvas_x: float, canvas_y: float) -> bool:
        """Start drawing a connection from a node's outgoing port."""
        if not self.is_idle or from_node_id not in self.graph.nodes:
            return False
        self.mode = DragMode.DRAWING_CONNECTION
        self.from_node_id = from_node_id
        self.cursor = (canvas_x, canvas_y)
        logger.debug(f"Drawing connection from {from_node_id}")
        return True

    # ------------------------------------------------------------------
    # Gesture progress
    # ------------------------------------------------------------------

    def move(self, screen_x: float, screen_y: float, canvas_x: float, canvas_y: float) -> bool:
        """
        Apply a pointer move to the active gesture.

        Returns:
            True if the move changed anything
        """
        if self.mode == DragMode.DRAGGING_NODE:
            gx, gy = self._grab_offset
            return self.graph.move_node(self.node_id, canvas_x - gx, canvas_y - gy)

        if self.mode == DragMode.PANNING_CANVAS:
            lx, ly = self._last_screen
            self.viewport.pan(screen_x - lx, screen_y - ly)
            self._last_screen = (screen_x, screen_y)
            return True

        if self.mode == DragMode.DRAWING_CONNECTION:
            self.cursor = (canvas_x, canvas_y)
            return True

        return False

    # ------------------------------------------------------------------
    # Gesture end
    # ------------------------------------------------------------------

    def end_node_drag(self) -> Optional[Position]:
        """Commit the dragged node's position and return it."""
        if self.mode != DragMode.DRAGGING_NODE:
            return None
        node = self.graph.get_node(self.node_id)
        self.reset()
        if node is None:
            return None

        final = Position(node.position.x, node.position.y)
        self.graph.update_node(node.id, position=final)
        logger.debug(f"Moved node {node.id} to ({final.x:.0f}, {final.y:.0f})")
        return final

    def end_pan(self) -> bool:
        if self.mode != DragMode.PANNING_CANVAS:
            return False
        self.reset()
        return True

    def complete_connection(self, to_node_id: str, label: Optional[str] = DEFAULT_EDGE_LABEL) -> Optional[Connection]:
        """
        Finish the connection on a target node.

        Releasing on the source node keeps drawing. Any other target ends
        the gesture whether or not the graph accepts the connection.
        """
        if not self.is_drawing or to_node_id == self.from_node_id:
            return None

        from_node_id = self.from_node_id
        self.reset()
        return self.graph.add_edge(from_node_id, to_node_id, label=label)

    def cancel_connection(self) -> bool:
        """
        Abandon the connection being drawn.

        Returns:
            True if a draw was in progress. Calling again is a no-op.
        """
        if not self.is_drawing:
            return False
        logger.debug(f"Cancelled connection from {self.from_node_id}")
        self.reset()
        return True
