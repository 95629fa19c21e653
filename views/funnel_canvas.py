"""
Funnel canvas widget.

Paints the funnel graph under the current viewport transform and feeds
pointer, keyboard and wheel events to the InputController. The widget is
meant to live inside a QScrollArea: a plain wheel is left to the scroll
area and only Ctrl/Cmd+wheel zooms.
"""

import logging
from typing import Optional

from PyQt6.QtCore import Qt, QPointF, QRectF, pyqtSignal
from PyQt6.QtGui import (
    QColor, QFont, QKeyEvent, QMouseEvent, QPainter, QPainterPath, QPen,
    QBrush, QWheelEvent
)
from PyQt6.QtWidgets import QWidget

from models import EdgeStyle, FunnelNode, GraphModel, effective_color
from services.connection_router import (
    EdgeRoute, HIT_STROKE_WIDTH, HOVER_STROKE_WIDTH, NODE_HEIGHT, NODE_WIDTH,
    PORT_RADIUS, VISIBLE_STROKE_WIDTH, incoming_port, outgoing_port
)
from services.drag_controller import DragMode
from services.hit_testing import HitKind
from services.input_controller import (
    Button, Command, InputController, KeyEvent, Modifier, PointerEvent, WheelEvent
)

logger = logging.getLogger(__name__)


# Color scheme
COLORS = {
    "edge": QColor("#9CA3AF"),             # Gray
    "edge_hover": QColor("#6B7280"),       # Dark gray
    "selection": QColor("#3B82F6"),        # Bright blue
    "hover": QColor("#60A5FA"),            # Light blue
    "grid": QColor("#E5E7EB"),             # Light gray
    "background": QColor("#FAFAFA"),       # Off-white
    "node_body": QColor("#FFFFFF"),
    "node_border": QColor("#E5E7EB"),
    "text": QColor("#374151"),
    "text_muted": QColor("#6B7280"),
    "port_in": QColor("#9CA3AF"),          # Gray
    "port_out": QColor("#10B981"),         # Green
    "label_pill": QColor("#FFFFFF"),
    "automation": QColor("#8B5CF6"),       # Violet badge
    "shadow": QColor(0, 0, 0, 25),
}

HEADER_HEIGHT = 56
CANVAS_SIZE = (4000, 3000)

# Key names the input controller understands
KEY_NAMES = {
    Qt.Key.Key_Delete: "Delete",
    Qt.Key.Key_Backspace: "Backspace",
    Qt.Key.Key_Escape: "Escape",
    Qt.Key.Key_S: "s",
    Qt.Key.Key_Z: "z",
}

BUTTONS = {
    Qt.MouseButton.LeftButton: Button.PRIMARY,
    Qt.MouseButton.MiddleButton: Button.MIDDLE,
    Qt.MouseButton.RightButton: Button.SECONDARY,
}


def to_modifiers(qt_modifiers) -> Modifier:
    """Translate Qt keyboard modifiers."""
    result = Modifier.NONE
    if qt_modifiers & Qt.KeyboardModifier.ControlModifier:
        result |= Modifier.CTRL
    if qt_modifiers & Qt.KeyboardModifier.MetaModifier:
        result |= Modifier.META
    if qt_modifiers & Qt.KeyboardModifier.AltModifier:
        result |= Modifier.ALT
    if qt_modifiers & Qt.KeyboardModifier.ShiftModifier:
        result |= Modifier.SHIFT
    return result


def route_to_path(route: EdgeRoute) -> QPainterPath:
    """Build a painter path from a routed connection."""
    path = QPainterPath(QPointF(*route.start))
    if route.style == EdgeStyle.CURVED:
        _, c1, c2, end = route.points
        path.cubicTo(QPointF(*c1), QPointF(*c2), QPointF(*end))
    else:
        for point in route.points[1:]:
            path.lineTo(QPointF(*point))
    return path


class FunnelCanvas(QWidget):
    """
    Main canvas widget for viewing and editing the funnel.

    Provides zooming, panning, dragging and connection drawing through
    the InputController.
    """

    # Signals
    selectionChanged = pyqtSignal(object)  # FunnelNode, Connection, or None
    graphChanged = pyqtSignal()
    zoomChanged = pyqtSignal(float)
    noticeRaised = pyqtSignal(str)
    saveRequested = pyqtSignal()

    # Commands that change which item the property panel shows
    SELECTION_COMMANDS = {
        Command.SELECT_NODE, Command.START_NODE_DRAG, Command.EDIT_EDGE,
        Command.CLEAR_SELECTION, Command.START_CONNECTION, Command.CANCEL_CONNECTION,
        Command.COMPLETE_CONNECTION, Command.DELETE_NODE, Command.DELETE_EDGE,
    }
    GRAPH_COMMANDS = {
        Command.COMMIT_NODE_DRAG, Command.COMPLETE_CONNECTION,
        Command.DELETE_NODE, Command.DELETE_EDGE,
    }

    def __init__(self, controller: InputController, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.controller.on_notice = self.noticeRaised.emit
        self.controller.on_save_requested = self.saveRequested.emit

        self.show_grid = True
        self.grid_size = 20

        self.setMinimumSize(*CANVAS_SIZE)
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setAutoFillBackground(False)

    @property
    def graph(self) -> GraphModel:
        return self.controller.graph

    def current_selection(self):
        """The selected node or the connection being edited, if any."""
        selection = self.controller.selection
        if selection.selected_node_id:
            return self.graph.get_node(selection.selected_node_id)
        if selection.editing_edge_id:
            return self.graph.get_edge(selection.editing_edge_id)
        return None

    def _apply(self, command: Command):
        """Emit signals for a handled command and repaint."""
        if command in self.SELECTION_COMMANDS:
            self.selectionChanged.emit(self.current_selection())
        if command in self.GRAPH_COMMANDS:
            self.graphChanged.emit()
        if command == Command.ZOOM:
            self.zoomChanged.emit(self.controller.viewport.zoom)

        if self.controller.drag.mode == DragMode.PANNING_CANVAS:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
        elif self.controller.drag.is_drawing:
            self.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.unsetCursor()
        self.update()

    def refresh(self):
        """Repaint after an external change and re-announce the selection."""
        self.controller.selection.prune(self.graph)
        self.selectionChanged.emit(self.current_selection())
        self.update()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _pointer(self, event: QMouseEvent) -> PointerEvent:
        pos = event.position()
        return PointerEvent(
            pos.x(), pos.y(),
            button=BUTTONS.get(event.button(), Button.SECONDARY),
            modifiers=to_modifiers(event.modifiers()),
        )

    def mousePressEvent(self, event: QMouseEvent):
        """Handle mouse press."""
        self.setFocus()
        self._apply(self.controller.pointer_down(self._pointer(event)))
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent):
        """Handle mouse move."""
        self._apply(self.controller.pointer_move(self._pointer(event)))
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent):
        """Handle mouse release."""
        self._apply(self.controller.pointer_up(self._pointer(event)))
        event.accept()

    def wheelEvent(self, event: QWheelEvent):
        """Zoom with Ctrl/Cmd held; otherwise let the scroll area scroll."""
        # Qt reports positive angle deltas when scrolling up
        wheel = WheelEvent(-event.angleDelta().y(), to_modifiers(event.modifiers()))
        command = self.controller.wheel(wheel)
        if command == Command.ZOOM:
            self._apply(command)
            event.accept()
        else:
            event.ignore()

    def keyPressEvent(self, event: QKeyEvent):
        """Handle keyboard shortcuts."""
        name = KEY_NAMES.get(event.key())
        if name is None:
            super().keyPressEvent(event)
            return
        command = self.controller.key_down(KeyEvent(name, to_modifiers(event.modifiers())))
        self._apply(command)
        event.accept()

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), COLORS["background"])

        viewport = self.controller.viewport
        painter.translate(viewport.x, viewport.y)
        painter.scale(viewport.zoom, viewport.zoom)

        if self.show_grid:
            self._draw_grid(painter)

        routes = self.controller.routes()
        for route in routes.values():
            self._draw_route(painter, route)

        if self.controller.drag.is_drawing:
            self._draw_preview(painter)

        selected_id = self.controller.selection.selected_node_id
        for node in self.graph.nodes.values():
            if node.id != selected_id:
                self._draw_node(painter, node, selected=False)
        if selected_id in self.graph.nodes:
            self._draw_node(painter, self.graph.nodes[selected_id], selected=True)

        for route in routes.values():
            if route.pill is not None:
                self._draw_label(painter, route)

        painter.end()

    def _visible_canvas_rect(self) -> QRectF:
        viewport = self.controller.viewport
        x0, y0 = viewport.screen_to_canvas(0, 0)
        x1, y1 = viewport.screen_to_canvas(self.width(), self.height())
        return QRectF(QPointF(x0, y0), QPointF(x1, y1))

    def _draw_grid(self, painter: QPainter):
        """Draw grid background."""
        rect = self._visible_canvas_rect()
        grid_size = self.grid_size

        left = int(rect.left()) - (int(rect.left()) % grid_size)
        top = int(rect.top()) - (int(rect.top()) % grid_size)

        painter.setPen(QPen(COLORS["grid"], 1))

        # Vertical lines
        x = left
        while x < rect.right():
            painter.drawLine(int(x), int(rect.top()), int(x), int(rect.bottom()))
            x += grid_size

        # Horizontal lines
        y = top
        while y < rect.bottom():
            painter.drawLine(int(rect.left()), int(y), int(rect.right()), int(y))
            y += grid_size

    def _edge_pen(self, route: EdgeRoute) -> QPen:
        hover = self.controller.hover
        if route.edge_id == self.controller.selection.editing_edge_id:
            pen = QPen(COLORS["selection"], HOVER_STROKE_WIDTH)
        elif hover.is_edge and hover.edge_id == route.edge_id:
            pen = QPen(COLORS["edge_hover"], HOVER_STROKE_WIDTH)
        else:
            pen = QPen(COLORS["edge"], VISIBLE_STROKE_WIDTH)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        return pen

    def _draw_route(self, painter: QPainter, route: EdgeRoute):
        path = route_to_path(route)
        painter.setBrush(Qt.BrushStyle.NoBrush)

        if route.edge_id == self.controller.selection.editing_edge_id:
            glow_pen = QPen(QColor(COLORS["selection"].red(), COLORS["selection"].green(),
                                   COLORS["selection"].blue(), 60), HIT_STROKE_WIDTH / 3)
            glow_pen.setCapStyle(Qt.PenCapStyle.RoundCap)
            painter.setPen(glow_pen)
            painter.drawPath(path)

        painter.setPen(self._edge_pen(route))
        painter.drawPath(path)

        # Arrow head at the incoming port
        end = QPointF(*route.end)
        painter.setBrush(painter.pen().color())
        arrow = QPainterPath(end)
        arrow.lineTo(end.x() - 10, end.y() - 5)
        arrow.lineTo(end.x() - 10, end.y() + 5)
        arrow.closeSubpath()
        painter.drawPath(arrow)

    def _draw_preview(self, painter: QPainter):
        """Dashed line from the source port to the cursor."""
        source = self.graph.get_node(self.controller.drag.from_node_id)
        if source is None:
            return
        route = self.controller.router.preview(source, self.controller.drag.cursor)
        painter.setPen(QPen(COLORS["selection"], 2, Qt.PenStyle.DashLine))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(route_to_path(route))

    def _draw_label(self, painter: QPainter, route: EdgeRoute):
        pill = route.pill
        rect = QRectF(pill.x, pill.y, pill.width, pill.height)
        selected = route.edge_id == self.controller.selection.editing_edge_id
        painter.setPen(QPen(COLORS["selection"] if selected else COLORS["node_border"], 1))
        painter.setBrush(COLORS["label_pill"])
        painter.drawRoundedRect(rect, pill.radius, pill.radius)

        font = QFont("SF Pro Display", 8)
        font.setWeight(QFont.Weight.Medium)
        painter.setFont(font)
        painter.setPen(COLORS["text"])
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, route.label)

    def _draw_node(self, painter: QPainter, node: FunnelNode, selected: bool):
        x, y = node.position.x, node.position.y
        body = QRectF(x, y, NODE_WIDTH, NODE_HEIGHT)
        color = QColor(effective_color(node))
        hover = self.controller.hover

        # Shadow
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(COLORS["shadow"])
        painter.drawRoundedRect(body.translated(0, 3), 12, 12)

        # Body
        if selected:
            border = QPen(COLORS["selection"], 3)
        elif hover.node_id == node.id:
            border = QPen(COLORS["hover"], 2)
        else:
            border = QPen(COLORS["node_border"], 1)
        painter.setPen(border)
        painter.setBrush(COLORS["node_body"])
        painter.drawRoundedRect(body, 12, 12)

        # Header band in the node color
        header = QPainterPath()
        header.addRoundedRect(QRectF(x, y, NODE_WIDTH, HEADER_HEIGHT), 12, 12)
        header.addRect(QRectF(x, y + HEADER_HEIGHT / 2, NODE_WIDTH, HEADER_HEIGHT / 2))
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(color)
        painter.drawPath(header.simplified())

        title_font = QFont("SF Pro Display", 10)
        title_font.setWeight(QFont.Weight.DemiBold)
        painter.setFont(title_font)
        painter.setPen(QColor("white"))
        painter.drawText(
            QRectF(x + 14, y + 8, NODE_WIDTH - 28, HEADER_HEIGHT - 16),
            Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft,
            node.label,
        )

        # Description
        painter.setFont(QFont("SF Pro Display", 8))
        painter.setPen(COLORS["text_muted"])
        painter.drawText(
            QRectF(x + 14, y + HEADER_HEIGHT + 8, NODE_WIDTH - 28, 48),
            Qt.TextFlag.TextWordWrap,
            node.description,
        )

        self._draw_config_badges(painter, node)

        # Ports
        painter.setPen(QPen(QColor("white"), 2))
        painter.setBrush(COLORS["port_in"])
        painter.drawEllipse(QPointF(*incoming_port(node)), PORT_RADIUS, PORT_RADIUS)
        out_active = hover.kind == HitKind.OUTGOING_PORT and hover.node_id == node.id
        painter.setBrush(COLORS["selection"] if out_active else COLORS["port_out"])
        painter.drawEllipse(QPointF(*outgoing_port(node)), PORT_RADIUS, PORT_RADIUS)

    def _draw_config_badges(self, painter: QPainter, node: FunnelNode):
        """Automation and delay badges along the bottom of a node."""
        badges = []
        if node.config.get("automation"):
            badges.append(("Auto", COLORS["automation"]))
        delay = node.config.get("delay")
        if delay:
            badges.append((f"{delay}d", COLORS["text_muted"]))
        actions = node.config.get("actions") or []
        if actions:
            badges.append((f"{len(actions)} actions", COLORS["text_muted"]))

        font = QFont("SF Pro Display", 7)
        painter.setFont(font)
        bx = node.position.x + 14
        by = node.position.y + NODE_HEIGHT - 30
        for text, color in badges:
            width = 10 + 6 * len(text)
            rect = QRectF(bx, by, width, 18)
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(QBrush(QColor(color.red(), color.green(), color.blue(), 40)))
            painter.drawRoundedRect(rect, 9, 9)
            painter.setPen(color)
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, text)
            bx += width + 6

    # ------------------------------------------------------------------
    # View commands
    # ------------------------------------------------------------------

    def zoom_in(self, step: Optional[float] = None):
        self.controller.viewport.zoom_in(step or self.controller.zoom_step)
        self._apply(Command.ZOOM)

    def zoom_out(self, step: Optional[float] = None):
        self.controller.viewport.zoom_out(step or self.controller.zoom_step)
        self._apply(Command.ZOOM)

    def reset_view(self):
        """Reset to default zoom and position."""
        self.controller.viewport.reset()
        self._apply(Command.ZOOM)

    def visible_center(self) -> tuple[float, float]:
        """Widget point at the middle of the part the user can see."""
        parent = self.parentWidget()
        if parent is None:
            return (self.width() / 2, self.height() / 2)
        # Scrolling moves this widget to a negative offset inside the viewport
        return (-self.x() + parent.width() / 2, -self.y() + parent.height() / 2)
