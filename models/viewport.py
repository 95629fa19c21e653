"""
Viewport transform between screen and canvas coordinates.

Screen coordinates are pixels relative to the window; canvas coordinates
are the space node positions live in. The transform is a pan offset in
screen pixels followed by a uniform zoom.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MIN_ZOOM = 0.3
MAX_ZOOM = 2.0
ZOOM_STEP = 0.1


def clamp_zoom(zoom: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


@dataclass
class ViewportTransform:
    """
    Pan offset and zoom of the canvas.

    Attributes:
        x: Horizontal pan offset in screen pixels
        y: Vertical pan offset in screen pixels
        zoom: Scale factor, always within [MIN_ZOOM, MAX_ZOOM]
    """
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0

    def __post_init__(self):
        self.zoom = clamp_zoom(self.zoom)

    def screen_to_canvas(
        self,
        client_x: float,
        client_y: float,
        origin: tuple[float, float] = (0.0, 0.0)
    ) -> tuple[float, float]:
        """
        Convert a pointer position to canvas coordinates.

        Args:
            client_x, client_y: Pointer position in window pixels
            origin: Top-left of the canvas element in window pixels
        """
        ox, oy = origin
        return (
            (client_x - ox - self.x) / self.zoom,
            (client_y - oy - self.y) / self.zoom,
        )

    def canvas_to_screen(
        self,
        canvas_x: float,
        canvas_y: float,
        origin: tuple[float, float] = (0.0, 0.0)
    ) -> tuple[float, float]:
        """Inverse of screen_to_canvas."""
        ox, oy = origin
        return (
            canvas_x * self.zoom + self.x + ox,
            canvas_y * self.zoom + self.y + oy,
        )

    def pan(self, dx: float, dy: float):
        """Shift the view by a screen-pixel delta. Unbounded."""
        self.x += dx
        self.y += dy

    def zoom_by(self, delta: float) -> float:
        """Add delta to the zoom and clamp. Returns the new zoom."""
        self.zoom = clamp_zoom(self.zoom + delta)
        logger.debug(f"Zoom set to {self.zoom:.2f}")
        return self.zoom

    def zoom_in(self, step: float = ZOOM_STEP) -> float:
        return self.zoom_by(step)

    def zoom_out(self, step: float = ZOOM_STEP) -> float:
        return self.zoom_by(-step)

    def reset(self):
        """Return to the initial view."""
        self.x = 0.0
        self.y = 0.0
        self.zoom = 1.0

    def visible_center(self, width: float, height: float) -> tuple[float, float]:
        """Canvas point at the center of a view of the given screen size."""
        return self.screen_to_canvas(width / 2, height / 2)
