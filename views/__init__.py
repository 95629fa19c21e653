"""Views package."""

from .funnel_canvas import FunnelCanvas
from .property_panel import FunnelPropertyPanel
from .node_palette import NodePalette
from .settings_dialog import SettingsDialog
from .funnel_dialogs import SaveFunnelDialog, SavedFunnelsDialog, CustomNodeDialog
from .main_window import MainWindow

__all__ = [
    "FunnelCanvas",
    "FunnelPropertyPanel",
    "NodePalette",
    "SettingsDialog",
    "SaveFunnelDialog",
    "SavedFunnelsDialog",
    "CustomNodeDialog",
    "MainWindow",
]
