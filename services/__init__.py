"""Services package."""

from .connection_router import (
    ConnectionRouter,
    EdgeRoute,
    LabelPill,
    route_points,
    outgoing_port,
    incoming_port,
    NODE_WIDTH,
    NODE_HEIGHT,
    PORT_RADIUS,
    HIT_STROKE_WIDTH,
)
from .hit_testing import HitKind, HitResult, hit_test
from .drag_controller import DragController, DragMode
from .input_controller import (
    InputController,
    Command,
    Button,
    Modifier,
    PointerEvent,
    KeyEvent,
    WheelEvent,
)
from .persistence import (
    PersistenceGateway,
    PersistenceError,
    FunnelNameError,
    SavedFunnel,
    FunnelStore,
    serialize_graph,
    deserialize_graph,
)
from .funnel_stores import JsonFileFunnelStore, SupabaseFunnelStore, create_store
from .settings_manager import (
    SettingsManager,
    AppSettings,
    StorageSettings,
    EditorSettings,
    get_settings,
    reset_settings_manager,
)

__all__ = [
    "ConnectionRouter",
    "EdgeRoute",
    "LabelPill",
    "route_points",
    "outgoing_port",
    "incoming_port",
    "NODE_WIDTH",
    "NODE_HEIGHT",
    "PORT_RADIUS",
    "HIT_STROKE_WIDTH",
    "HitKind",
    "HitResult",
    "hit_test",
    "DragController",
    "DragMode",
    "InputController",
    "Command",
    "Button",
    "Modifier",
    "PointerEvent",
    "KeyEvent",
    "WheelEvent",
    "PersistenceGateway",
    "PersistenceError",
    "FunnelNameError",
    "SavedFunnel",
    "FunnelStore",
    "serialize_graph",
    "deserialize_graph",
    "JsonFileFunnelStore",
    "SupabaseFunnelStore",
    "create_store",
    "SettingsManager",
    "AppSettings",
    "StorageSettings",
    "EditorSettings",
    "get_settings",
    "reset_settings_manager",
]
