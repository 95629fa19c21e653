"""
Models package.

This package contains the data models for the funnel builder.

- Funnel graph (FunnelNode, Connection, GraphModel)
- Node template catalog and starter funnel
- Viewport transform (pan + zoom)
- Selection state
"""

from .graph import (
    NodeCategory,
    EdgeStyle,
    Position,
    FunnelNode,
    Connection,
    FunnelStats,
    GraphModel,
    DEFAULT_CURVATURE,
    DEFAULT_EDGE_LABEL,
    DEFAULT_EDGE_STYLE,
    is_valid_curvature,
)

from .templates import (
    NodeTemplate,
    NODE_TEMPLATES,
    CATEGORY_COLORS,
    CUSTOM_TYPE,
    get_template,
    templates_by_category,
    effective_color,
    effective_icon,
    node_from_template,
    custom_node,
    build_starter_funnel,
)

from .viewport import (
    ViewportTransform,
    MIN_ZOOM,
    MAX_ZOOM,
    ZOOM_STEP,
    clamp_zoom,
)

from .selection import SelectionManager


__all__ = [
    # Graph
    'NodeCategory',
    'EdgeStyle',
    'Position',
    'FunnelNode',
    'Connection',
    'FunnelStats',
    'GraphModel',
    'DEFAULT_CURVATURE',
    'DEFAULT_EDGE_LABEL',
    'DEFAULT_EDGE_STYLE',
    'is_valid_curvature',
    # Templates
    'NodeTemplate',
    'NODE_TEMPLATES',
    'CATEGORY_COLORS',
    'CUSTOM_TYPE',
    'get_template',
    'templates_by_category',
    'effective_color',
    'effective_icon',
    'node_from_template',
    'custom_node',
    'build_starter_funnel',
    # Viewport
    'ViewportTransform',
    'MIN_ZOOM',
    'MAX_ZOOM',
    'ZOOM_STEP',
    'clamp_zoom',
    # Selection
    'SelectionManager',
]
