"""
Selection state for the funnel editor.

At most one node is selected, or one connection is being edited, never
both at once.
"""

import logging
from typing import Optional

from .graph import GraphModel

logger = logging.getLogger(__name__)


class SelectionManager:
    """Tracks the selected node and the connection being edited."""

    def __init__(self):
        self.selected_node_id: Optional[str] = None
        self.editing_edge_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.selected_node_id is None and self.editing_edge_id is None

    def select_node(self, node_id: str):
        """Select a node, ending any connection edit."""
        self.selected_node_id = node_id
        self.editing_edge_id = None

    def edit_edge(self, edge_id: str):
        """Start editing a connection, dropping the node selection."""
        self.editing_edge_id = edge_id
        self.selected_node_id = None

    def clear(self):
        """Clear both. Safe to call repeatedly."""
        self.selected_node_id = None
        self.editing_edge_id = None

    def prune(self, graph: GraphModel):
        """Forget ids that no longer exist in the graph."""
        if self.selected_node_id is not None and self.selected_node_id not in graph.nodes:
            logger.debug(f"Dropping stale node selection {self.selected_node_id}")
            self.selected_node_id = None
        if self.editing_edge_id is not None and self.editing_edge_id not in graph.connections:
            logger.debug(f"Dropping stale connection edit {self.editing_edge_id}")
            self.editing_edge_id = None
