"""
Pytest configuration and shared fixtures for funnel builder tests.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import (
    EdgeStyle, FunnelNode, GraphModel, NodeCategory, Position,
    SelectionManager, ViewportTransform, build_starter_funnel
)
from services.connection_router import ConnectionRouter
from services.drag_controller import DragController
from services.input_controller import InputController
from services.funnel_stores import JsonFileFunnelStore
from services.persistence import PersistenceGateway
from services.settings_manager import SettingsManager, reset_settings_manager


# ============== Temporary Directory Fixtures ==============

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="funnel_builder_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


# ============== Model Fixtures ==============

@pytest.fixture
def empty_graph() -> GraphModel:
    """Create an empty graph."""
    return GraphModel()


@pytest.fixture
def two_node_graph() -> GraphModel:
    """Two custom nodes side by side, not connected."""
    graph = GraphModel()
    graph.add_node(FunnelNode(id="a", label="A", position=Position(100, 150)))
    graph.add_node(FunnelNode(id="b", label="B", position=Position(400, 150)))
    return graph


@pytest.fixture
def chain_graph() -> GraphModel:
    """Three nodes a -> b -> c with labeled connections."""
    graph = GraphModel()
    graph.add_node(FunnelNode(id="a", label="A", position=Position(0, 0)))
    graph.add_node(FunnelNode(id="b", label="B", position=Position(400, 0)))
    graph.add_node(FunnelNode(id="c", label="C", position=Position(800, 0)))
    graph.add_edge("a", "b", label="First", edge_id="e1")
    graph.add_edge("b", "c", label="Second", style=EdgeStyle.STRAIGHT, edge_id="e2")
    return graph


@pytest.fixture
def starter_graph() -> GraphModel:
    """The sample funnel."""
    return build_starter_funnel()


@pytest.fixture
def viewport() -> ViewportTransform:
    return ViewportTransform()


@pytest.fixture
def router() -> ConnectionRouter:
    return ConnectionRouter()


@pytest.fixture
def drag(two_node_graph, viewport) -> DragController:
    return DragController(two_node_graph, viewport)


@pytest.fixture
def controller(two_node_graph) -> InputController:
    """Input controller over the two-node graph with a default viewport."""
    return InputController(graph=two_node_graph)


@pytest.fixture
def empty_controller() -> InputController:
    return InputController()


# ============== Persistence Fixtures ==============

@pytest.fixture
def json_store(temp_dir: Path) -> JsonFileFunnelStore:
    """Local funnel store in a temporary directory."""
    return JsonFileFunnelStore(temp_dir / "funnels")


@pytest.fixture
def gateway(json_store: JsonFileFunnelStore) -> PersistenceGateway:
    return PersistenceGateway(json_store, "tester")


@pytest.fixture
def supabase_client() -> MagicMock:
    """
    Mocked Supabase client.

    Query builder methods return the same mock so chained calls end in
    `execute`, whose return value tests configure.
    """
    client = MagicMock()
    query = client.table.return_value
    for method in ("select", "eq", "order", "upsert", "delete"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[])
    return client


# ============== Settings Fixtures ==============

@pytest.fixture
def settings_manager(temp_dir: Path) -> Generator[SettingsManager, None, None]:
    """Settings manager backed by a temporary file."""
    reset_settings_manager()
    manager = SettingsManager(config_override=str(temp_dir / "settings.json"))
    yield manager
    reset_settings_manager()


# ============== Helper Functions ==============

def assert_graph_consistent(graph: GraphModel):
    """Assert that the graph has no structural problems."""
    problems = graph.validate()
    assert problems == [], f"Graph problems: {problems}"


def graph_signature(graph: GraphModel) -> tuple:
    """Comparable summary of a graph's nodes and connections."""
    nodes = sorted(
        (n.id, n.type, n.category, n.label, n.description, n.icon, n.color,
         n.position.x, n.position.y, tuple(sorted(n.config.items(), key=lambda kv: kv[0])))
        for n in graph.nodes.values()
    )
    edges = sorted(
        (e.id, e.from_id, e.to_id, e.label, e.style, e.curvature)
        for e in graph.connections.values()
    )
    return nodes, edges
