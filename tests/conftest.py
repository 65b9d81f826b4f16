"""
Pytest configuration and shared fixtures for the Stackbridge test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset the global journal before each test to ensure isolation."""
    from infrastructure.logger import reset_logger

    reset_logger()

    yield

    reset_logger()


@pytest.fixture
def fresh_graph():
    """Provide a fresh StackGraph instance."""
    from core.stack_graph import StackGraph
    return StackGraph()


@pytest.fixture
def journal():
    """Provide an in-memory mutation journal."""
    from infrastructure.logger import MutationLogger, LoggerConfig
    return MutationLogger(LoggerConfig(enable_file_log=False))


@pytest.fixture
def graph_proxy(fresh_graph, journal):
    """Provide an owning GraphProxy over a fresh graph."""
    from bridge.graph_proxy import GraphProxy
    return GraphProxy(fresh_graph, journal=journal)


@pytest.fixture
def test_file(graph_proxy):
    """Provide the file proxy for "test.py"."""
    return graph_proxy.file("test.py")
