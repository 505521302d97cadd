"""
Pytest configuration and shared fixtures for the dlgraph test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def clear_env_overrides(monkeypatch):
    """Keep the caller's environment from changing graph options under test."""
    from dlgraph.config import LOCALLY_UNIQUE_ENV_VAR

    monkeypatch.delenv(LOCALLY_UNIQUE_ENV_VAR, raising=False)


@pytest.fixture
def fresh_graph():
    """Provide an empty GLOBALLY_UNIQUE graph."""
    from dlgraph.graph_db import DoubleLinkedGraph
    return DoubleLinkedGraph()


@pytest.fixture
def local_graph():
    """Provide an empty LOCALLY_UNIQUE graph."""
    from dlgraph.graph_db import DoubleLinkedGraph
    from dlgraph.ontology import UniquenessMode
    return DoubleLinkedGraph(mode=UniquenessMode.LOCALLY_UNIQUE)


@pytest.fixture
def sample_graph(fresh_graph):
    """
    Provide a graph with two chains meeting at "3":

        START -> 1 -> 2 -> 3
                 1 -> 4 -> 3
    """
    one = fresh_graph.insert_from_start("1", node_data={"n": 1})
    one.insert("2", "one to two").insert("3")
    fresh_graph.insert("1", "4", "one to four", edge_data=14).insert("3")

    return fresh_graph, {"one": one}
