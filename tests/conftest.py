"""
Pytest configuration and shared fixtures for the simgraph test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset the global metrics collector around each test."""
    from infrastructure.metrics import get_collector

    get_collector().clear()

    yield

    get_collector().clear()


@pytest.fixture
def engine():
    """Provide a SimulationEngine with default options."""
    from core.simulation import SimulationEngine
    return SimulationEngine()


@pytest.fixture
def example_graphs():
    """
    Query edge 0 -> 1 (labels 0, 1) against a four-vertex data graph.

    Data: labels [0, 1, 1, 0], edges 0->1, 1->0, 2->0, 3->2.
    """
    from core.labeled_graph import LabeledGraph

    data = LabeledGraph.from_edges([0, 1, 1, 0], [(0, 1), (1, 0), (2, 0), (3, 2)])
    query = LabeledGraph.from_edges([0, 1], [(0, 1)])
    return data, query


@pytest.fixture
def typed_edge_graphs():
    """Same structural edge 0 -> 1; query edge label 9, data edge label 7."""
    from core.labeled_graph import LabeledGraph

    data = LabeledGraph.from_edges([0, 1], [(0, 1, 7)])
    query = LabeledGraph.from_edges([0, 1], [(0, 1, 9)])
    return data, query


@pytest.fixture
def random_pair():
    """A seeded random data graph with edge labels and a BFS query from it."""
    from infrastructure.generators import generate_random_graph, sample_bfs_query

    data = generate_random_graph(60, 3, 2.5, edge_label_count=2, seed=7, dual=True)
    query, origin = sample_bfs_query(6, 2, data, seed=11, dual=True)
    return data, query, origin
