"""
SIMGRAPH INFRASTRUCTURE - Collaborators Around the Engine

This package contains:
- config: TOML-backed MatchConfig / BenchmarkConfig loading
- graph_loader: Flat-file graph reading and writing
- generators: Random data graphs and BFS-sampled queries
- metrics: Polars-backed match run accounting
"""

from infrastructure.config import load_match_config, load_benchmark_config
from infrastructure.graph_loader import load_graph, save_graph, parse_graph
from infrastructure.generators import generate_random_graph, generate_bfs_query
from infrastructure.metrics import MatchMetricsCollector, get_collector

__all__ = [
    "load_match_config",
    "load_benchmark_config",
    "load_graph",
    "save_graph",
    "parse_graph",
    "generate_random_graph",
    "generate_bfs_query",
    "MatchMetricsCollector",
    "get_collector",
]
