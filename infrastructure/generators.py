"""
SIMGRAPH GENERATORS - Synthetic Data and Query Graphs

Benchmark and test inputs:
- generate_random_graph: G(n, m) structure from rustworkx, seeded labels
- generate_bfs_query: a query grown by breadth-first sampling of a data
  graph, so it is satisfiable against its source by construction

Every generator takes a `seed`; the same seed always yields the same graph.
"""
import logging
import random
from collections import deque
from typing import Dict, List, Optional, Tuple

import rustworkx as rx

from core.labeled_graph import LabeledGraph

logger = logging.getLogger(__name__)


# =============================================================================
# RANDOM DATA GRAPHS
# =============================================================================

def generate_random_graph(
    vertex_count: int,
    label_count: int,
    avg_out_degree: float,
    *,
    edge_label_count: Optional[int] = None,
    seed: Optional[int] = None,
    dual: bool = False,
) -> LabeledGraph:
    """
    Generate a random labeled digraph.

    Structure comes from rx.directed_gnm_random_graph with
    round(vertex_count * avg_out_degree) edges (capped at the simple-graph
    maximum, no self-loops). Labels are drawn uniformly from
    [0, label_count); edge labels from [0, edge_label_count) when given.

    Args:
        vertex_count: Number of vertices (>= 0)
        label_count: Number of distinct vertex labels (>= 1)
        avg_out_degree: Mean out-degree (>= 0)
        edge_label_count: If set, label every edge
        seed: RNG seed for reproducibility
        dual: Build parent sets

    Raises:
        ValueError: On negative sizes or non-positive label counts
    """
    if vertex_count < 0:
        raise ValueError(f"vertex_count must be >= 0, got {vertex_count}")
    if label_count < 1:
        raise ValueError(f"label_count must be >= 1, got {label_count}")
    if avg_out_degree < 0:
        raise ValueError(f"avg_out_degree must be >= 0, got {avg_out_degree}")
    if edge_label_count is not None and edge_label_count < 1:
        raise ValueError(f"edge_label_count must be >= 1, got {edge_label_count}")

    rng = random.Random(seed)
    labels = [rng.randrange(label_count) for _ in range(vertex_count)]
    if vertex_count == 0:
        return LabeledGraph(labels, [], edge_labels={} if edge_label_count else None, dual=dual)

    max_edges = vertex_count * (vertex_count - 1)
    edge_total = min(int(round(vertex_count * avg_out_degree)), max_edges)
    structure = rx.directed_gnm_random_graph(
        vertex_count, edge_total, seed=rng.randrange(2**32)
    )

    children: List[set] = [set() for _ in range(vertex_count)]
    for source, target in structure.edge_list():
        children[source].add(target)

    edge_labels = None
    if edge_label_count is not None:
        edge_labels = {
            (source, target): rng.randrange(edge_label_count)
            for source in range(vertex_count)
            for target in sorted(children[source])
        }

    graph = LabeledGraph(labels, children, edge_labels=edge_labels, dual=dual)
    logger.debug("Generated random %r (seed=%s)", graph, seed)
    return graph


# =============================================================================
# BFS QUERY SAMPLING
# =============================================================================

def sample_bfs_query(
    vertex_count: int,
    avg_out_degree: float,
    source_graph: LabeledGraph,
    *,
    seed: Optional[int] = None,
    dual: bool = False,
) -> Tuple[LabeledGraph, List[int]]:
    """
    Grow a query by breadth-first sampling of `source_graph`.

    From a random start vertex, each dequeued vertex contributes up to
    max(1, round(avg_out_degree)) of its out-edges (chosen at random). A
    target not yet sampled becomes a new query vertex; a target already
    sampled adds an edge between existing query vertices. If the frontier
    runs dry before `vertex_count` vertices are sampled, sampling restarts
    from a random unsampled vertex.

    Labels and edge labels are copied from the source, so the sampled
    vertices themselves witness that the query is satisfiable.

    Returns:
        (query graph, origin) where origin[q] is the source vertex behind
        query vertex q

    Raises:
        ValueError: If vertex_count is not in [1, source_graph.vertex_count]
    """
    if not 1 <= vertex_count <= source_graph.vertex_count:
        raise ValueError(
            f"vertex_count must be in [1, {source_graph.vertex_count}], got {vertex_count}"
        )

    rng = random.Random(seed)
    fanout = max(1, int(round(avg_out_degree)))

    query_id: Dict[int, int] = {}
    origin: List[int] = []
    edges: List[Tuple[int, int]] = []

    def admit(v: int) -> int:
        query_id[v] = len(origin)
        origin.append(v)
        return query_id[v]

    frontier: deque = deque()
    unsampled = list(source_graph.vertices())
    rng.shuffle(unsampled)

    while len(origin) < vertex_count:
        if not frontier:
            while unsampled[-1] in query_id:
                unsampled.pop()
            start = unsampled.pop()
            admit(start)
            frontier.append(start)
            continue

        current = frontier.popleft()
        out = sorted(source_graph.children_of(current))
        rng.shuffle(out)
        for target in out[:fanout]:
            if target not in query_id:
                if len(origin) >= vertex_count:
                    continue
                admit(target)
                frontier.append(target)
            edges.append((query_id[current], query_id[target]))

    labels = [source_graph.label_of(v) for v in origin]
    edge_labels = None
    if source_graph.has_edge_labels:
        edge_labels = {}
        for q_source, q_target in edges:
            label = source_graph.get_edge_label(origin[q_source], origin[q_target])
            if label is not None:
                edge_labels[(q_source, q_target)] = label

    query = LabeledGraph.from_edges(labels, edges, edge_labels=edge_labels, dual=dual)
    logger.debug("Sampled BFS query %r from %r (seed=%s)", query, source_graph, seed)
    return query, origin


def generate_bfs_query(
    vertex_count: int,
    avg_out_degree: float,
    source_graph: LabeledGraph,
    *,
    seed: Optional[int] = None,
    dual: bool = False,
) -> LabeledGraph:
    """Query graph grown by BFS sampling; see sample_bfs_query."""
    query, _ = sample_bfs_query(vertex_count, avg_out_degree, source_graph, seed=seed, dual=dual)
    return query
