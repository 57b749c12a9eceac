"""
Unit tests for core/labeled_graph.py - LabeledGraph

Tests the data model shared by data and query graphs:
- Construction and eager validation
- Vertex, edge and edge-label access
- Dual (parent-aware) mode
- Lazy label / edge-label indexes
- rustworkx and Polars export
"""
import pytest
import rustworkx as rx

from core.errors import (
    InvalidGraphError,
    NoSuchEdgeError,
    OutOfRangeError,
    UnsupportedError,
)
from core.labeled_graph import LabeledGraph


# =============================================================================
# CONSTRUCTION TESTS
# =============================================================================

def test_construct_from_adjacency():
    """
    Validate that a graph built from child sets exposes them unchanged.

    Verifies:
    - Vertex and edge counts
    - Children are frozensets
    - Duplicate children collapse
    """
    g = LabeledGraph(labels=[0, 1, 1], children=[[1, 2, 2], [], [0]])

    assert g.vertex_count == 3
    assert g.edge_count == 3
    assert g.children_of(0) == frozenset({1, 2})
    assert isinstance(g.children_of(0), frozenset)
    assert g.children_of(1) == frozenset()


def test_construct_from_edges_with_triples():
    """Edge triples carry edge labels."""
    g = LabeledGraph.from_edges([0, 1, 2], [(0, 1, 5), (1, 2, 6)])

    assert g.has_edge_labels
    assert g.edge_label_of(0, 1) == 5
    assert g.edge_label_of(1, 2) == 6


def test_empty_graph():
    """A graph with no vertices is valid."""
    g = LabeledGraph([], [])

    assert g.vertex_count == 0
    assert g.edge_count == 0
    assert dict(g.label_index()) == {}
    assert list(g.edges()) == []


def test_self_loop_permitted():
    """Self-loops are allowed and reported as ordinary edges."""
    g = LabeledGraph([3], [[0]])

    assert g.has_edge(0, 0)
    assert g.children_of(0) == frozenset({0})


def test_dangling_child_rejected():
    """
    Validate that a child id outside [0, n) fails construction.

    Verifies:
    - InvalidGraphError is raised
    - The violation names the dense_ids invariant and the bad edge
    """
    with pytest.raises(InvalidGraphError) as exc_info:
        LabeledGraph([0, 1], [[1], [2]])

    violations = exc_info.value.violations
    assert violations[0].invariant == "dense_ids"
    assert (1, 2) in violations[0].edges_involved


def test_negative_child_rejected():
    with pytest.raises(InvalidGraphError):
        LabeledGraph([0, 1], [[-1], []])


def test_label_count_mismatch_rejected():
    with pytest.raises(InvalidGraphError, match="2 labels but 3 child sets"):
        LabeledGraph([0, 1], [[], [], []])


def test_non_integer_label_rejected():
    with pytest.raises(InvalidGraphError):
        LabeledGraph(["a", 1], [[], []])


def test_edge_label_on_non_edge_rejected():
    """Edge labels must be attached to existing edges."""
    with pytest.raises(InvalidGraphError) as exc_info:
        LabeledGraph([0, 1], [[1], []], edge_labels={(1, 0): 4})

    assert exc_info.value.violations[0].invariant == "edge_label_domain"


def test_inconsistent_parents_rejected():
    """Explicit parents must mirror children exactly."""
    with pytest.raises(InvalidGraphError) as exc_info:
        LabeledGraph([0, 1], [[1], []], parents=[[], []])

    assert exc_info.value.violations[0].invariant == "parent_pairing"
    assert (0, 1) in exc_info.value.violations[0].edges_involved


def test_from_edges_dangling_source_rejected():
    with pytest.raises(InvalidGraphError):
        LabeledGraph.from_edges([0], [(3, 0)])


# =============================================================================
# ACCESS TESTS
# =============================================================================

def test_label_of_and_out_of_range():
    """
    Validate label lookup and range checking.

    Verifies:
    - Valid ids return their label
    - Negative, too-large and non-int ids raise OutOfRangeError
    """
    g = LabeledGraph([4, 5], [[], []])

    assert g.label_of(1) == 5
    for bad in (-1, 2, "0", True):
        with pytest.raises(OutOfRangeError):
            g.label_of(bad)
    with pytest.raises(OutOfRangeError):
        g.children_of(7)


def test_out_of_range_is_index_error():
    """OutOfRangeError can be caught as IndexError."""
    g = LabeledGraph([0], [[]])
    with pytest.raises(IndexError):
        g.children_of(1)


def test_parents_require_dual_mode():
    g = LabeledGraph([0, 1], [[1], []])

    assert not g.is_dual
    with pytest.raises(UnsupportedError):
        g.parents_of(1)


def test_dual_mode_derives_parents():
    """
    Validate that dual=True derives the inverse adjacency.

    Verifies:
    - j in children[i] <=> i in parents[j]
    """
    g = LabeledGraph.from_edges([0, 0, 0], [(0, 1), (0, 2), (2, 1)], dual=True)

    assert g.is_dual
    assert g.parents_of(1) == frozenset({0, 2})
    assert g.parents_of(2) == frozenset({0})
    assert g.parents_of(0) == frozenset()
    for i in g.vertices():
        for j in g.vertices():
            assert (j in g.children_of(i)) == (i in g.parents_of(j))


def test_explicit_parents_enable_dual():
    g = LabeledGraph([0, 1], [[1], []], parents=[[], [0]])

    assert g.is_dual
    assert g.parents_of(1) == frozenset({0})


def test_edge_label_errors():
    """
    Validate the edge-label error taxonomy.

    Verifies:
    - UnsupportedError on a graph without edge labels
    - NoSuchEdgeError on a non-edge
    - OutOfRangeError on an invalid id
    """
    plain = LabeledGraph.from_edges([0, 1], [(0, 1)])
    with pytest.raises(UnsupportedError):
        plain.edge_label_of(0, 1)

    typed = LabeledGraph.from_edges([0, 1], [(0, 1, 3)])
    with pytest.raises(NoSuchEdgeError) as exc_info:
        typed.edge_label_of(1, 0)
    assert "1 -> 0" in str(exc_info.value)
    with pytest.raises(OutOfRangeError):
        typed.edge_label_of(0, 9)


def test_partially_labeled_edges():
    """An edge missing from the label map raises NoSuchEdgeError; get_edge_label returns None."""
    g = LabeledGraph([0, 1, 2], [[1, 2], [], []], edge_labels={(0, 1): 1})

    assert g.edge_label_of(0, 1) == 1
    with pytest.raises(NoSuchEdgeError):
        g.edge_label_of(0, 2)
    assert g.get_edge_label(0, 2) is None
    assert g.get_edge_label(0, 2, default=-1) == -1


def test_has_edge_handles_bad_ids():
    g = LabeledGraph([0, 1], [[1], []])

    assert g.has_edge(0, 1)
    assert not g.has_edge(1, 0)
    assert not g.has_edge(0, 5)


def test_edges_in_source_order():
    g = LabeledGraph([0, 0, 0], [[2, 1], [], [0]])
    assert list(g.edges()) == [(0, 1), (0, 2), (2, 0)]


# =============================================================================
# INDEX TESTS
# =============================================================================

def test_label_index():
    """
    Validate the lazy label index.

    Verifies:
    - Each label maps to the vertices carrying it
    - The same mapping object is returned on repeated calls
    - The mapping is read-only
    """
    g = LabeledGraph([0, 1, 1, 0, 2], [[], [], [], [], []])

    index = g.label_index()
    assert index[0] == frozenset({0, 3})
    assert index[1] == frozenset({1, 2})
    assert index[2] == frozenset({4})
    assert g.label_index() is index
    with pytest.raises(TypeError):
        index[9] = frozenset()
    assert g.vertices_with_label(7) == frozenset()


def test_children_with_edge_label():
    g = LabeledGraph.from_edges(
        [0, 1, 1, 1],
        [(0, 1, 5), (0, 2, 6), (0, 3, 5)],
        dual=True,
    )

    assert g.children_with_edge_label(0, 5) == frozenset({1, 3})
    assert g.children_with_edge_label(0, 6) == frozenset({2})
    assert g.children_with_edge_label(0, 9) == frozenset()
    assert g.parents_with_edge_label(3, 5) == frozenset({0})
    assert g.parents_with_edge_label(2, 5) == frozenset()


def test_children_with_edge_label_requires_labels():
    g = LabeledGraph.from_edges([0, 1], [(0, 1)])
    with pytest.raises(UnsupportedError):
        g.children_with_edge_label(0, 1)


def test_parents_with_edge_label_requires_dual():
    g = LabeledGraph.from_edges([0, 1], [(0, 1, 2)])
    with pytest.raises(UnsupportedError):
        g.parents_with_edge_label(1, 2)


# =============================================================================
# RUSTWORKX / POLARS TESTS
# =============================================================================

def test_rustworkx_mirror_round_trip():
    """
    Validate that the rustworkx mirror carries labels as payloads.

    Verifies:
    - Node payloads are vertex labels, edge payloads are edge labels
    - from_rustworkx rebuilds an equal graph
    - to_rustworkx returns a copy (mutating it leaves the graph intact)
    """
    g = LabeledGraph.from_edges([2, 3, 4], [(0, 1, 7), (1, 2, 8)])
    mirror = g.to_rustworkx()

    assert list(mirror.nodes()) == [2, 3, 4]
    assert sorted(mirror.weighted_edge_list()) == [(0, 1, 7), (1, 2, 8)]
    assert LabeledGraph.from_rustworkx(mirror) == g

    mirror.add_edge(2, 0, 1)
    assert g.edge_count == 2


def test_from_rustworkx_rejects_gaps():
    graph = rx.PyDiGraph()
    a = graph.add_node(0)
    graph.add_node(1)
    graph.remove_node(a)
    with pytest.raises(InvalidGraphError):
        LabeledGraph.from_rustworkx(graph)


def test_from_rustworkx_without_edge_payloads():
    graph = rx.PyDiGraph()
    a = graph.add_node(0)
    b = graph.add_node(1)
    graph.add_edge(a, b, None)

    g = LabeledGraph.from_rustworkx(graph)
    assert not g.has_edge_labels
    assert g.children_of(0) == frozenset({1})


def test_from_rustworkx_rejects_conflicting_parallel_edges():
    """Parallel edges in a multigraph must not disagree on their label."""
    graph = rx.PyDiGraph(multigraph=True)
    a = graph.add_node(0)
    b = graph.add_node(1)
    graph.add_edge(a, b, 3)
    graph.add_edge(a, b, 4)

    with pytest.raises(InvalidGraphError, match="different labels 3 and 4"):
        LabeledGraph.from_rustworkx(graph)


def test_from_rustworkx_merges_agreeing_parallel_edges():
    graph = rx.PyDiGraph(multigraph=True)
    a = graph.add_node(0)
    b = graph.add_node(1)
    graph.add_edge(a, b, 3)
    graph.add_edge(a, b, 3)

    g = LabeledGraph.from_rustworkx(graph)
    assert g.edge_count == 1
    assert g.edge_label_of(0, 1) == 3


def test_from_rustworkx_rejects_labeled_and_unlabeled_parallel_edges():
    graph = rx.PyDiGraph(multigraph=True)
    a = graph.add_node(0)
    b = graph.add_node(1)
    graph.add_edge(a, b, None)
    graph.add_edge(a, b, 5)

    with pytest.raises(InvalidGraphError):
        LabeledGraph.from_rustworkx(graph)


def test_polars_export():
    g = LabeledGraph.from_edges([0, 1], [(0, 1, 4), (1, 1, 2)])

    vertices = g.to_polars_vertices()
    assert vertices["label"].to_list() == [0, 1]
    assert vertices["out_degree"].to_list() == [1, 1]
    assert vertices["in_degree"].to_list() == [0, 2]

    edges = g.to_polars_edges()
    assert edges.rows() == [(0, 1, 4), (1, 1, 2)]


def test_polars_export_unlabeled_edges_are_null():
    g = LabeledGraph.from_edges([0, 1], [(0, 1)])
    assert g.to_polars_edges()["edge_label"].to_list() == [None]


def test_equality_and_repr():
    a = LabeledGraph.from_edges([0, 1], [(0, 1, 3)], dual=True)
    b = LabeledGraph([0, 1], [[1], []], edge_labels={(0, 1): 3})

    assert a == b
    assert a != LabeledGraph([0, 1], [[1], []])
    assert repr(a) == "LabeledGraph(vertices=2, edges=1, edge_labels+dual)"
    assert len(a) == 2
    assert 1 in a and 2 not in a
