"""
SIMGRAPH LABELED GRAPH - The Data Model Both Sides of a Match Share

A LabeledGraph is a directed graph over dense integer vertex ids
0..n-1, each vertex carrying an integer label, optionally with
per-edge integer labels and an inverse (parent) adjacency.

Architecture (The Bridge Pattern):
  Python Layer (Matching Logic)
  - Uses frozensets: children_of(v), parents_of(v), label_index()
  - Hot-path membership tests never cross into Rust

  Mirror Layer (rustworkx.PyDiGraph)
  - Node index == vertex id, node payload == vertex label
  - Edge payload == edge label (or None)
  - Used for export, metrics and Rust-native traversal

Lifecycle:
- Built once from a loader, a generator or literal data
- Validated eagerly (core.graph_invariants); malformed input raises
  InvalidGraphError and no graph object is produced
- Read-only afterwards; lazily built indexes are idempotent, so a graph can
  be shared by independent match runs

Thread Safety:
    Safe for concurrent readers. Lazy indexes may be built twice under a
    race, with identical results.
"""
import logging
from collections import defaultdict
from types import MappingProxyType
from typing import (
    Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional,
    Sequence, Tuple,
)

import polars as pl
import rustworkx as rx

from core.errors import (
    InvalidGraphError,
    NoSuchEdgeError,
    OutOfRangeError,
    UnsupportedError,
)
from core.graph_invariants import GraphInvariants

logger = logging.getLogger(__name__)

Edge = Tuple[int, int]


# =============================================================================
# LABELED GRAPH
# =============================================================================

class LabeledGraph:
    """
    Immutable vertex- and (optionally) edge-labeled directed graph.

    Usage:
        g = LabeledGraph(labels=[0, 1, 1], children=[{1, 2}, set(), {0}])
        g.children_of(0)          # frozenset({1, 2})
        g.label_index()[1]        # frozenset({1, 2})

        typed = LabeledGraph.from_edges([0, 1], [(0, 1, 9)])
        typed.edge_label_of(0, 1) # 9

    Dual mode (parents) is enabled by passing dual=True or an explicit
    parents sequence; parent-aware refinement requires it.
    """

    def __init__(
        self,
        labels: Sequence[int],
        children: Sequence[Iterable[int]],
        edge_labels: Optional[Mapping[Edge, int]] = None,
        parents: Optional[Sequence[Iterable[int]]] = None,
        dual: bool = False,
    ):
        """
        Build and validate a graph.

        Args:
            labels: Vertex labels, index = vertex id
            children: Out-neighbour ids per vertex (duplicates collapse)
            edge_labels: Optional (source, target) -> label map; its keys
                         must be edges
            parents: Optional in-neighbour ids per vertex; must mirror children
            dual: Derive and keep parent sets (implied when parents is given)

        Raises:
            InvalidGraphError: If any structural invariant is violated
        """
        label_list = list(labels)
        child_lists = [list(kids) for kids in children]
        parent_lists = [list(preds) for preds in parents] if parents is not None else None
        label_map = dict(edge_labels) if edge_labels is not None else None

        report = GraphInvariants.validate_structure(label_list, child_lists, parent_lists, label_map)
        if not report.valid:
            raise InvalidGraphError(f"Invalid graph: {report.summary()}", report.errors)

        self._labels: Tuple[int, ...] = tuple(label_list)
        self._children: Tuple[FrozenSet[int], ...] = tuple(frozenset(kids) for kids in child_lists)
        self._edge_labels: Optional[Dict[Edge, int]] = label_map

        self._parents: Optional[Tuple[FrozenSet[int], ...]] = None
        if parent_lists is not None:
            self._parents = tuple(frozenset(preds) for preds in parent_lists)
        elif dual:
            derived: List[set] = [set() for _ in self._labels]
            for source, kids in enumerate(self._children):
                for target in kids:
                    derived[target].add(source)
            self._parents = tuple(frozenset(preds) for preds in derived)

        # Rust mirror: node index == vertex id on a fresh graph
        self._graph: rx.PyDiGraph = rx.PyDiGraph(multigraph=False)
        self._graph.add_nodes_from(list(self._labels))
        self._graph.add_edges_from([
            (source, target, self._edge_label_payload(source, target))
            for source, kids in enumerate(self._children)
            for target in sorted(kids)
        ])

        # Lazy indexes
        self._label_index: Optional[Mapping[int, FrozenSet[int]]] = None
        self._children_by_label: Optional[List[Dict[int, FrozenSet[int]]]] = None
        self._parents_by_label: Optional[List[Dict[int, FrozenSet[int]]]] = None

        logger.debug("Built %r", self)

    # =========================================================================
    # ALTERNATE CONSTRUCTORS
    # =========================================================================

    @classmethod
    def from_edges(
        cls,
        labels: Sequence[int],
        edges: Iterable[Sequence[int]],
        edge_labels: Optional[Mapping[Edge, int]] = None,
        dual: bool = False,
    ) -> "LabeledGraph":
        """
        Build from an edge list.

        Args:
            labels: Vertex labels, index = vertex id
            edges: (source, target) pairs or (source, target, edge_label) triples
            edge_labels: Extra edge labels merged with those given as triples
            dual: Keep parent sets

        Raises:
            InvalidGraphError: If an edge references a vertex out of range
        """
        label_list = list(labels)
        vertex_count = len(label_list)
        children: List[set] = [set() for _ in range(vertex_count)]
        merged: Optional[Dict[Edge, int]] = dict(edge_labels) if edge_labels is not None else None
        dangling: List[Edge] = []

        for edge in edges:
            source, target = edge[0], edge[1]
            if len(edge) > 2:
                if merged is None:
                    merged = {}
                merged[(source, target)] = edge[2]
            if isinstance(source, int) and not isinstance(source, bool) and 0 <= source < vertex_count:
                children[source].add(target)
            else:
                dangling.append((source, target))

        if dangling:
            raise InvalidGraphError(
                f"Invalid graph: {len(dangling)} edge(s) start outside [0, {vertex_count})"
            )
        return cls(label_list, children, edge_labels=merged, dual=dual)

    @classmethod
    def from_rustworkx(cls, graph: rx.PyDiGraph, dual: bool = False) -> "LabeledGraph":
        """
        Build from a rustworkx PyDiGraph.

        Node payloads are vertex labels; edge payloads are edge labels or None.
        Node indices must be compact (0..n-1), i.e. no removed nodes.

        Parallel edges (multigraph input) collapse into one edge; they must
        then agree on their payload.

        Raises:
            InvalidGraphError: If indices have gaps, payloads are not ints or
                               parallel edges carry different labels
        """
        indices = list(graph.node_indices())
        if indices != list(range(len(indices))):
            raise InvalidGraphError("Invalid graph: rustworkx node indices are not compact")

        labels = [graph[idx] for idx in indices]
        children: List[set] = [set() for _ in indices]
        payloads: Dict[Edge, Any] = {}
        for source, target, payload in graph.weighted_edge_list():
            key = (source, target)
            if key in payloads and payloads[key] != payload:
                raise InvalidGraphError(
                    f"Invalid graph: parallel edges {source} -> {target} carry "
                    f"different labels {payloads[key]!r} and {payload!r}"
                )
            payloads[key] = payload
            children[source].add(target)

        edge_labels = {key: label for key, label in payloads.items() if label is not None}
        return cls(labels, children, edge_labels=edge_labels or None, dual=dual)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def vertex_count(self) -> int:
        """Number of vertices."""
        return len(self._labels)

    @property
    def edge_count(self) -> int:
        """Number of distinct edges."""
        return self._graph.num_edges()

    @property
    def labels(self) -> Tuple[int, ...]:
        """Vertex labels, index = vertex id."""
        return self._labels

    @property
    def has_edge_labels(self) -> bool:
        """True if the graph was built with an edge-label map."""
        return self._edge_labels is not None

    @property
    def is_dual(self) -> bool:
        """True if parent sets are available."""
        return self._parents is not None

    @property
    def edge_labels(self) -> Optional[Mapping[Edge, int]]:
        """Read-only view of the edge-label map, or None."""
        if self._edge_labels is None:
            return None
        return MappingProxyType(self._edge_labels)

    # =========================================================================
    # VERTEX ACCESS
    # =========================================================================

    def vertices(self) -> range:
        """All vertex ids."""
        return range(len(self._labels))

    def label_of(self, v: int) -> int:
        """
        Label of vertex v.

        Raises:
            OutOfRangeError: If v is not a vertex id
        """
        self._check_vertex(v)
        return self._labels[v]

    def children_of(self, v: int) -> FrozenSet[int]:
        """
        Out-neighbours of vertex v.

        Raises:
            OutOfRangeError: If v is not a vertex id
        """
        self._check_vertex(v)
        return self._children[v]

    def parents_of(self, v: int) -> FrozenSet[int]:
        """
        In-neighbours of vertex v.

        Raises:
            UnsupportedError: If the graph was built without dual mode
            OutOfRangeError: If v is not a vertex id
        """
        if self._parents is None:
            raise UnsupportedError("Graph has no parent sets; build it with dual=True")
        self._check_vertex(v)
        return self._parents[v]

    def label_index(self) -> Mapping[int, FrozenSet[int]]:
        """
        Label -> vertex ids index, built on first use.

        Seeds candidate sets in O(V) instead of O(V^2).
        """
        if self._label_index is None:
            index: Dict[int, set] = defaultdict(set)
            for v, label in enumerate(self._labels):
                index[label].add(v)
            self._label_index = MappingProxyType(
                {label: frozenset(vs) for label, vs in index.items()}
            )
        return self._label_index

    def vertices_with_label(self, label: int) -> FrozenSet[int]:
        """Vertices carrying a label (empty if none)."""
        return self.label_index().get(label, frozenset())

    # =========================================================================
    # EDGE ACCESS
    # =========================================================================

    def has_edge(self, source: int, target: int) -> bool:
        """Check if source -> target is an edge (False for out-of-range ids)."""
        if not (self._is_vertex(source) and self._is_vertex(target)):
            return False
        return target in self._children[source]

    def edges(self) -> Iterator[Edge]:
        """Iterate over (source, target) pairs in source order."""
        for source, kids in enumerate(self._children):
            for target in sorted(kids):
                yield source, target

    def edge_label_of(self, source: int, target: int) -> int:
        """
        Label of edge source -> target.

        Raises:
            UnsupportedError: If the graph carries no edge labels
            OutOfRangeError: If either id is not a vertex id
            NoSuchEdgeError: If (source, target) is not a labeled edge
        """
        if self._edge_labels is None:
            raise UnsupportedError("Graph carries no edge labels")
        self._check_vertex(source)
        self._check_vertex(target)
        try:
            return self._edge_labels[(source, target)]
        except KeyError:
            raise NoSuchEdgeError(source, target) from None

    def get_edge_label(self, source: int, target: int, default: Optional[int] = None) -> Optional[int]:
        """Edge label of source -> target, or default if absent or unlabeled."""
        if self._edge_labels is None:
            return default
        return self._edge_labels.get((source, target), default)

    def children_with_edge_label(self, v: int, label: int) -> FrozenSet[int]:
        """
        Out-neighbours of v reached through an edge carrying `label`.

        Unlabeled edges never appear here.

        Raises:
            UnsupportedError: If the graph carries no edge labels
            OutOfRangeError: If v is not a vertex id
        """
        if self._edge_labels is None:
            raise UnsupportedError("Graph carries no edge labels")
        self._check_vertex(v)
        if self._children_by_label is None:
            self._children_by_label = self._bucket_by_edge_label(reverse=False)
        return self._children_by_label[v].get(label, frozenset())

    def parents_with_edge_label(self, v: int, label: int) -> FrozenSet[int]:
        """
        In-neighbours of v whose edge into v carries `label`.

        Raises:
            UnsupportedError: If the graph lacks edge labels or parent sets
            OutOfRangeError: If v is not a vertex id
        """
        if self._edge_labels is None:
            raise UnsupportedError("Graph carries no edge labels")
        if self._parents is None:
            raise UnsupportedError("Graph has no parent sets; build it with dual=True")
        self._check_vertex(v)
        if self._parents_by_label is None:
            self._parents_by_label = self._bucket_by_edge_label(reverse=True)
        return self._parents_by_label[v].get(label, frozenset())

    # =========================================================================
    # EXPORT
    # =========================================================================

    def to_rustworkx(self) -> rx.PyDiGraph:
        """Return a copy of the rustworkx mirror."""
        return self._graph.copy()

    def to_polars_vertices(self) -> pl.DataFrame:
        """Export vertices (id, label, degrees) to a Polars DataFrame."""
        return pl.DataFrame(
            {
                "vertex": list(self.vertices()),
                "label": list(self._labels),
                "out_degree": [self._graph.out_degree(v) for v in self.vertices()],
                "in_degree": [self._graph.in_degree(v) for v in self.vertices()],
            },
            schema={
                "vertex": pl.Int64,
                "label": pl.Int64,
                "out_degree": pl.Int64,
                "in_degree": pl.Int64,
            },
        )

    def to_polars_edges(self) -> pl.DataFrame:
        """Export edges (source, target, nullable edge_label) to a Polars DataFrame."""
        edges = list(self.edges())
        return pl.DataFrame(
            {
                "source": [s for s, _ in edges],
                "target": [t for _, t in edges],
                "edge_label": [self.get_edge_label(s, t) for s, t in edges],
            },
            schema={"source": pl.Int64, "target": pl.Int64, "edge_label": pl.Int64},
        )

    # =========================================================================
    # INTERNAL UTILITIES
    # =========================================================================

    def _is_vertex(self, v: Any) -> bool:
        return isinstance(v, int) and not isinstance(v, bool) and 0 <= v < len(self._labels)

    def _check_vertex(self, v: Any) -> None:
        if not self._is_vertex(v):
            raise OutOfRangeError(v, len(self._labels))

    def _edge_label_payload(self, source: int, target: int) -> Optional[int]:
        if self._edge_labels is None:
            return None
        return self._edge_labels.get((source, target))

    def _bucket_by_edge_label(self, reverse: bool) -> List[Dict[int, FrozenSet[int]]]:
        """Per-vertex label -> neighbours buckets over labeled edges."""
        buckets: List[Dict[int, set]] = [defaultdict(set) for _ in self._labels]
        for (source, target), label in self._edge_labels.items():
            if reverse:
                buckets[target][label].add(source)
            else:
                buckets[source][label].add(target)
        return [
            {label: frozenset(vs) for label, vs in bucket.items()}
            for bucket in buckets
        ]

    def __len__(self) -> int:
        """Return number of vertices."""
        return self.vertex_count

    def __contains__(self, v: Any) -> bool:
        """Check if v is a vertex id."""
        return self._is_vertex(v)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LabeledGraph):
            return NotImplemented
        return (
            self._labels == other._labels
            and self._children == other._children
            and self._edge_labels == other._edge_labels
        )

    __hash__ = None

    def __repr__(self) -> str:
        flags = []
        if self.has_edge_labels:
            flags.append("edge_labels")
        if self.is_dual:
            flags.append("dual")
        suffix = f", {'+'.join(flags)}" if flags else ""
        return f"LabeledGraph(vertices={self.vertex_count}, edges={self.edge_count}{suffix})"
