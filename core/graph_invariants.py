"""
SIMGRAPH GRAPH INVARIANTS - The Mathematical Superego

This module enforces the physics of the graphs and of the relations computed
over them. If a graph is malformed it is rejected BEFORE a match touches it;
if a candidate mapping is claimed to be a simulation, it can be checked here.

Structural Invariants (checked at LabeledGraph construction):
1. Arity: one label per vertex, one child set per vertex
2. Dense IDs: every referenced vertex id lies in [0, vertex_count)
3. Parent Pairing: j in children[i] <=> i in parents[j] (dual graphs only)
4. Edge-Label Domain: labeled pairs are a subset of the edge set

Relation Invariants (checked on a finished match):
5. Label Agreement: every candidate carries its query vertex's label
6. Soundness: every candidate has a supporting neighbour for each query edge
7. Maximality: the mapping equals the greatest simulation

Design Philosophy:
- These are MATHEMATICAL constraints, not business rules
- Structural violations are errors; construction fails fast
- Relation checks are independent of the engine's pass loop, so they can
  catch bugs in it
"""
import rustworkx as rx
from typing import (
    TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence,
    Set, Tuple,
)
from dataclasses import dataclass
from enum import Enum

if TYPE_CHECKING:
    from core.labeled_graph import LabeledGraph


# Cap on the ids listed in a single violation message
_REPORT_LIMIT = 10


# =============================================================================
# INVARIANT RESULTS
# =============================================================================

class InvariantSeverity(Enum):
    """Severity levels for invariant violations."""
    ERROR = "error"      # Must be fixed before proceeding
    WARNING = "warning"  # Should be investigated
    INFO = "info"        # For metrics/diagnostics


@dataclass
class InvariantViolation:
    """A specific invariant violation."""
    invariant: str           # Name of the invariant
    severity: InvariantSeverity
    message: str
    vertices_involved: List[int] = None              # Vertex ids involved
    edges_involved: List[Tuple[int, int]] = None     # (source, target) pairs

    def __post_init__(self):
        if self.vertices_involved is None:
            self.vertices_involved = []
        if self.edges_involved is None:
            self.edges_involved = []


@dataclass
class InvariantReport:
    """Complete invariant validation report."""
    valid: bool
    violations: List[InvariantViolation]
    metrics: Dict[str, Any]

    @property
    def errors(self) -> List[InvariantViolation]:
        return [v for v in self.violations if v.severity == InvariantSeverity.ERROR]

    @property
    def warnings(self) -> List[InvariantViolation]:
        return [v for v in self.violations if v.severity == InvariantSeverity.WARNING]

    def summary(self) -> str:
        """One line per ERROR violation, for exception messages."""
        return "; ".join(v.message for v in self.errors)


def _is_vertex_id(value: Any, vertex_count: int) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value < vertex_count
    )


def _build_report(violations: List[InvariantViolation], metrics: Dict[str, Any]) -> InvariantReport:
    is_valid = all(v.severity != InvariantSeverity.ERROR for v in violations)
    return InvariantReport(valid=is_valid, violations=violations, metrics=metrics)


# =============================================================================
# STRUCTURAL INVARIANTS (Construction-Time)
# =============================================================================

class GraphInvariants:
    """
    Structural validators for LabeledGraph input.

    All methods are static and operate on plain sequences so they can run
    before any graph object exists. Each returns (is_valid, violation or None).

    Performance: All checks are O(V+E).
    """

    @staticmethod
    def validate_arity(
        labels: Sequence[Any],
        children: Sequence[Iterable[int]],
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """
        Arity Invariant: exactly one label and one child set per vertex.

        Labels must be integers; bool is rejected even though it subclasses int.
        """
        if len(labels) != len(children):
            return False, InvariantViolation(
                invariant="arity",
                severity=InvariantSeverity.ERROR,
                message=f"{len(labels)} labels but {len(children)} child sets",
            )

        bad = [
            v for v, label in enumerate(labels)
            if not isinstance(label, int) or isinstance(label, bool)
        ]
        if bad:
            return False, InvariantViolation(
                invariant="arity",
                severity=InvariantSeverity.ERROR,
                message=f"{len(bad)} vertex label(s) are not integers",
                vertices_involved=bad[:_REPORT_LIMIT],
            )

        return True, None

    @staticmethod
    def validate_dense_ids(
        vertex_count: int,
        children: Sequence[Iterable[int]],
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """
        Dense ID Invariant: every child id lies in [0, vertex_count).

        Returns:
            (is_valid, violation or None)
        """
        dangling = [
            (v, child)
            for v, kids in enumerate(children)
            for child in kids
            if not _is_vertex_id(child, vertex_count)
        ]
        if dangling:
            return False, InvariantViolation(
                invariant="dense_ids",
                severity=InvariantSeverity.ERROR,
                message=f"{len(dangling)} edge(s) reference vertices outside [0, {vertex_count})",
                edges_involved=dangling[:_REPORT_LIMIT],
            )
        return True, None

    @staticmethod
    def validate_parent_pairing(
        vertex_count: int,
        children: Sequence[Iterable[int]],
        parents: Sequence[Iterable[int]],
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """
        Parent Pairing Invariant: j in children[i] <=> i in parents[j].

        Compares the edge set implied by children with the one implied by
        parents; any edge present in only one of them is reported.
        """
        if len(parents) != vertex_count:
            return False, InvariantViolation(
                invariant="parent_pairing",
                severity=InvariantSeverity.ERROR,
                message=f"{len(parents)} parent sets for {vertex_count} vertices",
            )

        dangling = [
            v for v, preds in enumerate(parents)
            for p in preds
            if not _is_vertex_id(p, vertex_count)
        ]
        if dangling:
            return False, InvariantViolation(
                invariant="parent_pairing",
                severity=InvariantSeverity.ERROR,
                message=f"{len(dangling)} parent reference(s) outside [0, {vertex_count})",
                vertices_involved=dangling[:_REPORT_LIMIT],
            )

        forward = {(i, j) for i, kids in enumerate(children) for j in kids}
        backward = {(i, j) for j, preds in enumerate(parents) for i in preds}
        mismatched = sorted(forward ^ backward)
        if mismatched:
            return False, InvariantViolation(
                invariant="parent_pairing",
                severity=InvariantSeverity.ERROR,
                message=f"{len(mismatched)} edge(s) disagree between children and parents",
                edges_involved=mismatched[:_REPORT_LIMIT],
            )

        return True, None

    @staticmethod
    def validate_edge_label_domain(
        vertex_count: int,
        children: Sequence[Iterable[int]],
        edge_labels: Mapping[Tuple[int, int], Any],
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """
        Edge-Label Domain Invariant: labeled pairs must be edges, labels ints.
        """
        not_edges = []
        bad_values = []
        for key, label in edge_labels.items():
            if not isinstance(key, tuple) or len(key) != 2:
                not_edges.append(key)
                continue
            source, target = key
            if not _is_vertex_id(source, vertex_count) or target not in children[source]:
                not_edges.append(key)
            elif not isinstance(label, int) or isinstance(label, bool):
                bad_values.append(key)

        if not_edges:
            return False, InvariantViolation(
                invariant="edge_label_domain",
                severity=InvariantSeverity.ERROR,
                message=f"{len(not_edges)} edge label(s) attached to non-edges",
                edges_involved=not_edges[:_REPORT_LIMIT],
            )
        if bad_values:
            return False, InvariantViolation(
                invariant="edge_label_domain",
                severity=InvariantSeverity.ERROR,
                message=f"{len(bad_values)} edge label(s) are not integers",
                edges_involved=bad_values[:_REPORT_LIMIT],
            )
        return True, None

    @staticmethod
    def validate_structure(
        labels: Sequence[Any],
        children: Sequence[Iterable[int]],
        parents: Optional[Sequence[Iterable[int]]] = None,
        edge_labels: Optional[Mapping[Tuple[int, int], Any]] = None,
    ) -> InvariantReport:
        """
        Run all structural validations and return a comprehensive report.

        Later checks assume earlier ones passed, so validation stops at the
        first failing stage.
        """
        violations: List[InvariantViolation] = []
        metrics: Dict[str, Any] = {"vertex_count": len(labels)}

        valid, violation = GraphInvariants.validate_arity(labels, children)
        if not valid:
            return _build_report([violation], metrics)

        vertex_count = len(labels)
        valid, violation = GraphInvariants.validate_dense_ids(vertex_count, children)
        if not valid:
            return _build_report([violation], metrics)

        if parents is not None:
            valid, violation = GraphInvariants.validate_parent_pairing(vertex_count, children, parents)
            if violation:
                violations.append(violation)

        if edge_labels is not None:
            valid, violation = GraphInvariants.validate_edge_label_domain(vertex_count, children, edge_labels)
            if violation:
                violations.append(violation)

        metrics["edge_count"] = sum(len(set(kids)) for kids in children)
        return _build_report(violations, metrics)


# =============================================================================
# RELATION INVARIANTS (Simulation Verification)
# =============================================================================

class SimulationInvariants:
    """
    Validators for a candidate mapping claimed to be a simulation.

    These walk the definition directly (pair by pair) rather than reusing the
    engine's pass loop. Quadratic in the worst case: intended for tests and
    audits, not hot paths.
    """

    @staticmethod
    def _query_edges(query: "LabeledGraph", u: int, dual_mode: bool):
        """Yield (neighbour, parent?, edge_label or None) for query vertex u."""
        for u_c in sorted(query.children_of(u)):
            yield u_c, False, query.get_edge_label(u, u_c)
        if dual_mode:
            for u_p in sorted(query.parents_of(u)):
                yield u_p, True, query.get_edge_label(u_p, u)

    @staticmethod
    def _has_support(
        data: "LabeledGraph",
        v: int,
        neighbour_candidates: Set[int],
        parent: bool,
        edge_label: Optional[int],
        edge_aware: bool,
    ) -> bool:
        if parent:
            neighbours = data.parents_of(v)
        else:
            neighbours = data.children_of(v)
        for w in neighbours:
            if w not in neighbour_candidates:
                continue
            if not edge_aware or edge_label is None:
                return True
            pair = (w, v) if parent else (v, w)
            if data.get_edge_label(*pair) == edge_label:
                return True
        return False

    @staticmethod
    def check_shape(
        data: "LabeledGraph",
        query: "LabeledGraph",
        phi: Sequence[Iterable[int]],
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """One candidate set per query vertex, each a subset of data vertex ids."""
        if len(phi) != query.vertex_count:
            return False, InvariantViolation(
                invariant="shape",
                severity=InvariantSeverity.ERROR,
                message=f"{len(phi)} candidate sets for {query.vertex_count} query vertices",
            )
        dangling = [
            u for u, candidates in enumerate(phi)
            if any(not _is_vertex_id(v, data.vertex_count) for v in candidates)
        ]
        if dangling:
            return False, InvariantViolation(
                invariant="shape",
                severity=InvariantSeverity.ERROR,
                message=f"{len(dangling)} candidate set(s) hold ids outside the data graph",
                vertices_involved=dangling[:_REPORT_LIMIT],
            )
        return True, None

    @staticmethod
    def check_labels(
        data: "LabeledGraph",
        query: "LabeledGraph",
        phi: Sequence[Iterable[int]],
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """Label Agreement: labelOf(v) == labelOf(u) for every v in phi[u]."""
        mismatched = [
            (u, v)
            for u, candidates in enumerate(phi)
            for v in candidates
            if data.label_of(v) != query.label_of(u)
        ]
        if mismatched:
            return False, InvariantViolation(
                invariant="label_agreement",
                severity=InvariantSeverity.ERROR,
                message=f"{len(mismatched)} candidate(s) carry the wrong label",
                edges_involved=mismatched[:_REPORT_LIMIT],
            )
        return True, None

    @staticmethod
    def check_soundness(
        data: "LabeledGraph",
        query: "LabeledGraph",
        phi: Sequence[Iterable[int]],
        edge_aware: bool = False,
        dual_mode: bool = False,
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """
        Soundness: every candidate has support for every query edge.

        For each v in phi[u] and each query child u_c there must be a
        v_c in children(v) & phi[u_c] (with matching edge label when
        edge-aware). In dual mode the symmetric parent condition holds too.
        """
        sets = [set(candidates) for candidates in phi]
        unsupported = []
        for u in query.vertices():
            edges = list(SimulationInvariants._query_edges(query, u, dual_mode))
            for v in sets[u]:
                for other, parent, label in edges:
                    if not SimulationInvariants._has_support(
                        data, v, sets[other], parent, label, edge_aware
                    ):
                        unsupported.append((u, v))
                        break

        if unsupported:
            return False, InvariantViolation(
                invariant="soundness",
                severity=InvariantSeverity.ERROR,
                message=f"{len(unsupported)} candidate(s) lack structural support",
                edges_involved=sorted(unsupported)[:_REPORT_LIMIT],
            )
        return True, None

    @staticmethod
    def greatest_simulation(
        data: "LabeledGraph",
        query: "LabeledGraph",
        edge_aware: bool = False,
        dual_mode: bool = False,
    ) -> List[Set[int]]:
        """
        Reference computation of the maximal simulation.

        Starts from every label-agreeing (u, v) pair and removes unsupported
        pairs one at a time until none remain. It never stops early on an
        empty set, so it returns the true greatest fixpoint.
        """
        relation = [
            {v for v in data.vertices() if data.label_of(v) == query.label_of(u)}
            for u in query.vertices()
        ]
        edges = [
            list(SimulationInvariants._query_edges(query, u, dual_mode))
            for u in query.vertices()
        ]

        changed = True
        while changed:
            changed = False
            for u in query.vertices():
                for v in sorted(relation[u]):
                    for other, parent, label in edges[u]:
                        if not SimulationInvariants._has_support(
                            data, v, relation[other], parent, label, edge_aware
                        ):
                            relation[u].discard(v)
                            changed = True
                            break
        return relation

    @staticmethod
    def check_maximality(
        data: "LabeledGraph",
        query: "LabeledGraph",
        phi: Sequence[Iterable[int]],
        edge_aware: bool = False,
        dual_mode: bool = False,
    ) -> Tuple[bool, Optional[InvariantViolation]]:
        """
        Maximality: phi equals the greatest simulation.

        Vertices present in the reference but missing from phi were removed
        although they satisfy the simulation condition.
        """
        reference = SimulationInvariants.greatest_simulation(data, query, edge_aware, dual_mode)
        missing = sorted(
            (u, v)
            for u, candidates in enumerate(phi)
            for v in reference[u] - set(candidates)
        )
        extra = sorted(
            (u, v)
            for u, candidates in enumerate(phi)
            for v in set(candidates) - reference[u]
        )
        if missing:
            return False, InvariantViolation(
                invariant="maximality",
                severity=InvariantSeverity.ERROR,
                message=f"{len(missing)} simulating candidate(s) were removed",
                edges_involved=missing[:_REPORT_LIMIT],
            )
        if extra:
            return False, InvariantViolation(
                invariant="maximality",
                severity=InvariantSeverity.ERROR,
                message=f"{len(extra)} candidate(s) exceed the greatest simulation",
                edges_involved=extra[:_REPORT_LIMIT],
            )
        return True, None

    @staticmethod
    def verify(
        data: "LabeledGraph",
        query: "LabeledGraph",
        phi: Sequence[Iterable[int]],
        edge_aware: bool = False,
        dual_mode: bool = False,
        check_maximal: bool = True,
    ) -> InvariantReport:
        """
        Run all relation validations and return a comprehensive report.

        Args:
            data: The data graph
            query: The query graph
            phi: Candidate mapping to verify
            edge_aware: Require matching edge labels
            dual_mode: Also require parent support
            check_maximal: Include the (quadratic) maximality check

        Returns:
            InvariantReport with all results and metrics
        """
        violations: List[InvariantViolation] = []
        metrics: Dict[str, Any] = {
            "query_vertices": query.vertex_count,
            "candidate_total": sum(len(set(c)) for c in phi),
        }

        valid, violation = SimulationInvariants.check_shape(data, query, phi)
        if not valid:
            return _build_report([violation], metrics)

        valid, violation = SimulationInvariants.check_labels(data, query, phi)
        if violation:
            violations.append(violation)

        valid, violation = SimulationInvariants.check_soundness(data, query, phi, edge_aware, dual_mode)
        if violation:
            violations.append(violation)

        if check_maximal:
            valid, violation = SimulationInvariants.check_maximality(data, query, phi, edge_aware, dual_mode)
            if violation:
                violations.append(violation)

        metrics["empty_sets"] = sum(1 for c in phi if not set(c))
        return _build_report(violations, metrics)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def validate_structure(labels, children, parents=None, edge_labels=None) -> InvariantReport:
    """Convenience function to validate raw graph input."""
    return GraphInvariants.validate_structure(labels, children, parents, edge_labels)


def verify_simulation(data, query, phi, edge_aware: bool = False,
                      dual_mode: bool = False, check_maximal: bool = True) -> InvariantReport:
    """Convenience function to verify a candidate mapping."""
    return SimulationInvariants.verify(data, query, phi, edge_aware, dual_mode, check_maximal)


def get_graph_metrics(graph: rx.PyDiGraph) -> Dict[str, Any]:
    """Get basic metrics for a rustworkx mirror without full validation."""
    self_loops = sum(1 for source, target in graph.edge_list() if source == target)
    labels = {payload for payload in graph.nodes()}
    return {
        "vertex_count": graph.num_nodes(),
        "edge_count": graph.num_edges(),
        "label_count": len(labels),
        "self_loops": self_loops,
        "is_dag": rx.is_directed_acyclic_graph(graph),
        "weakly_connected_components": (
            rx.number_weakly_connected_components(graph) if graph.num_nodes() else 0
        ),
    }
