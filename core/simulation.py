"""
SIMGRAPH SIMULATION ENGINE - The Fixpoint Refiner

Computes, for every query vertex u, the maximal set of data vertices that
simulate u: same label, and for every query edge u -> u_c a data edge
v -> v_c with v_c itself a candidate for u_c.

Algorithm:
1. Seed phi from label equality (core.candidates)
2. Repeat passes; each pass drops every candidate lacking support for some
   query edge (one witness per candidate is enough)
3. Stop when a pass changes nothing (fixpoint), when a candidate set
   empties (unsatisfiable; simulation is monotone so it can never refill),
   or when max_passes is reached (phi is still a safe over-approximation)

Strategies (closed set, selected at engine construction):
- PLAIN: support = children(v) & phi[u_c]
- EDGE_LABELED: children restricted to edges whose label equals the query
  edge's label; unlabeled query edges act as wildcards
- DUAL: PLAIN or EDGE_LABELED child support plus the symmetric parent rule

Update orders:
- SNAPSHOT: each pass reads the previous pass's phi and writes a fresh one,
  so visit order cannot affect even the pass count
- IN_PLACE: phi is mutated as vertices are visited; later vertices in a pass
  see earlier removals, which may save passes

Either way the final fixpoint is the same maximal simulation.
"""
import logging
import random
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Sequence, Set, Tuple

from core.candidates import CandidateIndex, CandidateMapping
from core.errors import UnsupportedError
from core.labeled_graph import LabeledGraph
from core.ontology import RefinementMode, UpdateOrder, VisitOrder, mode_for
from core.schemas import FrozenMapping, MatchConfig, MatchResult, freeze_mapping

logger = logging.getLogger(__name__)


# =============================================================================
# REFINEMENT STRATEGIES
# =============================================================================

class QueryEdge(NamedTuple):
    """One structural requirement on the candidates of a query vertex."""
    neighbour: int                # Query vertex at the other end
    edge_label: Optional[int]     # None = any edge label
    incoming: bool                # True if neighbour is a query parent


@dataclass(frozen=True)
class RefinementStrategy:
    """
    Support predicate used inside the shared fixpoint loop.

    The three modes differ only in which data neighbours of a candidate are
    eligible to support a query edge.
    """
    mode: RefinementMode
    edge_labels: bool     # Restrict neighbours by edge label
    parents: bool         # Add the parent rule

    def check_capabilities(self, data: LabeledGraph, query: LabeledGraph) -> None:
        """
        Unlabeled query edges are wildcards, so edge awareness only needs data
        edge labels when the query labels at least one edge.

        Raises:
            UnsupportedError: If either graph lacks what this strategy reads
        """
        if self.edge_labels and query.edge_labels and not data.has_edge_labels:
            raise UnsupportedError(
                "Edge-aware refinement of a query with labeled edges needs "
                "edge labels on the data graph"
            )
        if self.parents:
            for name, graph in (("data", data), ("query", query)):
                if not graph.is_dual:
                    raise UnsupportedError(
                        f"Dual refinement needs parent sets on the {name} graph (dual=True)"
                    )

    def query_edges(self, query: LabeledGraph, u: int) -> Tuple[QueryEdge, ...]:
        """Requirements on phi[u], children first, in id order."""
        edges = [
            QueryEdge(u_c, query.get_edge_label(u, u_c) if self.edge_labels else None, False)
            for u_c in sorted(query.children_of(u))
        ]
        if self.parents:
            edges.extend(
                QueryEdge(u_p, query.get_edge_label(u_p, u) if self.edge_labels else None, True)
                for u_p in sorted(query.parents_of(u))
            )
        return tuple(edges)

    def neighbours(self, data: LabeledGraph, v: int, edge: QueryEdge):
        """Data neighbours of v eligible to support `edge`."""
        if edge.incoming:
            if edge.edge_label is not None:
                return data.parents_with_edge_label(v, edge.edge_label)
            return data.parents_of(v)
        if edge.edge_label is not None:
            return data.children_with_edge_label(v, edge.edge_label)
        return data.children_of(v)

    def supports(
        self,
        data: LabeledGraph,
        v: int,
        edges: Sequence[QueryEdge],
        phi: Sequence[Set[int]],
    ) -> bool:
        """True if v has support for every edge; stops at the first violation."""
        for edge in edges:
            if self.neighbours(data, v, edge).isdisjoint(phi[edge.neighbour]):
                return False
        return True


_PLAIN = RefinementStrategy(RefinementMode.PLAIN, edge_labels=False, parents=False)
_EDGE_LABELED = RefinementStrategy(RefinementMode.EDGE_LABELED, edge_labels=True, parents=False)
_DUAL = RefinementStrategy(RefinementMode.DUAL, edge_labels=False, parents=True)
_DUAL_EDGE_LABELED = RefinementStrategy(RefinementMode.DUAL, edge_labels=True, parents=True)


def select_strategy(edge_aware: bool, dual_mode: bool) -> RefinementStrategy:
    """Pick the strategy for a pair of option flags."""
    mode = mode_for(edge_aware, dual_mode)
    if mode == RefinementMode.DUAL:
        return _DUAL_EDGE_LABELED if edge_aware else _DUAL
    if mode == RefinementMode.EDGE_LABELED:
        return _EDGE_LABELED
    return _PLAIN


# =============================================================================
# PASS BOOKKEEPING
# =============================================================================

class PassOutcome(NamedTuple):
    """State after the seed (iteration 0) or after one refinement pass."""
    iteration: int
    phi: CandidateMapping
    removed: int                   # Candidates dropped during this pass
    empty_vertex: Optional[int]    # First query vertex found empty, if any


def _first_empty(phi: Sequence[Set[int]], order: Sequence[int]) -> Optional[int]:
    for u in order:
        if not phi[u]:
            return u
    return None


# =============================================================================
# SIMULATION ENGINE
# =============================================================================

class SimulationEngine:
    """
    Graph simulation matcher.

    Usage:
        engine = SimulationEngine(edge_aware=True)
        result = engine.mappings(data_graph, query_graph)
        if result.satisfiable:
            result.candidates(0)   # data vertices simulating query vertex 0

    The engine holds only its configuration; every call owns its own phi,
    so one engine (and the graphs) may serve many independent matches.
    """

    def __init__(self, config: Optional[MatchConfig] = None, **overrides):
        """
        Args:
            config: Base options (defaults to MatchConfig())
            **overrides: Individual MatchConfig fields to change

        Raises:
            ConfigError: If the resulting options are invalid
        """
        config = config if config is not None else MatchConfig()
        if overrides:
            config = config.replace(**overrides)
        self.config = config
        self.strategy = select_strategy(config.edge_aware, config.dual_mode)

    @property
    def mode(self) -> RefinementMode:
        return self.strategy.mode

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    def mappings(
        self,
        data: LabeledGraph,
        query: LabeledGraph,
        edge_aware: Optional[bool] = None,
    ) -> MatchResult:
        """
        Seed and refine phi, returning the final mapping.

        Args:
            data: The data graph (not mutated)
            query: The query graph (not mutated)
            edge_aware: Override the configured edge awareness for this call

        Returns:
            MatchResult; satisfiable=False when some candidate set emptied

        Raises:
            UnsupportedError: If the graphs lack edge labels / parent sets
                              required by the selected strategy
        """
        strategy = self._strategy_for(edge_aware)

        outcome: Optional[PassOutcome] = None
        for outcome in self._run(data, query, strategy):
            pass

        empty = outcome.empty_vertex
        converged = empty is None and outcome.iteration > 0 and outcome.removed == 0
        if empty is None and not converged:
            logger.warning(
                "Stopped after %d pass(es) without reaching a fixpoint (max_passes=%s)",
                outcome.iteration, self.config.max_passes,
            )

        result = MatchResult(
            phi=freeze_mapping(outcome.phi),
            satisfiable=empty is None,
            iterations=outcome.iteration,
            terminated_early=empty is not None,
            converged=converged,
            empty_vertex=empty,
            mode=strategy.mode,
            edge_aware=strategy.edge_labels,
        )
        logger.info(
            "Simulation (%s) finished: %d pass(es), satisfiable=%s, %d candidates",
            strategy.mode.value, result.iterations, result.satisfiable, result.total_candidates(),
        )
        return result

    def iter_passes(
        self,
        data: LabeledGraph,
        query: LabeledGraph,
        edge_aware: Optional[bool] = None,
    ) -> Iterator[FrozenMapping]:
        """
        Yield a frozen phi after the seed and after every pass.

        Useful for progress reporting and for checking monotonicity; the last
        snapshot equals mappings(...).phi.
        """
        strategy = self._strategy_for(edge_aware)
        for outcome in self._run(data, query, strategy):
            yield freeze_mapping(outcome.phi)

    def bijections(self, *args, **kwargs):
        """
        Not offered: simulation is many-valued by construction.

        Raises:
            UnsupportedError: Always
        """
        raise UnsupportedError(
            "Graph simulation cannot produce one-to-one matches; "
            "verify candidates with a separate isomorphism search"
        )

    # =========================================================================
    # FIXPOINT LOOP
    # =========================================================================

    def _strategy_for(self, edge_aware: Optional[bool]) -> RefinementStrategy:
        if edge_aware is None:
            return self.strategy
        return select_strategy(edge_aware, self.config.dual_mode)

    def _visit_order(self, vertex_count: int) -> List[int]:
        order = list(range(vertex_count))
        if self.config.visit_order == VisitOrder.REVERSE:
            order.reverse()
        elif self.config.visit_order == VisitOrder.SHUFFLED:
            random.Random(self.config.seed).shuffle(order)
        return order

    def _run(
        self,
        data: LabeledGraph,
        query: LabeledGraph,
        strategy: RefinementStrategy,
    ) -> Iterator[PassOutcome]:
        strategy.check_capabilities(data, query)

        order = self._visit_order(query.vertex_count)
        phi = CandidateIndex.seed(data, query)
        empty = _first_empty(phi, order)
        yield PassOutcome(0, phi, 0, empty)
        if empty is not None:
            logger.debug("Query vertex %d has no label match; skipping refinement", empty)
            return

        edges = [strategy.query_edges(query, u) for u in query.vertices()]
        in_place = self.config.update_order == UpdateOrder.IN_PLACE
        limit = self.config.max_passes

        iteration = 0
        while limit is None or iteration < limit:
            iteration += 1
            phi, removed, empty = self._refine_pass(data, strategy, edges, phi, order, in_place)
            logger.debug("Pass %d removed %d candidate(s)", iteration, removed)
            yield PassOutcome(iteration, phi, removed, empty)
            if empty is not None or removed == 0:
                return

    def _refine_pass(
        self,
        data: LabeledGraph,
        strategy: RefinementStrategy,
        edges: Sequence[Tuple[QueryEdge, ...]],
        phi: CandidateMapping,
        order: Sequence[int],
        in_place: bool,
    ) -> Tuple[CandidateMapping, int, Optional[int]]:
        """
        One pass over all query vertices.

        In SNAPSHOT mode `phi` is only read and a new list is returned whose
        changed entries are new sets. In IN_PLACE mode `phi` itself is
        updated and returned.

        Returns:
            (next phi, candidates removed, query vertex that emptied or None)
        """
        current = phi if in_place else list(phi)
        reads = current if in_place else phi
        removed = 0

        for u in order:
            requirements = edges[u]
            if not requirements:
                continue
            candidates = current[u]
            kept = {v for v in candidates if strategy.supports(data, v, requirements, reads)}
            if len(kept) == len(candidates):
                continue
            removed += len(candidates) - len(kept)
            current[u] = kept
            if not kept:
                return current, removed, u

        return current, removed, None


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def simulate(
    data: LabeledGraph,
    query: LabeledGraph,
    config: Optional[MatchConfig] = None,
    **overrides,
) -> MatchResult:
    """Run one match with a throwaway engine."""
    return SimulationEngine(config, **overrides).mappings(data, query)
