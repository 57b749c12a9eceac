"""
SIMGRAPH CANDIDATE INDEX - Initial Candidate Sets

Seeds phi from label equality: phi[u] is every data vertex whose label
equals the label of query vertex u.

The data graph's label index makes this O(|V_Q| + |V_G|) instead of the
O(|V_Q| * |V_G|) scan; the scan is kept as seed_naive for benchmarks and
cross-checks.

A query vertex whose label never occurs in the data graph gets an empty
set. That is a valid outcome (the query is unsatisfiable), not an error.
"""
import logging
from typing import List, Set

from core.labeled_graph import LabeledGraph

logger = logging.getLogger(__name__)

# Mutable candidate mapping: query vertex id -> data vertex ids
CandidateMapping = List[Set[int]]


class CandidateIndex:
    """Builders for the initial candidate mapping. All methods are static."""

    @staticmethod
    def seed(data: LabeledGraph, query: LabeledGraph) -> CandidateMapping:
        """
        Label-equality seed using the data graph's label index.

        Args:
            data: The data graph
            query: The query graph

        Returns:
            A fresh list of fresh sets, owned by the caller
        """
        index = data.label_index()
        phi = [set(index.get(label, ())) for label in query.labels]
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Seeded %d query vertices, %d candidates total, %d empty",
                len(phi), sum(len(s) for s in phi), sum(1 for s in phi if not s),
            )
        return phi

    @staticmethod
    def seed_naive(data: LabeledGraph, query: LabeledGraph) -> CandidateMapping:
        """Label-equality seed by scanning every data vertex per query vertex."""
        return [
            {v for v in data.vertices() if data.label_of(v) == query.label_of(u)}
            for u in query.vertices()
        ]


def seed_candidates(data: LabeledGraph, query: LabeledGraph) -> CandidateMapping:
    """Convenience function for CandidateIndex.seed."""
    return CandidateIndex.seed(data, query)
