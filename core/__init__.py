"""
SIMGRAPH CORE - Central exports for the matching engine.

This module provides access to:
- The data model (LabeledGraph)
- Candidate seeding (CandidateIndex)
- The fixpoint refiner (SimulationEngine, simulate)
- Options and results (MatchConfig, MatchResult)
- The error taxonomy
"""

from core.errors import (
    SimGraphError,
    GraphError,
    OutOfRangeError,
    NoSuchEdgeError,
    UnsupportedError,
    InvalidGraphError,
    GraphFormatError,
    ConfigError,
)
from core.ontology import RefinementMode, UpdateOrder, VisitOrder
from core.schemas import MatchConfig, MatchResult
from core.labeled_graph import LabeledGraph
from core.candidates import CandidateIndex
from core.simulation import SimulationEngine, simulate
from core.graph_invariants import verify_simulation

__all__ = [
    # Errors
    "SimGraphError",
    "GraphError",
    "OutOfRangeError",
    "NoSuchEdgeError",
    "UnsupportedError",
    "InvalidGraphError",
    "GraphFormatError",
    "ConfigError",
    # Vocabulary
    "RefinementMode",
    "UpdateOrder",
    "VisitOrder",
    # Schemas
    "MatchConfig",
    "MatchResult",
    # Engine
    "LabeledGraph",
    "CandidateIndex",
    "SimulationEngine",
    "simulate",
    "verify_simulation",
]
