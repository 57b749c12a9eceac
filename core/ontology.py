"""
SIMGRAPH ONTOLOGY - The Dictionary of the Engine

If schemas.py is the Grammar (how results and options are structured),
ontology.py is the Dictionary (the closed vocabularies they are built from).

This module defines:
- RefinementMode: the capability tag selecting the support rule
- UpdateOrder: how a refinement pass reads and writes the candidate mapping
- VisitOrder: the order query vertices are visited within a pass

All enums are str-valued so they round-trip through TOML and JSON unchanged.
"""
from enum import Enum


# =============================================================================
# ENUMS (The Vocabulary)
# =============================================================================

class RefinementMode(str, Enum):
    """Closed set of refinement strategies."""
    PLAIN = "plain"                  # Label + child support
    EDGE_LABELED = "edge_labeled"    # Child support restricted by edge label
    DUAL = "dual"                    # Child + parent support


class UpdateOrder(str, Enum):
    """How a pass updates phi."""
    SNAPSHOT = "snapshot"            # Read previous pass, write a fresh mapping
    IN_PLACE = "in_place"            # Mutate phi as vertices are visited


class VisitOrder(str, Enum):
    """Order in which query vertices are visited within a pass."""
    FORWARD = "forward"
    REVERSE = "reverse"
    SHUFFLED = "shuffled"            # Seeded permutation, fixed for the run


def mode_for(edge_aware: bool, dual_mode: bool) -> RefinementMode:
    """Resolve the capability tag for a pair of option flags."""
    if dual_mode:
        return RefinementMode.DUAL
    if edge_aware:
        return RefinementMode.EDGE_LABELED
    return RefinementMode.PLAIN
