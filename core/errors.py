"""
SIMGRAPH ERRORS - The Failure Vocabulary

Every exception raised by the matching engine and its collaborators derives
from SimGraphError, so callers can catch the whole family at one seam.

Taxonomy:
- OutOfRangeError: a vertex id outside [0, vertex_count) was referenced
- NoSuchEdgeError: edge-label lookup on a pair that is not a labeled edge
- UnsupportedError: the graph lacks the capability (edge labels, parents)
  or the operation cannot be answered by simulation at all (bijections)
- InvalidGraphError: malformed input detected at construction time
- ConfigError: configuration value rejected

An unsatisfiable query is NOT an error. It is reported through
MatchResult.satisfiable.
"""
from typing import Any, List, Optional


# =============================================================================
# BASE
# =============================================================================

class SimGraphError(Exception):
    """Base exception for the simgraph package."""
    pass


class GraphError(SimGraphError):
    """Base exception for graph access and construction."""
    pass


# =============================================================================
# ACCESS ERRORS
# =============================================================================

class OutOfRangeError(GraphError, IndexError):
    """Raised when a vertex id is not in [0, vertex_count)."""
    def __init__(self, vertex: Any, vertex_count: int):
        self.vertex = vertex
        self.vertex_count = vertex_count
        super().__init__(
            f"Vertex {vertex!r} out of range for graph with {vertex_count} vertices"
        )


class NoSuchEdgeError(GraphError, KeyError):
    """Raised when an edge label is requested for a non-edge."""
    def __init__(self, source: int, target: int):
        self.source = source
        self.target = target
        super().__init__(f"No labeled edge: {source} -> {target}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class UnsupportedError(SimGraphError):
    """Raised when a graph lacks a capability or an operation is not offered."""
    pass


# =============================================================================
# CONSTRUCTION ERRORS
# =============================================================================

class InvalidGraphError(GraphError, ValueError):
    """
    Raised when a graph fails its structural invariants at construction.

    Attributes:
        violations: The InvariantViolation records that triggered the failure
    """
    def __init__(self, message: str, violations: Optional[List[Any]] = None):
        self.violations = list(violations or [])
        super().__init__(message)


class GraphFormatError(InvalidGraphError):
    """Raised when a flat graph file cannot be parsed."""
    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class ConfigError(SimGraphError, ValueError):
    """Raised when a configuration value is invalid."""
    pass
