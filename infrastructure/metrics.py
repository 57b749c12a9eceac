"""
SIMGRAPH METRICS COLLECTOR - Match Run Accounting

Every benchmarked match is recorded as a MatchMetric: graph sizes, mode,
pass count, candidate totals and wall time.

Design Principles:
1. APPEND-ONLY: Metrics are immutable once recorded
2. POLARS-NATIVE: All aggregation uses Polars
3. ZERO OVERHEAD: msgspec structs on the recording path
"""
import msgspec
import polars as pl
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.labeled_graph import LabeledGraph
from core.schemas import MatchResult


def now_utc() -> str:
    """Fast UTC timestamp as ISO8601 string."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# METRIC DATA STRUCTURES
# =============================================================================

class MatchMetric(msgspec.Struct, kw_only=True, frozen=True):
    """One match run."""
    run: int
    mode: str
    data_vertices: int
    data_edges: int
    query_vertices: int
    query_edges: int
    iterations: int
    satisfiable: bool
    converged: bool
    seed_candidates: int          # Candidates before refinement
    final_candidates: int         # Candidates after refinement
    elapsed_ms: float
    recorded_at: str = msgspec.field(default_factory=now_utc)


_COLUMNS = {
    "run": pl.Int64,
    "mode": pl.Utf8,
    "data_vertices": pl.Int64,
    "data_edges": pl.Int64,
    "query_vertices": pl.Int64,
    "query_edges": pl.Int64,
    "iterations": pl.Int64,
    "satisfiable": pl.Boolean,
    "converged": pl.Boolean,
    "seed_candidates": pl.Int64,
    "final_candidates": pl.Int64,
    "elapsed_ms": pl.Float64,
    "recorded_at": pl.Utf8,
}


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MatchMetricsCollector:
    """
    Append-only store of MatchMetric records with Polars aggregation.

    Usage:
        collector = MatchMetricsCollector()
        collector.record(data, query, result, elapsed_ms=3.2, seed_candidates=40)
        collector.to_dataframe()
        collector.get_summary()
    """

    def __init__(self):
        self._metrics: List[MatchMetric] = []

    def record(
        self,
        data: LabeledGraph,
        query: LabeledGraph,
        result: MatchResult,
        elapsed_ms: float,
        seed_candidates: int,
    ) -> MatchMetric:
        """Record one finished match and return the stored metric."""
        metric = MatchMetric(
            run=len(self._metrics),
            mode=result.mode.value,
            data_vertices=data.vertex_count,
            data_edges=data.edge_count,
            query_vertices=query.vertex_count,
            query_edges=query.edge_count,
            iterations=result.iterations,
            satisfiable=result.satisfiable,
            converged=result.converged,
            seed_candidates=seed_candidates,
            final_candidates=result.total_candidates(),
            elapsed_ms=elapsed_ms,
        )
        self._metrics.append(metric)
        return metric

    def get_all_metrics(self) -> List[MatchMetric]:
        """Get all recorded metrics."""
        return list(self._metrics)

    def to_dataframe(self) -> pl.DataFrame:
        """Convert all metrics to a Polars DataFrame (typed even when empty)."""
        if not self._metrics:
            return pl.DataFrame(schema=_COLUMNS)
        return pl.DataFrame(
            [msgspec.structs.asdict(m) for m in self._metrics],
            schema=_COLUMNS,
        )

    def get_summary(self) -> Dict[str, Any]:
        """
        Aggregate statistics over all runs.

        Returns:
            Dictionary with counts, pass statistics, pruning ratio and timing
        """
        df = self.to_dataframe()
        if df.is_empty():
            return {
                "runs": 0,
                "satisfiable": 0,
                "avg_iterations": 0.0,
                "max_iterations": 0,
                "avg_elapsed_ms": 0.0,
                "pruning_ratio": 0.0,
                "by_mode": [],
            }

        seeded = df["seed_candidates"].sum()
        final = df["final_candidates"].sum()
        return {
            "runs": len(df),
            "satisfiable": len(df.filter(pl.col("satisfiable"))),
            "avg_iterations": df["iterations"].mean() or 0.0,
            "max_iterations": df["iterations"].max(),
            "avg_elapsed_ms": df["elapsed_ms"].mean() or 0.0,
            "pruning_ratio": (1.0 - final / seeded) if seeded else 0.0,
            "by_mode": df.group_by("mode").len().sort("mode").to_dicts(),
        }

    def write_parquet(self, path) -> None:
        """Persist all metrics as a Parquet file."""
        self.to_dataframe().write_parquet(path)

    def clear(self) -> None:
        """Clear all collected metrics."""
        self._metrics.clear()

    def __len__(self) -> int:
        return len(self._metrics)


# Global collector instance for simple usage
_global_collector: Optional[MatchMetricsCollector] = None


def get_collector() -> MatchMetricsCollector:
    """Get the global metrics collector instance."""
    global _global_collector
    if _global_collector is None:
        _global_collector = MatchMetricsCollector()
    return _global_collector
