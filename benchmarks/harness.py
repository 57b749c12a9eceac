"""
SIMGRAPH BENCHMARK HARNESS

Generates a random data graph, samples BFS queries from it, and times the
simulation engine on each query.

Usage:
    python -m benchmarks.harness
    python -m benchmarks.harness --vertices 100000 --labels 50 --degree 8
    python -m benchmarks.harness --edge-labels 4 --edge-aware --runs 20
    python -m benchmarks.harness --dual --output metrics.parquet

Defaults come from the [benchmark] table of config/simgraph.toml; engine
options from [matching]. Command-line flags override both.
"""
import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.candidates import CandidateIndex
from core.graph_invariants import get_graph_metrics
from core.schemas import MatchConfig
from core.simulation import SimulationEngine
from infrastructure.config import BenchmarkConfig, load_benchmark_config, load_match_config
from infrastructure.generators import generate_bfs_query, generate_random_graph
from infrastructure.metrics import MatchMetricsCollector

logger = logging.getLogger(__name__)


# =============================================================================
# BENCHMARK RUN
# =============================================================================

def run_benchmark(
    bench: BenchmarkConfig,
    match_config: MatchConfig,
    collector: Optional[MatchMetricsCollector] = None,
) -> MatchMetricsCollector:
    """
    Execute `bench.runs` matches against one generated data graph.

    Each run samples a fresh query (seed offset by run number) and times
    seed + refinement together.

    Returns:
        The collector holding one MatchMetric per run
    """
    collector = collector if collector is not None else MatchMetricsCollector()
    dual = match_config.dual_mode

    started = time.perf_counter()
    data = generate_random_graph(
        bench.vertices,
        bench.labels,
        bench.degree,
        edge_label_count=bench.edge_labels,
        seed=bench.seed,
        dual=dual,
    )
    logger.info(
        "Generated data graph in %.1fms: %s",
        (time.perf_counter() - started) * 1000, get_graph_metrics(data.to_rustworkx()),
    )

    engine = SimulationEngine(match_config)
    query_vertices = min(bench.query_vertices, data.vertex_count)

    for run in range(bench.runs):
        query_seed = None if bench.seed is None else bench.seed + run + 1
        query = generate_bfs_query(
            query_vertices, bench.query_degree, data, seed=query_seed, dual=dual
        )
        seed_candidates = sum(len(s) for s in CandidateIndex.seed(data, query))

        started = time.perf_counter()
        result = engine.mappings(data, query)
        elapsed_ms = (time.perf_counter() - started) * 1000

        metric = collector.record(data, query, result, elapsed_ms, seed_candidates)
        logger.info(
            "Run %d: %d pass(es), %d -> %d candidates, %.2fms",
            run, metric.iterations, metric.seed_candidates, metric.final_candidates, elapsed_ms,
        )

    return collector


def format_report(collector: MatchMetricsCollector) -> str:
    """Human-readable summary of a benchmark run."""
    summary = collector.get_summary()
    lines = [
        "=" * 60,
        "SIMGRAPH BENCHMARK SUMMARY",
        "=" * 60,
        f"Runs:              {summary['runs']}",
        f"Satisfiable:       {summary['satisfiable']}",
        f"Avg passes:        {summary['avg_iterations']:.2f}",
        f"Max passes:        {summary['max_iterations']}",
        f"Avg time:          {summary['avg_elapsed_ms']:.2f}ms",
        f"Pruned candidates: {summary['pruning_ratio']:.1%}",
    ]
    if summary["runs"]:
        lines.append("")
        lines.append(str(collector.to_dataframe().drop("recorded_at")))
    return "\n".join(lines)


# =============================================================================
# CLI
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Simgraph Benchmark Harness",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m benchmarks.harness --vertices 10000 --runs 10
    python -m benchmarks.harness --edge-labels 3 --edge-aware
    python -m benchmarks.harness --dual --output metrics.parquet
        """
    )
    parser.add_argument("--config", type=Path, help="Path to simgraph.toml")
    parser.add_argument("--vertices", type=int, help="Data graph vertex count")
    parser.add_argument("--labels", type=int, help="Distinct vertex labels")
    parser.add_argument("--degree", type=float, help="Data graph mean out-degree")
    parser.add_argument("--query-vertices", type=int, help="Query vertex count")
    parser.add_argument("--query-degree", type=float, help="Query BFS fan-out")
    parser.add_argument("--edge-labels", type=int, help="Distinct edge labels (labels every edge)")
    parser.add_argument("--runs", type=int, help="Number of queries to time")
    parser.add_argument("--seed", type=int, help="RNG seed")
    parser.add_argument(
        "--edge-aware",
        action="store_true",
        default=None,
        help="Use edge-labeled refinement (needs --edge-labels)",
    )
    parser.add_argument(
        "--dual",
        action="store_true",
        default=None,
        help="Add parent-based refinement",
    )
    parser.add_argument("--max-passes", type=int, help="Bound on refinement passes")
    parser.add_argument("--output", type=Path, help="Write metrics to a Parquet file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bench = load_benchmark_config(
        args.config,
        vertices=args.vertices,
        labels=args.labels,
        degree=args.degree,
        query_vertices=args.query_vertices,
        query_degree=args.query_degree,
        edge_labels=args.edge_labels,
        runs=args.runs,
        seed=args.seed,
    )
    match_config = load_match_config(
        args.config,
        edge_aware=args.edge_aware,
        dual_mode=args.dual,
        max_passes=args.max_passes,
    )
    if match_config.edge_aware and bench.edge_labels is None:
        parser.error("--edge-aware needs edge labels (--edge-labels or [benchmark] edge_labels)")

    collector = run_benchmark(bench, match_config)
    print(format_report(collector))

    if args.output:
        collector.write_parquet(args.output)
        logger.info("Wrote %d metric(s) to %s", len(collector), args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
