"""
Simgraph Benchmarks

Run with:
    python -m benchmarks.harness
"""
