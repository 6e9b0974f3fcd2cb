# bench/benchmark.py
"""Clearing latency on large random books; writes results/benchmark_summary.csv."""
from __future__ import annotations

from dutchauction.cli import main

if __name__ == "__main__":
    raise SystemExit(main(["bench", "--seed", "123", "--n-bids", "10000", "--supply", "400000", "--rounds", "100"]))
