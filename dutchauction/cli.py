# dutchauction/cli.py
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .codec import load_bids, result_to_dict
from .engine import ClearingEngine
from .errors import ClearingError
from .metrics import auction_stats, summarize_latency_ns
from .models import Bid, ClearingResult
from .report import generate_auction_summary
from .sim import EXAMPLE_SUPPLY, BidGenConfig, example_bids, run_sim, save_artifacts
from .viz import plot_latency_hist, plot_result

logger = logging.getLogger("dutchauction")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _stats_dict(result: ClearingResult) -> dict:
    stats = auction_stats(result)
    return {
        "total_revenue": format(stats.total_revenue, "f"),
        "successful_bidders": stats.successful_bidders,
        "rejected_bidders": stats.rejected_bidders,
        "demand_ratio": round(stats.demand_ratio, 6),
        "allocation_rate": round(stats.allocation_rate, 6),
    }


def _emit(bids: List[Bid], result: ClearingResult, args: argparse.Namespace) -> None:
    if args.summary:
        print(generate_auction_summary(result), end="")
        return
    out = {"clearing_results": result_to_dict(result), "stats": _stats_dict(result)}
    if args.report:
        out["saved"] = {**save_artifacts(bids, result, args.report), **plot_result(bids, result, args.report)}
    print(json.dumps(out, indent=2, sort_keys=True))


def run_clear(args: argparse.Namespace) -> None:
    bids = load_bids(args.bids)
    result = ClearingEngine(check_invariants=args.check).clear(bids, args.supply)
    _emit(bids, result, args)


def run_example(args: argparse.Namespace) -> None:
    bids = example_bids()
    result = ClearingEngine(check_invariants=True).clear(bids, EXAMPLE_SUPPLY)
    _emit(bids, result, args)


def run_simulation(args: argparse.Namespace) -> None:
    cfg = BidGenConfig(
        seed=args.seed,
        n_bids=args.n_bids,
        total_supply=args.supply,
        tick_size=args.tick,
        price_mid=args.mid,
        sigma_ticks=args.sigma_ticks,
        size_mean=args.size_mean,
        size_min=args.size_min,
    )
    art = run_sim(cfg, rounds=1, check_invariants=True)
    _emit(art.bids, art.result, args)


def run_bench(args: argparse.Namespace) -> None:
    cfg = BidGenConfig(seed=args.seed, n_bids=args.n_bids, total_supply=args.supply)
    art = run_sim(cfg, rounds=args.rounds, check_invariants=args.check)
    out_dir = Path(args.report)
    out_dir.mkdir(parents=True, exist_ok=True)
    summary = summarize_latency_ns(art.latencies_ns, n_bids=cfg.n_bids)
    row = {"seed": cfg.seed, "n_bids": cfg.n_bids, "total_supply": cfg.total_supply, "rounds": args.rounds, **summary}
    csv = out_dir / "benchmark_summary.csv"
    pd.DataFrame([row]).to_csv(csv, index=False)
    out = {
        "benchmark": row,
        "last_clearing": {
            "clearing_price": format(art.result.clearing_price, "f"),
            "clearing_logic": art.result.clearing_logic.value,
        },
        "latency_hist": plot_latency_hist(art.latencies_ns, str(out_dir), n_bids=cfg.n_bids),
        "csv": str(csv),
    }
    print(json.dumps(out, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dutchauction", description="Uniform-price sealed-bid auction clearing")
    parser.add_argument("--log-level", type=str.upper, default="WARNING", choices=LOG_LEVELS)
    sub = parser.add_subparsers(dest="cmd", required=True)

    def output_flags(p: argparse.ArgumentParser) -> None:
        p.add_argument("--summary", action="store_true", help="Print the text report instead of JSON")
        p.add_argument("--report", type=str, default=None, help="Directory for CSV/JSON artifacts and figures")

    p_clear = sub.add_parser("clear", help="Clear a bid file (.json or .csv)")
    p_clear.add_argument("--bids", type=str, required=True)
    p_clear.add_argument("--supply", type=int, required=True)
    p_clear.add_argument("--check", action="store_true", help="Assert result invariants")
    output_flags(p_clear)
    p_clear.set_defaults(func=run_clear)

    p_example = sub.add_parser("example", help="Clear the built-in four-bid example")
    output_flags(p_example)
    p_example.set_defaults(func=run_example)

    p_sim = sub.add_parser("sim", help="Generate a random bid book and clear it")
    p_sim.add_argument("--seed", type=int, default=30)
    p_sim.add_argument("--n-bids", type=int, default=200)
    p_sim.add_argument("--supply", type=int, default=10_000)
    p_sim.add_argument("--tick", type=str, default="0.50")
    p_sim.add_argument("--mid", type=str, default="100.00")
    p_sim.add_argument("--sigma-ticks", type=float, default=8.0)
    p_sim.add_argument("--size-mean", type=float, default=100.0)
    p_sim.add_argument("--size-min", type=int, default=10)
    output_flags(p_sim)
    p_sim.set_defaults(func=run_simulation)

    p_bench = sub.add_parser("bench", help="Time repeated clears of random books")
    p_bench.add_argument("--seed", type=int, default=30)
    p_bench.add_argument("--n-bids", type=int, default=5_000)
    p_bench.add_argument("--supply", type=int, default=200_000)
    p_bench.add_argument("--rounds", type=int, default=200)
    p_bench.add_argument("--report", type=str, default="results")
    p_bench.add_argument("--check", action="store_true", help="Assert invariants on every clear")
    p_bench.set_defaults(func=run_bench)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        args.func(args)
    except ClearingError as exc:
        logger.error("clearing rejected: %s", exc)
        print(json.dumps(exc.to_dict(), indent=2))
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
