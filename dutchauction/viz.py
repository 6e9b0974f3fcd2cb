# dutchauction/viz.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable

import matplotlib.pyplot as plt
import numpy as np

from .metrics import allocations_frame, demand_curve
from .models import Bid, ClearingResult


def _figdir(out_dir: str) -> Path:
    figdir = Path(out_dir) / "figures"
    figdir.mkdir(parents=True, exist_ok=True)
    return figdir


def plot_demand_curve(bids: Iterable[Bid], result: ClearingResult, out_dir: str) -> str:
    curve = demand_curve(bids)
    figdir = _figdir(out_dir)
    plt.figure()
    if not curve.empty:
        prices = curve["price"].astype(float).to_numpy()
        plt.step(curve["cumulative_demand"].to_numpy(), prices, where="post", label="cumulative demand")
    plt.axvline(result.total_supply, color="tab:red", linestyle="--", label="supply")
    plt.axhline(float(result.clearing_price), color="tab:green", linestyle=":", label="clearing price")
    plt.legend()
    plt.title("Demand Curve")
    plt.xlabel("shares")
    plt.ylabel("max price")
    p = figdir / "demand_curve.png"
    plt.tight_layout()
    plt.savefig(p)
    plt.close()
    return str(p)


def plot_allocations(result: ClearingResult, out_dir: str) -> str:
    df = allocations_frame(result)
    figdir = _figdir(out_dir)
    plt.figure()
    x = np.arange(len(df))
    plt.bar(x, df["original_quantity"].to_numpy(), label="requested", alpha=0.4)
    plt.bar(x, df["allocated_quantity"].to_numpy(), label="allocated")
    plt.legend()
    plt.title(f"Allocations @ {result.clearing_price}")
    plt.xlabel("bid (processing order)")
    plt.ylabel("shares")
    p = figdir / "allocations.png"
    plt.tight_layout()
    plt.savefig(p)
    plt.close()
    return str(p)


def plot_result(bids: Iterable[Bid], result: ClearingResult, out_dir: str) -> Dict[str, str]:
    bids = list(bids)
    return {
        "demand_curve_png": plot_demand_curve(bids, result, out_dir),
        "allocations_png": plot_allocations(result, out_dir),
    }


def plot_latency_hist(latencies_ns: np.ndarray, out_dir: str, n_bids: int = 0) -> str:
    """Histogram of clear() latency with the p50 and p99 marked."""
    figdir = _figdir(out_dir)
    us = latencies_ns / 1_000.0
    plt.figure()
    plt.hist(us, bins=50, color="tab:gray")
    if us.size:
        for q, style in ((50, "-"), (99, "--")):
            plt.axvline(float(np.percentile(us, q)), color="tab:red", linestyle=style, label=f"p{q}")
        plt.legend()
    plt.title(f"Clearing latency, {n_bids:,} bids per book" if n_bids else "Clearing latency")
    plt.xlabel("clear() latency (μs)")
    plt.ylabel("books")
    p = figdir / "latency_hist.png"
    plt.tight_layout()
    plt.savefig(p)
    plt.close()
    return str(p)
