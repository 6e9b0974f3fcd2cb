# dutchauction/metrics.py
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

from .models import Bid, ClearingResult

ALLOCATION_COLUMNS = [
    "bid_id",
    "bidder_id",
    "bidder_email",
    "original_quantity",
    "allocated_quantity",
    "clearing_price",
    "total_amount",
    "allocation_kind",
    "pro_rata_fraction",
]

STEP_COLUMNS = [
    "step",
    "bid_id",
    "bidder_email",
    "max_price",
    "quantity",
    "running_demand_before",
    "running_demand_after",
    "is_clearing_bid",
]


@dataclass(slots=True)
class AuctionStats:
    total_revenue: Decimal
    successful_bidders: int
    rejected_bidders: int
    demand_ratio: float
    allocation_rate: float
    pro_rata_fraction: Optional[Fraction]


def allocations_frame(result: ClearingResult) -> pd.DataFrame:
    rows = [
        (
            a.bid_id,
            a.bidder_id,
            a.bidder_email,
            a.original_quantity,
            a.allocated_quantity,
            a.clearing_price,
            a.total_amount,
            a.allocation_kind.value,
            a.pro_rata_fraction,
        )
        for a in result.allocations
    ]
    return pd.DataFrame(rows, columns=ALLOCATION_COLUMNS)


def trace_frame(result: ClearingResult) -> pd.DataFrame:
    rows = [
        (
            s.step,
            s.bid_id,
            s.bidder_email,
            s.max_price,
            s.quantity,
            s.running_demand_before,
            s.running_demand_after,
            s.is_clearing_bid,
        )
        for s in result.trace.steps
    ]
    return pd.DataFrame(rows, columns=STEP_COLUMNS)


def demand_curve(bids: Iterable[Bid]) -> pd.DataFrame:
    """Aggregate demand per price level, highest price first, with the cumulative total."""
    levels: Dict[Decimal, int] = defaultdict(int)
    for b in bids:
        levels[b.max_price] += b.quantity
    prices = sorted(levels, reverse=True)
    qty = np.array([levels[p] for p in prices], dtype=np.int64)
    return pd.DataFrame(
        {
            "price": prices,
            "level_demand": qty,
            "cumulative_demand": np.cumsum(qty),
        }
    )


def auction_stats(result: ClearingResult) -> AuctionStats:
    filled = [a for a in result.allocations if a.is_filled]
    supply = result.total_supply
    return AuctionStats(
        total_revenue=sum((a.total_amount for a in filled), Decimal("0")),
        successful_bidders=len(filled),
        rejected_bidders=len(result.allocations) - len(filled),
        demand_ratio=result.total_demand / supply,
        allocation_rate=result.shares_allocated / supply,
        pro_rata_fraction=result.trace.pro_rata_fraction,
    )


def summarize_latency_ns(latencies: np.ndarray, n_bids: int = 0) -> Dict[str, float]:
    """Percentiles of per-clear latency, plus clears and bids processed per second."""
    if latencies.size == 0:
        return {"p50_ns": 0.0, "p90_ns": 0.0, "p99_ns": 0.0, "clears_per_sec": 0.0, "bids_per_sec": 0.0}
    p50, p90, p99 = (float(v) for v in np.percentile(latencies, [50, 90, 99]))
    mean_ns = float(latencies.mean())
    clears = 1e9 / mean_ns if mean_ns > 0 else 0.0
    return {"p50_ns": p50, "p90_ns": p90, "p99_ns": p99, "clears_per_sec": clears, "bids_per_sec": clears * n_bids}
