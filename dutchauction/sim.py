# dutchauction/sim.py
from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, List

import numpy as np
import pandas as pd

from .codec import bids_to_json, result_to_json
from .engine import ClearingEngine
from .metrics import allocations_frame, demand_curve, trace_frame
from .models import Bid, ClearingResult

EPOCH = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


@dataclass(slots=True)
class BidGenConfig:
    seed: int = 30
    n_bids: int = 200
    total_supply: int = 10_000
    tick_size: str = "0.50"
    price_mid: str = "100.00"
    sigma_ticks: float = 8.0
    size_mean: float = 100.0
    size_min: int = 10
    mean_gap_s: float = 30.0


@dataclass(slots=True)
class SimArtifacts:
    bids: List[Bid]
    result: ClearingResult
    latencies_ns: np.ndarray


class BidBookGenerator:
    """Seeded random sealed-bid books; same config, same bids."""

    def __init__(self, cfg: BidGenConfig) -> None:
        self.cfg = cfg
        self.rs = np.random.RandomState(cfg.seed)
        self.tick = Decimal(cfg.tick_size)
        self.mid = Decimal(cfg.price_mid)
        self.next_id = 1

    def _gen_size(self) -> int:
        size = max(int(self.rs.lognormal(mean=math.log(self.cfg.size_mean), sigma=0.5)), self.cfg.size_min)
        return int(round(size / 10.0) * 10)

    def _gen_price(self) -> Decimal:
        ticks = int(round(self.rs.normal(loc=0.0, scale=self.cfg.sigma_ticks)))
        return max(self.tick, self.mid + ticks * self.tick)

    def generate(self) -> List[Bid]:
        bids: List[Bid] = []
        ts = EPOCH
        for _ in range(self.cfg.n_bids):
            ts += timedelta(seconds=int(self.rs.exponential(self.cfg.mean_gap_s)))
            n = self.next_id
            self.next_id += 1
            bidder = int(self.rs.randint(1, max(self.cfg.n_bids // 2, 2)))
            bids.append(
                Bid(
                    id=f"bid-{n}",
                    bidder_id=f"bidder-{bidder}",
                    bidder_email=f"bidder{bidder}@example.com",
                    quantity=self._gen_size(),
                    max_price=self._gen_price(),
                    submitted_at=ts,
                )
            )
        return bids


def generate_bids(cfg: BidGenConfig) -> List[Bid]:
    return BidBookGenerator(cfg).generate()


def example_bids() -> List[Bid]:
    """Four-bid book that clears at $120 with pro-rata on the marginal bid (supply 1,000)."""
    book = [
        ("bid-1", "bidder-a", 500, "120", 0),
        ("bid-2", "bidder-b", 200, "140", 1),
        ("bid-3", "bidder-c", 300, "100", 2),
        ("bid-4", "bidder-d", 400, "130", 3),
    ]
    return [
        Bid(
            id=bid_id,
            bidder_id=bidder,
            bidder_email=f"{bidder.replace('-', '.')}@example.com",
            quantity=qty,
            max_price=Decimal(px),
            submitted_at=EPOCH + timedelta(minutes=minute),
        )
        for bid_id, bidder, qty, px, minute in book
    ]


EXAMPLE_SUPPLY = 1000


def run_example() -> ClearingResult:
    return ClearingEngine(check_invariants=True).clear(example_bids(), EXAMPLE_SUPPLY)


def run_sim(cfg: BidGenConfig, rounds: int = 1, check_invariants: bool = False) -> SimArtifacts:
    """Clear `rounds` fresh books from one seeded generator, timing each clear."""
    gen = BidBookGenerator(cfg)
    engine = ClearingEngine(check_invariants=check_invariants)
    latencies: List[int] = []
    bids: List[Bid] = []
    result = None
    for _ in range(max(rounds, 1)):
        bids = gen.generate()
        t0 = time.perf_counter_ns()
        result = engine.clear(bids, cfg.total_supply)
        latencies.append(time.perf_counter_ns() - t0)
    return SimArtifacts(bids=bids, result=result, latencies_ns=np.array(latencies, dtype=np.int64))


def save_artifacts(bids: List[Bid], result: ClearingResult, out_dir: str) -> Dict[str, str]:
    ts = pd.Timestamp.now(tz="UTC").strftime("%Y%m%d_%H%M%S")
    base = Path(out_dir)
    (base / "figures").mkdir(parents=True, exist_ok=True)
    files = {}

    alloc_path = base / f"allocations_{ts}.csv"
    allocations_frame(result).to_csv(alloc_path, index=False)
    files["allocations_csv"] = str(alloc_path)

    trace_path = base / f"trace_{ts}.csv"
    trace_frame(result).to_csv(trace_path, index=False)
    files["trace_csv"] = str(trace_path)

    curve_path = base / f"demand_curve_{ts}.csv"
    demand_curve(bids).to_csv(curve_path, index=False)
    files["demand_curve_csv"] = str(curve_path)

    bids_path = base / f"bids_{ts}.json"
    bids_path.write_text(bids_to_json(bids), encoding="utf-8")
    files["bids_json"] = str(bids_path)

    result_path = base / f"result_{ts}.json"
    result_path.write_text(result_to_json(result), encoding="utf-8")
    files["result_json"] = str(result_path)

    return files
