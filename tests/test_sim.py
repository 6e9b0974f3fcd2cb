# tests/test_sim.py
from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from dutchauction.engine import assert_invariants
from dutchauction.models import ClearingLogic
from dutchauction.sim import BidGenConfig, example_bids, generate_bids, run_example, run_sim, save_artifacts
from dutchauction.validation import validate_bids


def test_generator_is_seeded():
    cfg = BidGenConfig(seed=11, n_bids=40)
    assert generate_bids(cfg) == generate_bids(cfg)
    assert generate_bids(cfg) != generate_bids(BidGenConfig(seed=12, n_bids=40))


def test_generated_bids_are_valid_and_on_tick():
    cfg = BidGenConfig(seed=3, n_bids=300, tick_size="0.25")
    bids = generate_bids(cfg)
    assert len(validate_bids(bids, cfg.total_supply)) == 300
    assert all(b.max_price % Decimal("0.25") == 0 for b in bids)
    assert all(b.quantity >= cfg.size_min for b in bids)
    assert len({b.id for b in bids}) == 300


def test_example_auction():
    res = run_example()
    assert res.clearing_price == Decimal("120")
    assert res.clearing_logic is ClearingLogic.PRO_RATA_AT_CLEARING_PRICE
    assert [b.id for b in example_bids()] == ["bid-1", "bid-2", "bid-3", "bid-4"]


def test_run_sim_times_every_round():
    art = run_sim(BidGenConfig(seed=5, n_bids=80, total_supply=3000), rounds=4)
    assert art.latencies_ns.shape == (4,)
    assert (art.latencies_ns >= 0).all()
    assert_invariants(art.result, art.bids)


def test_save_artifacts(tmp_path):
    bids = example_bids()
    files = save_artifacts(bids, run_example(), str(tmp_path))
    assert set(files) == {"allocations_csv", "trace_csv", "demand_curve_csv", "bids_json", "result_json"}
    for path in files.values():
        assert Path(path).exists()
    assert (tmp_path / "figures").is_dir()
