# dutchauction/engine.py
from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from .allocation import allocate
from .assembly import assemble_result
from .clearing import bid_priority_key, resolve_clearing, sort_bids
from .models import AllocationKind, Bid, ClearingLogic, ClearingResult
from .validation import validate_bids

logger = logging.getLogger(__name__)


class ClearingEngine:
    """
    Uniform-price ("modified Dutch") clearing of a sealed bid set:
      - validate the whole batch (InvalidSupply / InvalidBid)
      - sort by price desc, submitted_at asc and accumulate demand
      - allocate every bid at the single clearing price
      - assemble totals and the audit trace
    Stateless: one instance can serve any number of auctions, concurrently.
    Invariants (enforced via check_invariants on demand):
      - shares_allocated <= total_supply
      - one clearing price, total_amount == allocated * price
      - bids above the price are filled unless supply ran out
      - bids below the price get nothing
    """

    def __init__(self, check_invariants: bool = False) -> None:
        self._check: bool = check_invariants

    def clear(self, bids: Iterable[Bid], total_supply: int) -> ClearingResult:
        valid = validate_bids(bids, total_supply)
        ordered = sort_bids(valid)
        logger.debug("clearing %d bids against supply=%d", len(ordered), total_supply)

        resolution = resolve_clearing(ordered, total_supply)
        logger.debug(
            "resolved price=%s logic=%s clearing_bid=%s",
            resolution.clearing_price,
            resolution.clearing_logic.value,
            resolution.clearing_bid_id,
        )
        fills = allocate(ordered, total_supply, resolution)
        result = assemble_result(
            total_supply=total_supply,
            bids_count=len(valid),
            total_demand=sum(b.quantity for b in valid),
            resolution=resolution,
            fills=fills,
        )
        logger.info(
            "auction cleared: price=%s logic=%s allocated=%d/%d remaining=%d",
            result.clearing_price,
            result.clearing_logic.value,
            result.shares_allocated,
            total_supply,
            result.shares_remaining,
        )
        if self._check:
            assert_invariants(result, ordered)
        return result


def calculate_clearing_price(bids: Iterable[Bid], total_supply: int) -> ClearingResult:
    return ClearingEngine().clear(bids, total_supply)


def assert_invariants(result: ClearingResult, bids: Optional[Sequence[Bid]] = None) -> None:
    price = result.clearing_price
    assert 0 <= result.shares_allocated <= result.total_supply, (
        f"Supply exceeded: allocated={result.shares_allocated} supply={result.total_supply}"
    )
    assert result.shares_remaining == result.total_supply - result.shares_allocated
    assert result.shares_allocated == sum(a.allocated_quantity for a in result.allocations)
    assert result.pro_rata_applied == (result.clearing_logic is ClearingLogic.PRO_RATA_AT_CLEARING_PRICE)

    for a in result.allocations:
        assert a.clearing_price == price, f"Non-uniform price on {a.bid_id}"
        assert 0 <= a.allocated_quantity <= a.original_quantity, f"Bad quantity on {a.bid_id}"
        assert a.total_amount == a.allocated_quantity * price, f"Amount drift on {a.bid_id}"
        assert (a.pro_rata_fraction is not None) == (a.allocation_kind is AllocationKind.PRO_RATA)
        if a.allocation_kind is AllocationKind.REJECTED:
            assert a.allocated_quantity == 0, f"Rejected bid {a.bid_id} holds shares"

    if bids is not None:
        by_id = {a.bid_id: a for a in result.allocations}
        assert len(by_id) == len(bids), "Allocation count differs from bid count"
        left = result.total_supply
        for b in sorted(bids, key=bid_priority_key):
            a = by_id[b.id]
            if b.max_price < price:
                assert a.allocated_quantity == 0, f"Bid {b.id} below clearing price was filled"
            elif b.max_price > price:
                assert a.allocated_quantity == min(b.quantity, left), f"Bid {b.id} above price not filled"
            left -= a.allocated_quantity

    steps = result.trace.steps
    for prev, cur in zip(steps, steps[1:]):
        assert cur.running_demand_before == prev.running_demand_after, "Trace demand gap"
        assert (-prev.max_price, prev.step) <= (-cur.max_price, cur.step), "Trace out of price order"
    assert sum(s.is_clearing_bid for s in steps) <= 1, "More than one clearing bid"


__all__ = ["ClearingEngine", "calculate_clearing_price", "assert_invariants", "bid_priority_key"]
