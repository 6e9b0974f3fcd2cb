# dutchauction/assembly.py
from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from .allocation import Fill
from .clearing import Resolution
from .models import Allocation, CalculationTrace, ClearingResult


def price_fill(fill: Fill, clearing_price: Decimal) -> Allocation:
    bid = fill.bid
    return Allocation(
        bid_id=bid.id,
        bidder_id=bid.bidder_id,
        bidder_email=bid.bidder_email,
        original_quantity=bid.quantity,
        allocated_quantity=fill.allocated_quantity,
        clearing_price=clearing_price,
        total_amount=clearing_price * fill.allocated_quantity,
        allocation_kind=fill.kind,
        pro_rata_fraction=fill.pro_rata_fraction,
    )


def assemble_result(
    total_supply: int,
    bids_count: int,
    total_demand: int,
    resolution: Resolution,
    fills: Sequence[Fill],
) -> ClearingResult:
    price = resolution.clearing_price
    allocations = tuple(price_fill(f, price) for f in fills)
    shares_allocated = sum(a.allocated_quantity for a in allocations)
    trace = CalculationTrace(
        total_bids=bids_count,
        clearing_logic=resolution.clearing_logic,
        steps=resolution.steps,
        pro_rata_fraction=resolution.pro_rata_fraction,
    )
    return ClearingResult(
        clearing_price=price,
        total_supply=total_supply,
        total_demand=total_demand,
        shares_allocated=shares_allocated,
        shares_remaining=total_supply - shares_allocated,
        pro_rata_applied=resolution.pro_rata_applied,
        allocations=allocations,
        trace=trace,
    )
