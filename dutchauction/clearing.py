# dutchauction/clearing.py
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple

from .models import Bid, BidId, BidStep, ClearingLogic

ZERO_PRICE = Decimal("0")


@dataclass(frozen=True, slots=True)
class Resolution:
    """Clearing price and classification, before any bid is allocated."""
    clearing_price: Decimal
    clearing_logic: ClearingLogic
    steps: Tuple[BidStep, ...]
    clearing_bid_id: Optional[BidId] = None
    pro_rata_fraction: Optional[Fraction] = None

    @property
    def pro_rata_applied(self) -> bool:
        return self.pro_rata_fraction is not None


def bid_priority_key(bid: Bid) -> Tuple[Decimal, datetime, BidId]:
    """
    Processing order: max_price descending, then submitted_at ascending (FIFO).
    Identical timestamps fall back to bid id so the order never depends on
    input position.
    """
    return (-bid.max_price, bid.submitted_at, bid.id)


def sort_bids(bids: Sequence[Bid]) -> List[Bid]:
    return sorted(bids, key=bid_priority_key)


def tier_fraction(sorted_bids: Sequence[Bid], price: Decimal, total_supply: int) -> Fraction:
    """
    Share of the clearing-price tier that can be filled.

    Every bid at `price` gets the same fraction of what is left after the bids
    priced strictly above it. With a single bid at the clearing price this is
    (total_supply - demand_before) / clearing_bid.quantity.
    """
    above = sum(b.quantity for b in sorted_bids if b.max_price > price)
    tier = sum(b.quantity for b in sorted_bids if b.max_price == price)
    return Fraction(total_supply - above, tier)


def resolve_clearing(sorted_bids: Sequence[Bid], total_supply: int) -> Resolution:
    """
    Walk bids in processing order accumulating demand until supply is met.

    `sorted_bids` must already be in bid_priority_key order. The walk stops
    at the first bid whose running demand reaches total_supply; that bid sets
    the clearing price.
    """
    if not sorted_bids:
        return Resolution(clearing_price=ZERO_PRICE, clearing_logic=ClearingLogic.UNDERSUBSCRIBED, steps=())

    steps: List[BidStep] = []
    running = 0
    clearing: Optional[Bid] = None
    for i, bid in enumerate(sorted_bids):
        before = running
        running += bid.quantity
        hit = running >= total_supply
        steps.append(
            BidStep(
                step=i + 1,
                bid_id=bid.id,
                bidder_email=bid.bidder_email,
                max_price=bid.max_price,
                quantity=bid.quantity,
                running_demand_before=before,
                running_demand_after=running,
                is_clearing_bid=hit,
            )
        )
        if hit:
            clearing = bid
            break

    if clearing is None:
        return Resolution(
            clearing_price=sorted_bids[-1].max_price,
            clearing_logic=ClearingLogic.UNDERSUBSCRIBED,
            steps=tuple(steps),
        )

    last = steps[-1]
    price = clearing.max_price
    if last.running_demand_after > total_supply and last.running_demand_before < total_supply:
        fraction = tier_fraction(sorted_bids, price, total_supply)
        steps = [
            dataclasses.replace(s, pro_rata_fraction=fraction) if s.max_price == price else s
            for s in steps
        ]
        return Resolution(
            clearing_price=price,
            clearing_logic=ClearingLogic.PRO_RATA_AT_CLEARING_PRICE,
            steps=tuple(steps),
            clearing_bid_id=clearing.id,
            pro_rata_fraction=fraction,
        )

    return Resolution(
        clearing_price=price,
        clearing_logic=ClearingLogic.FULL_ALLOCATION,
        steps=tuple(steps),
        clearing_bid_id=clearing.id,
    )
