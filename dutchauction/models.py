# dutchauction/models.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Optional, Tuple


class AllocationKind(str, Enum):
    FULL = "full"
    PRO_RATA = "pro_rata"
    REJECTED = "rejected"


class ClearingLogic(str, Enum):
    FULL_ALLOCATION = "full_allocation"
    PRO_RATA_AT_CLEARING_PRICE = "pro_rata_at_clearing_price"
    UNDERSUBSCRIBED = "undersubscribed"


BidId = str


@dataclass(frozen=True, slots=True)
class Bid:
    """
    One sealed offer.
    - quantity: shares requested (positive int)
    - max_price: ceiling price per share, Decimal after validation
    - submitted_at: only consulted to break ties at equal price
    """
    id: BidId
    bidder_id: str
    bidder_email: str
    quantity: int
    max_price: Decimal
    submitted_at: datetime


@dataclass(frozen=True, slots=True)
class BidStep:
    """One row of the demand accumulation walk, in processing order."""
    step: int
    bid_id: BidId
    bidder_email: str
    max_price: Decimal
    quantity: int
    running_demand_before: int
    running_demand_after: int
    is_clearing_bid: bool = False
    pro_rata_fraction: Optional[Fraction] = None


@dataclass(frozen=True, slots=True)
class CalculationTrace:
    total_bids: int
    clearing_logic: ClearingLogic
    steps: Tuple[BidStep, ...] = ()
    pro_rata_fraction: Optional[Fraction] = None


@dataclass(frozen=True, slots=True)
class Allocation:
    """
    Verdict for a single bid.
    total_amount is allocated_quantity * clearing_price, exact.
    pro_rata_fraction is only set for AllocationKind.PRO_RATA.
    """
    bid_id: BidId
    bidder_id: str
    bidder_email: str
    original_quantity: int
    allocated_quantity: int
    clearing_price: Decimal
    total_amount: Decimal
    allocation_kind: AllocationKind
    pro_rata_fraction: Optional[Fraction] = None

    @property
    def is_filled(self) -> bool:
        return self.allocated_quantity > 0


@dataclass(frozen=True, slots=True)
class ClearingResult:
    clearing_price: Decimal
    total_supply: int
    total_demand: int
    shares_allocated: int
    shares_remaining: int
    pro_rata_applied: bool
    allocations: Tuple[Allocation, ...]
    trace: CalculationTrace

    @property
    def clearing_logic(self) -> ClearingLogic:
        return self.trace.clearing_logic

    def allocation_for(self, bid_id: BidId) -> Optional[Allocation]:
        for a in self.allocations:
            if a.bid_id == bid_id:
                return a
        return None
