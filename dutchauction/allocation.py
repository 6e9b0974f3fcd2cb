# dutchauction/allocation.py
from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import List, Optional, Sequence

from .clearing import Resolution
from .models import AllocationKind, Bid


@dataclass(frozen=True, slots=True)
class Fill:
    """Allocator verdict for one bid; amounts are priced later by the assembler."""
    bid: Bid
    allocated_quantity: int
    kind: AllocationKind
    pro_rata_fraction: Optional[Fraction] = None


def pro_rata_quantity(quantity: int, fraction: Fraction) -> int:
    # exact floor on the rational, no float rounding
    return math.floor(quantity * fraction)


def allocate(sorted_bids: Sequence[Bid], total_supply: int, resolution: Resolution) -> List[Fill]:
    """
    Apply the clearing price to every bid, in the same order the resolver used.

    The price applies to the whole bid set, not only the bids walked before
    the clearing bid. Rounding loss from the pro-rata floor stays unsold.
    """
    price = resolution.clearing_price
    fraction = resolution.pro_rata_fraction
    fills: List[Fill] = []
    allocated = 0

    for bid in sorted_bids:
        left = total_supply - allocated
        if bid.max_price > price:
            qty = min(bid.quantity, left)
            fill = Fill(bid, qty, AllocationKind.FULL if qty > 0 else AllocationKind.REJECTED)
        elif bid.max_price == price and fraction is not None:
            qty = min(pro_rata_quantity(bid.quantity, fraction), left)
            if qty > 0:
                fill = Fill(bid, qty, AllocationKind.PRO_RATA, fraction)
            else:
                fill = Fill(bid, 0, AllocationKind.REJECTED)
        elif bid.max_price == price:
            qty = min(bid.quantity, left)
            fill = Fill(bid, qty, AllocationKind.FULL if qty > 0 else AllocationKind.REJECTED)
        else:
            fill = Fill(bid, 0, AllocationKind.REJECTED)
        allocated += fill.allocated_quantity
        fills.append(fill)
    return fills
