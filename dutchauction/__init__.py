# dutchauction/__init__.py
"""
Modified Dutch Auction: Uniform Clearing Price Engine.

Export the primary types and entry points for convenience.
"""
from .models import AllocationKind, ClearingLogic, Bid, Allocation, BidStep, CalculationTrace, ClearingResult
from .errors import ClearingError, InvalidBid, InvalidSupply
from .clearing import bid_priority_key, sort_bids
from .engine import ClearingEngine, calculate_clearing_price, assert_invariants

__all__ = [
    "AllocationKind",
    "ClearingLogic",
    "Bid",
    "Allocation",
    "BidStep",
    "CalculationTrace",
    "ClearingResult",
    "ClearingError",
    "InvalidBid",
    "InvalidSupply",
    "bid_priority_key",
    "sort_bids",
    "ClearingEngine",
    "calculate_clearing_price",
    "assert_invariants",
]

__version__ = "0.1.0"
