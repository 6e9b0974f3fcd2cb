# dutchauction/report.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import List

from .metrics import auction_stats
from .models import AllocationKind, ClearingResult

CENT = Decimal("0.01")


def format_currency(amount: Decimal) -> str:
    """USD with thousands separators and two decimals, e.g. $48,000.00."""
    q = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if q < 0 else ""
    return f"{sign}${abs(q):,.2f}"


def format_number(n: int) -> str:
    return f"{n:,}"


def _pct(x: float) -> str:
    return f"{x * 100:.1f}%"


def generate_auction_summary(result: ClearingResult) -> str:
    stats = auction_stats(result)
    price = format_currency(result.clearing_price)
    lines: List[str] = [
        "=== MODIFIED DUTCH AUCTION RESULTS ===",
        "",
        "AUCTION OVERVIEW:",
        f"  Total Supply: {format_number(result.total_supply)} shares",
        f"  Total Demand: {format_number(result.total_demand)} shares",
        f"  Demand Ratio: {_pct(stats.demand_ratio)}",
        f"  Clearing Price: {price}",
        "",
        "ALLOCATION RESULTS:",
        f"  Shares Allocated: {format_number(result.shares_allocated)} shares",
        f"  Shares Remaining: {format_number(result.shares_remaining)} shares",
        f"  Allocation Rate: {_pct(stats.allocation_rate)}",
        f"  Total Revenue: {format_currency(stats.total_revenue)}",
        "",
        "BIDDER STATISTICS:",
        f"  Total Bids: {result.trace.total_bids}",
        f"  Successful Bidders: {stats.successful_bidders}",
        f"  Rejected Bidders: {stats.rejected_bidders}",
        f"  Pro-rata Applied: {'Yes' if result.pro_rata_applied else 'No'}",
    ]
    if stats.pro_rata_fraction is not None:
        lines.append(f"  Pro-rata Percentage: {float(stats.pro_rata_fraction) * 100:.2f}%")
    lines += ["", f"CLEARING LOGIC: {result.clearing_logic.value.replace('_', ' ').upper()}"]

    filled = [a for a in result.allocations if a.is_filled]
    if filled:
        lines += ["", "SUCCESSFUL ALLOCATIONS:"]
        for a in filled:
            tag = " (Pro-rata)" if a.allocation_kind is AllocationKind.PRO_RATA else ""
            lines.append(
                f"  {a.bidder_email}: {format_number(a.allocated_quantity)} shares @ {price}"
                f" = {format_currency(a.total_amount)}{tag}"
            )

    rejected = [a for a in result.allocations if not a.is_filled]
    if rejected:
        lines += ["", "REJECTED BIDS:"]
        for a in rejected:
            lines.append(
                f"  {a.bidder_email}: {format_number(a.original_quantity)} shares"
                f" (not filled at clearing price of {price})"
            )
    return "\n".join(lines) + "\n"
