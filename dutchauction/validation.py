# dutchauction/validation.py
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Set, Tuple

from .errors import InvalidBid, InvalidSupply
from .models import Bid

logger = logging.getLogger(__name__)


def to_price(value: Any) -> Optional[Decimal]:
    """Coerce a price to Decimal. Floats go through str() so 120.1 stays 120.1."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        if isinstance(value, Decimal):
            price = value
        elif isinstance(value, (int, str)):
            price = Decimal(value.strip() if isinstance(value, str) else value)
        elif isinstance(value, float):
            price = Decimal(str(value))
        else:
            return None
    except InvalidOperation:
        return None
    if not price.is_finite():
        return None
    return price


def validate_supply(total_supply: Any) -> int:
    if isinstance(total_supply, bool) or not isinstance(total_supply, int):
        raise InvalidSupply(total_supply)
    if total_supply <= 0:
        raise InvalidSupply(total_supply)
    return total_supply


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _check_bid(bid: Bid) -> Tuple[List[str], Optional[Decimal]]:
    problems: List[str] = []
    if _blank(bid.id):
        problems.append("bid id is required")
    if _blank(bid.bidder_id):
        problems.append("bidder_id is required")
    if _blank(bid.bidder_email):
        problems.append("bidder_email is required")

    qty = bid.quantity
    if isinstance(qty, bool) or not isinstance(qty, int):
        problems.append(f"quantity must be an integer, got {qty!r}")
    elif qty <= 0:
        problems.append(f"quantity must be greater than 0, got {qty}")

    price = to_price(bid.max_price)
    if price is None:
        problems.append(f"max_price must be a finite number, got {bid.max_price!r}")
    elif price <= 0:
        problems.append(f"max_price must be greater than 0, got {price}")

    if not isinstance(bid.submitted_at, datetime):
        problems.append(f"submitted_at must be a datetime, got {bid.submitted_at!r}")
    return problems, price


def validate_bids(bids: Iterable[Bid], total_supply: Any) -> Tuple[Bid, ...]:
    """
    All-or-nothing validation of a bid batch.

    Returns normalized copies (max_price as Decimal) in input order. The first
    malformed bid raises InvalidBid naming it; nothing is silently dropped.
    """
    validate_supply(total_supply)
    seen: Set[str] = set()
    out: List[Bid] = []
    aware: Optional[bool] = None
    for bid in bids:
        problems, price = _check_bid(bid)
        if not problems:
            if bid.id in seen:
                problems.append("duplicate bid id")
            # naive and aware datetimes cannot be ordered against each other
            is_aware = bid.submitted_at.utcoffset() is not None
            if aware is None:
                aware = is_aware
            elif aware != is_aware:
                problems.append("submitted_at mixes naive and timezone-aware timestamps")
        if problems:
            bid_id = bid.id if isinstance(bid.id, str) and bid.id.strip() else None
            logger.warning("rejecting bid batch: bid=%s problems=%s", bid_id, problems)
            raise InvalidBid(bid_id, problems)
        seen.add(bid.id)
        if type(bid.max_price) is not Decimal:
            bid = dataclasses.replace(bid, max_price=price)
        out.append(bid)
    return tuple(out)
