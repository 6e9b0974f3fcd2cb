# dutchauction/codec.py
"""
JSON/CSV encoding for bids and clearing results.

Decimals and fractions are written as strings so values survive a JSON round
trip without binary float loss. Output keys are sorted, so encoding the same
result twice yields identical bytes.
"""
from __future__ import annotations

import json
import numbers
import re
from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from .errors import InvalidBid
from .models import Allocation, Bid, BidStep, CalculationTrace, ClearingResult

FRACTION_PLACES = Decimal("0.000001")
_INT_TEXT = re.compile(r"[+-]?[0-9]+")
_DATE_TEXT = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# accepted aliases, as stored by the auction_bids table
_FIELD_ALIASES = {
    "quantity": ("quantity", "quantity_requested"),
    "submitted_at": ("submitted_at", "bid_time"),
}


def decimal_str(value: Decimal) -> str:
    return format(value, "f")


def fraction_str(value: Optional[Fraction]) -> Optional[str]:
    if value is None:
        return None
    d = (Decimal(value.numerator) / Decimal(value.denominator)).quantize(FRACTION_PLACES, rounding=ROUND_HALF_EVEN)
    return format(d.normalize(), "f")


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    # date-shaped text only, so words like "now" stay unreadable
    if not _DATE_TEXT.match(text):
        return None
    try:
        # also takes the short "+00" offsets postgres prints
        return pd.Timestamp(text).to_pydatetime()
    except (ValueError, OverflowError):
        return None


def _coerce_quantity(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, str) and _INT_TEXT.fullmatch(value.strip()):
        return int(value.strip())
    # anything else is left for validate_bids to report
    return value


def _pick(record: Mapping[str, Any], field: str) -> Any:
    for key in _FIELD_ALIASES.get(field, (field,)):
        if key in record:
            return record[key]
    return None


def bid_from_dict(record: Mapping[str, Any]) -> Bid:
    """
    Build a Bid from a plain record.

    Only decoding problems are reported here (missing keys, unreadable
    timestamps); range checks belong to validate_bids.
    """
    problems: List[str] = []
    for field in ("id", "bidder_id", "bidder_email", "quantity", "max_price", "submitted_at"):
        if _pick(record, field) is None:
            problems.append(f"missing field {field}")
    raw_ts = _pick(record, "submitted_at")
    submitted_at = parse_timestamp(raw_ts)
    if raw_ts is not None and submitted_at is None:
        problems.append(f"unreadable submitted_at {raw_ts!r}")
    if problems:
        bid_id = record.get("id")
        raise InvalidBid(str(bid_id) if bid_id not in (None, "") else None, problems)
    return Bid(
        id=str(record["id"]),
        bidder_id=str(record["bidder_id"]),
        bidder_email=str(record["bidder_email"]),
        quantity=_coerce_quantity(_pick(record, "quantity")),
        max_price=_pick(record, "max_price"),
        submitted_at=submitted_at,
    )


def bids_from_records(records: Iterable[Any]) -> List[Bid]:
    bids = []
    for n, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise InvalidBid(None, [f"record {n} is a {type(record).__name__}, not an object"])
        bids.append(bid_from_dict(record))
    return bids


def bid_to_dict(bid: Bid) -> Dict[str, Any]:
    return {
        "id": bid.id,
        "bidder_id": bid.bidder_id,
        "bidder_email": bid.bidder_email,
        "quantity": bid.quantity,
        "max_price": decimal_str(bid.max_price) if isinstance(bid.max_price, Decimal) else str(bid.max_price),
        "submitted_at": bid.submitted_at.isoformat(),
    }


def step_to_dict(step: BidStep) -> Dict[str, Any]:
    return {
        "step": step.step,
        "bid_id": step.bid_id,
        "bidder_email": step.bidder_email,
        "max_price": decimal_str(step.max_price),
        "quantity": step.quantity,
        "running_demand_before": step.running_demand_before,
        "running_demand_after": step.running_demand_after,
        "is_clearing_bid": step.is_clearing_bid,
        "pro_rata_fraction": fraction_str(step.pro_rata_fraction),
    }


def trace_to_dict(trace: CalculationTrace) -> Dict[str, Any]:
    return {
        "total_bids": trace.total_bids,
        "clearing_logic": trace.clearing_logic.value,
        "bid_steps": [step_to_dict(s) for s in trace.steps],
        "pro_rata_fraction": fraction_str(trace.pro_rata_fraction),
    }


def allocation_to_dict(a: Allocation) -> Dict[str, Any]:
    return {
        "bid_id": a.bid_id,
        "bidder_id": a.bidder_id,
        "bidder_email": a.bidder_email,
        "original_quantity": a.original_quantity,
        "allocated_quantity": a.allocated_quantity,
        "clearing_price": decimal_str(a.clearing_price),
        "total_amount": decimal_str(a.total_amount),
        "allocation_kind": a.allocation_kind.value,
        "pro_rata_fraction": fraction_str(a.pro_rata_fraction),
    }


def result_to_dict(result: ClearingResult) -> Dict[str, Any]:
    return {
        "clearing_price": decimal_str(result.clearing_price),
        "total_supply": result.total_supply,
        "total_demand": result.total_demand,
        "shares_allocated": result.shares_allocated,
        "shares_remaining": result.shares_remaining,
        "pro_rata_applied": result.pro_rata_applied,
        "allocations": [allocation_to_dict(a) for a in result.allocations],
        "calculation_details": trace_to_dict(result.trace),
    }


def result_to_json(result: ClearingResult, indent: Optional[int] = 2) -> str:
    return json.dumps(result_to_dict(result), indent=indent, sort_keys=True)


def bids_to_json(bids: Iterable[Bid], indent: Optional[int] = 2) -> str:
    return json.dumps([bid_to_dict(b) for b in bids], indent=indent, sort_keys=True)


def clearing_results_row(result: ClearingResult, auction_id: Optional[str] = None) -> Dict[str, Any]:
    """Shape of an auction_clearing_results record."""
    row: Dict[str, Any] = {
        "clearing_price": decimal_str(result.clearing_price),
        "total_bids_count": result.trace.total_bids,
        "total_demand": result.total_demand,
        "shares_allocated": result.shares_allocated,
        "shares_remaining": result.shares_remaining,
        "pro_rata_applied": result.pro_rata_applied,
        "calculation_details": trace_to_dict(result.trace),
    }
    if auction_id is not None:
        row["auction_id"] = auction_id
    return row


def allocation_rows(result: ClearingResult, auction_id: str) -> List[Dict[str, Any]]:
    """Shape of bid_allocations records, one per bid."""
    rows = []
    for a in result.allocations:
        row = allocation_to_dict(a)
        row["allocation_type"] = row.pop("allocation_kind")
        row["pro_rata_percentage"] = row.pop("pro_rata_fraction")
        row["auction_id"] = auction_id
        rows.append(row)
    return rows


def load_bids(path: Union[str, Path]) -> List[Bid]:
    """Read bids from a .json (list, or object with a "bids" key) or .csv file."""
    p = Path(path)
    if p.suffix.lower() == ".csv":
        # read as text so prices never pass through float
        df = pd.read_csv(p, dtype=str, keep_default_na=False)
        records = [{k: (v if v != "" else None) for k, v in row.items()} for row in df.to_dict(orient="records")]
        return bids_from_records(records)
    data = json.loads(p.read_text(encoding="utf-8"), parse_float=Decimal)
    if isinstance(data, dict):
        data = data.get("bids")
    if not isinstance(data, list):
        raise InvalidBid(None, ["bids file must be a list or an object with a 'bids' list"])
    return bids_from_records(data)
