# dutchauction/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class ClearingError(ValueError):
    """Base class for input rejected before any allocation is computed."""

    code = "clearing_error"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self)}


class InvalidSupply(ClearingError):
    code = "invalid_supply"

    def __init__(self, total_supply: Any) -> None:
        super().__init__(f"total_supply must be a positive integer, got {total_supply!r}")
        self.total_supply = total_supply

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["total_supply"] = repr(self.total_supply)
        return payload


class InvalidBid(ClearingError):
    code = "invalid_bid"

    def __init__(self, bid_id: Optional[str], problems: Sequence[str]) -> None:
        self.bid_id = bid_id
        self.problems: List[str] = list(problems)
        label = bid_id if bid_id else "<missing id>"
        super().__init__(f"invalid bid {label}: " + "; ".join(self.problems))

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["bid_id"] = self.bid_id
        payload["problems"] = list(self.problems)
        return payload
