# tests/test_codec.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from fractions import Fraction

import pytest

from dutchauction.codec import (
    allocation_rows,
    bid_from_dict,
    bid_to_dict,
    clearing_results_row,
    fraction_str,
    load_bids,
    parse_timestamp,
    result_to_dict,
    result_to_json,
)
from dutchauction.engine import calculate_clearing_price
from dutchauction.errors import InvalidBid
from dutchauction.sim import example_bids, run_example
from dutchauction.validation import validate_bids


def test_result_to_dict_uses_decimal_strings():
    d = result_to_dict(run_example())
    assert d["clearing_price"] == "120"
    assert d["total_demand"] == 1400
    assert d["pro_rata_applied"] is True
    by_id = {a["bid_id"]: a for a in d["allocations"]}
    assert by_id["bid-1"]["total_amount"] == "48000"
    assert by_id["bid-1"]["allocation_kind"] == "pro_rata"
    assert by_id["bid-1"]["pro_rata_fraction"] == "0.8"
    assert by_id["bid-2"]["pro_rata_fraction"] is None
    details = d["calculation_details"]
    assert details["clearing_logic"] == "pro_rata_at_clearing_price"
    assert [s["bid_id"] for s in details["bid_steps"]] == ["bid-2", "bid-4", "bid-1"]
    assert details["bid_steps"][-1]["is_clearing_bid"] is True


def test_result_json_is_byte_stable():
    assert result_to_json(run_example()) == result_to_json(run_example())
    json.loads(result_to_json(run_example()))


def test_fraction_str():
    assert fraction_str(Fraction(1, 2)) == "0.5"
    assert fraction_str(Fraction(5, 6)) == "0.833333"
    assert fraction_str(None) is None


def test_bid_round_trip_through_dict():
    bid = example_bids()[0]
    d = bid_to_dict(bid)
    assert d["max_price"] == "120"
    assert d["submitted_at"] == "2024-01-01T10:00:00+00:00"
    assert bid_from_dict(d).submitted_at == bid.submitted_at


def test_bid_from_dict_accepts_table_aliases_and_z_suffix():
    bid = bid_from_dict(
        {
            "id": "b1",
            "bidder_id": "u1",
            "bidder_email": "u1@example.com",
            "quantity_requested": "250",
            "max_price": "99.95",
            "bid_time": "2024-03-01T12:00:00Z",
        }
    )
    assert bid.quantity == 250
    assert bid.submitted_at == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_bid_from_dict_reports_missing_and_unreadable_fields():
    with pytest.raises(InvalidBid) as err:
        bid_from_dict({"id": "b7", "bidder_id": "u", "quantity": 1, "max_price": "1", "submitted_at": "yesterday"})
    assert err.value.bid_id == "b7"
    assert "missing field bidder_email" in err.value.problems
    assert any("unreadable submitted_at" in p for p in err.value.problems)


def test_load_bids_csv_keeps_exact_prices(tmp_path):
    path = tmp_path / "bids.csv"
    path.write_text(
        "id,bidder_id,bidder_email,quantity,max_price,submitted_at\n"
        "b1,u1,u1@example.com,600,120.10,2024-01-01T10:00:00Z\n"
        "b2,u2,u2@example.com,600,120.10,2024-01-01T10:05:00Z\n",
        encoding="utf-8",
    )
    bids = load_bids(path)
    assert [b.quantity for b in bids] == [600, 600]
    res = calculate_clearing_price(bids, 1000)
    assert res.clearing_price == Decimal("120.10")
    # 5/6 of each 600-share bid
    assert res.allocation_for("b1").allocated_quantity == 500
    assert res.allocation_for("b1").total_amount == Decimal("60050.00")


def test_load_bids_json_wrapper(tmp_path):
    path = tmp_path / "bids.json"
    path.write_text(
        json.dumps(
            {
                "bids": [
                    {
                        "id": "b1",
                        "bidder_id": "u1",
                        "bidder_email": "u1@example.com",
                        "quantity": 10,
                        "max_price": 0.1,
                        "submitted_at": "2024-01-01T10:00:00+00:00",
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    [bid] = load_bids(path)
    assert bid.max_price == Decimal("0.1")


def test_persistence_rows():
    res = run_example()
    row = clearing_results_row(res, auction_id="auc-1")
    assert row["auction_id"] == "auc-1"
    assert row["total_bids_count"] == 4
    assert row["clearing_price"] == "120"
    rows = allocation_rows(res, "auc-1")
    assert len(rows) == 4
    assert {r["auction_id"] for r in rows} == {"auc-1"}
    pro = [r for r in rows if r["allocation_type"] == "pro_rata"]
    assert pro[0]["pro_rata_percentage"] == "0.8"
    assert "allocation_kind" not in rows[0]


@pytest.mark.parametrize("qty", ["--5", "²", "1.5", "ten"])
def test_malformed_quantity_text_is_reported_as_invalid_bid(qty):
    record = bid_to_dict(example_bids()[0])
    record["quantity"] = qty
    bid = bid_from_dict(record)
    assert bid.quantity == qty
    with pytest.raises(InvalidBid) as err:
        validate_bids([bid], 1000)
    assert err.value.bid_id == "bid-1"
    assert any("quantity must be an integer" in p for p in err.value.problems)


def test_signed_quantity_text_is_parsed():
    record = bid_to_dict(example_bids()[0])
    record["quantity"] = " -5 "
    assert bid_from_dict(record).quantity == -5
    record["quantity"] = "+7"
    assert bid_from_dict(record).quantity == 7


def test_postgres_short_offset_timestamp():
    record = bid_to_dict(example_bids()[0])
    record["submitted_at"] = "2024-01-01 10:00:00+00"
    assert bid_from_dict(record).submitted_at == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("text", ["now", "today", "2024-13-45T10:00:00"])
def test_non_date_timestamps_are_unreadable(text):
    assert parse_timestamp(text) is None


def test_load_bids_json_without_bids_key_is_rejected(tmp_path):
    path = tmp_path / "bids.json"
    path.write_text(json.dumps({"bid": [bid_to_dict(example_bids()[0])]}), encoding="utf-8")
    with pytest.raises(InvalidBid) as err:
        load_bids(path)
    assert "'bids' list" in err.value.problems[0]


@pytest.mark.parametrize("payload", [{"bids": {"id": "b1"}}, "bids", 42])
def test_load_bids_json_wrong_shape_is_rejected(tmp_path, payload):
    path = tmp_path / "bids.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(InvalidBid):
        load_bids(path)


def test_load_bids_json_non_object_record_is_rejected(tmp_path):
    path = tmp_path / "bids.json"
    path.write_text(json.dumps([bid_to_dict(example_bids()[0]), ["b2", "u2"]]), encoding="utf-8")
    with pytest.raises(InvalidBid) as err:
        load_bids(path)
    assert err.value.problems == ["record 1 is a list, not an object"]
