# tests/test_report_cli.py
from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest

from dutchauction.cli import main
from dutchauction.codec import bids_to_json
from dutchauction.report import format_currency, format_number, generate_auction_summary
from dutchauction.sim import example_bids, run_example


def test_formatting_helpers():
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(Decimal("0")) == "$0.00"
    assert format_number(1_000_000) == "1,000,000"


def test_summary_report_lines():
    text = generate_auction_summary(run_example())
    assert "Clearing Price: $120.00" in text
    assert "Total Demand: 1,400 shares" in text
    assert "Demand Ratio: 140.0%" in text
    assert "Total Revenue: $120,000.00" in text
    assert "Pro-rata Percentage: 80.00%" in text
    assert "CLEARING LOGIC: PRO RATA AT CLEARING PRICE" in text
    assert "bidder.a@example.com: 400 shares @ $120.00 = $48,000.00 (Pro-rata)" in text
    assert "bidder.c@example.com: 300 shares" in text.split("REJECTED BIDS:")[1]


def test_cli_example_json(capsys):
    assert main(["example"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["clearing_results"]["clearing_price"] == "120"
    assert out["stats"]["total_revenue"] == "120000"
    assert out["stats"]["successful_bidders"] == 3


def test_cli_example_summary(capsys):
    assert main(["example", "--summary"]) == 0
    assert "MODIFIED DUTCH AUCTION RESULTS" in capsys.readouterr().out


def test_cli_clear_writes_report(tmp_path, capsys):
    bids_path = tmp_path / "bids.json"
    bids_path.write_text(bids_to_json(example_bids()), encoding="utf-8")
    report = tmp_path / "out"
    assert main(["clear", "--bids", str(bids_path), "--supply", "1000", "--check", "--report", str(report)]) == 0
    out = json.loads(capsys.readouterr().out)
    saved = out["saved"]
    for key in ("allocations_csv", "trace_csv", "result_json", "demand_curve_png", "allocations_png"):
        assert Path(saved[key]).exists()
    assert json.loads(Path(saved["result_json"]).read_text())["clearing_price"] == "120"


def test_cli_rejects_bad_supply(tmp_path, capsys):
    bids_path = tmp_path / "bids.json"
    bids_path.write_text(bids_to_json(example_bids()), encoding="utf-8")
    assert main(["clear", "--bids", str(bids_path), "--supply", "0"]) == 2
    assert json.loads(capsys.readouterr().out)["error"] == "invalid_supply"


def test_cli_sim_is_seeded(capsys):
    assert main(["sim", "--seed", "7", "--n-bids", "50", "--supply", "2000"]) == 0
    first = json.loads(capsys.readouterr().out)
    assert main(["sim", "--seed", "7", "--n-bids", "50", "--supply", "2000"]) == 0
    assert json.loads(capsys.readouterr().out) == first
    assert first["clearing_results"]["calculation_details"]["total_bids"] == 50


def test_cli_clear_reports_malformed_csv_quantity(tmp_path, capsys):
    bids_path = tmp_path / "bids.csv"
    bids_path.write_text(
        "id,bidder_id,bidder_email,quantity,max_price,submitted_at\n"
        "b1,u1,u1@example.com,--5,120.00,2024-01-01 10:00:00+00\n",
        encoding="utf-8",
    )
    assert main(["clear", "--bids", str(bids_path), "--supply", "10"]) == 2
    err = json.loads(capsys.readouterr().out)
    assert err["error"] == "invalid_bid"
    assert err["bid_id"] == "b1"


def test_cli_clear_rejects_bids_file_without_bids_list(tmp_path, capsys):
    bids_path = tmp_path / "bids.json"
    bids_path.write_text(json.dumps({"bid": json.loads(bids_to_json(example_bids()))}), encoding="utf-8")
    assert main(["clear", "--bids", str(bids_path), "--supply", "1000"]) == 2
    assert json.loads(capsys.readouterr().out)["error"] == "invalid_bid"


def test_cli_log_level_is_case_insensitive_and_checked(capsys):
    assert main(["--log-level", "debug", "example", "--summary"]) == 0
    with pytest.raises(SystemExit) as exc:
        main(["--log-level", "LOUD", "example"])
    assert exc.value.code == 2
    assert "invalid choice" in capsys.readouterr().err


def test_cli_bench_writes_summary(tmp_path, capsys):
    out_dir = tmp_path / "bench"
    args = ["bench", "--seed", "4", "--n-bids", "60", "--supply", "2500", "--rounds", "3", "--check"]
    assert main(args + ["--report", str(out_dir)]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["benchmark"]["n_bids"] == 60
    assert out["benchmark"]["rounds"] == 3
    assert out["benchmark"]["bids_per_sec"] >= 0.0
    assert Path(out["csv"]).exists()
    assert Path(out["latency_hist"]).exists()
