"""Test the CLI commands end-to-end using synthetic tick files.

These tests verify that the backtest command runs from a CSV file and
from a stored dataset, writes all expected artifact files and rejects
invalid option combinations.
"""

from __future__ import annotations

import csv
import json

from click.testing import CliRunner

from tickreplay.cli import cli


def _write_ticks(path) -> None:
    rows = ["Date,Time,Asset,Bid,Ask"]
    for i, mid in enumerate([10, 11, 9, 12]):
        rows.append(f"2024/03/01,09:00:{i:02d},EURUSD,{mid - 0.1:.1f},{mid + 0.1:.1f}")
    path.write_text("\n".join(rows) + "\n")


def _write_orders(path) -> None:
    path.write_text("tick_index,asset,lots\n0,EURUSD,5\n2,EURUSD,-5\n")


def test_cli_backtest_from_csv_writes_artifacts(tmp_path) -> None:
    ticks = tmp_path / "ticks.csv"
    orders = tmp_path / "orders.csv"
    _write_ticks(ticks)
    _write_orders(orders)
    out_dir = tmp_path / "out"
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "backtest",
            "--ticks",
            str(ticks),
            "--orders",
            str(orders),
            "--indicator",
            "fast=ma:2",
            "--indicator",
            "trend=mom:2:fast",
            "--starting-cash",
            "1000",
            "--out-dir",
            str(out_dir),
        ],
    )
    assert result.exit_code == 0, result.output
    for name in ["fills.csv", "rejections.csv", "equity_curve.csv", "indicators.csv", "summary.json"]:
        assert (out_dir / name).exists(), name
    with open(out_dir / "fills.csv", newline="") as f:
        fills = list(csv.DictReader(f))
    assert [(r["lots"], r["price"]) for r in fills] == [("5", "10.1"), ("-5", "8.9")]
    with open(out_dir / "indicators.csv", newline="") as f:
        header = next(csv.reader(f))
    assert header == ["tick_index", "fast", "trend"]
    summary = json.loads((out_dir / "summary.json").read_text())
    assert summary["metrics"]["fills"] == 2
    assert summary["metrics"]["final_equity"] == "994.0"
    assert summary["config"]["starting_cash"] == "1000"
    assert summary["config"]["indicators"]["trend"]["input"] == "fast"
    assert summary["config"]["indicators"]["fast"] == {
        "kind": "moving_average",
        "length": 2,
        "input": "price",
        "asset": None,
    }


def test_cli_ingest_then_backtest_dataset(tmp_path, monkeypatch) -> None:
    db_url = f"sqlite:///{tmp_path / 'ticks.db'}"
    monkeypatch.setenv("DATABASE_URL", db_url)
    ticks = tmp_path / "ticks.csv"
    _write_ticks(ticks)
    runner = CliRunner()
    result = runner.invoke(cli, ["ingest", str(ticks), "--dataset", "sample"])
    assert result.exit_code == 0, result.output
    assert "ticks=4" in result.output
    listed = runner.invoke(cli, ["datasets"])
    assert listed.exit_code == 0, listed.output
    assert "sample\t4" in listed.output
    out_dir = tmp_path / "out"
    result = runner.invoke(cli, ["backtest", "--dataset", "sample", "--out-dir", str(out_dir)])
    assert result.exit_code == 0, result.output
    summary = json.loads((out_dir / "summary.json").read_text())
    assert summary["source"] == "dataset:sample"
    assert summary["metrics"]["ticks"] == 4
    assert summary["metrics"]["final_equity"] == "10000"


def test_cli_backtest_requires_exactly_one_source(tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["backtest"])
    assert result.exit_code != 0
    assert "exactly one of --ticks or --dataset" in result.output


def test_cli_backtest_rejects_bad_indicator(tmp_path) -> None:
    ticks = tmp_path / "ticks.csv"
    _write_ticks(ticks)
    runner = CliRunner()
    result = runner.invoke(cli, ["backtest", "--ticks", str(ticks), "--indicator", "fast=ma"])
    assert result.exit_code != 0
    assert "NAME=KIND:LENGTH" in result.output


def test_cli_backtest_reports_unknown_indicator_input(tmp_path) -> None:
    ticks = tmp_path / "ticks.csv"
    _write_ticks(ticks)
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["backtest", "--ticks", str(ticks), "--indicator", "trend=mom:2:fast", "--out-dir", str(tmp_path / "o")],
    )
    assert result.exit_code != 0
    assert "Backtest aborted" in result.output


def test_cli_backtest_refuses_reserved_indicator_name(tmp_path) -> None:
    ticks = tmp_path / "ticks.csv"
    _write_ticks(ticks)
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["backtest", "--ticks", str(ticks), "--indicator", "tick_index=ma:2", "--out-dir", str(tmp_path / "o")],
    )
    assert result.exit_code != 0
    assert "'tick_index' is reserved" in result.output
    assert not (tmp_path / "o").exists()
