"""Tests for full replays driven by an order schedule."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from tickreplay.backtest.indicators import IndicatorSpec
from tickreplay.backtest.runner import BacktestConfig, run_backtest
from tickreplay.backtest.schedule import OrderInstruction, OrderSchedule
from tickreplay.errors import IndicatorError, UnknownIndicator
from tickreplay.providers.models import Tick


def _ramp(mids, asset: str = "EURUSD", spread: str = "0.2"):
    base = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
    half = Decimal(spread) / 2
    return [
        Tick(
            timestamp=base + timedelta(seconds=i),
            asset=asset,
            bid=Decimal(str(m)) - half,
            ask=Decimal(str(m)) + half,
        )
        for i, m in enumerate(mids)
    ]


def test_scheduled_round_trip() -> None:
    ticks = _ramp([10, 11, 9, 12])
    schedule = OrderSchedule(
        [
            OrderInstruction(tick_index=0, asset="EURUSD", lots=5),
            OrderInstruction(tick_index=2, asset="EURUSD", lots=-5),
        ]
    )
    cfg = BacktestConfig(starting_cash=Decimal("1000"), schedule=schedule)
    result = run_backtest(ticks, cfg)
    assert [(f.tick_index, f.lots, f.price) for f in result.fills] == [
        (0, 5, Decimal("10.1")),
        (2, -5, Decimal("8.9")),
    ]
    assert [p["equity"] for p in result.equity_curve] == [
        Decimal("999.5"),
        Decimal("1004.5"),
        Decimal("994.0"),
        Decimal("994.0"),
    ]
    summary = result.summary
    assert summary["ticks"] == 4
    assert summary["fills"] == 2
    assert summary["buys"] == 1
    assert summary["sells"] == 1
    assert summary["final_equity"] == Decimal("994.0")
    assert summary["final_cash"] == Decimal("994.0")
    assert summary["open_positions"] == {}
    # High water 1004.5, trough 994.0
    assert summary["max_drawdown"] == Decimal("10.5")
    assert summary["max_drawdown_pct"] == pytest.approx(10.5 / 1004.5)
    assert summary["total_return"] == pytest.approx(-0.006)


def test_rejections_and_unplaced_orders_are_reported() -> None:
    ticks = _ramp([10, 11])
    schedule = OrderSchedule(
        [
            OrderInstruction(tick_index=0, asset="EURUSD", lots=1000),
            OrderInstruction(tick_index=5, asset="EURUSD", lots=1),
        ]
    )
    result = run_backtest(ticks, BacktestConfig(starting_cash=Decimal("100"), schedule=schedule))
    assert result.fills == []
    assert len(result.rejections) == 1
    assert result.rejections[0].reason.startswith("insufficient cash")
    assert result.summary["rejected_orders"] == 1
    assert result.summary["unplaced_orders"] == 1
    assert result.engine.account.cash == Decimal("100")


def test_indicator_rows_follow_each_step() -> None:
    ticks = _ramp([1, 2, 3])
    cfg = BacktestConfig(
        indicators={
            "ma2": IndicatorSpec(kind="moving_average", length=2),
            "mom": IndicatorSpec(kind="momentum", length=2, input="ma2"),
        }
    )
    result = run_backtest(ticks, cfg)
    assert [row["tick_index"] for row in result.indicators] == [0, 1, 2]
    assert result.indicators[0]["ma2"] == pytest.approx(1.0)
    assert result.indicators[0]["mom"] is None
    assert result.indicators[2]["ma2"] == pytest.approx(2.5)
    # mom saw ma2 values 1.0 then 1.5 from the previous steps
    assert result.indicators[2]["mom"] == pytest.approx(-0.5)


def test_invalid_indicator_config_raises() -> None:
    cfg = BacktestConfig(indicators={"mom": IndicatorSpec(kind="momentum", length=2, input="ma2")})
    with pytest.raises(UnknownIndicator):
        run_backtest(_ramp([1]), cfg)


def test_identical_runs_produce_identical_summaries() -> None:
    ticks = _ramp([10, 10.5, 10.25, 11, 10.75])
    schedule = OrderSchedule(
        [
            OrderInstruction(tick_index=1, asset="EURUSD", lots=3),
            OrderInstruction(tick_index=3, asset="EURUSD", lots=-1),
        ]
    )
    cfg = BacktestConfig(
        starting_cash=Decimal("500"),
        indicators={"ma": IndicatorSpec(kind="moving_average", length=2)},
        schedule=schedule,
    )
    first = run_backtest(ticks, cfg)
    second = run_backtest(ticks, cfg)
    assert first.summary == second.summary
    assert first.equity_curve == second.equity_curve
    assert first.fills == second.fills


def test_indicator_may_not_shadow_the_row_index() -> None:
    cfg = BacktestConfig(indicators={"tick_index": IndicatorSpec(kind="moving_average", length=2)})
    with pytest.raises(IndicatorError):
        run_backtest(_ramp([10, 11, 12]), cfg)
