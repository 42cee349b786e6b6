"""Tests for the rolling indicator kinds and indicator option parsing."""

from __future__ import annotations

import pytest

from tickreplay.backtest.indicators import (
    IndicatorSpec,
    Momentum,
    MovingAverage,
    build_indicator,
    parse_indicator_option,
)


def _ma(length: int) -> MovingAverage:
    return MovingAverage("ma", IndicatorSpec(kind="moving_average", length=length))


def _mom(length: int) -> Momentum:
    return Momentum("mom", IndicatorSpec(kind="momentum", length=length))


def test_moving_average_of_two_midpoints() -> None:
    ma = _ma(2)
    ma.update(1000.0)
    ma.update(1001.0)
    assert ma.value() == pytest.approx(1000.5)
    # Oldest sample is evicted once the window is full
    ma.update(1003.0)
    assert ma.value() == pytest.approx(1002.0)
    assert ma.samples() == [1003.0, 1001.0]


def test_moving_average_not_ready_without_samples() -> None:
    ma = _ma(3)
    assert ma.value() is None
    ma.update(None)
    ma.update(None)
    assert ma.value() is None


def test_moving_average_skips_absent_samples() -> None:
    ma = _ma(3)
    ma.update(1.0)
    ma.update(None)
    assert ma.value() == pytest.approx(1.0)
    ma.update(3.0)
    assert ma.value() == pytest.approx(2.0)
    # The absent sample still occupies a slot in the window
    ma.update(5.0)
    assert ma.samples() == [5.0, 3.0, None]
    assert ma.value() == pytest.approx(4.0)


def test_momentum_is_oldest_minus_newest() -> None:
    mom = _mom(3)
    assert mom.value() is None
    mom.update(1.0)
    assert mom.value() == pytest.approx(0.0)
    mom.update(2.0)
    mom.update(4.0)
    assert mom.value() == pytest.approx(-3.0)
    mom.update(10.0)
    assert mom.value() == pytest.approx(-8.0)


def test_build_indicator_dispatches_on_kind() -> None:
    assert isinstance(build_indicator("a", IndicatorSpec(kind="moving_average", length=1)), MovingAverage)
    assert isinstance(build_indicator("b", IndicatorSpec(kind="momentum", length=1)), Momentum)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"kind": "moving_average", "length": 0},
        {"kind": "ema", "length": 3},
    ],
)
def test_spec_validation(kwargs) -> None:
    with pytest.raises(ValueError):
        IndicatorSpec(**kwargs)


def test_parse_indicator_option_defaults_to_price() -> None:
    name, spec = parse_indicator_option("fast=ma:5")
    assert name == "fast"
    assert spec.kind == "moving_average"
    assert spec.length == 5
    assert spec.input == "price"
    assert spec.asset is None


def test_parse_indicator_option_with_input_and_asset() -> None:
    name, spec = parse_indicator_option("trend=mom:3:fast@EURUSD")
    assert name == "trend"
    assert spec.kind == "momentum"
    assert spec.input == "fast"
    assert spec.asset == "EURUSD"


@pytest.mark.parametrize("text", ["fast", "=ma:3", "fast=ma", "fast=ma:x", "fast=ma:0", "fast=rsi:3"])
def test_parse_indicator_option_rejects_malformed(text: str) -> None:
    with pytest.raises(ValueError):
        parse_indicator_option(text)
