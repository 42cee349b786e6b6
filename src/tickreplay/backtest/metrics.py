"""Metrics computation for backtest results.

This module contains helper functions that turn the per-step reports
of a replay into flat records (fills, equity curve points) and compute
summary statistics from them.  Metrics are deterministic and derived
only from the data supplied.  Monetary values stay
:class:`decimal.Decimal`; ratios are floats.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from .account import Account
from .engine import StepReport


@dataclass
class FillRecord:
    """A settled fill annotated with the tick that settled it."""

    tick_index: int
    timestamp: datetime
    asset: str
    lots: int
    price: Decimal
    cost: Decimal


@dataclass
class RejectionRecord:
    tick_index: int
    asset: str
    lots: int
    reason: str


def fill_records(reports: List[StepReport]) -> List[FillRecord]:
    records: List[FillRecord] = []
    for report in reports:
        for fill in report.fills:
            records.append(
                FillRecord(
                    tick_index=report.index,
                    timestamp=report.tick.timestamp,
                    asset=fill.asset,
                    lots=fill.lots,
                    price=fill.cost_basis,
                    cost=fill.cost,
                )
            )
    return records


def rejection_records(reports: List[StepReport]) -> List[RejectionRecord]:
    return [
        RejectionRecord(
            tick_index=order.tick_index,
            asset=order.asset,
            lots=order.lots,
            reason=order.reason or "",
        )
        for report in reports
        for order in report.rejected
    ]


def equity_curve(reports: List[StepReport]) -> List[Dict[str, Any]]:
    """One point per step: tick index, timestamp, asset, midpoint, equity."""
    return [
        {
            "tick_index": r.index,
            "timestamp": r.tick.timestamp.isoformat(),
            "asset": r.tick.asset,
            "midpoint": r.midpoint,
            "equity": r.equity,
        }
        for r in reports
    ]


def compute_summary(
    starting_cash: Decimal,
    curve: List[Dict[str, Any]],
    fills: List[FillRecord],
    rejections: List[RejectionRecord],
    account: Account,
) -> Dict[str, Any]:
    """Compute summary statistics for a completed replay.

    Drawdown is measured on the per-step equity curve against the
    running high-water mark, which starts at the starting cash.
    """
    final_equity: Decimal = curve[-1]["equity"] if curve else starting_cash
    max_drawdown = Decimal(0)
    max_drawdown_pct = 0.0
    high_water: Decimal = starting_cash
    for point in curve:
        eq = point["equity"]
        if eq > high_water:
            high_water = eq
        drawdown = high_water - eq
        if drawdown > max_drawdown:
            max_drawdown = drawdown
        if high_water > 0:
            dd_pct = float(drawdown / high_water)
            if dd_pct > max_drawdown_pct:
                max_drawdown_pct = dd_pct
    total_return = float((final_equity - starting_cash) / starting_cash) if starting_cash else 0.0
    return {
        "ticks": len(curve),
        "fills": len(fills),
        "buys": sum(1 for f in fills if f.lots > 0),
        "sells": sum(1 for f in fills if f.lots < 0),
        "rejected_orders": len(rejections),
        "starting_cash": starting_cash,
        "final_cash": account.cash,
        "final_equity": final_equity,
        "total_return": total_return,
        "max_drawdown": max_drawdown,
        "max_drawdown_pct": max_drawdown_pct,
        "open_positions": {
            asset: {"lots": pos.lots, "cost_basis": pos.cost_basis}
            for asset, pos in sorted(account.portfolio.items())
        },
    }
