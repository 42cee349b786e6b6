"""Drive an engine over a full tick sequence.

The runner wires a :class:`BacktestConfig` into an
:class:`~tickreplay.backtest.engine.Engine`: it registers the configured
indicators, places scheduled orders as the cursor reaches their tick
index, steps until the sequence is exhausted and collects the step
reports into a :class:`BacktestResult`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

from ..config import DEFAULT_STARTING_CASH
from ..errors import IndicatorError
from ..providers.models import Tick, TickSequence
from . import ledger
from .engine import Engine, StepReport, init_engine
from .indicators import IndicatorSpec
from .metrics import (
    FillRecord,
    RejectionRecord,
    compute_summary,
    equity_curve,
    fill_records,
    rejection_records,
)
from .schedule import OrderSchedule

logger = logging.getLogger(__name__)

# Leading column of each indicator row; no indicator may take this name.
INDEX_COLUMN = "tick_index"


@dataclass
class BacktestConfig:
    """Parameters of a backtest run.

    Attributes
    ----------
    starting_cash : Decimal
        Initial cash balance.
    indicators : dict of str to IndicatorSpec
        Indicators to register, in registration order.  An indicator
        may only use indicators listed before it as input.
    schedule : OrderSchedule
        Orders to place, keyed by tick index.
    """

    starting_cash: Decimal = DEFAULT_STARTING_CASH
    indicators: Dict[str, IndicatorSpec] = field(default_factory=dict)
    schedule: OrderSchedule = field(default_factory=OrderSchedule)


@dataclass
class BacktestResult:
    """Container for completed backtest results."""

    fills: List[FillRecord]
    rejections: List[RejectionRecord]
    equity_curve: List[Dict[str, Any]]
    indicators: List[Dict[str, Any]]
    summary: Dict[str, Any]
    engine: Engine


def run_backtest(
    ticks: Union[TickSequence, Sequence[Tick]],
    config: Optional[BacktestConfig] = None,
) -> BacktestResult:
    """Replay ``ticks`` under ``config`` and return the results.

    Raises:
        ArithmeticFault: the ledger failed; the error names the tick.
        IndicatorError: an indicator in the config is invalid.
    """
    config = config or BacktestConfig()
    if INDEX_COLUMN in config.indicators:
        raise IndicatorError(f"Indicator name {INDEX_COLUMN!r} is reserved for the row index")
    engine = init_engine(ticks, config.starting_cash)
    for name, spec in config.indicators.items():
        engine.register_indicator(name, spec)
    reports: List[StepReport] = []
    indicator_rows: List[Dict[str, Any]] = []
    while not engine.exhausted:
        for instr in config.schedule.due(engine.cursor):
            engine.place_order(instr.asset, instr.lots)
        report = engine.step()
        reports.append(report)
        row: Dict[str, Any] = {INDEX_COLUMN: report.index}
        row.update(engine.indicator_values())
        indicator_rows.append(row)
    unplaced = config.schedule.after(len(engine.ticks))
    if unplaced:
        logger.warning(
            "%d scheduled orders fall after the last tick (%d) and were not placed",
            len(unplaced),
            len(engine.ticks) - 1,
        )
    fills = fill_records(reports)
    rejections = rejection_records(reports)
    curve = equity_curve(reports)
    summary = compute_summary(
        ledger.to_decimal(config.starting_cash, "starting_cash"),
        curve,
        fills,
        rejections,
        engine.account,
    )
    summary["unplaced_orders"] = len(unplaced)
    logger.info(
        "Replayed %d ticks: %d fills, %d rejected, final equity %s",
        summary["ticks"],
        summary["fills"],
        summary["rejected_orders"],
        summary["final_equity"],
    )
    return BacktestResult(
        fills=fills,
        rejections=rejections,
        equity_curve=curve,
        indicators=indicator_rows,
        summary=summary,
        engine=engine,
    )
