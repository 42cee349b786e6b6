"""Backtesting package for tickreplay.

This package implements a deterministic, tick-driven backtesting engine
along with its account ledger, rolling indicators, order lifecycle,
scripted order schedules, metrics computation and artifact writers.
Replays are strictly sequential: the engine processes one tick at a
time in the caller's thread and no randomness is introduced anywhere,
so the same ticks and the same orders always produce the same ledger.

Submodules:

* ``engine`` – Step state machine orchestrating indicators, orders and the account.
* ``account`` – Cash, positions and cost-basis accounting.
* ``orders`` – Order records and lifecycle states.
* ``indicators`` – Moving average and momentum indicators.
* ``ledger`` – Checked decimal arithmetic for monetary values.
* ``schedule`` – Scripted order schedules.
* ``runner`` – Full replays producing a ``BacktestResult``.
* ``metrics`` – Fill records, equity curve and summary statistics.
* ``io`` – Writing backtest artifacts (fills, equity curve, summary).

"""

from .account import Account, Position  # noqa: F401
from .engine import Engine, StepReport, init_engine  # noqa: F401
from .indicators import IndicatorSpec, Momentum, MovingAverage  # noqa: F401
from .orders import Order, OrderState  # noqa: F401
from .runner import BacktestConfig, BacktestResult, run_backtest  # noqa: F401
