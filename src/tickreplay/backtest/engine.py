"""Tick-driven backtesting engine.

The engine replays a pre-loaded, finite tick sequence one step at a
time.  It owns the account, the registered indicators and a cursor into
the tick sequence.  Each call to :meth:`Engine.step` performs, in order:

1. update every indicator for the tick at the cursor;
2. record the tick midpoint as the last price of its asset;
3. reconcile executed orders into position fills, discard rejected
   orders and leave pending orders in place;
4. advance the cursor.

Orders placed between steps with :meth:`Engine.place_order` resolve
immediately against the quote at the cursor and are settled by the
next step's reconciliation pass.

Indicators that consume another indicator see that indicator's value
from the end of the previous step.  Values are snapshotted before any
indicator is updated, so the result does not depend on registration
order.

Everything runs synchronously in the caller's thread.  Given the same
ticks and the same sequence of calls, a replay always ends in the same
state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Union

from ..config import DEFAULT_STARTING_CASH, PRICE_INPUT
from ..errors import (
    ArithmeticFault,
    DuplicateIndicator,
    InsufficientCash,
    SequenceExhausted,
    UnknownIndicator,
)
from ..providers.models import Tick, TickSequence
from . import ledger
from .account import Account, Position
from .indicators import Indicator, IndicatorSpec, Sample, build_indicator
from .orders import Order, OrderState

logger = logging.getLogger(__name__)


@dataclass
class StepReport:
    """What happened during one call to :meth:`Engine.step`."""

    index: int
    tick: Tick
    midpoint: Decimal
    fills: List[Position] = field(default_factory=list)
    rejected: List[Order] = field(default_factory=list)
    equity: Decimal = Decimal(0)


class Engine:
    """Owns the account, the indicators and the tick cursor."""

    def __init__(
        self,
        ticks: Union[TickSequence, Sequence[Tick]],
        starting_cash: Union[Decimal, int, str] = DEFAULT_STARTING_CASH,
    ) -> None:
        self.ticks = ticks if isinstance(ticks, TickSequence) else TickSequence(ticks)
        self.account = Account(cash=ledger.to_decimal(starting_cash, "starting_cash"))
        self.cursor = 0
        self.indicators: Dict[str, Indicator] = {}
        self.last_price: Dict[str, Decimal] = {}
        self.last_quote: Dict[str, Tick] = {}

    # ---- cursor ----

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.ticks)

    @property
    def current_tick(self) -> Tick:
        """Tick at the cursor; raises :class:`SequenceExhausted` at the end."""
        return self.ticks[self.cursor]

    # ---- indicators ----

    def register_indicator(self, name: str, spec: IndicatorSpec) -> Indicator:
        """Register a new indicator under ``name``.

        The input must be ``"price"`` or an indicator registered earlier,
        which keeps the dependency graph acyclic.
        """
        if name in self.indicators:
            raise DuplicateIndicator(name)
        if spec.input != PRICE_INPUT and spec.input not in self.indicators:
            raise UnknownIndicator(spec.input)
        indicator = build_indicator(name, spec)
        self.indicators[name] = indicator
        logger.debug("Registered indicator %r", indicator)
        return indicator

    def indicator_value(self, name: str) -> Optional[float]:
        """Current value of ``name``; ``None`` while it is not ready."""
        try:
            return self.indicators[name].value()
        except KeyError:
            raise UnknownIndicator(name) from None

    def indicator_values(self) -> Dict[str, Optional[float]]:
        return {name: ind.value() for name, ind in self.indicators.items()}

    def _update_indicators(self, tick: Tick, midpoint: Decimal) -> None:
        previous = self.indicator_values()
        price = float(midpoint)
        for indicator in self.indicators.values():
            spec = indicator.spec
            sample: Sample
            if spec.uses_price:
                if spec.asset is not None and spec.asset != tick.asset:
                    sample = None
                else:
                    sample = price
            else:
                sample = previous[spec.input]
            indicator.update(sample)

    # ---- orders ----

    def _quote_for(self, asset: str) -> Optional[Tick]:
        tick = self.current_tick
        if tick.asset == asset:
            return tick
        return self.last_quote.get(asset)

    def place_order(self, asset: str, lots: int) -> Order:
        """Submit an order for ``lots`` of ``asset`` at the current quote.

        Buys fill at the ask and sells at the bid.  The order is executed
        or rejected immediately and appended to the account's order
        list; the position changes on the next :meth:`step`.

        When the tick at the cursor is for another asset the most recent
        quote seen for ``asset`` is used.  An order is rejected when no
        quote exists, when ``lots`` is zero, or when its cost exceeds the
        cash not already committed to unsettled orders.
        """
        index = self.cursor
        if self.exhausted:
            raise SequenceExhausted(index, len(self.ticks))
        order = Order(asset=asset, lots=int(lots), tick_index=index)
        try:
            quote = self._quote_for(asset)
            if quote is None:
                order.reject("no quote")
            elif order.lots == 0:
                order.reject("zero lots")
            else:
                price = quote.ask if order.is_buy else quote.bid
                cost = ledger.mul(price, order.lots, "place_order")
                available = self.account.available_cash()
                if cost > available:
                    order.reject(f"insufficient cash: cost {cost}, available {available}")
                else:
                    order.execute(price)
        except ArithmeticFault as exc:
            raise exc.at_tick(index) from exc
        self.account.orders.append(order)
        if order.state is OrderState.REJECTED:
            logger.warning(
                "Rejected order for %s lots of %s at tick %d: %s",
                order.lots,
                asset,
                index,
                order.reason,
            )
        return order

    def _reconcile(self, index: int) -> tuple[List[Position], List[Order]]:
        fills: List[Position] = []
        rejected: List[Order] = []
        remaining: List[Order] = []
        for order in self.account.orders:
            if order.state is OrderState.PENDING:
                remaining.append(order)
            elif order.state is OrderState.REJECTED:
                rejected.append(order)
            else:
                delta = Position(asset=order.asset, lots=order.lots, cost_basis=order.fill_price)
                try:
                    self.account.apply_fill(delta)
                except InsufficientCash as exc:
                    order.reject("insufficient cash")
                    rejected.append(order)
                    logger.warning("Rejected settlement at tick %d: %s", index, exc)
                else:
                    fills.append(delta)
        self.account.orders = remaining
        return fills, rejected

    # ---- stepping ----

    def step(self) -> StepReport:
        """Advance the simulation by one tick.

        Raises:
            SequenceExhausted: every tick has been processed; nothing
                changes.
            ArithmeticFault: a ledger computation failed; the fault
                names the tick index and operation.
        """
        index = self.cursor
        tick = self.current_tick
        try:
            midpoint = ledger.midpoint(tick.bid, tick.ask)
            self._update_indicators(tick, midpoint)
            self.last_price[tick.asset] = midpoint
            self.last_quote[tick.asset] = tick
            fills, rejected = self._reconcile(index)
            equity = self.equity()
        except ArithmeticFault as exc:
            logger.error("Aborting replay at tick %d: %s", index, exc)
            raise exc.at_tick(index) from exc
        self.cursor += 1
        return StepReport(
            index=index,
            tick=tick,
            midpoint=midpoint,
            fills=fills,
            rejected=rejected,
            equity=equity,
        )

    def run(self) -> List[StepReport]:
        """Step until the tick sequence is exhausted."""
        reports: List[StepReport] = []
        while not self.exhausted:
            reports.append(self.step())
        return reports

    # ---- valuation ----

    def equity(self) -> Decimal:
        """Cash plus the mark-to-market value of every open position.

        A position on an asset that has not been priced by a tick yet is
        marked at its cost basis.
        """
        total = self.account.cash
        for asset, position in self.account.portfolio.items():
            mark = self.last_price.get(asset, position.cost_basis)
            total = ledger.add(total, ledger.mul(mark, position.lots, "equity"), "equity")
        return total


def init_engine(
    tick_source: Union[TickSequence, Sequence[Tick]],
    starting_cash: Union[Decimal, int, str] = DEFAULT_STARTING_CASH,
) -> Engine:
    """Create an engine over ``tick_source`` with ``starting_cash``."""
    return Engine(tick_source, starting_cash)
