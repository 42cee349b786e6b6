"""Account ledger and position cost-basis accounting.

The account tracks:

* cash
* open positions keyed by asset
* an append-only log of settled fills
* in-flight orders

Position changes arrive as fills (a :class:`Position` used as a delta).
A fill that costs more than the available cash is refused with
:class:`~tickreplay.errors.InsufficientCash` and leaves the account
untouched; cash is the only thing checked.  Margin, borrow for short
sales and negative lot feasibility are not modelled.

All values here are :class:`decimal.Decimal`; arithmetic goes through
:mod:`tickreplay.backtest.ledger` so failures surface as
:class:`~tickreplay.errors.ArithmeticFault`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, List, Optional

from ..errors import InsufficientCash
from . import ledger
from .orders import Order, OrderState

logger = logging.getLogger(__name__)


@dataclass
class Position:
    """Signed lots of an asset held at an average ``cost_basis`` per lot."""

    asset: str
    lots: int
    cost_basis: Decimal

    @property
    def cost(self) -> Decimal:
        """Cash consumed by this position (negative for short sales)."""
        return ledger.mul(self.cost_basis, self.lots, "position_cost")


@dataclass
class Account:
    cash: Decimal
    portfolio: Dict[str, Position] = field(default_factory=dict)
    trades: List[Position] = field(default_factory=list)
    orders: List[Order] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.cash = ledger.to_decimal(self.cash, "account_cash")

    def position(self, asset: str) -> Optional[Position]:
        return self.portfolio.get(asset)

    def committed_cash(self) -> Decimal:
        """Cost of executed orders that have not been settled yet."""
        total = Decimal(0)
        for order in self.orders:
            if order.state is OrderState.EXECUTED and order.cost_basis is not None:
                total = ledger.add(
                    total, ledger.mul(order.cost_basis, order.lots, "committed_cash"), "committed_cash"
                )
        return total

    def available_cash(self) -> Decimal:
        return ledger.sub(self.cash, self.committed_cash(), "available_cash")

    def apply_fill(self, delta: Position) -> None:
        """Apply a settled fill to the portfolio.

        The fill's cost (``cost_basis * lots``) is debited from cash; a
        sale has a negative cost and credits cash.  An existing position
        takes the lot-weighted average of both cost bases.  A position
        whose lots return to zero is closed and removed.

        Raises:
            InsufficientCash: the cost exceeds cash; nothing changes.
            ArithmeticFault: a ledger computation failed.
        """
        cost = ledger.mul(delta.cost_basis, delta.lots, "apply_fill")
        if cost > self.cash:
            raise InsufficientCash(delta.asset, cost, self.cash)
        new_cash = ledger.sub(self.cash, cost, "apply_fill")
        existing = self.portfolio.get(delta.asset)
        if existing is None:
            updated: Optional[Position] = replace(delta)
        else:
            lots = existing.lots + delta.lots
            if lots == 0:
                updated = None
            else:
                equity = ledger.add(existing.cost, cost, "cost_basis")
                updated = Position(
                    asset=delta.asset,
                    lots=lots,
                    cost_basis=ledger.div(equity, lots, "cost_basis"),
                )
        # All arithmetic is done; commit.
        self.cash = new_cash
        if updated is None:
            del self.portfolio[delta.asset]
            logger.debug("Closed position in %s", delta.asset)
        else:
            self.portfolio[delta.asset] = updated
        self.trades.append(replace(delta))
