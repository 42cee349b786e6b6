"""Order records and their lifecycle states.

An order is created ``PENDING`` and resolves to ``EXECUTED`` or
``REJECTED``.  In backtest mode resolution happens synchronously when
the order is placed.  An executed order carries its fill price in
``cost_basis`` but does not touch the portfolio until the engine's next
reconciliation pass converts it into a position fill and removes it
from the account; rejected orders are discarded by the same pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class OrderState(str, Enum):
    PENDING = "pending"
    REJECTED = "rejected"
    EXECUTED = "executed"


@dataclass
class Order:
    """A trade request for ``lots`` of ``asset``.

    Positive lots buy at the ask, negative lots sell at the bid.
    ``tick_index`` is the cursor position at which the order was placed
    and ``reason`` explains a rejection.
    """

    asset: str
    lots: int
    tick_index: int
    state: OrderState = OrderState.PENDING
    cost_basis: Optional[Decimal] = None
    reason: Optional[str] = None

    @property
    def is_buy(self) -> bool:
        return self.lots > 0

    @property
    def fill_price(self) -> Decimal:
        """Execution price; only defined for an executed order."""
        if self.state is not OrderState.EXECUTED or self.cost_basis is None:
            raise ValueError(f"Order in state {self.state.value} has no fill price")
        return self.cost_basis

    def execute(self, price: Decimal) -> None:
        if self.state is not OrderState.PENDING:
            raise ValueError(f"Cannot execute an order in state {self.state.value}")
        self.cost_basis = price
        self.state = OrderState.EXECUTED

    def reject(self, reason: str) -> None:
        if self.state is OrderState.REJECTED:
            return
        self.cost_basis = None
        self.reason = reason
        self.state = OrderState.REJECTED
