"""Error taxonomy for tickreplay.

Errors fall into two groups.  Recoverable conditions
(:class:`InsufficientCash`, :class:`SequenceExhausted`) leave the engine
state untouched and may be caught by the caller to continue.  Faults
(:class:`ArithmeticFault`) mean the ledger can no longer be trusted and
abort the run; they carry the tick index and operation that failed so
the diagnostic identifies where the replay stopped.

An indicator that has not accumulated enough samples is not an error:
its value is ``None``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional


class BacktestError(Exception):
    """Base class for all errors raised by the backtesting engine."""


class InsufficientCash(BacktestError):
    """A fill would cost more than the cash available."""

    def __init__(self, asset: str, cost: Decimal, cash: Decimal) -> None:
        super().__init__(
            f"Insufficient cash for {asset}: cost {cost} exceeds cash {cash}"
        )
        self.asset = asset
        self.cost = cost
        self.cash = cash


class SequenceExhausted(BacktestError):
    """The tick cursor has reached the end of the tick sequence."""

    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"Tick index {index} is past the end of the sequence ({length} ticks)")
        self.index = index
        self.length = length


class ArithmeticFault(BacktestError):
    """A checked decimal operation on the ledger failed."""

    def __init__(
        self,
        operation: str,
        detail: str,
        tick_index: Optional[int] = None,
    ) -> None:
        where = f" at tick {tick_index}" if tick_index is not None else ""
        super().__init__(f"Arithmetic fault in {operation}{where}: {detail}")
        self.operation = operation
        self.detail = detail
        self.tick_index = tick_index

    def at_tick(self, tick_index: int) -> "ArithmeticFault":
        """Return a copy of this fault annotated with ``tick_index``."""
        return ArithmeticFault(self.operation, self.detail, tick_index=tick_index)


class IndicatorError(BacktestError):
    """Invalid indicator registration or lookup."""


class DuplicateIndicator(IndicatorError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Indicator {name!r} is already registered")
        self.name = name


class UnknownIndicator(IndicatorError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No indicator named {name!r} is registered")
        self.name = name


class TickFormatError(BacktestError):
    """A tick record could not be parsed."""

    def __init__(self, row: int, message: str) -> None:
        super().__init__(f"Row {row}: {message}")
        self.row = row


__all__ = [
    "BacktestError",
    "InsufficientCash",
    "SequenceExhausted",
    "ArithmeticFault",
    "IndicatorError",
    "DuplicateIndicator",
    "UnknownIndicator",
    "TickFormatError",
]
