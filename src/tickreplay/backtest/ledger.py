"""Checked decimal arithmetic for ledger values.

Cash, cost basis and lot valuation are computed with :class:`decimal.Decimal`
in a dedicated context so that no binary floating point enters the
ledger.  The context traps invalid operations, division by zero and
overflow; any trapped condition is re-raised as
:class:`~tickreplay.errors.ArithmeticFault` so a corrupted
ledger never continues silently.
"""

from __future__ import annotations

from decimal import (
    Context,
    Decimal,
    DecimalException,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    ROUND_HALF_EVEN,
    localcontext,
)
from typing import Union

from ..config import LEDGER_PRECISION
from ..errors import ArithmeticFault

LEDGER_CONTEXT = Context(
    prec=LEDGER_PRECISION,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow],
)

Number = Union[Decimal, int, str]


def to_decimal(value: Number, operation: str = "to_decimal") -> Decimal:
    """Convert ``value`` to a ledger decimal.

    Floats are rejected; they have to be converted from a string by the
    caller so their binary representation never reaches the ledger.
    """
    if isinstance(value, float):
        raise ArithmeticFault(operation, f"float {value!r} cannot enter the ledger")
    try:
        with localcontext(LEDGER_CONTEXT):
            result = Decimal(value)
            if not result.is_finite():
                raise ArithmeticFault(operation, f"non-finite value {value!r}")
            return result
    except DecimalException as exc:
        raise ArithmeticFault(operation, f"cannot convert {value!r}: {exc!r}") from exc


def mul(a: Decimal, b: Number, operation: str = "mul") -> Decimal:
    try:
        with localcontext(LEDGER_CONTEXT):
            return a * Decimal(b)
    except DecimalException as exc:
        raise ArithmeticFault(operation, repr(exc)) from exc


def add(a: Decimal, b: Decimal, operation: str = "add") -> Decimal:
    try:
        with localcontext(LEDGER_CONTEXT):
            return a + b
    except DecimalException as exc:
        raise ArithmeticFault(operation, repr(exc)) from exc


def sub(a: Decimal, b: Decimal, operation: str = "sub") -> Decimal:
    try:
        with localcontext(LEDGER_CONTEXT):
            return a - b
    except DecimalException as exc:
        raise ArithmeticFault(operation, repr(exc)) from exc


def div(a: Decimal, b: Number, operation: str = "div") -> Decimal:
    try:
        with localcontext(LEDGER_CONTEXT):
            return a / Decimal(b)
    except DecimalException as exc:
        raise ArithmeticFault(operation, repr(exc)) from exc


def midpoint(bid: Decimal, ask: Decimal) -> Decimal:
    """Average of ``bid`` and ``ask``."""
    return div(add(bid, ask, "midpoint"), 2, "midpoint")
