"""Pydantic models for normalized tick data.

These classes define the canonical representation of a bid/ask quote as
consumed by the backtest engine.  Prices are kept as
:class:`decimal.Decimal` so that fills priced from a tick stay exact all
the way into the ledger.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Iterator, Sequence, Tuple, overload

from pydantic import BaseModel

from ..errors import SequenceExhausted


class Tick(BaseModel):
    """Represents a single timestamped quote for one asset.

    Attributes:
        timestamp: Time of the quote as an aware datetime.
        asset: Identifier of the quoted asset (e.g. "EURUSD").
        bid: Best bid price.
        ask: Best ask price.  ``bid <= ask`` is assumed but not checked.
    """

    timestamp: datetime
    asset: str
    bid: Decimal
    ask: Decimal

    class Config:
        frozen = True


class TickSequence(Sequence[Tick]):
    """Ordered, immutable sequence of ticks indexed ``0..N-1``.

    Indexing at or past the end raises :class:`SequenceExhausted`
    instead of :class:`IndexError` so callers can tell an exhausted
    replay apart from a programming error.
    """

    def __init__(self, ticks: Iterable[Tick]) -> None:
        self._ticks: Tuple[Tick, ...] = tuple(ticks)

    @overload
    def __getitem__(self, index: int) -> Tick: ...

    @overload
    def __getitem__(self, index: slice) -> "TickSequence": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return TickSequence(self._ticks[index])
        if index < 0 or index >= len(self._ticks):
            raise SequenceExhausted(index, len(self._ticks))
        return self._ticks[index]

    def __len__(self) -> int:
        return len(self._ticks)

    def __iter__(self) -> Iterator[Tick]:
        return iter(self._ticks)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TickSequence):
            return self._ticks == other._ticks
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._ticks)

    def __repr__(self) -> str:
        return f"TickSequence({len(self._ticks)} ticks)"

    def assets(self) -> list[str]:
        """Distinct assets in order of first appearance."""
        seen: dict[str, None] = {}
        for tick in self._ticks:
            seen.setdefault(tick.asset, None)
        return list(seen)
