"""Scripted order schedules.

A schedule is a list of order instructions keyed by tick index.  The
runner places every instruction due at an index immediately before the
engine steps over that tick, so the order is priced from that tick's
quote and settled in the same step.  Schedules replace a signal model:
they are produced outside the engine and replay deterministically.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Union

import pandas as pd

from ..config import ORDER_CSV_COLUMNS
from ..errors import TickFormatError


@dataclass(frozen=True)
class OrderInstruction:
    tick_index: int
    asset: str
    lots: int


class OrderSchedule:
    """Instructions grouped by tick index, kept in file order within an index."""

    def __init__(self, instructions: Iterable[OrderInstruction] = ()) -> None:
        self._by_index: Dict[int, List[OrderInstruction]] = {}
        for instr in instructions:
            self._by_index.setdefault(instr.tick_index, []).append(instr)

    def due(self, tick_index: int) -> List[OrderInstruction]:
        return list(self._by_index.get(tick_index, []))

    def after(self, tick_index: int) -> List[OrderInstruction]:
        """Instructions scheduled at or beyond ``tick_index``."""
        out: List[OrderInstruction] = []
        for idx in sorted(self._by_index):
            if idx >= tick_index:
                out.extend(self._by_index[idx])
        return out

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_index.values())


def load_order_schedule(path: Union[str, Path]) -> OrderSchedule:
    """Read a ``tick_index,asset,lots`` CSV into an :class:`OrderSchedule`."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    missing = [c for c in ORDER_CSV_COLUMNS if c not in df.columns]
    if missing:
        raise TickFormatError(0, f"order file is missing columns {missing}")
    instructions: List[OrderInstruction] = []
    # Data rows start at line 2 of the file
    for row_no, row in enumerate(df.itertuples(index=False), start=2):
        try:
            tick_index = int(row.tick_index)
            lots = int(row.lots)
        except ValueError:
            raise TickFormatError(row_no, f"tick_index and lots must be integers, got {row.tick_index!r}, {row.lots!r}")
        asset = str(row.asset).strip()
        if tick_index < 0 or not asset:
            raise TickFormatError(row_no, "tick_index must be >= 0 and asset non-empty")
        instructions.append(OrderInstruction(tick_index=tick_index, asset=asset, lots=lots))
    return OrderSchedule(instructions)
