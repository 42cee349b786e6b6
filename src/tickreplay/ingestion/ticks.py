"""Tick ingestion: CSV parsing and dataset storage.

Historical tick files are CSVs with ``Date``, ``Time``, ``Asset``,
``Bid`` and ``Ask`` columns.  Dates are ``YYYY/MM/DD``, times are
``HH:MM:SS`` with an optional fractional second and prices are decimal
strings.  Columns are read as strings so prices are converted straight
to :class:`decimal.Decimal` without a float round trip.

Parsed ticks can be stored under a dataset name in the ``ticks`` table
and loaded back in their original order.  Storing a dataset replaces
any previous rows under the same name, so re-running ingestion is
idempotent.  Prices are stored as text to keep them exact on every
backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pandas as pd
from sqlalchemy import Column, Integer, MetaData, Table, Text, TIMESTAMP
from sqlalchemy import delete, func, insert, select
from sqlalchemy.engine import Engine
from zoneinfo import ZoneInfo

from ..config import DEFAULT_TICK_TZ, TICK_CSV_COLUMNS, TICK_DATE_FORMAT, TICK_TIME_FORMATS
from ..errors import TickFormatError
from ..providers.models import Tick, TickSequence

metadata = MetaData()
ticks_table = Table(
    "ticks",
    metadata,
    Column("dataset", Text, primary_key=True),
    Column("seq", Integer, primary_key=True),
    Column("ts", TIMESTAMP(timezone=True), nullable=False),
    Column("asset", Text, nullable=False),
    Column("bid", Text, nullable=False),
    Column("ask", Text, nullable=False),
)


@dataclass
class IngestStats:
    """Simple data class capturing statistics of an ingestion run."""

    dataset: str
    ticks_stored: int
    assets: List[str]
    start: Optional[datetime]
    end: Optional[datetime]


def _tzinfo(tz: str) -> tzinfo:
    if tz.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(tz)


def _parse_timestamp(date_str: str, time_str: str, tz: tzinfo) -> datetime:
    clock, dot, fraction = time_str.partition(".")
    if dot:
        if not fraction.isdigit():
            raise ValueError(f"unrecognised date/time {date_str!r} {time_str!r}")
        # datetime resolution is microseconds; finer digits are truncated
        time_str = f"{clock}.{fraction[:6]}"
    for fmt in TICK_TIME_FORMATS:
        try:
            naive = datetime.strptime(f"{date_str} {time_str}", f"{TICK_DATE_FORMAT} {fmt}")
        except ValueError:
            continue
        return naive.replace(tzinfo=tz)
    raise ValueError(f"unrecognised date/time {date_str!r} {time_str!r}")


def _parse_price(value: str) -> Decimal:
    try:
        price = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"invalid price {value!r}")
    if not price.is_finite():
        raise ValueError(f"invalid price {value!r}")
    return price


def parse_tick_frame(df: pd.DataFrame, tz: str = DEFAULT_TICK_TZ) -> TickSequence:
    """Convert a string-typed DataFrame of tick records to a TickSequence.

    Rows are ordered by timestamp; rows sharing a timestamp keep their
    file order.
    """
    missing = [c for c in TICK_CSV_COLUMNS if c not in df.columns]
    if missing:
        raise TickFormatError(0, f"tick file is missing columns {missing}")
    zone = _tzinfo(tz)
    ticks: List[Tick] = []
    # Data rows start at line 2 of the file
    for row_no, row in enumerate(df.itertuples(index=False), start=2):
        try:
            asset = str(row.Asset).strip()
            if not asset:
                raise ValueError("empty asset")
            ticks.append(
                Tick(
                    timestamp=_parse_timestamp(str(row.Date).strip(), str(row.Time).strip(), zone),
                    asset=asset,
                    bid=_parse_price(str(row.Bid).strip()),
                    ask=_parse_price(str(row.Ask).strip()),
                )
            )
        except ValueError as exc:
            raise TickFormatError(row_no, str(exc)) from exc
    # sorted() is stable, which keeps file order for equal timestamps
    return TickSequence(sorted(ticks, key=lambda t: t.timestamp))


def parse_tick_csv(path: Union[str, Path], tz: str = DEFAULT_TICK_TZ) -> TickSequence:
    """Read a historical tick CSV file."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip() for c in df.columns]
    return parse_tick_frame(df, tz=tz)


def store_ticks(
    engine: Engine, dataset: str, ticks: Iterable[Tick], chunk_size: int = 2000
) -> IngestStats:
    """Replace ``dataset`` in the ticks table with ``ticks``."""
    rows = [
        {
            "dataset": dataset,
            "seq": seq,
            "ts": tick.timestamp,
            "asset": tick.asset,
            "bid": str(tick.bid),
            "ask": str(tick.ask),
        }
        for seq, tick in enumerate(ticks)
    ]
    with engine.begin() as conn:
        conn.execute(delete(ticks_table).where(ticks_table.c.dataset == dataset))
        for i in range(0, len(rows), chunk_size):
            conn.execute(insert(ticks_table), rows[i : i + chunk_size])
    assets: List[str] = []
    for row in rows:
        if row["asset"] not in assets:
            assets.append(row["asset"])
    return IngestStats(
        dataset=dataset,
        ticks_stored=len(rows),
        assets=assets,
        start=rows[0]["ts"] if rows else None,
        end=rows[-1]["ts"] if rows else None,
    )


def load_ticks(engine: Engine, dataset: str, tz: str = DEFAULT_TICK_TZ) -> TickSequence:
    """Load a stored dataset in its original order.

    Backends that drop the timezone (SQLite) return naive timestamps;
    those are interpreted in ``tz``.
    """
    zone = _tzinfo(tz)
    with engine.connect() as conn:
        rows = conn.execute(
            select(
                ticks_table.c.ts,
                ticks_table.c.asset,
                ticks_table.c.bid,
                ticks_table.c.ask,
            )
            .where(ticks_table.c.dataset == dataset)
            .order_by(ticks_table.c.seq)
        ).fetchall()
    ticks: List[Tick] = []
    for row in rows:
        ts = row.ts
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=zone)
        ticks.append(Tick(timestamp=ts, asset=row.asset, bid=Decimal(row.bid), ask=Decimal(row.ask)))
    return TickSequence(ticks)


def list_datasets(engine: Engine) -> List[tuple[str, int]]:
    """Return ``(dataset, tick_count)`` pairs sorted by name."""
    with engine.connect() as conn:
        rows = conn.execute(
            select(ticks_table.c.dataset, func.count())
            .group_by(ticks_table.c.dataset)
            .order_by(ticks_table.c.dataset)
        ).fetchall()
    return [(row[0], int(row[1])) for row in rows]
