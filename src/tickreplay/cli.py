"""Command‑line interface for tickreplay.

This module uses the :mod:`click` library to expose commands for
preparing the tick store, ingesting historical tick files and running
backtests.  Backtests read ticks either from a CSV file or from a
dataset in the tick store, place orders from a scripted schedule and
write CSV/JSON artifacts into an output directory.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Optional, Tuple

import click

from .config import DEFAULT_STARTING_CASH, DEFAULT_TICK_TZ, LOG_LEVEL_ENV
from .errors import BacktestError
from .backtest.indicators import IndicatorSpec, parse_indicator_option
from .backtest.io import (
    write_equity_curve_csv,
    write_fills_csv,
    write_indicators_csv,
    write_rejections_csv,
    write_summary_json,
)
from .backtest.runner import INDEX_COLUMN, BacktestConfig, run_backtest
from .backtest.schedule import OrderSchedule, load_order_schedule
from .db.session import get_engine, init_db
from .ingestion.ticks import list_datasets, load_ticks, parse_tick_csv, store_ticks


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_engine(database_url: Optional[str] = None):
    try:
        return get_engine(database_url)
    except Exception as exc:
        raise click.ClickException(f"Could not connect to database: {exc}")


@click.group()
@click.option(
    "--log-level",
    default=lambda: os.getenv(LOG_LEVEL_ENV, "INFO"),
    show_default=f"${LOG_LEVEL_ENV} or INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """tickreplay command line interface."""
    _configure_logging(log_level)


@cli.command(name="db-init")
@click.option("--database-url", default=None, help="Database URL (default: $DATABASE_URL).")
def db_init(database_url: Optional[str]) -> None:
    """Create the tick store tables."""
    engine = _build_engine(database_url)
    init_db(engine)
    click.echo("Tick store initialised")


@cli.command()
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--dataset", required=True, help="Name to store the ticks under.")
@click.option("--tz", default=DEFAULT_TICK_TZ, show_default=True, help="Timezone of the Date/Time columns.")
@click.option("--database-url", default=None, help="Database URL (default: $DATABASE_URL).")
def ingest(csv_path: str, dataset: str, tz: str, database_url: Optional[str]) -> None:
    """Parse a tick CSV file and store it as DATASET."""
    try:
        ticks = parse_tick_csv(csv_path, tz=tz)
    except BacktestError as exc:
        raise click.ClickException(f"Could not parse {csv_path}: {exc}")
    engine = _build_engine(database_url)
    init_db(engine)
    stats = store_ticks(engine, dataset, ticks)
    click.echo(
        f"dataset={stats.dataset} ticks={stats.ticks_stored} "
        f"assets={','.join(stats.assets)}"
    )


@cli.command()
@click.option("--database-url", default=None, help="Database URL (default: $DATABASE_URL).")
def datasets(database_url: Optional[str]) -> None:
    """List stored tick datasets and their sizes."""
    engine = _build_engine(database_url)
    init_db(engine)
    for name, count in list_datasets(engine):
        click.echo(f"{name}\t{count}")


def _parse_indicators(values: Tuple[str, ...]) -> Dict[str, IndicatorSpec]:
    specs: Dict[str, IndicatorSpec] = {}
    for value in values:
        try:
            name, spec = parse_indicator_option(value)
        except ValueError as exc:
            raise click.UsageError(str(exc))
        if name == INDEX_COLUMN:
            raise click.UsageError(f"Indicator name {INDEX_COLUMN!r} is reserved")
        if name in specs:
            raise click.UsageError(f"Indicator {name!r} given more than once")
        specs[name] = spec
    return specs


@cli.command()
@click.option("--ticks", "ticks_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Tick CSV file to replay.")
@click.option("--dataset", default=None, help="Stored dataset to replay instead of a CSV file.")
@click.option("--orders", "orders_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="CSV of tick_index,asset,lots order instructions.")
@click.option(
    "--indicator",
    "indicators",
    multiple=True,
    help="Indicator as NAME=KIND:LENGTH[:INPUT][@ASSET]; KIND is ma or mom. Repeatable.",
)
@click.option(
    "--starting-cash",
    type=str,
    default=str(DEFAULT_STARTING_CASH),
    show_default=True,
    help="Starting cash balance (decimal).",
)
@click.option("--tz", default=DEFAULT_TICK_TZ, show_default=True, help="Timezone of tick timestamps.")
@click.option(
    "--out-dir",
    type=str,
    default=None,
    help="Directory to write backtest artifacts (default: artifacts/backtests/<run_id>).",
)
@click.option("--database-url", default=None, help="Database URL (default: $DATABASE_URL).")
def backtest(
    ticks_path: Optional[str],
    dataset: Optional[str],
    orders_path: Optional[str],
    indicators: Tuple[str, ...],
    starting_cash: str,
    tz: str,
    out_dir: Optional[str],
    database_url: Optional[str],
) -> None:
    """Replay ticks with a scripted order schedule and write artifacts."""
    if bool(ticks_path) == bool(dataset):
        raise click.UsageError("Provide exactly one of --ticks or --dataset")
    try:
        cash = Decimal(starting_cash)
    except InvalidOperation:
        raise click.UsageError(f"Invalid starting cash {starting_cash!r}")
    if not cash.is_finite() or cash < 0:
        raise click.UsageError("Starting cash must be a non-negative number")
    specs = _parse_indicators(indicators)
    try:
        if ticks_path:
            ticks = parse_tick_csv(ticks_path, tz=tz)
            source = ticks_path
        else:
            ticks = load_ticks(_build_engine(database_url), dataset, tz=tz)
            source = f"dataset:{dataset}"
        schedule = load_order_schedule(orders_path) if orders_path else OrderSchedule()
    except BacktestError as exc:
        raise click.ClickException(str(exc))
    if len(ticks) == 0:
        raise click.ClickException(f"No ticks found in {source}")
    cfg = BacktestConfig(starting_cash=cash, indicators=specs, schedule=schedule)
    try:
        result = run_backtest(ticks, cfg)
    except BacktestError as exc:
        raise click.ClickException(f"Backtest aborted: {exc}")
    run_id = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    out_path = Path(out_dir) if out_dir else Path("artifacts") / "backtests" / run_id
    out_path.mkdir(parents=True, exist_ok=True)
    write_fills_csv(result.fills, str(out_path / "fills.csv"))
    write_rejections_csv(result.rejections, str(out_path / "rejections.csv"))
    write_equity_curve_csv(result.equity_curve, str(out_path / "equity_curve.csv"))
    write_indicators_csv(result.indicators, list(specs), str(out_path / "indicators.csv"))
    write_summary_json(result.summary, cfg, str(out_path / "summary.json"), source=source)
    click.echo(
        f"Backtest completed: {result.summary['ticks']} ticks, {result.summary['fills']} fills, "
        f"final equity {result.summary['final_equity']}. Artifacts written to {out_path}"
    )
