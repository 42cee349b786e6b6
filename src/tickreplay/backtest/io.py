"""I/O helpers for writing backtest artifacts.

This module centralizes writing of CSV and JSON artifacts produced by
a replay.  All functions here are deterministic: they write data in a
consistent column order and include the project name as a stamp to aid
downstream consumers.  Directories are created if they do not already
exist.  Decimal values are written as their exact string form.
"""

from __future__ import annotations

import csv
import json
import os
from dataclasses import fields
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..config import PROJECT_NAME
from .indicators import IndicatorSpec
from .metrics import FillRecord, RejectionRecord
from .runner import INDEX_COLUMN, BacktestConfig


def _ensure_dir(path: str) -> None:
    """Ensure that a directory exists."""
    if path:
        os.makedirs(path, exist_ok=True)


def _cell(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if value is None:
        return ""
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _indicator_config(spec: IndicatorSpec) -> Dict[str, Any]:
    return {"kind": spec.kind, "length": spec.length, "input": spec.input, "asset": spec.asset}


def write_fills_csv(fills: List[FillRecord], out_path: str) -> None:
    """Write settled fills to a CSV file.

    When there are no fills, a header row is still written to document
    the expected columns.  The header is derived from ``FillRecord``.
    """
    header = [f.name for f in fields(FillRecord)]
    _ensure_dir(os.path.dirname(out_path))
    with open(out_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for fill in fills:
            writer.writerow([_cell(getattr(fill, col)) for col in header])


def write_rejections_csv(rejections: List[RejectionRecord], out_path: str) -> None:
    header = [f.name for f in fields(RejectionRecord)]
    _ensure_dir(os.path.dirname(out_path))
    with open(out_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for rej in rejections:
            writer.writerow([_cell(getattr(rej, col)) for col in header])


def write_equity_curve_csv(curve: List[Dict[str, Any]], out_path: str) -> None:
    """Write the per-step equity curve to a CSV file."""
    _ensure_dir(os.path.dirname(out_path))
    with open(out_path, "w", newline="") as f:
        writer = csv.DictWriter(
            f, fieldnames=["tick_index", "timestamp", "asset", "midpoint", "equity"]
        )
        writer.writeheader()
        for row in curve:
            writer.writerow({k: _cell(v) for k, v in row.items()})


def write_indicators_csv(
    rows: List[Dict[str, Any]], names: List[str], out_path: str
) -> None:
    """Write indicator values after each step; not-ready values are blank."""
    _ensure_dir(os.path.dirname(out_path))
    with open(out_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=[INDEX_COLUMN] + list(names))
        writer.writeheader()
        for row in rows:
            writer.writerow({k: _cell(v) for k, v in row.items()})


def write_summary_json(
    summary: Dict[str, Any],
    config: BacktestConfig,
    out_path: str,
    source: Optional[str] = None,
) -> None:
    """Write the replay summary and configuration to a JSON file."""
    _ensure_dir(os.path.dirname(out_path))
    out = {
        "project": PROJECT_NAME,
        "source": source,
        "config": {
            "starting_cash": config.starting_cash,
            "indicators": {
                name: _indicator_config(spec)
                for name, spec in config.indicators.items()
            },
            "scheduled_orders": len(config.schedule),
        },
        "metrics": summary,
    }
    with open(out_path, "w") as f:
        json.dump(out, f, indent=2, default=_json_default)
