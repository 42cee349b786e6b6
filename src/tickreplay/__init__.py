"""Top-level package for the tickreplay project.

This package provides a deterministic tick-driven backtesting engine in
:mod:`tickreplay.backtest`, tick models in :mod:`tickreplay.providers`,
CSV and database ingestion in :mod:`tickreplay.ingestion` and a
command-line interface via :mod:`tickreplay.cli`.
"""

__all__ = [
    "backtest",
    "cli",
    "db",
    "ingestion",
    "providers",
]
