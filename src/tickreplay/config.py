"""
Configuration constants for the tickreplay project.

This module centralises configuration values that are used across the
application.  New values should be added here deliberately.
"""

from decimal import Decimal
from typing import Final

PROJECT_NAME: Final[str] = "tickreplay"

# Token an indicator declares as its ``input`` to consume the midpoint of
# the current tick rather than another indicator's value.
PRICE_INPUT: Final[str] = "price"

DEFAULT_STARTING_CASH: Final[Decimal] = Decimal("10000")

# Significant digits kept by ledger arithmetic (cash, cost basis).
LEDGER_PRECISION: Final[int] = 28

# Historical tick files use ``YYYY/MM/DD`` dates and ``HH:MM:SS`` times
# with an optional fractional second part.
TICK_DATE_FORMAT: Final[str] = "%Y/%m/%d"
TICK_TIME_FORMATS: Final[tuple[str, ...]] = ("%H:%M:%S.%f", "%H:%M:%S")
TICK_CSV_COLUMNS: Final[tuple[str, ...]] = ("Date", "Time", "Asset", "Bid", "Ask")
DEFAULT_TICK_TZ: Final[str] = "UTC"

ORDER_CSV_COLUMNS: Final[tuple[str, ...]] = ("tick_index", "asset", "lots")

DATABASE_URL_ENV: Final[str] = "DATABASE_URL"
LOG_LEVEL_ENV: Final[str] = "TICKREPLAY_LOG_LEVEL"

__all__ = [
    "PROJECT_NAME",
    "PRICE_INPUT",
    "DEFAULT_STARTING_CASH",
    "LEDGER_PRECISION",
    "TICK_DATE_FORMAT",
    "TICK_TIME_FORMATS",
    "TICK_CSV_COLUMNS",
    "DEFAULT_TICK_TZ",
    "ORDER_CSV_COLUMNS",
    "DATABASE_URL_ENV",
    "LOG_LEVEL_ENV",
]
