"""Market data models shared by ingestion and the backtest engine."""

from .models import Tick, TickSequence  # noqa: F401
