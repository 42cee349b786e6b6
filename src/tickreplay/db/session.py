"""Connection to the tick store.

The ``ingest``, ``datasets`` and ``backtest --dataset`` commands all read and
write the same ``ticks`` table; this module resolves where that table
lives and creates it on first use.
"""

from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from ..config import DATABASE_URL_ENV


def get_engine(url: Optional[str] = None, **kwargs) -> Engine:
    """Return an engine for the tick store at ``url``.

    Without ``url`` the store location is read from ``$DATABASE_URL``; a
    missing value raises :class:`RuntimeError`, which the CLI reports as
    a connection failure.  ``kwargs`` go to :func:`sqlalchemy.create_engine`.
    """
    url = url or os.getenv(DATABASE_URL_ENV)
    if not url:
        raise RuntimeError(f"{DATABASE_URL_ENV} environment variable is not set")
    return create_engine(url, **kwargs)


def init_db(engine: Engine) -> None:
    """Create the tick store tables if they do not exist."""
    from ..ingestion.ticks import metadata

    metadata.create_all(engine)
