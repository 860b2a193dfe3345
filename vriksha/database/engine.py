"""
vriksha.database.engine — Database Connection & Async Helper
=============================================================

The entity store lives in memory; the database only holds snapshots
written by :mod:`vriksha.database.snapshot`.  SQLAlchemy is synchronous,
so async API handlers go through :func:`run_db`, which ships the work to
a thread via ``asyncio.to_thread()`` and keeps the event loop free.

Usage::

    from vriksha.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    # Inside an async route:
    await run_db(save_snapshot, engine, store.snapshot())
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from vriksha.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

DEFAULT_DATABASE_URL = "sqlite:///vriksha.db"


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine`.

    *url* wins over the ``DATABASE_URL`` env var, which wins over a local
    SQLite file (``vriksha.db``).
    """
    url = url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL

    kwargs: dict = {"echo": False}
    if url.startswith("sqlite"):
        # Snapshot writes may come from a worker thread (run_db)
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(pool_pre_ping=True, pool_recycle=3600)

    engine = create_engine(url, **kwargs)
    logger.info("Database engine created → %s", engine.url.render_as_string(hide_password=True))
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all snapshot tables.  Safe to call on every startup."""
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that auto-commits on success and rolls back
    on exception.
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** function on a background thread.

    Used for snapshot I/O and for field-service calls that wait on
    external collaborators, so async handlers never block the loop.

    Parameters
    ----------
    func:
        Any sync callable.
    *args, **kwargs:
        Forwarded to *func*.

    Returns
    -------
    T
        Whatever *func* returns.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
