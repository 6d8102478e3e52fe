"""
repboard.database.engine — Database Connection & Async Helper
===============================================================

The cross-session cache tier lives in a small SQL database (SQLite by
default).  SQLAlchemy is **synchronous**, while the fetch pipeline runs on
an ``asyncio`` event loop, so every cache read/write goes through
:func:`run_db`, which ships the call to a worker thread.

Usage::

    from repboard.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()          # reads CACHE_DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    record = await run_db(load_record, engine, "roster:Push")
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

from repboard.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

DEFAULT_DATABASE_URL = "sqlite:///repboard-cache.db"


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` for the cache database.

    The URL comes from *url*, then ``CACHE_DATABASE_URL``, then a local
    SQLite file.  SQLite connections are opened with
    ``check_same_thread=False`` because :func:`run_db` uses worker threads.
    """
    url = url or os.getenv("CACHE_DATABASE_URL") or DEFAULT_DATABASE_URL

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        url,
        echo=False,        # Set True for SQL debugging
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    logger.info("Cache database engine created → %s", engine.url.database)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`repboard.database.models`.

    Safe to call on every startup — ``CREATE TABLE IF NOT EXISTS`` under
    the hood.
    """
    Base.metadata.create_all(engine)
    logger.info("Cache tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back
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
    """Run a **synchronous** database function on a background thread.

    Uses :func:`asyncio.to_thread`, so the event loop keeps serving other
    queries while SQLite does its work.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
