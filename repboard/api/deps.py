"""
repboard.api.deps — FastAPI dependency injection
==================================================
"""

from __future__ import annotations

import os
from functools import lru_cache

from fastapi import Header
from sqlalchemy import Engine

from repboard.config import RepboardConfig, load_config
from repboard.database.engine import create_db_engine, init_db
from repboard.engine.cache import use_session
from repboard.services.board import ActivityBoard, build_board


def _api_key() -> str:
    key = os.getenv("GOOGLE_API_KEY", "").strip()
    if not key:
        raise RuntimeError(
            "GOOGLE_API_KEY environment variable is not set. "
            "Create an API key with read access to the Sheets API and put it in .env."
        )
    return key


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    engine = create_db_engine()
    init_db(engine)
    return engine


@lru_cache(maxsize=1)
def get_config() -> RepboardConfig:
    return load_config(os.getenv("REPBOARD_CONFIG", "config.yaml"))


@lru_cache(maxsize=1)
def get_board() -> ActivityBoard:
    """The process-wide board; one cache and one controller registry."""
    return build_board(get_config(), api_key=_api_key(), engine=get_engine())


async def client_session(
    x_session_id: str | None = Header(None, alias="X-Session-Id"),
) -> str | None:
    """Bind the request to the caller's cache session.

    Async and non-yielding so the binding is made in the task that runs
    the endpoint.  Requests without the header skip the session tier.
    """
    session_id = (x_session_id or "").strip() or None
    use_session(session_id)
    return session_id
