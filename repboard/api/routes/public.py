"""
repboard.api.routes.public — Public dashboard endpoints
=========================================================

Every view endpoint answers with the same envelope::

    {"status": "success", "data": ..., "loading": false,
     "error": null, "generation": 3}

``refresh=true`` bypasses every cache tier for that request.  Transport
failures are reported in ``error`` with a 200, the same way the dashboard
renders them; only an unknown category is an HTTP error.

The session cache tier is keyed by the ``X-Session-Id`` request header.
``POST /session`` hands out a fresh id and drops the one sent, which is
what a full page reload does.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from repboard.api.deps import client_session, get_board, get_config
from repboard.config import RepboardConfig
from repboard.constants import RANK_BADGES, Category, parse_category
from repboard.engine.supersession import QueryState
from repboard.services.board import ActivityBoard

router = APIRouter(tags=["public"], dependencies=[Depends(client_session)])


class ViewResponse(BaseModel):
    status: str
    data: Any = None
    loading: bool = False
    error: str | None = None
    generation: int = 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _category(raw: str, config: RepboardConfig) -> Category:
    try:
        cat = parse_category(raw)
    except ValueError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"Unknown category: {raw}")
    if cat not in config.categories:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"Category not enabled: {raw}")
    return cat


def _envelope(state: QueryState, data: Any) -> ViewResponse:
    return ViewResponse(
        status=state.status.value,
        data=data,
        loading=state.loading,
        error=state.error,
        generation=state.generation,
    )


def _leaderboard_rows(entries) -> list[dict]:
    rows = []
    for e in entries or []:
        row = e.to_dict()
        row["badge"] = RANK_BADGES[e.rank - 1] if e.rank <= len(RANK_BADGES) else None
        rows.append(row)
    return rows


# ---------------------------------------------------------------------------
# POST /session
# ---------------------------------------------------------------------------
@router.post("/session")
def start_session(
    previous: str | None = Depends(client_session),
    board: ActivityBoard = Depends(get_board),
):
    return {"session_id": board.new_session(previous)}


# ---------------------------------------------------------------------------
# GET /categories
# ---------------------------------------------------------------------------
@router.get("/categories")
def list_categories(config: RepboardConfig = Depends(get_config)):
    return [
        {"id": cat.value, "label": config.display_name(cat)}
        for cat in config.category_order
    ]


# ---------------------------------------------------------------------------
# GET /roster/{category}
# ---------------------------------------------------------------------------
@router.get("/roster/{category}", response_model=ViewResponse)
async def get_roster(
    category: str,
    refresh: bool = Query(False),
    board: ActivityBoard = Depends(get_board),
    config: RepboardConfig = Depends(get_config),
):
    state = await board.roster(_category(category, config), refresh=refresh)
    return _envelope(state, state.data or [])


# ---------------------------------------------------------------------------
# GET /leaderboard/{category}
# ---------------------------------------------------------------------------
@router.get("/leaderboard/{category}", response_model=ViewResponse)
async def get_leaderboard(
    category: str,
    year: int | None = Query(None, ge=1900, le=9999),
    month: int | None = Query(None, ge=1, le=12),
    refresh: bool = Query(False),
    board: ActivityBoard = Depends(get_board),
    config: RepboardConfig = Depends(get_config),
):
    """Monthly leaderboard; defaults to the current month."""
    state = await board.leaderboard(
        _category(category, config), year, month, refresh=refresh
    )
    return _envelope(state, _leaderboard_rows(state.data))


# ---------------------------------------------------------------------------
# GET /medals/{year}
# ---------------------------------------------------------------------------
@router.get("/medals/{year}", response_model=ViewResponse)
async def get_medals(
    year: int,
    categories: list[str] | None = Query(None),
    refresh: bool = Query(False),
    board: ActivityBoard = Depends(get_board),
    config: RepboardConfig = Depends(get_config),
):
    """Medal tables for *year* across the selected (default: all) categories."""
    cats = [_category(c, config) for c in categories] if categories else None
    state = await board.medals(year, cats, refresh=refresh)
    return _envelope(state, state.data.to_dict() if state.data else None)


# ---------------------------------------------------------------------------
# GET /history/{category}/{name}
# ---------------------------------------------------------------------------
@router.get("/history/{category}/{name}", response_model=ViewResponse)
async def get_history(
    category: str,
    name: str,
    year: int | None = Query(None, ge=1900, le=9999),
    quarter: int | None = Query(None, ge=1, le=4),
    month: int | None = Query(None, ge=1, le=12),
    refresh: bool = Query(False),
    board: ActivityBoard = Depends(get_board),
    config: RepboardConfig = Depends(get_config),
):
    """One participant's rows and derived statistics.

    With no filter the summary covers the current year to date.
    """
    if year is None and quarter is None and month is None:
        year = date.today().year
    state = await board.history(
        _category(category, config),
        name,
        year=year,
        quarter=quarter,
        month=month,
        refresh=refresh,
    )
    return _envelope(state, state.data.to_dict() if state.data else None)
