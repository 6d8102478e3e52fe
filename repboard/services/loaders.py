"""
repboard.services.loaders — Cache-Aware Fetch Pipelines
=========================================================

Each loader follows the same shape::

    refresh? → invalidate key in every tier
    cache hit? → rebuild domain objects and return
    miss → fetch from Sheets → compute → commit (if token still current)

Loaders take an optional :class:`GenerationToken`.  The token is checked
right before every cache write so a slow, superseded run can never
overwrite what a newer run already stored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date
from typing import TYPE_CHECKING, Any

from repboard.constants import ALL_CATEGORIES, Category
from repboard.engine.cache import (
    MISS,
    CacheManager,
    leaderboard_key,
    medals_key,
    roster_key,
    rows_key,
)
from repboard.engine.dates import DateValueRow
from repboard.engine.ranking import (
    LeaderboardEntry,
    MedalTotals,
    compute_medal_totals,
    leaderboard_for_month,
    months_to_compute,
)
from repboard.sheets.ranges import Roster

if TYPE_CHECKING:
    from repboard.engine.supersession import GenerationToken
    from repboard.sheets.fetcher import RowFetcher

logger = logging.getLogger(__name__)

# Raised by from_dict helpers on cache payloads of an unexpected shape
_SHAPE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


class ActivityLoaders:
    """Fetch pipelines for rosters, leaderboards, histories and medals."""

    def __init__(
        self,
        fetcher: RowFetcher,
        cache: CacheManager,
        *,
        categories: Sequence[Category] = ALL_CATEGORIES,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache
        self.categories = tuple(categories)
        self._today = today

    async def _lookup(self, key: str, refresh: bool) -> Any:
        if refresh:
            await self.cache.invalidate(key)
            return MISS
        return await self.cache.get(key)

    async def _commit(
        self, key: str, value: Any, token: GenerationToken | None
    ) -> None:
        if token is not None and not token.is_current:
            logger.debug("Skipping cache write for %r from stale %r", key, token)
            return
        await self.cache.set(key, value)

    # -------------------------------------------------------------------
    # Rosters
    # -------------------------------------------------------------------
    async def roster(
        self,
        category: Category,
        *,
        token: GenerationToken | None = None,
        refresh: bool = False,
    ) -> Roster:
        key = roster_key(category.value)
        cached = await self._lookup(key, refresh)
        if isinstance(cached, list) and all(isinstance(n, str) for n in cached):
            return Roster(category, tuple(cached))

        roster = await self.fetcher.fetch_roster(category)
        await self._commit(key, list(roster.names), token)
        return roster

    # -------------------------------------------------------------------
    # Monthly leaderboard
    # -------------------------------------------------------------------
    async def leaderboard(
        self,
        category: Category,
        year: int,
        month: int,
        *,
        token: GenerationToken | None = None,
        refresh: bool = False,
    ) -> list[LeaderboardEntry]:
        roster = await self.roster(category, token=token)
        if not roster:
            return []

        key = leaderboard_key(category.value, year, month)
        cached = await self._lookup(key, refresh)
        if cached is not MISS:
            try:
                return [LeaderboardEntry.from_dict(e) for e in cached]
            except _SHAPE_ERRORS:
                logger.warning("Ignoring malformed cached leaderboard %r", key)

        block = await self.fetcher.fetch_rows(roster, today=self._today(), token=token)
        board = leaderboard_for_month(block, year, month)
        await self._commit(key, [e.to_dict() for e in board], token)
        return board

    # -------------------------------------------------------------------
    # One participant's raw history
    # -------------------------------------------------------------------
    async def history(
        self,
        category: Category,
        name: str,
        *,
        token: GenerationToken | None = None,
        refresh: bool = False,
    ) -> list[DateValueRow]:
        roster = await self.roster(category, token=token)
        if name not in roster:
            return []

        key = rows_key(category.value, name)
        cached = await self._lookup(key, refresh)
        if isinstance(cached, list):
            rows = [DateValueRow.from_dict(r) for r in cached]
            return [r for r in rows if r is not None]

        block = await self.fetcher.fetch_rows(
            roster, [roster.column_index(name)], today=self._today(), token=token
        )
        rows = block.rows_for(0)
        await self._commit(key, [r.to_dict() for r in rows], token)
        return rows

    # -------------------------------------------------------------------
    # Medal tables for a year
    # -------------------------------------------------------------------
    async def medals(
        self,
        year: int,
        categories: Sequence[Category] | None = None,
        *,
        token: GenerationToken | None = None,
        refresh: bool = False,
    ) -> MedalTotals:
        cats = tuple(categories or self.categories)
        today = self._today()
        if months_to_compute(year, today) == 0:
            return MedalTotals()

        key = medals_key([c.value for c in cats], year)
        cached = await self._lookup(key, refresh)
        if isinstance(cached, dict):
            try:
                return MedalTotals.from_dict(cached)
            except _SHAPE_ERRORS:
                logger.warning("Ignoring malformed cached medals %r", key)

        blocks = await self.fetcher.fetch_all_bulk(cats, today=today)
        totals = compute_medal_totals(blocks, cats, year, today)
        await self._commit(key, totals.to_dict(), token)
        logger.info(
            "Medal totals for %d computed: %d medalists", year, len(totals.by_year)
        )
        return totals
