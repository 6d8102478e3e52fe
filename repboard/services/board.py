"""
repboard.services.board — Read API for the Dashboard
======================================================

:class:`ActivityBoard` is the composition root.  It owns the one
:class:`CacheManager`, the :class:`RowFetcher` and a registry of
:class:`QueryController` objects, and exposes one coroutine per view.

Every view call returns a :class:`QueryState`.  A call that is overtaken
by a newer call for the same view returns whatever the newer call has
made visible so far; its own result never shows up.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from repboard.constants import Category
from repboard.engine.aggregate import Number, weekday_averages, weekday_totals
from repboard.engine.cache import build_cache_manager
from repboard.engine.dates import DateValueRow, filter_by_date
from repboard.engine.ranking import LeaderboardEntry, MedalTotals
from repboard.engine.stats import (
    HistorySummary,
    PaceToFirst,
    month_over_month,
    pace_to_first,
    summarize,
)
from repboard.engine.supersession import (
    ControllerRegistry,
    GenerationToken,
    QueryState,
)
from repboard.services.loaders import ActivityLoaders
from repboard.sheets.client import SheetsClient
from repboard.sheets.fetcher import RowFetcher

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from repboard.config import RepboardConfig
    from repboard.engine.cache import CacheManager

logger = logging.getLogger(__name__)


class View(enum.StrEnum):
    ROSTER = "roster"
    LEADERBOARD = "leaderboard"
    MEDALS = "medals"
    HISTORY = "history"


@dataclass(frozen=True, slots=True)
class ParticipantHistory:
    """Everything the history page shows for one participant."""

    name: str
    category: Category
    rows: list[DateValueRow] = field(default_factory=list)
    summary: HistorySummary | None = None
    weekday_totals: list[Number] = field(default_factory=list)
    weekday_averages: list[float] = field(default_factory=list)
    month_over_month: dict[str, Any] = field(default_factory=dict)
    pace: PaceToFirst | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category.value,
            "rows": [r.to_dict() for r in self.rows],
            "summary": self.summary.to_dict() if self.summary else None,
            "weekdayTotals": self.weekday_totals,
            "weekdayAverages": self.weekday_averages,
            "monthOverMonth": self.month_over_month,
            "pace": self.pace.to_dict() if self.pace else None,
        }


class ActivityBoard:
    """Cached, supersession-aware views over the workbook."""

    def __init__(
        self,
        loaders: ActivityLoaders,
        *,
        today: Callable[[], date] = date.today,
        on_close: Callable[[], Any] | None = None,
    ) -> None:
        self.loaders = loaders
        self.controllers = ControllerRegistry()
        self._today = today
        self._on_close = on_close

    @property
    def cache(self) -> CacheManager:
        return self.loaders.cache

    @property
    def categories(self) -> tuple[Category, ...]:
        return self.loaders.categories

    def _window(self, year: int | None, month: int | None) -> tuple[int, int]:
        today = self._today()
        return (year or today.year, month or today.month)

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    async def roster(
        self, category: Category, *, refresh: bool = False
    ) -> QueryState[list[str]]:
        ctl = self.controllers.get((View.ROSTER, category), empty=[])

        async def load(token: GenerationToken) -> list[str]:
            roster = await self.loaders.roster(category, token=token, refresh=refresh)
            return list(roster.names)

        return await ctl.run(load)

    async def leaderboard(
        self,
        category: Category,
        year: int | None = None,
        month: int | None = None,
        *,
        refresh: bool = False,
    ) -> QueryState[list[LeaderboardEntry]]:
        year, month = self._window(year, month)
        ctl = self.controllers.get((View.LEADERBOARD, category, year, month), empty=[])

        async def load(token: GenerationToken) -> list[LeaderboardEntry]:
            return await self.loaders.leaderboard(
                category, year, month, token=token, refresh=refresh
            )

        return await ctl.run(load)

    async def medals(
        self,
        year: int | None = None,
        categories: Sequence[Category] | None = None,
        *,
        refresh: bool = False,
    ) -> QueryState[MedalTotals]:
        year = year or self._today().year
        cats = tuple(categories or self.categories)
        ctl = self.controllers.get((View.MEDALS, cats, year), empty=MedalTotals())

        async def load(token: GenerationToken) -> MedalTotals:
            return await self.loaders.medals(year, cats, token=token, refresh=refresh)

        return await ctl.run(load)

    async def history(
        self,
        category: Category,
        name: str,
        *,
        year: int | None = None,
        quarter: int | None = None,
        month: int | None = None,
        refresh: bool = False,
    ) -> QueryState[ParticipantHistory]:
        """Raw rows plus derived figures for one participant.

        The row filter (year/quarter/month) narrows ``rows`` and the
        summary; weekday buckets and month-over-month always describe the
        current month.
        """
        ctl = self.controllers.get(
            (View.HISTORY, category, name, year, quarter, month),
            empty=ParticipantHistory(name=name, category=category),
        )

        async def load(token: GenerationToken) -> ParticipantHistory:
            today = self._today()
            rows = await self.loaders.history(
                category, name, token=token, refresh=refresh
            )
            if not rows:
                return ParticipantHistory(name=name, category=category)

            board = await self.loaders.leaderboard(
                category, today.year, today.month, token=token
            )
            return ParticipantHistory(
                name=name,
                category=category,
                rows=filter_by_date(rows, year, quarter, month),
                summary=summarize(
                    rows, year=year, quarter=quarter, month=month, today=today
                ),
                weekday_totals=weekday_totals(rows, today.year, today.month),
                weekday_averages=weekday_averages(rows, today.month),
                month_over_month=month_over_month(rows, today),
                pace=pace_to_first(board, name, today),
            )

        return await ctl.run(load)

    async def refresh(self, view: View | str, **params: Any) -> QueryState[Any]:
        """Re-run *view* bypassing every cache tier."""
        handler = getattr(self, View(view).value)
        logger.info("Forced refresh of %s %s", view, params)
        return await handler(**params, refresh=True)

    def new_session(self, previous: str | None = None) -> str:
        """Id for a fresh client session; *previous* loses its tier-2 entries."""
        return self.cache.new_session(previous)

    async def aclose(self) -> None:
        if self._on_close is not None:
            await self._on_close()


def build_board(
    config: RepboardConfig,
    *,
    api_key: str,
    engine: Engine | None = None,
    today: Callable[[], date] = date.today,
) -> ActivityBoard:
    """Wire a Sheets client, fetcher, cache and loaders into a board."""
    client = SheetsClient(config.spreadsheet_id, api_key)
    loaders = ActivityLoaders(
        RowFetcher(client),
        build_cache_manager(engine, ttl=config.cache_ttl_seconds),
        categories=config.category_order,
        today=today,
    )
    return ActivityBoard(loaders, today=today, on_close=client.aclose)
