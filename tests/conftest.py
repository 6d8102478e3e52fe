"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable
from datetime import date, timedelta

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from repboard.constants import DATES_ROW_START, ROSTER_ROW, Category
from repboard.database.models import Base
from repboard.sheets.ranges import column_number

# Every test runs "on" this day unless it says otherwise.
TODAY = date(2025, 3, 10)

_A1 = re.compile(
    r"^'(?P<tab>[^']+)'!(?P<c1>[A-Z]+)(?P<r1>\d+):(?P<c2>[A-Z]+)(?P<r2>\d+)$"
)
_FIRST_STORED_COLUMN = column_number("D")


class FakeSheet:
    """In-memory stand-in for SheetsClient.

    Each tab is stored as ``{sheet_row: [cell_D, cell_E, ...]}``.  Reads
    trim trailing blank cells and rows the way the Sheets API does.
    ``calls`` records one entry per request (a list of A1 ranges).
    """

    def __init__(self) -> None:
        self.tabs: dict[str, dict[int, list]] = {}
        self.calls: list[list[str]] = []
        self.fail: Exception | None = None
        self._pause: asyncio.Event | None = None

    def add_tab(self, category: Category, names: list[str], rows: list[list]) -> None:
        tab = {ROSTER_ROW: [""] + list(names)}
        for i, row in enumerate(rows):
            tab[DATES_ROW_START + i] = list(row)
        self.tabs[category.value] = tab

    def set_names(self, category: Category, names: list[str]) -> None:
        self.tabs[category.value][ROSTER_ROW] = [""] + list(names)

    def pause_next(self) -> asyncio.Event:
        """Hold the next read (after its result is computed) until set."""
        self._pause = asyncio.Event()
        return self._pause

    def _read(self, range_a1: str) -> list[list]:
        m = _A1.match(range_a1)
        assert m, f"unexpected range {range_a1!r}"
        tab = self.tabs.get(m["tab"], {})
        first = column_number(m["c1"]) - _FIRST_STORED_COLUMN
        last = column_number(m["c2"]) - _FIRST_STORED_COLUMN
        grid = []
        for r in range(int(m["r1"]), int(m["r2"]) + 1):
            cells = list(tab.get(r, []))[first:last + 1]
            while cells and cells[-1] in (None, ""):
                cells.pop()
            grid.append(cells)
        while grid and not grid[-1]:
            grid.pop()
        return grid

    async def _respond(self, ranges: list[str]) -> list[list[list]]:
        self.calls.append(list(ranges))
        if self.fail is not None:
            raise self.fail
        grids = [self._read(r) for r in ranges]
        if self._pause is not None:
            gate, self._pause = self._pause, None
            await gate.wait()
        return grids

    async def read_range(self, range_a1: str) -> list[list]:
        return (await self._respond([range_a1]))[0]

    async def read_ranges_batch(self, ranges) -> list[list[list]]:
        return await self._respond(list(ranges))


def daily_rows(
    start: date, end: date, values: Callable[[date], list] | None = None
) -> list[list]:
    """One ``[iso_date, *values]`` row per day; values stop after TODAY."""
    rows = []
    d = start
    while d <= end:
        cells = values(d) if values is not None and d <= TODAY else []
        rows.append([d.isoformat(), *cells])
        d += timedelta(days=1)
    return rows


def push_values(d: date) -> list:
    # Alex 10/day, Bo 12 on even days, Cy 5/day
    return ["10", "12" if d.day % 2 == 0 else "", "5"]


def pull_values(d: date) -> list:
    # Bo 1/day, Dee 2/day
    return ["1", "2"]


@pytest.fixture
def sheet() -> FakeSheet:
    """Push (Alex, Bo, Cy) and Pull (Bo, Dee) from 2024-12-01 to 2025-12-31."""
    fake = FakeSheet()
    start, end = date(2024, 12, 1), date(2025, 12, 31)
    fake.add_tab(Category.PUSH, ["Alex", "Bo", "Cy"], daily_rows(start, end, push_values))
    fake.add_tab(Category.PULL, ["Bo", "Dee"], daily_rows(start, end, pull_values))
    return fake


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with the cache table.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine
