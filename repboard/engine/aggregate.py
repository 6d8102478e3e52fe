"""
repboard.engine.aggregate — Weekday & Month Bucketing
=======================================================

Pure folds over fetched rows.  No I/O.

Value cells are summed leniently: blank, non-numeric and non-finite cells
count as 0 and are never errors.  Rows whose date cell doesn't parse are
skipped; rows at or beyond a block's ``stop_at`` are never read.

Weekdays follow Python's convention: Monday = 0 … Sunday = 6.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from repboard.engine.dates import DateValueRow, parse_date_cell

if TYPE_CHECKING:
    from repboard.sheets.fetcher import SheetBlock

Number = int | float

__all__ = [
    "month_totals",
    "to_number",
    "weekday_averages",
    "weekday_averages_by_participant",
    "weekday_totals",
    "weekday_totals_by_participant",
    "year_month_totals",
]


def to_number(value: Any) -> Number:
    """Lenient numeric value of a cell; anything unusable is 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        n = value
    else:
        text = str(value).strip()
        if not text:
            return 0
        try:
            n = float(text)
        except ValueError:
            return 0
    if not math.isfinite(n):
        return 0
    return int(n) if n.is_integer() else n


# ---------------------------------------------------------------------------
# Month buckets (ranking input)
# ---------------------------------------------------------------------------
def year_month_totals(block: SheetBlock, year: int) -> dict[int, list[Number]]:
    """Per-participant totals for every month of *year*, in one pass.

    Returns ``{month: [total for each roster position]}`` with all twelve
    months present.
    """
    totals: dict[int, list[Number]] = {
        m: [0] * len(block.names) for m in range(1, 13)
    }
    for row in range(min(block.stop_at, block.row_count)):
        d = parse_date_cell(block.date_cells[row])
        if d is None or d.year != year:
            continue
        bucket = totals[d.month]
        for pos in range(len(block.names)):
            bucket[pos] += to_number(block.value_at(pos, row))
    return totals


def month_totals(block: SheetBlock, year: int, month: int) -> list[Number]:
    """Per-participant totals for one month."""
    totals: list[Number] = [0] * len(block.names)
    for row in range(min(block.stop_at, block.row_count)):
        d = parse_date_cell(block.date_cells[row])
        if d is None or d.year != year or d.month != month:
            continue
        for pos in range(len(block.names)):
            totals[pos] += to_number(block.value_at(pos, row))
    return totals


# ---------------------------------------------------------------------------
# Weekday buckets (single participant history)
# ---------------------------------------------------------------------------
def weekday_totals(
    rows: Iterable[DateValueRow], year: int, month: int
) -> list[Number]:
    """Seven weekday sums for one participant in one month."""
    buckets: list[Number] = [0] * 7
    for row in rows:
        d = parse_date_cell(row.date)
        if d is None or d.year != year or d.month != month:
            continue
        buckets[d.weekday()] += to_number(row.value)
    return buckets


def weekday_averages(rows: Iterable[DateValueRow], month: int) -> list[float]:
    """Seven weekday sums for *month* averaged over the years observed.

    Each weekday's divisor is the number of distinct years that have at
    least one row on that weekday in that month; empty buckets are 0.
    """
    sums: list[Number] = [0] * 7
    years: list[set[int]] = [set() for _ in range(7)]
    for row in rows:
        d = parse_date_cell(row.date)
        if d is None or d.month != month:
            continue
        wd = d.weekday()
        sums[wd] += to_number(row.value)
        years[wd].add(d.year)
    return [s / len(y) if y else 0.0 for s, y in zip(sums, years)]


def weekday_totals_by_participant(
    block: SheetBlock, year: int, month: int
) -> dict[str, list[Number]]:
    return {
        name: weekday_totals(block.rows_for(pos), year, month)
        for pos, name in enumerate(block.names)
    }


def weekday_averages_by_participant(
    block: SheetBlock, month: int
) -> dict[str, list[float]]:
    return {
        name: weekday_averages(block.rows_for(pos), month)
        for pos, name in enumerate(block.names)
    }
