"""
repboard.engine.stats — Participant History Summaries
=======================================================

Derived figures for one participant's raw history: totals, working days,
streaks, same-period-last-year comparisons, month-over-month change and
the daily pace needed to catch first place.
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any

from repboard.engine.aggregate import Number, to_number
from repboard.engine.dates import (
    DateValueRow,
    filter_by_date,
    filter_by_ytd_period,
    parse_date_cell,
)
from repboard.engine.ranking import LeaderboardEntry


def is_working_value(value: str) -> bool:
    """A day counts as worked unless it is blank or exactly zero."""
    v = value.strip()
    if not v:
        return False
    try:
        return float(v) != 0
    except ValueError:
        return True


def percent_change(current: Number, previous: Number) -> int | None:
    if previous == 0:
        return 100 if current > 0 else None
    if current == previous:
        return 0
    return round((current - previous) / previous * 100)


def period_total(rows: Sequence[DateValueRow]) -> Number:
    return sum((to_number(r.value) for r in rows), 0)


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Streaks:
    longest_streak: int = 0
    longest_time_off: int = 0


def streaks(rows: Sequence[DateValueRow]) -> Streaks:
    """Longest run of consecutive worked days and of consecutive days off.

    A missing calendar day breaks either run.
    """
    dated = sorted(
        ((d, r) for r in rows if (d := parse_date_cell(r.date)) is not None),
        key=lambda pair: pair[0],
    )
    longest_streak = longest_off = streak = off = 0
    prev = None
    for d, row in dated:
        consecutive = prev is not None and d.date() == prev.date() + timedelta(days=1)
        if is_working_value(row.value):
            streak = streak + 1 if consecutive else 1
            off = 0
            longest_streak = max(longest_streak, streak)
        else:
            off = off + 1 if consecutive else 1
            streak = 0
            longest_off = max(longest_off, off)
        prev = d
    return Streaks(longest_streak, longest_off)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class HistorySummary:
    total: Number
    working_days: int
    days_covered: int
    longest_streak: int
    longest_time_off: int
    # Populated only for a plain current-year filter (year to date)
    last_year: dict[str, Number] | None = None
    change_pct: dict[str, int | None] | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _figures(rows: Sequence[DateValueRow]) -> dict[str, Number]:
    s = streaks(rows)
    return {
        "total": period_total(rows),
        "working_days": sum(1 for r in rows if is_working_value(r.value)),
        "days_covered": len(rows),
        "longest_streak": s.longest_streak,
        "longest_time_off": s.longest_time_off,
    }


def summarize(
    rows: Sequence[DateValueRow],
    *,
    year: int | None = None,
    quarter: int | None = None,
    month: int | None = None,
    today: date | None = None,
) -> HistorySummary:
    """Summary of *rows* filtered by year/quarter/month.

    When the filter is exactly the current year, the figures are compared
    with the same day-of-year span of the previous year.
    """
    today = today or date.today()
    filtered = filter_by_date(rows, year, quarter, month)
    current = _figures(filtered)

    last_year = change = None
    if year == today.year and not quarter and not month:
        day_of_year = today.timetuple().tm_yday
        last_year = _figures(filter_by_ytd_period(rows, today.year - 1, day_of_year))
        change = {k: percent_change(current[k], last_year[k]) for k in current}

    return HistorySummary(**current, last_year=last_year, change_pct=change)


def month_over_month(
    rows: Sequence[DateValueRow], today: date | None = None
) -> dict[str, Any]:
    """This month's total against the previous calendar month."""
    today = today or date.today()
    prev_year, prev_month = (
        (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)
    )
    this_total = period_total(filter_by_date(rows, today.year, None, today.month))
    prev_total = period_total(filter_by_date(rows, prev_year, None, prev_month))
    return {
        "current": this_total,
        "previous": prev_total,
        "change_pct": percent_change(this_total, prev_total),
    }


# ---------------------------------------------------------------------------
# Pace to first place
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PaceToFirst:
    is_first: bool
    gap: Number = 0
    per_day: int = 0
    leader: str | None = None
    leader_per_day: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def pace_to_first(
    leaderboard: Sequence[LeaderboardEntry], name: str, today: date
) -> PaceToFirst | None:
    """Daily count *name* needs for the rest of the month to pass the leader.

    Assumes the leader keeps their average daily pace so far.  Returns
    ``None`` for an empty board or when *name* is tied with the leader.
    """
    if not leaderboard:
        return None
    first = leaderboard[0]
    if first.name == name:
        return PaceToFirst(is_first=True, leader=first.name)

    mine = next((e.total for e in leaderboard if e.name == name), 0)
    gap = max(0, first.total - mine)
    if gap == 0:
        return None

    last_day = calendar.monthrange(today.year, today.month)[1]
    days_remaining = max(1, last_day - today.day + 1)
    days_elapsed = max(1, today.day)
    leader_per_day = first.total / days_elapsed
    per_day = math.ceil(gap / days_remaining + leader_per_day)
    return PaceToFirst(
        is_first=False,
        gap=gap,
        per_day=per_day,
        leader=first.name,
        leader_per_day=leader_per_day,
    )
