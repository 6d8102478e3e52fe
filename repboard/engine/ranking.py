"""
repboard.engine.ranking — Leaderboards & Medal Tallies
========================================================

Pure calculation, no I/O.

Leaderboards
    Participants sorted by total, descending.  Ties keep roster order and
    still get distinct, contiguous ranks (``[10, 10, 7]`` → ranks 1, 2, 3).

Medals
    For every month of a year, the top three of each category's monthly
    leaderboard earn gold, silver and bronze.  Each medal counts toward the
    month, its quarter and the year, overall and per category.  Medal
    tables are ordered by ``gold*3 + silver*2 + bronze``, then gold, silver
    and bronze counts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from repboard.constants import MEDAL_ORDER, MEDAL_WEIGHTS, Category
from repboard.engine.aggregate import Number, month_totals, year_month_totals
from repboard.engine.dates import quarter_of

if TYPE_CHECKING:
    from repboard.sheets.fetcher import SheetBlock

__all__ = [
    "LeaderboardEntry",
    "MedalCount",
    "MedalTally",
    "MedalTotals",
    "award_medals",
    "compute_medal_totals",
    "leaderboard_for_month",
    "months_to_compute",
    "rank",
    "sort_medal_counts",
]


# ---------------------------------------------------------------------------
# Leaderboards
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    name: str
    total: Number

    def to_dict(self) -> dict[str, Any]:
        return {"rank": self.rank, "name": self.name, "total": self.total}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> LeaderboardEntry:
        return cls(rank=int(raw["rank"]), name=str(raw["name"]), total=raw["total"])


def rank(
    totals: Mapping[str, Number] | Iterable[tuple[str, Number]],
) -> list[LeaderboardEntry]:
    """Rank participants by total, highest first.

    ``sorted`` is stable (also with ``reverse=True``), so equal totals keep
    their input order.
    """
    items = list(totals.items()) if isinstance(totals, Mapping) else list(totals)
    ordered = sorted(items, key=lambda item: item[1], reverse=True)
    return [
        LeaderboardEntry(rank=i + 1, name=name, total=total)
        for i, (name, total) in enumerate(ordered)
    ]


def leaderboard_for_month(
    block: SheetBlock, year: int, month: int
) -> list[LeaderboardEntry]:
    return rank(zip(block.names, month_totals(block, year, month)))


def months_to_compute(year: int, today: date) -> int:
    """12 for past years, months so far for this year, 0 for the future."""
    if year < today.year:
        return 12
    if year == today.year:
        return today.month
    return 0


# ---------------------------------------------------------------------------
# Medal tallies
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class MedalTally:
    gold: int = 0
    silver: int = 0
    bronze: int = 0

    def add(self, medal: str) -> None:
        setattr(self, medal, getattr(self, medal) + 1)

    @property
    def has_medals(self) -> bool:
        return bool(self.gold or self.silver or self.bronze)

    def to_dict(self) -> dict[str, int]:
        return {"gold": self.gold, "silver": self.silver, "bronze": self.bronze}


@dataclass(frozen=True, slots=True)
class MedalCount:
    """One participant's medals for a window, optionally split by category."""

    name: str
    gold: int
    silver: int
    bronze: int
    by_category: dict[Category, MedalTally] | None = None

    @property
    def score(self) -> int:
        return (
            self.gold * MEDAL_WEIGHTS["gold"]
            + self.silver * MEDAL_WEIGHTS["silver"]
            + self.bronze * MEDAL_WEIGHTS["bronze"]
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "gold": self.gold,
            "silver": self.silver,
            "bronze": self.bronze,
        }
        if self.by_category:
            out["byCategory"] = {
                cat.value: tally.to_dict() for cat, tally in self.by_category.items()
            }
        return out

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> MedalCount:
        by_cat = raw.get("byCategory")
        return cls(
            name=str(raw["name"]),
            gold=int(raw.get("gold", 0)),
            silver=int(raw.get("silver", 0)),
            bronze=int(raw.get("bronze", 0)),
            by_category=(
                {Category(k): MedalTally(**v) for k, v in by_cat.items()}
                if by_cat else None
            ),
        )


@dataclass(frozen=True, slots=True)
class MedalTotals:
    by_year: list[MedalCount] = field(default_factory=list)
    by_quarter: dict[int, list[MedalCount]] = field(default_factory=dict)
    by_month: dict[int, list[MedalCount]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "byYear": [m.to_dict() for m in self.by_year],
            "byQuarter": {
                str(q): [m.to_dict() for m in ms] for q, ms in self.by_quarter.items()
            },
            "byMonth": {
                str(mo): [m.to_dict() for m in ms] for mo, ms in self.by_month.items()
            },
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> MedalTotals:
        return cls(
            by_year=[MedalCount.from_dict(m) for m in raw.get("byYear", [])],
            by_quarter={
                int(q): [MedalCount.from_dict(m) for m in ms]
                for q, ms in raw.get("byQuarter", {}).items()
            },
            by_month={
                int(mo): [MedalCount.from_dict(m) for m in ms]
                for mo, ms in raw.get("byMonth", {}).items()
            },
        )


_Tallies = dict[str, MedalTally]


def _credit(tallies: _Tallies, name: str, medal: str) -> None:
    tallies.setdefault(name, MedalTally()).add(medal)


def _by_category(
    name: str,
    per_category: Mapping[Category, _Tallies],
    categories: Sequence[Category],
) -> dict[Category, MedalTally] | None:
    out: dict[Category, MedalTally] = {}
    for cat in categories:
        tally = per_category.get(cat, {}).get(name)
        if tally is not None and tally.has_medals:
            out[cat] = MedalTally(tally.gold, tally.silver, tally.bronze)
    return out or None


def sort_medal_counts(counts: Iterable[MedalCount]) -> list[MedalCount]:
    """Drop medal-less entries; order by weighted score, then gold/silver/bronze."""
    kept = [c for c in counts if c.gold or c.silver or c.bronze]
    return sorted(kept, key=lambda c: (-c.score, -c.gold, -c.silver, -c.bronze))


def _medal_table(
    tallies: _Tallies,
    per_category: Mapping[Category, _Tallies],
    categories: Sequence[Category],
) -> list[MedalCount]:
    return sort_medal_counts(
        MedalCount(
            name=name,
            gold=t.gold,
            silver=t.silver,
            bronze=t.bronze,
            by_category=_by_category(name, per_category, categories),
        )
        for name, t in tallies.items()
    )


def award_medals(
    leaderboards: Mapping[Category, Mapping[int, Sequence[LeaderboardEntry]]],
    categories: Sequence[Category],
) -> MedalTotals:
    """Turn monthly leaderboards into year/quarter/month medal tables.

    *leaderboards* maps category → month → leaderboard; only the months
    present are scored.  Quarters 1–4 always appear in the result.
    """
    year_t: _Tallies = {}
    quarter_t: dict[int, _Tallies] = {q: {} for q in range(1, 5)}
    month_t: dict[int, _Tallies] = {}
    cat_year: dict[Category, _Tallies] = {}
    cat_quarter: dict[int, dict[Category, _Tallies]] = {q: {} for q in range(1, 5)}
    cat_month: dict[int, dict[Category, _Tallies]] = {}

    for cat in categories:
        for month, board in sorted(leaderboards.get(cat, {}).items()):
            q = quarter_of(month)
            month_t.setdefault(month, {})
            for entry, medal in zip(board[:3], MEDAL_ORDER):
                _credit(year_t, entry.name, medal)
                _credit(quarter_t[q], entry.name, medal)
                _credit(month_t[month], entry.name, medal)
                _credit(cat_year.setdefault(cat, {}), entry.name, medal)
                _credit(cat_quarter[q].setdefault(cat, {}), entry.name, medal)
                _credit(
                    cat_month.setdefault(month, {}).setdefault(cat, {}),
                    entry.name, medal,
                )

    return MedalTotals(
        by_year=_medal_table(year_t, cat_year, categories),
        by_quarter={
            q: _medal_table(quarter_t[q], cat_quarter[q], categories)
            for q in range(1, 5)
        },
        by_month={
            m: _medal_table(month_t[m], cat_month.get(m, {}), categories)
            for m in sorted(month_t)
        },
    )


def compute_medal_totals(
    blocks: Mapping[Category, SheetBlock],
    categories: Sequence[Category],
    year: int,
    today: date,
) -> MedalTotals:
    """Medal tables for *year* from already-fetched category blocks.

    A future year yields empty tables (no quarters, no months).
    """
    months = months_to_compute(year, today)
    if months == 0:
        return MedalTotals()

    leaderboards: dict[Category, dict[int, list[LeaderboardEntry]]] = {}
    for cat in categories:
        block = blocks.get(cat)
        if block is None:
            continue
        by_month = year_month_totals(block, year)
        leaderboards[cat] = {
            m: rank(zip(block.names, by_month[m])) for m in range(1, months + 1)
        }
    return award_medals(leaderboards, categories)
