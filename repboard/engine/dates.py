"""
repboard.engine.dates — Date Cell Parsing & Calendar Filters
==============================================================

Sheet date cells arrive either as spreadsheet day serials (``45292``) or as
free text (``"2024-01-01"``, ``"Jan 1, 2024"``).  Everything here resolves
them to naive local :class:`~datetime.datetime` values and never raises:
an unparseable cell is simply ``None``.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from dateutil import parser as date_parser

from repboard.constants import SERIAL_EPOCH_OFFSET

__all__ = [
    "DateValueRow",
    "filter_by_date",
    "filter_by_ytd_period",
    "is_same_calendar_day",
    "months_in_quarter",
    "parse_date_cell",
    "quarter_of",
]

_UNIX_EPOCH = datetime(1970, 1, 1)


# ---------------------------------------------------------------------------
# Raw row shape
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class DateValueRow:
    """Raw (date, value) cell pair for one participant on one sheet row."""

    date: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"date": self.date, "value": self.value}

    @classmethod
    def from_dict(cls, raw: Any) -> DateValueRow | None:
        """Rebuild a row from its JSON shape; anything else yields None."""
        if not isinstance(raw, dict):
            return None
        d, v = raw.get("date"), raw.get("value")
        if not isinstance(d, str) or not isinstance(v, str):
            return None
        return cls(date=d, value=v)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
def _as_float(text: str) -> float | None:
    try:
        return float(text)
    except ValueError:
        return None


def parse_date_cell(cell: Any) -> datetime | None:
    """Parse a sheet cell into a naive datetime, or ``None``.

    Numeric text greater than zero is a day serial where 25569 is
    1970-01-01; fractional serials keep their time of day.  Other numeric
    text (zero, negatives, NaN) is not a date.  Everything else goes
    through :func:`dateutil.parser.parse`.
    """
    if cell is None:
        return None
    text = str(cell).strip()
    if not text:
        return None

    serial = _as_float(text)
    if serial is not None:
        if not serial > 0 or math.isinf(serial):
            return None
        try:
            return _UNIX_EPOCH + timedelta(days=serial - SERIAL_EPOCH_OFFSET)
        except OverflowError:
            return None

    try:
        parsed = date_parser.parse(text)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
    except (ValueError, OverflowError):
        return None
    return parsed


def quarter_of(month: int) -> int:
    """Quarter 1–4 from month 1–12."""
    return math.ceil(month / 3)


def months_in_quarter(quarter: int) -> list[int]:
    start = (quarter - 1) * 3 + 1
    return [start, start + 1, start + 2]


def is_same_calendar_day(a: datetime | date, b: datetime | date) -> bool:
    return a.year == b.year and a.month == b.month and a.day == b.day


# ---------------------------------------------------------------------------
# Filters over raw history rows
# ---------------------------------------------------------------------------
def filter_by_date(
    rows: Iterable[DateValueRow],
    year: int | None = None,
    quarter: int | None = None,
    month: int | None = None,
) -> list[DateValueRow]:
    """Keep rows matching every given filter; ``None`` means "any".

    With no filters at all, rows are returned unchanged (unparseable dates
    included).  With any filter active, unparseable rows are dropped.
    """
    rows = list(rows)
    if not year and not quarter and not month:
        return rows

    out: list[DateValueRow] = []
    for row in rows:
        d = parse_date_cell(row.date)
        if d is None:
            continue
        if year and d.year != year:
            continue
        if quarter and quarter_of(d.month) != quarter:
            continue
        if month and d.month != month:
            continue
        out.append(row)
    return out


def filter_by_ytd_period(
    rows: Iterable[DateValueRow], year: int, day_of_year: int
) -> list[DateValueRow]:
    """Rows in *year* up to and including *day_of_year* (1-based)."""
    out: list[DateValueRow] = []
    for row in rows:
        d = parse_date_cell(row.date)
        if d is None or d.year != year:
            continue
        if d.timetuple().tm_yday <= day_of_year:
            out.append(row)
    return out
