"""
repboard.constants — Shared Constants
=======================================

Single source of truth for the spreadsheet layout, the category set and
the medal weighting.  Import from here instead of duplicating in the
fetcher, the ranking engine and the API.
"""

from __future__ import annotations

import enum


# ---------------------------------------------------------------------------
# Categories: one spreadsheet tab each
# ---------------------------------------------------------------------------
class Category(enum.StrEnum):
    """Closed set of activity tabs in the workbook."""
    PUSH = "Push"
    PULL = "Pull"
    RUN = "Run"


ALL_CATEGORIES: tuple[Category, ...] = tuple(Category)

DEFAULT_DISPLAY_NAMES: dict[Category, str] = {
    Category.PUSH: "Push-ups",
    Category.PULL: "Pull-ups",
    Category.RUN: "Run",
}


# ---------------------------------------------------------------------------
# Sheet layout
# ---------------------------------------------------------------------------
ROSTER_ROW = 5               # participant names live in E5:Z5
DATES_ROW_START = 6          # first data row
DATE_COLUMN = "D"
FIRST_PARTICIPANT_COLUMN = "E"
LAST_PARTICIPANT_COLUMN = "Z"

CHUNK_SIZE = 200
MAX_CHUNKS = 25              # 5000 rows
MAX_BULK_ROWS = 3500         # ~10 years of daily rows

# Spreadsheet day serial of 1970-01-01
SERIAL_EPOCH_OFFSET = 25569


# ---------------------------------------------------------------------------
# Medals
# ---------------------------------------------------------------------------
MEDAL_WEIGHTS: dict[str, int] = {"gold": 3, "silver": 2, "bronze": 1}
MEDAL_ORDER: tuple[str, ...] = ("gold", "silver", "bronze")

RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------
CACHE_TTL_SECONDS = 24 * 60 * 60


def parse_category(raw: str) -> Category:
    """Resolve a category from its tab name, case-insensitively.

    Raises ValueError for names outside the closed set.
    """
    for cat in Category:
        if cat.value.lower() == raw.strip().lower():
            return cat
    raise ValueError(f"Unknown category: {raw!r}")
