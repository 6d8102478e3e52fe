"""
repboard.sheets.ranges — A1 Range Addressing & Rosters
========================================================

Participants are addressed by their position in a category's roster,
never by spreadsheet letters directly.  This module is the only place
that turns a position into a column letter.
"""

from __future__ import annotations

from dataclasses import dataclass

from repboard.constants import (
    DATE_COLUMN,
    DATES_ROW_START,
    FIRST_PARTICIPANT_COLUMN,
    LAST_PARTICIPANT_COLUMN,
    ROSTER_ROW,
    Category,
)


# ---------------------------------------------------------------------------
# Column letters
# ---------------------------------------------------------------------------
def column_number(letters: str) -> int:
    """``"A"`` → 1, ``"Z"`` → 26, ``"AA"`` → 27."""
    n = 0
    for ch in letters.upper():
        if not "A" <= ch <= "Z":
            raise ValueError(f"Invalid column letters: {letters!r}")
        n = n * 26 + (ord(ch) - ord("A") + 1)
    if n == 0:
        raise ValueError("Empty column letters")
    return n


def column_letter(number: int) -> str:
    """1 → ``"A"``, 27 → ``"AA"``."""
    if number < 1:
        raise ValueError(f"Column numbers start at 1, got {number}")
    letters = ""
    while number:
        number, rem = divmod(number - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def participant_column(index: int) -> str:
    """Sheet column holding the participant at roster position *index*."""
    if index < 0:
        raise ValueError(f"Roster positions start at 0, got {index}")
    return column_letter(column_number(FIRST_PARTICIPANT_COLUMN) + index)


# ---------------------------------------------------------------------------
# Range specs
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RangeSpec:
    """A rectangular cell region on one category tab (rows are 1-based)."""

    category: Category
    first_column: str
    last_column: str
    start_row: int
    end_row: int

    def to_a1(self) -> str:
        return (
            f"'{self.category.value}'!"
            f"{self.first_column}{self.start_row}:{self.last_column}{self.end_row}"
        )

    def __str__(self) -> str:
        return self.to_a1()

    @classmethod
    def roster(cls, category: Category) -> RangeSpec:
        return cls(
            category, FIRST_PARTICIPANT_COLUMN, LAST_PARTICIPANT_COLUMN,
            ROSTER_ROW, ROSTER_ROW,
        )

    @classmethod
    def dates(cls, category: Category, start_row: int, end_row: int) -> RangeSpec:
        return cls(category, DATE_COLUMN, DATE_COLUMN, start_row, end_row)

    @classmethod
    def column(
        cls, category: Category, index: int, start_row: int, end_row: int
    ) -> RangeSpec:
        col = participant_column(index)
        return cls(category, col, col, start_row, end_row)

    @classmethod
    def block(cls, category: Category, start_row: int, end_row: int) -> RangeSpec:
        """Dates plus every participant column, ``D:Z``."""
        return cls(category, DATE_COLUMN, LAST_PARTICIPANT_COLUMN, start_row, end_row)


def chunk_bounds(chunk_index: int, chunk_size: int) -> tuple[int, int]:
    """First and last sheet row of data chunk *chunk_index*."""
    start = DATES_ROW_START + chunk_index * chunk_size
    return start, start + chunk_size - 1


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Roster:
    """Ordered participant names for one category.

    Position *i* maps to sheet column ``E + i``.  A roster is tied to its
    category; positions are meaningless on another tab.
    """

    category: Category
    names: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self):
        return iter(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def column_index(self, name: str) -> int:
        """Position of *name*; raises KeyError for unknown participants."""
        try:
            return self.names.index(name)
        except ValueError:
            raise KeyError(
                f"{name!r} is not on the {self.category.value} roster"
            ) from None

    @classmethod
    def from_header(cls, category: Category, header_row: list) -> Roster:
        """Build a roster from the raw header cells, dropping blanks."""
        names = [str(cell if cell is not None else "").strip() for cell in header_row]
        return cls(category, tuple(n for n in names if n))
