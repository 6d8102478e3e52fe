"""
tests/test_ranges.py — A1 Addressing & Rosters
================================================
"""

from __future__ import annotations

import pytest

from repboard.constants import Category
from repboard.sheets.ranges import (
    RangeSpec,
    Roster,
    chunk_bounds,
    column_letter,
    column_number,
    participant_column,
)


class TestColumns:
    @pytest.mark.parametrize("letters,number", [("A", 1), ("D", 4), ("Z", 26), ("AA", 27), ("AZ", 52)])
    def test_round_trip(self, letters, number):
        assert column_number(letters) == number
        assert column_letter(number) == letters

    def test_participant_columns(self):
        assert participant_column(0) == "E"
        assert participant_column(21) == "Z"

    def test_invalid(self):
        with pytest.raises(ValueError):
            column_number("A1")
        with pytest.raises(ValueError):
            column_letter(0)
        with pytest.raises(ValueError):
            participant_column(-1)


class TestRangeSpec:
    def test_roster_range(self):
        assert RangeSpec.roster(Category.PUSH).to_a1() == "'Push'!E5:Z5"

    def test_dates_and_column(self):
        start, end = chunk_bounds(0, 200)
        assert RangeSpec.dates(Category.PULL, start, end).to_a1() == "'Pull'!D6:D205"
        assert RangeSpec.column(Category.RUN, 2, start, end).to_a1() == "'Run'!G6:G205"

    def test_block(self):
        assert str(RangeSpec.block(Category.PUSH, 6, 3505)) == "'Push'!D6:Z3505"

    def test_chunk_bounds_are_contiguous(self):
        assert chunk_bounds(1, 200) == (206, 405)
        assert chunk_bounds(24, 200) == (4806, 5005)


class TestRoster:
    def test_from_header_strips_and_drops_blanks(self):
        roster = Roster.from_header(Category.PUSH, [" Alex ", "", None, "Bo"])
        assert roster.names == ("Alex", "Bo")
        assert len(roster) == 2
        assert "Bo" in roster
        assert list(roster) == ["Alex", "Bo"]

    def test_column_index(self):
        roster = Roster(Category.PUSH, ("Alex", "Bo"))
        assert roster.column_index("Bo") == 1

    def test_unknown_participant(self):
        roster = Roster(Category.PUSH, ("Alex",))
        with pytest.raises(KeyError):
            roster.column_index("Zed")
