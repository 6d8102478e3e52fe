"""
tests/test_stats.py — Participant History Summaries
=====================================================
"""

from __future__ import annotations

from datetime import date

import pytest

from repboard.engine.dates import DateValueRow
from repboard.engine.ranking import rank
from repboard.engine.stats import (
    is_working_value,
    month_over_month,
    pace_to_first,
    percent_change,
    streaks,
    summarize,
)

from conftest import TODAY


def _rows(*pairs) -> list[DateValueRow]:
    return [DateValueRow(d, v) for d, v in pairs]


class TestWorkingValue:
    @pytest.mark.parametrize(
        "value,expected",
        [("5", True), ("0", False), ("0.0", False), ("", False), ("  ", False), ("x", True)],
    )
    def test_values(self, value, expected):
        assert is_working_value(value) is expected


class TestPercentChange:
    def test_from_zero(self):
        assert percent_change(5, 0) == 100
        assert percent_change(0, 0) is None

    def test_equal(self):
        assert percent_change(7, 7) == 0

    def test_rounded(self):
        assert percent_change(15, 10) == 50
        assert percent_change(2, 3) == -33


class TestStreaks:
    def test_runs_and_gaps(self):
        rows = _rows(
            ("2025-01-01", "5"),
            ("2025-01-02", "5"),
            ("2025-01-03", "5"),
            ("2025-01-04", ""),
            ("2025-01-05", "0"),
            ("2025-01-06", "1"),
            # the 7th is missing, so the run restarts
            ("2025-01-08", "1"),
        )
        result = streaks(rows)
        assert result.longest_streak == 3
        assert result.longest_time_off == 2

    def test_unsorted_input(self):
        rows = _rows(("2025-01-02", "1"), ("2025-01-01", "1"), ("junk", "1"))
        assert streaks(rows).longest_streak == 2

    def test_empty(self):
        assert streaks([]).longest_streak == 0


class TestSummarize:
    def _history(self):
        return _rows(
            ("2024-01-05", "10"),
            ("2024-06-01", "99"),
            ("2025-01-05", "15"),
            ("2025-01-06", "0"),
            ("2025-02-10", "5"),
        )

    def test_current_year_compares_with_last_year_to_date(self):
        summary = summarize(self._history(), year=2025, today=TODAY)
        assert summary.total == 20
        assert summary.working_days == 2
        assert summary.days_covered == 3
        # June 2024 is past this point of the year
        assert summary.last_year["total"] == 10
        assert summary.change_pct["total"] == 100
        assert summary.change_pct["working_days"] == 100

    def test_month_filter_has_no_comparison(self):
        summary = summarize(self._history(), year=2025, month=1, today=TODAY)
        assert summary.total == 15
        assert summary.last_year is None
        assert summary.change_pct is None

    def test_past_year(self):
        summary = summarize(self._history(), year=2024, today=TODAY)
        assert summary.total == 109
        assert summary.last_year is None

    def test_to_dict(self):
        raw = summarize(self._history(), today=TODAY).to_dict()
        assert raw["total"] == 129
        assert raw["last_year"] is None


class TestMonthOverMonth:
    def test_against_previous_month(self):
        rows = _rows(("2025-02-01", "10"), ("2025-03-01", "15"), ("2025-03-02", "5"))
        assert month_over_month(rows, TODAY) == {"current": 20, "previous": 10, "change_pct": 100}

    def test_january_compares_with_december(self):
        rows = _rows(("2024-12-31", "4"), ("2025-01-01", "2"))
        result = month_over_month(rows, date(2025, 1, 15))
        assert result["previous"] == 4
        assert result["change_pct"] == -50


class TestPaceToFirst:
    def test_needed_per_day(self):
        board = rank({"Alex": 100, "Bo": 60})
        pace = pace_to_first(board, "Bo", TODAY)
        # 40 behind with 22 days left, leader doing 10/day
        assert pace.gap == 40
        assert pace.per_day == 12
        assert pace.leader == "Alex"
        assert pace.leader_per_day == 10.0

    def test_leader(self):
        pace = pace_to_first(rank({"Alex": 100, "Bo": 60}), "Alex", TODAY)
        assert pace.is_first

    def test_tied_with_leader(self):
        assert pace_to_first(rank({"Alex": 5, "Bo": 5}), "Bo", TODAY) is None

    def test_empty_board(self):
        assert pace_to_first([], "Bo", TODAY) is None

    def test_not_on_board_counts_as_zero(self):
        pace = pace_to_first(rank({"Alex": 31}), "Zed", date(2025, 3, 31))
        assert pace.gap == 31
        assert pace.per_day == 32
