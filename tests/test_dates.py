"""
tests/test_dates.py — Date Cell Parsing & Filters
===================================================
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from repboard.engine.dates import (
    DateValueRow,
    filter_by_date,
    filter_by_ytd_period,
    is_same_calendar_day,
    months_in_quarter,
    parse_date_cell,
    quarter_of,
)


class TestParseDateCell:
    def test_serial_matches_iso_text(self):
        assert parse_date_cell("45658") == parse_date_cell("2025-01-01")
        assert parse_date_cell(45658) == datetime(2025, 1, 1)

    @pytest.mark.parametrize("serial", [1, 25569, 36526, 45292, 45658, 60000])
    def test_serials_agree_with_iso_strings(self, serial):
        expected = date(1970, 1, 1) + timedelta(days=serial - 25569)
        assert parse_date_cell(str(serial)) == parse_date_cell(expected.isoformat())

    def test_fractional_serial_keeps_time_of_day(self):
        assert parse_date_cell("45658.5") == datetime(2025, 1, 1, 12, 0)

    def test_epoch_serial(self):
        assert parse_date_cell("25569") == datetime(1970, 1, 1)

    @pytest.mark.parametrize("cell", [None, "", "   ", "0", "-3", "nan", "inf", "1e400"])
    def test_not_a_date(self, cell):
        assert parse_date_cell(cell) is None

    @pytest.mark.parametrize("cell", ["Total", "hello world", "2025-13-45", "0001-01-01T00:00:00+14:00"])
    def test_garbage_text_never_raises(self, cell):
        assert parse_date_cell(cell) is None

    def test_textual_formats(self):
        assert parse_date_cell("Jan 5, 2025") == datetime(2025, 1, 5)
        assert parse_date_cell("  2024-02-29 ") == datetime(2024, 2, 29)

    def test_huge_serial_overflows_to_none(self):
        assert parse_date_cell("99999999999") is None


class TestQuarters:
    @pytest.mark.parametrize(
        "month,quarter", [(1, 1), (3, 1), (4, 2), (6, 2), (7, 3), (9, 3), (10, 4), (12, 4)]
    )
    def test_quarter_of(self, month, quarter):
        assert quarter_of(month) == quarter

    def test_months_in_quarter(self):
        assert months_in_quarter(1) == [1, 2, 3]
        assert months_in_quarter(4) == [10, 11, 12]

    def test_same_calendar_day_ignores_time(self):
        assert is_same_calendar_day(datetime(2025, 3, 10, 23, 59), date(2025, 3, 10))
        assert not is_same_calendar_day(datetime(2025, 3, 11), date(2025, 3, 10))


class TestDateValueRow:
    def test_dict_shape(self):
        row = DateValueRow(date="2025-01-01", value="5")
        assert row.to_dict() == {"date": "2025-01-01", "value": "5"}
        assert DateValueRow.from_dict(row.to_dict()) == row

    @pytest.mark.parametrize(
        "raw", [None, [], "x", {"date": "2025-01-01"}, {"date": 1, "value": "2"}]
    )
    def test_from_dict_rejects_other_shapes(self, raw):
        assert DateValueRow.from_dict(raw) is None


def _rows():
    return [
        DateValueRow("2024-03-01", "1"),
        DateValueRow("2024-11-15", "2"),
        DateValueRow("2025-01-10", "3"),
        DateValueRow("2025-05-20", "4"),
        DateValueRow("not a date", "9"),
    ]


class TestFilters:
    def test_no_filter_keeps_everything(self):
        assert filter_by_date(_rows()) == _rows()

    def test_year(self):
        assert [r.value for r in filter_by_date(_rows(), 2025)] == ["3", "4"]

    def test_quarter_across_years(self):
        assert [r.value for r in filter_by_date(_rows(), quarter=1)] == ["1", "3"]

    def test_year_and_month(self):
        assert [r.value for r in filter_by_date(_rows(), 2024, month=11)] == ["2"]

    def test_ytd_period(self):
        rows = [
            DateValueRow("2024-01-01", "1"),
            DateValueRow("2024-03-09", "2"),
            DateValueRow("2024-03-10", "3"),
            DateValueRow("2025-01-01", "4"),
        ]
        # 2024-03-09 is day 69 of a leap year
        assert [r.value for r in filter_by_ytd_period(rows, 2024, 69)] == ["1", "2"]
