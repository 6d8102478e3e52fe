"""
tests/test_fetcher.py — Chunked & Bulk Row Fetching
=====================================================
"""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from repboard.constants import Category
from repboard.engine.supersession import QueryController, QuerySuperseded
from repboard.sheets.fetcher import RowFetcher, SheetBlock, find_today_index

from conftest import TODAY


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


class TestFindTodayIndex:
    def test_first_match_wins(self):
        cells = ["2025-03-09", "45726", "2025-03-10"]
        # 45726 is 2025-03-10 as a serial
        assert find_today_index(cells, TODAY) == 1

    def test_out_of_range_cell_is_skipped(self):
        cells = ["0001-01-01T00:00:00+14:00", "2025-03-10"]
        assert find_today_index(cells, TODAY) == 1

    def test_no_match(self):
        assert find_today_index(["", None, "junk"], TODAY) is None


class TestFetchRoster:
    def test_reads_header_row(self, sheet):
        fetcher = RowFetcher(sheet)
        roster = run_async(fetcher.fetch_roster(Category.PUSH))
        assert roster.names == ("Alex", "Bo", "Cy")
        assert sheet.calls == [["'Push'!E5:Z5"]]

    def test_missing_tab_gives_empty_roster(self, sheet):
        roster = run_async(RowFetcher(sheet).fetch_roster(Category.RUN))
        assert len(roster) == 0


class TestFetchRows:
    def _roster(self, sheet):
        return run_async(RowFetcher(sheet).fetch_roster(Category.PUSH))

    def test_stops_at_today(self, sheet):
        roster = self._roster(sheet)
        sheet.calls.clear()
        block = run_async(RowFetcher(sheet).fetch_rows(roster, today=TODAY))

        assert sheet.calls == [["'Push'!D6:G205"]]
        # 2024-12-01 .. 2025-03-10 inclusive
        assert block.stop_at == 100
        rows = block.rows_for(0)
        assert rows[-1].date == "2025-03-10"
        assert len(rows) == 100

    def test_selected_columns_read_dates_plus_each_column(self, sheet):
        roster = self._roster(sheet)
        sheet.calls.clear()
        block = run_async(
            RowFetcher(sheet).fetch_rows(roster, [roster.column_index("Cy")], today=TODAY)
        )
        assert sheet.calls == [["'Push'!D6:D205", "'Push'!G6:G205"]]
        assert block.names == ("Cy",)
        assert {r.value for r in block.rows_for(0)} == {"5"}

    def test_short_chunk_ends_corpus(self, sheet):
        roster = self._roster(sheet)
        sheet.calls.clear()
        block = run_async(RowFetcher(sheet).fetch_rows(roster, today=date(2030, 1, 1)))
        # 396 dated rows: one full chunk, then a short one
        assert len(sheet.calls) == 2
        assert block.stop_at == 396

    def test_chunk_cap(self, sheet):
        roster = self._roster(sheet)
        sheet.calls.clear()
        fetcher = RowFetcher(sheet, chunk_size=50, max_chunks=3)
        block = run_async(fetcher.fetch_rows(roster, today=date(2030, 1, 1)))
        assert len(sheet.calls) == 3
        assert block.row_count == 150

    def test_blank_value_rows_keep_their_date(self, sheet):
        roster = self._roster(sheet)
        block = run_async(RowFetcher(sheet).fetch_rows(roster, today=TODAY))
        bo = block.rows_for(roster.column_index("Bo"))
        assert bo[0].date == "2024-12-01"
        assert bo[0].value == ""

    def test_bad_position(self, sheet):
        roster = self._roster(sheet)
        with pytest.raises(IndexError):
            run_async(RowFetcher(sheet).fetch_rows(roster, [7], today=TODAY))

    def test_stale_token_stops_before_next_chunk(self, sheet):
        roster = self._roster(sheet)
        ctl = QueryController("rows")
        token = ctl.issue()
        ctl.issue()
        sheet.calls.clear()
        with pytest.raises(QuerySuperseded):
            run_async(RowFetcher(sheet).fetch_rows(roster, today=TODAY, token=token))
        assert sheet.calls == []


class TestFetchAllBulk:
    def test_single_batched_read(self, sheet):
        blocks = run_async(
            RowFetcher(sheet).fetch_all_bulk([Category.PUSH, Category.PULL], today=TODAY)
        )
        assert len(sheet.calls) == 1
        assert sheet.calls[0] == [
            "'Push'!E5:Z5",
            "'Push'!D6:Z3505",
            "'Pull'!E5:Z5",
            "'Pull'!D6:Z3505",
        ]
        assert blocks[Category.PULL].names == ("Bo", "Dee")
        assert blocks[Category.PUSH].stop_at == 100

    def test_missing_tab_is_empty_block(self, sheet):
        blocks = run_async(RowFetcher(sheet).fetch_all_bulk([Category.RUN], today=TODAY))
        block = blocks[Category.RUN]
        assert isinstance(block, SheetBlock)
        assert block.names == ()
        assert block.row_count == 0
