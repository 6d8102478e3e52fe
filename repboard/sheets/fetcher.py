"""
repboard.sheets.fetcher — Chunked & Bulk Row Fetching
=======================================================

The workbook is append-only: one row per day, dates in column ``D``,
participants in ``E…``.  Rows below today's date are pre-formatted but
unwritten, so fetching stops at the first row dated *today* (local time).

Two strategies:

* :meth:`RowFetcher.fetch_rows` — sequential 200-row chunks for one
  category, stopping early at today's row or at a short chunk.  Used for
  single-category views where the corpus is usually small.
* :meth:`RowFetcher.fetch_all_bulk` — a single ``batchGet`` covering the
  roster and ~10 years of rows for every category, used by the medal
  table so a whole year costs one round-trip.

Precondition: dates ascend one row per calendar day.  Out-of-order or
duplicated dates are not detected; the first row matching today wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any, Protocol

from repboard.constants import (
    CHUNK_SIZE,
    DATE_COLUMN,
    DATES_ROW_START,
    MAX_BULK_ROWS,
    MAX_CHUNKS,
    Category,
)
from repboard.engine.dates import DateValueRow, is_same_calendar_day, parse_date_cell
from repboard.sheets.ranges import RangeSpec, Roster, chunk_bounds, participant_column

if TYPE_CHECKING:
    from repboard.engine.supersession import GenerationToken
    from repboard.sheets.client import ValueGrid

logger = logging.getLogger(__name__)


class RangeReader(Protocol):
    """What the fetcher needs from the transport (see SheetsClient)."""

    async def read_range(self, range_a1: str) -> ValueGrid: ...

    async def read_ranges_batch(self, ranges: Sequence[str]) -> list[ValueGrid]: ...


def _cell(grid: ValueGrid, row: int, col: int) -> Any:
    """Cell at (row, col), or None where the API trimmed it away."""
    if row >= len(grid):
        return None
    cells = grid[row]
    if col >= len(cells):
        return None
    return cells[col]


def _text(cell: Any) -> str:
    return str(cell if cell is not None else "").strip()


def find_today_index(date_cells: Iterable[Any], today: date) -> int | None:
    """Index of the first cell whose parsed date is *today*."""
    for i, cell in enumerate(date_cells):
        parsed = parse_date_cell(cell)
        if parsed is not None and is_same_calendar_day(parsed, today):
            return i
    return None


# ---------------------------------------------------------------------------
# SheetBlock: fetched rows for one category
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class SheetBlock:
    """Date cells plus one value column per participant.

    ``values[p][i]`` is participant ``names[p]`` on row ``i``.  Only rows
    before ``stop_at`` belong to the written corpus.
    """

    category: Category
    names: tuple[str, ...]
    date_cells: list[Any]
    values: list[list[Any]]
    stop_at: int

    @property
    def row_count(self) -> int:
        return len(self.date_cells)

    def value_at(self, position: int, row: int) -> Any:
        column = self.values[position]
        return column[row] if row < len(column) else None

    def rows_for(self, position: int) -> list[DateValueRow]:
        """Raw history for one participant, blank rows skipped."""
        rows: list[DateValueRow] = []
        for i in range(min(self.stop_at, self.row_count)):
            d = _text(self.date_cells[i])
            v = _text(self.value_at(position, i))
            if d or v:
                rows.append(DateValueRow(date=d, value=v))
        return rows


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------
class RowFetcher:
    """Pages category tabs through a :class:`RangeReader`."""

    def __init__(
        self,
        reader: RangeReader,
        *,
        chunk_size: int = CHUNK_SIZE,
        max_chunks: int = MAX_CHUNKS,
        max_bulk_rows: int = MAX_BULK_ROWS,
    ) -> None:
        self._reader = reader
        self.chunk_size = chunk_size
        self.max_chunks = max_chunks
        self.max_bulk_rows = max_bulk_rows

    async def fetch_roster(self, category: Category) -> Roster:
        grid = await self._reader.read_range(RangeSpec.roster(category).to_a1())
        roster = Roster.from_header(category, grid[0] if grid else [])
        logger.info("Roster for %s: %d participants", category.value, len(roster))
        return roster

    async def fetch_rows(
        self,
        roster: Roster,
        columns: Sequence[int] | None = None,
        *,
        today: date | None = None,
        token: GenerationToken | None = None,
    ) -> SheetBlock:
        """Fetch rows for *roster*'s category up to today's row.

        *columns* selects roster positions; ``None`` means everyone, read
        as one contiguous ``D:…`` range per chunk.  Chunks are requested
        strictly one after another.
        """
        today = today or date.today()
        category = roster.category
        contiguous = columns is None
        positions = list(range(len(roster))) if contiguous else list(columns)
        for pos in positions:
            if not 0 <= pos < len(roster):
                raise IndexError(
                    f"Roster position {pos} out of range for {category.value}"
                )

        date_cells: list[Any] = []
        values: list[list[Any]] = [[] for _ in positions]
        stop_at: int | None = None
        chunks = 0

        for chunk_index in range(self.max_chunks):
            if token is not None:
                token.raise_if_stale()
            start, end = chunk_bounds(chunk_index, self.chunk_size)

            if contiguous:
                last = participant_column(len(roster) - 1) if len(roster) else DATE_COLUMN
                spec = RangeSpec(category, DATE_COLUMN, last, start, end)
                grids = await self._reader.read_ranges_batch([spec.to_a1()])
                grid = grids[0] if grids else []
                received = len(grid)
                for i in range(received):
                    date_cells.append(_cell(grid, i, 0))
                    for p, pos in enumerate(positions):
                        values[p].append(_cell(grid, i, pos + 1))
            else:
                specs = [RangeSpec.dates(category, start, end)] + [
                    RangeSpec.column(category, pos, start, end) for pos in positions
                ]
                grids = await self._reader.read_ranges_batch([s.to_a1() for s in specs])
                grids = list(grids) + [[] for _ in range(len(specs) - len(grids))]
                received = max((len(g) for g in grids), default=0)
                for i in range(received):
                    date_cells.append(_cell(grids[0], i, 0))
                    for p in range(len(positions)):
                        values[p].append(_cell(grids[p + 1], i, 0))

            chunks += 1
            first_new = len(date_cells) - received
            hit = find_today_index(date_cells[first_new:], today)
            if hit is not None:
                stop_at = first_new + hit + 1
                break
            if received < self.chunk_size:
                break

        if stop_at is None:
            stop_at = len(date_cells)

        logger.info(
            "Fetched %d rows for %s in %d chunk(s), corpus ends at %d",
            len(date_cells), category.value, chunks, stop_at,
        )
        return SheetBlock(
            category=category,
            names=tuple(roster.names[p] for p in positions),
            date_cells=date_cells,
            values=values,
            stop_at=stop_at,
        )

    async def fetch_all_bulk(
        self, categories: Sequence[Category], *, today: date | None = None
    ) -> dict[Category, SheetBlock]:
        """Rosters and rows for every category in one batched read."""
        today = today or date.today()
        end_row = DATES_ROW_START + self.max_bulk_rows - 1

        ranges: list[str] = []
        for cat in categories:
            ranges.append(RangeSpec.roster(cat).to_a1())
            ranges.append(RangeSpec.block(cat, DATES_ROW_START, end_row).to_a1())
        grids = await self._reader.read_ranges_batch(ranges)
        grids = list(grids) + [[] for _ in range(len(ranges) - len(grids))]

        result: dict[Category, SheetBlock] = {}
        for s, cat in enumerate(categories):
            header, data = grids[s * 2], grids[s * 2 + 1]
            roster = Roster.from_header(cat, header[0] if header else [])
            date_cells = [_cell(data, i, 0) for i in range(len(data))]
            values = [
                [_cell(data, i, pos + 1) for i in range(len(data))]
                for pos in range(len(roster))
            ]
            hit = find_today_index(date_cells, today)
            result[cat] = SheetBlock(
                category=cat,
                names=roster.names,
                date_cells=date_cells,
                values=values,
                stop_at=hit + 1 if hit is not None else len(date_cells),
            )
        logger.info(
            "Bulk fetched %d categories (%d ranges)", len(categories), len(ranges)
        )
        return result
