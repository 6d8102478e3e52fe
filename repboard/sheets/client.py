"""
repboard.sheets.client — Google Sheets v4 Values Reader
=========================================================

Thin async client over the ``spreadsheets.values`` resource.  Only reads
are implemented; repboard never writes back to the workbook.

The API key is attached as the ``key`` query parameter on every request.
Responses are unwrapped to plain 2-D lists; absent trailing rows/cells are
simply missing from the lists (the API omits them, we don't pad).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"

ValueGrid = list[list[Any]]


class SheetsAPIError(Exception):
    """The Sheets API rejected a request or returned something unusable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_message(resp: httpx.Response) -> str:
    message = f"Sheets API error {resp.status_code}: {resp.reason_phrase}"
    text = resp.text
    try:
        body = resp.json()
    except ValueError:
        if text:
            message += f" - {text[:200]}"
        return message
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    return message


def _grid(value_range: Any) -> ValueGrid:
    """Pull the ``values`` grid out of a ValueRange envelope."""
    if not isinstance(value_range, dict):
        raise SheetsAPIError("Malformed ValueRange in Sheets API response")
    values = value_range.get("values") or []
    if not isinstance(values, list) or not all(isinstance(r, list) for r in values):
        raise SheetsAPIError(
            f"Malformed values for range {value_range.get('range', '?')!r}"
        )
    return values


class SheetsClient:
    """Async reader for one spreadsheet.

    Usage::

        async with SheetsClient(spreadsheet_id, api_key) as client:
            header = await client.read_range("'Push'!E5:Z5")
            grids = await client.read_ranges_batch(["'Push'!D6:D205", ...])
    """

    def __init__(
        self,
        spreadsheet_id: str,
        api_key: str,
        *,
        base_url: str = SHEETS_API_BASE,
        http: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=timeout,
            transport=httpx.AsyncHTTPTransport(retries=1),
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> SheetsClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------
    async def _get(self, path: str, params: list[tuple[str, str]]) -> Any:
        url = f"{self._base_url}/{self.spreadsheet_id}/{path}"
        params = [("key", self._api_key), *params]
        resp = await self._http.get(url, params=params)
        if resp.status_code != 200:
            raise SheetsAPIError(_error_message(resp), resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise SheetsAPIError("Sheets API returned invalid JSON") from exc

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    async def read_range(self, range_a1: str) -> ValueGrid:
        """Read one A1 range, rows-major."""
        body = await self._get(
            f"values/{quote(range_a1, safe='')}", [("majorDimension", "ROWS")]
        )
        return _grid(body)

    async def read_ranges_batch(self, ranges: Sequence[str]) -> list[ValueGrid]:
        """Read several ranges in one ``values:batchGet`` request.

        The result has exactly ``len(ranges)`` grids, in request order;
        ranges the API left out come back empty.
        """
        if not ranges:
            return []
        params = [("ranges", r) for r in ranges]
        params.append(("majorDimension", "ROWS"))
        body = await self._get("values:batchGet", params)
        if not isinstance(body, dict):
            raise SheetsAPIError("Malformed batchGet response")
        value_ranges = body.get("valueRanges") or []
        if not isinstance(value_ranges, list):
            raise SheetsAPIError("Malformed valueRanges in batchGet response")
        grids = [_grid(vr) for vr in value_ranges]
        grids.extend([] for _ in range(len(ranges) - len(grids)))
        logger.debug("batchGet %d ranges → %d grids", len(ranges), len(grids))
        return grids[: len(ranges)]
