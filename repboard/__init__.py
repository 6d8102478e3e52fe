"""
repboard — Activity Leaderboards from a Shared Spreadsheet
============================================================
Reads daily repetition counts (push-ups, pull-ups, runs) from a Google
Sheets workbook, ranks participants per month, tallies monthly medals
across categories, and serves the results over a small JSON API.

Package layout::

    repboard/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Categories, sheet layout, medal weights
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # Persistent cache table
    ├── sheets/
    │   ├── client.py      # Google Sheets v4 values reader (httpx)
    │   ├── ranges.py      # A1 range addressing + rosters
    │   └── fetcher.py     # Chunked / bulk row fetching
    ├── engine/
    │   ├── dates.py       # Date cell parsing + date filters
    │   ├── aggregate.py   # Weekday / month bucketing
    │   ├── ranking.py     # Leaderboards + medal tallies
    │   ├── stats.py       # History summaries, streaks, pace
    │   ├── cache.py       # Three-tier cache manager
    │   └── supersession.py # Generation tokens for stale-result discard
    ├── services/
    │   ├── loaders.py     # Cache-aware fetch pipelines
    │   └── board.py       # Composition root / read API
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Cached config / engine / board dependencies
        └── routes/        # Public read endpoints
"""

__version__ = "0.1.0"
