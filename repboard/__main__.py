"""
repboard.__main__ — Entry point for ``python -m repboard``
===========================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine and ensure the cache table exists.
4. Serve the FastAPI app with uvicorn (blocking).

Run with::

    python -m repboard
"""

from __future__ import annotations

import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv

from repboard.config import load_config
from repboard.database.engine import create_db_engine, init_db

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("repboard")


def main() -> None:
    """Bootstrap and serve the repboard API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    key = os.getenv("GOOGLE_API_KEY")
    if not key or key == "your-google-api-key-here":
        logger.critical(
            "GOOGLE_API_KEY is not set.  "
            "Copy .env.example → .env and paste your API key."
        )
        sys.exit(1)

    # 2. Soft configuration.
    cfg = load_config(os.getenv("REPBOARD_CONFIG", "config.yaml"))
    logger.info(
        "Config loaded — spreadsheet %s, %d categories",
        cfg.spreadsheet_id, len(cfg.categories),
    )

    # 3. Cache database.
    engine = create_db_engine()
    init_db(engine)
    engine.dispose()

    # 4. Serve.
    logger.info("Starting repboard API on port %d…", cfg.api_port)
    uvicorn.run("repboard.api.main:app", host="0.0.0.0", port=cfg.api_port)


if __name__ == "__main__":
    main()
