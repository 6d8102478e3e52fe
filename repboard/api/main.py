"""
repboard.api.main — FastAPI application entry point
=====================================================

Run with::

    uvicorn repboard.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from repboard import __version__  # noqa: E402
from repboard.api.deps import get_board  # noqa: E402
from repboard.api.routes.public import router as public_router  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Allowed CORS origins from ``CORS_ALLOW_ORIGINS`` (comma-separated)."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return []
    return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the board on startup and close its HTTP client on shutdown."""
    board = get_board()
    logger.info(
        "repboard API started — categories: %s",
        ", ".join(c.value for c in board.categories),
    )
    yield
    await board.aclose()
    logger.info("repboard API shutting down")


app = FastAPI(
    title="repboard API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(public_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
