"""
repboard.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- cache_entries — cross-session cache tier (JSON payload + write time)
"""

from __future__ import annotations

from sqlalchemy import Float, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all repboard ORM models."""


# ---------------------------------------------------------------------------
# Cache entries
# ---------------------------------------------------------------------------
class CacheRecord(Base):
    """One persisted cache value.

    ``payload_json`` holds the JSON-encoded data; ``fetched_at`` is the
    POSIX timestamp of the write that produced it.  Expired rows are not
    deleted, only overwritten by the next successful write for the key.
    """
    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    fetched_at: Mapped[float] = mapped_column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<CacheRecord key={self.key!r} fetched_at={self.fetched_at}>"
