"""
repboard.engine.cache — Three-Tier Cache Manager
==================================================

Computed aggregates are expensive (every miss costs Sheets API quota), so
they are cached at three lifetimes behind one interface:

  1. :class:`MemoryTier`     — process memory, lives until invalidated
  2. :class:`SessionTier`    — JSON strings scoped to a client session,
                               selected per request by :func:`use_session`
  3. :class:`PersistentTier` — the ``cache_entries`` table, survives restarts

Reads walk the tiers in that order.  An entry older than the TTL is a miss
wherever it sits; it is left in place and overwritten by the next write.
A hit in a slower tier is copied into the faster ones with its original
``fetched_at`` so it expires on schedule.

Writes go to every tier with one shared ``fetched_at``.  The memory tier
cannot fail; failures in the other tiers (quota, disk, bad JSON) are logged
and swallowed, leaving the memory tier authoritative for the process.

Values must be JSON-serializable.  Callers store plain dicts/lists and
rebuild their own types on read.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from repboard.constants import CACHE_TTL_SECONDS
from repboard.database.engine import get_session, run_db
from repboard.database.models import CacheRecord

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

# Errors a storage tier may raise that must never reach the caller
_TIER_ERRORS = (SQLAlchemyError, OSError, ValueError, TypeError)


class _Miss:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Miss()


@dataclass(frozen=True, slots=True)
class CacheEntry:
    data: Any
    fetched_at: float

    def to_json(self) -> str:
        return json.dumps({"data": self.data, "fetchedAt": self.fetched_at})

    @classmethod
    def from_json(cls, raw: str) -> CacheEntry | None:
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
        if not isinstance(parsed, dict) or not isinstance(
            parsed.get("fetchedAt"), int | float
        ):
            return None
        return cls(data=parsed.get("data"), fetched_at=float(parsed["fetchedAt"]))


# ---------------------------------------------------------------------------
# Client sessions
# ---------------------------------------------------------------------------
_current_session: ContextVar[str | None] = ContextVar(
    "repboard_session", default=None
)


def current_session() -> str | None:
    return _current_session.get()


def use_session(session_id: str | None) -> Token[str | None]:
    """Make *session_id* the active session for the current context."""
    return _current_session.set(session_id or None)


@contextmanager
def session_scope(session_id: str | None) -> Iterator[None]:
    token = use_session(session_id)
    try:
        yield
    finally:
        _current_session.reset(token)


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------
class CacheTier(Protocol):
    name: str
    blocking: bool

    def get(self, key: str) -> CacheEntry | None: ...

    def set(self, key: str, entry: CacheEntry) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryTier:
    name = "memory"
    blocking = False

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class SessionTier:
    """Serialized entries scoped to the active client session.

    The active session id lives in a context variable set per request
    (see :func:`use_session`).  With no active session the tier stores
    nothing and every read is a miss.
    """

    name = "session"
    blocking = False

    def __init__(self) -> None:
        self._store: dict[str, dict[str, str]] = {}

    def new_session(self) -> str:
        """Register a fresh session id and return it."""
        session_id = uuid.uuid4().hex
        self._store[session_id] = {}
        return session_id

    def end_session(self, session_id: str) -> None:
        """Drop everything stored for *session_id* (full page reload)."""
        self._store.pop(session_id, None)

    def _entries(self, create: bool = False) -> dict[str, str] | None:
        session_id = current_session()
        if session_id is None:
            return None
        if create:
            return self._store.setdefault(session_id, {})
        return self._store.get(session_id)

    def get(self, key: str) -> CacheEntry | None:
        entries = self._entries()
        raw = entries.get(key) if entries is not None else None
        return CacheEntry.from_json(raw) if raw is not None else None

    def set(self, key: str, entry: CacheEntry) -> None:
        entries = self._entries(create=True)
        if entries is not None:
            entries[key] = entry.to_json()

    def delete(self, key: str) -> None:
        entries = self._entries()
        if entries is not None:
            entries.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


class PersistentTier:
    """Cross-session entries in the ``cache_entries`` table."""

    name = "persistent"
    blocking = True

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, key: str) -> CacheEntry | None:
        with Session(self._engine) as session:
            row = session.get(CacheRecord, key)
            if row is None:
                return None
            try:
                data = json.loads(row.payload_json)
            except (json.JSONDecodeError, TypeError):
                logger.warning("Undecodable cache payload for %r; ignoring", key)
                return None
            return CacheEntry(data=data, fetched_at=row.fetched_at)

    def set(self, key: str, entry: CacheEntry) -> None:
        payload = json.dumps(entry.data)
        with get_session(self._engine) as session:
            session.merge(
                CacheRecord(key=key, payload_json=payload, fetched_at=entry.fetched_at)
            )

    def delete(self, key: str) -> None:
        with get_session(self._engine) as session:
            session.execute(delete(CacheRecord).where(CacheRecord.key == key))

    def clear(self) -> None:
        with get_session(self._engine) as session:
            session.execute(delete(CacheRecord))


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------
class CacheManager:
    """Prioritized tiers with one TTL, promotion and forced invalidation.

    Usage::

        cache = CacheManager([MemoryTier(), SessionTier(), PersistentTier(engine)])
        value = await cache.get("roster:Push")
        if value is MISS:
            value = await fetch()
            await cache.set("roster:Push", value)
    """

    def __init__(
        self,
        tiers: Sequence[CacheTier],
        *,
        ttl: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.tiers = list(tiers)
        self.ttl = ttl
        self._clock = clock

    async def _call(self, tier: CacheTier, method: str, *args: Any) -> Any:
        func = getattr(tier, method)
        try:
            if tier.blocking:
                return await run_db(func, *args)
            return func(*args)
        except _TIER_ERRORS as exc:
            logger.warning(
                "Cache tier %s.%s failed for %r: %s", tier.name, method, args[:1], exc
            )
            return None

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at <= self.ttl

    async def get(self, key: str) -> Any:
        """Cached value for *key*, or :data:`MISS`."""
        for i, tier in enumerate(self.tiers):
            entry = await self._call(tier, "get", key)
            if entry is None:
                continue
            if not self.is_fresh(entry):
                logger.debug("Cache %s expired for %r", tier.name, key)
                continue
            for faster in self.tiers[:i]:
                await self._call(faster, "set", key, entry)
            logger.debug("Cache %s hit for %r", tier.name, key)
            return entry.data
        return MISS

    async def set(self, key: str, value: Any) -> None:
        entry = CacheEntry(data=value, fetched_at=self._clock())
        for tier in self.tiers:
            await self._call(tier, "set", key, entry)

    async def invalidate(self, key: str) -> None:
        """Delete *key* everywhere so the next read is a full miss."""
        for tier in self.tiers:
            await self._call(tier, "delete", key)
        logger.info("Cache invalidated: %r", key)

    @property
    def session_tier(self) -> SessionTier | None:
        for tier in self.tiers:
            if isinstance(tier, SessionTier):
                return tier
        return None

    def new_session(self, previous: str | None = None) -> str:
        """Start a client session, dropping *previous* if given."""
        tier = self.session_tier
        if tier is None:
            return uuid.uuid4().hex
        if previous:
            tier.end_session(previous)
        session_id = tier.new_session()
        logger.info("Started cache session %s", session_id)
        return session_id

    def reset(self) -> None:
        """Empty every tier (tests, admin tooling)."""
        for tier in self.tiers:
            try:
                tier.clear()
            except _TIER_ERRORS as exc:
                logger.warning("Cache tier %s.clear failed: %s", tier.name, exc)


def build_cache_manager(
    engine: Engine | None, *, ttl: float = CACHE_TTL_SECONDS
) -> CacheManager:
    """The standard memory → session → persistent stack.

    Without an engine the persistent tier is left out.
    """
    tiers: list[CacheTier] = [MemoryTier(), SessionTier()]
    if engine is not None:
        tiers.append(PersistentTier(engine))
    return CacheManager(tiers, ttl=ttl)


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------
def roster_key(category: str) -> str:
    return f"roster:{category}"


def rows_key(category: str, participant: str) -> str:
    return f"rows:{category}|{participant}"


def leaderboard_key(category: str, year: int, month: int) -> str:
    return f"leaderboard:{category}-{year}-{month}"


def medals_key(categories: Sequence[str], year: int) -> str:
    return f"medals:{'+'.join(categories)}-{year}"
