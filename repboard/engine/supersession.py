"""
repboard.engine.supersession — Generation Tokens for Stale-Result Discard
===========================================================================

Every logical query (e.g. "Push leaderboard for March 2025") owns a
:class:`QueryController`.  Each call to :meth:`QueryController.run` bumps
the controller's generation and hands the loader a
:class:`GenerationToken`.  When the loader finishes, its result (or error)
is committed only if the token is still the newest one; anything older is
dropped on the floor.

There is no transport-level abort.  An in-flight read always completes;
discarding its result is the cancellation.  Loaders may call
:meth:`GenerationToken.raise_if_stale` between awaits to stop early, and
must check :attr:`GenerationToken.is_current` right before writing to a
shared cache.

State machine::

    idle ──run()──▶ loading ──▶ success
                       │   └──▶ error
                       └─(newer run())─▶ superseded (silently discarded)
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    "ControllerRegistry",
    "GenerationToken",
    "QueryController",
    "QueryState",
    "QueryStatus",
    "QuerySuperseded",
]


class QuerySuperseded(Exception):
    """Raised inside a loader once a newer generation has been issued."""


class QueryStatus(enum.StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class QueryState(Generic[T]):
    """User-visible snapshot of one logical query."""

    status: QueryStatus = QueryStatus.IDLE
    data: T | None = None
    error: str | None = None
    generation: int = 0

    @property
    def loading(self) -> bool:
        return self.status is QueryStatus.LOADING


class GenerationToken:
    """Identifies one invocation of a logical query."""

    __slots__ = ("_controller", "generation")

    def __init__(self, controller: QueryController, generation: int) -> None:
        self._controller = controller
        self.generation = generation

    @property
    def is_current(self) -> bool:
        return self._controller.generation == self.generation

    def raise_if_stale(self) -> None:
        if not self.is_current:
            raise QuerySuperseded(
                f"{self._controller.key!r} generation {self.generation} "
                f"superseded by {self._controller.generation}"
            )

    def __repr__(self) -> str:
        return f"<GenerationToken {self._controller.key!r}#{self.generation}>"


class QueryController(Generic[T]):
    """Owns the generation counter and visible state for one query key.

    Usage::

        ctl = QueryController(("leaderboard", "Push", 2025, 3), empty=[])
        state = await ctl.run(lambda token: load_leaderboard(..., token=token))
        if state.error: ...
    """

    def __init__(self, key: Hashable, *, empty: T | None = None) -> None:
        self.key = key
        self.generation = 0
        self._empty = empty
        self._state: QueryState[T] = QueryState(data=empty)

    @property
    def state(self) -> QueryState[T]:
        return self._state

    def issue(self) -> GenerationToken:
        """Start a new generation; every older token becomes stale."""
        self.generation += 1
        return GenerationToken(self, self.generation)

    async def run(
        self, loader: Callable[[GenerationToken], Awaitable[T]]
    ) -> QueryState[T]:
        """Run *loader* under a fresh generation and return the visible state.

        Re-entrant calls never wait for each other; the latest one wins.
        A superseded caller gets whatever the newer generation has
        committed so far (usually still ``loading``).
        """
        token = self.issue()
        self._state = replace(
            self._state,
            status=QueryStatus.LOADING,
            error=None,
            generation=token.generation,
        )

        try:
            result = await loader(token)
        except QuerySuperseded:
            logger.debug("Discarding superseded run %r", token)
            return self._state
        except Exception as exc:
            if not token.is_current:
                logger.debug("Discarding stale error from %r: %s", token, exc)
                return self._state
            logger.exception("Query %r failed", self.key)
            self._state = QueryState(
                status=QueryStatus.ERROR,
                data=self._empty,
                error=str(exc) or f"Failed to load {self.key!r}",
                generation=token.generation,
            )
            return self._state

        if not token.is_current:
            logger.debug("Discarding stale result from %r", token)
            return self._state

        self._state = QueryState(
            status=QueryStatus.SUCCESS,
            data=result,
            error=None,
            generation=token.generation,
        )
        return self._state


class ControllerRegistry:
    """One :class:`QueryController` per logical query key."""

    def __init__(self) -> None:
        self._controllers: dict[Hashable, QueryController[Any]] = {}

    def get(self, key: Hashable, *, empty: Any = None) -> QueryController[Any]:
        ctl = self._controllers.get(key)
        if ctl is None:
            ctl = QueryController(key, empty=empty)
            self._controllers[key] = ctl
        return ctl

    def __len__(self) -> int:
        return len(self._controllers)

    def reset(self) -> None:
        self._controllers.clear()
