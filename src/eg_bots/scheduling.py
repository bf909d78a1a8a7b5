"""Cancellation scopes for bot timers.

Every pending bot action is an asyncio task owned by the scope of the round
it belongs to. Ending the round cancels the scope: the flag flips first, then
every live task is cancelled, synchronously, before any other round-end work.
A task that already woke up checks `scope.cancelled` before submitting, and
the engine's round-active check under the round lock rejects anything that
still slips through.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class CancellationScope:
    def __init__(self, round_id: str, session_id: str) -> None:
        self.round_id = round_id
        self.session_id = session_id
        self._tasks: set[asyncio.Task[Any]] = set()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any] | None:
        """Run `coro` as a task owned by this scope; refused once the scope is cancelled."""
        if self._cancelled:
            coro.close()
            return None
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel(self) -> list[asyncio.Task[Any]]:
        """Cancel every live task. Returns the tasks that were still pending."""
        self._cancelled = True
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        self._tasks.clear()
        return pending

    def __len__(self) -> int:
        return sum(1 for t in self._tasks if not t.done())


class ScopeRegistry:
    """Round scopes by round id; a session's scope is the union of its rounds.

    A round cancelled through `cancel_round` stays closed: a later `open` for it
    hands back a cancelled scope that refuses every spawn and is not tracked.
    Closed ids are forgotten when their session is cancelled.
    """

    def __init__(self) -> None:
        self._scopes: dict[str, CancellationScope] = {}
        self._closed: dict[str, str | None] = {}

    def open(self, round_id: str, session_id: str) -> CancellationScope:
        if round_id in self._closed:
            closed = CancellationScope(round_id, session_id)
            closed.cancel()
            return closed
        scope = self._scopes.get(round_id)
        if scope is None or scope.cancelled:
            scope = CancellationScope(round_id, session_id)
            self._scopes[round_id] = scope
        return scope

    def get(self, round_id: str) -> CancellationScope | None:
        return self._scopes.get(round_id)

    def is_closed(self, round_id: str) -> bool:
        return round_id in self._closed

    def cancel_round(
        self, round_id: str, session_id: str | None = None
    ) -> list[asyncio.Task[Any]]:
        scope = self._scopes.pop(round_id, None)
        self._closed[round_id] = scope.session_id if scope else session_id
        if scope is None:
            return []
        pending = scope.cancel()
        if pending:
            logger.debug("Cancelled %d bot task(s) for round %s", len(pending), round_id)
        return pending

    def cancel_session(self, session_id: str) -> list[asyncio.Task[Any]]:
        pending: list[asyncio.Task[Any]] = []
        for round_id in [r for r, s in self._scopes.items() if s.session_id == session_id]:
            pending.extend(self.cancel_round(round_id))
        for round_id in [r for r, s in self._closed.items() if s == session_id]:
            del self._closed[round_id]
        return pending

    def cancel_all(self) -> list[asyncio.Task[Any]]:
        pending: list[asyncio.Task[Any]] = []
        for round_id in list(self._scopes):
            pending.extend(self.cancel_round(round_id))
        self._closed.clear()
        return pending

    def __len__(self) -> int:
        return len(self._scopes)
