"""Per-round asyncio locks.

One lock per round serialises everything that reads or mutates that round's
book or status: bid/ask acceptance, matching passes, and the round-end
transition. Different rounds (and sessions) never contend.
"""

import asyncio
from collections import defaultdict


class RoundLocks:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def get(self, round_id: str) -> asyncio.Lock:
        return self._locks[round_id]

    def discard(self, round_id: str) -> None:
        """Drop a finished round's lock. Safe if the lock is unknown."""
        lock = self._locks.get(round_id)
        if lock is not None and not lock.locked():
            del self._locks[round_id]

    def __len__(self) -> int:
        return len(self._locks)
