"""Identifiers and arrival sequencing.

Row IDs are UUID4 strings (the DB default is gen_random_uuid(); rows created
in-process use the same shape). Arrival sequence numbers are process-wide
and strictly increasing, so two orders stamped in the same clock tick still
have a well-defined submission order for price-time priority.
"""

import itertools
import threading
import uuid


class ArrivalSequencer:
    """Monotonic counter; thread-safe so sync callers can share it."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


_default_sequencer = ArrivalSequencer()


def generate_id() -> str:
    return str(uuid.uuid4())


def next_arrival_seq() -> int:
    """Next arrival number from the module-level default sequencer."""
    return _default_sequencer.next()
