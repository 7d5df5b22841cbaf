"""Per-challenge serialization for read-check-append sequences."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class ChallengeLocks:
    """Hands out one re-entrant lock per challenge id.

    Manual logging and the auto-skip job both do "look for an event, then
    append"; holding the challenge's lock across that sequence keeps the two
    from interleaving on the same challenge.
    """

    def __init__(self):
        self._locks: Dict[int, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, challenge_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(challenge_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[challenge_id] = lock
            return lock

    @contextmanager
    def hold(self, challenge_id: int) -> Iterator[None]:
        lock = self.lock_for(challenge_id)
        with lock:
            yield
