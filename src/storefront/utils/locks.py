"""Per-key mutual exclusion for read-check-write sequences on one aggregate.

The stock ledger, the order number sequence and the order workflow each load an
aggregate, check a guard, mutate it and save it back. Holding the key's lock
for the whole sequence turns it into a single atomic step for every thread in
this process.
"""

import threading
from contextlib import contextmanager


class KeyedLock:
    """A lazily-populated registry of one ``threading.Lock`` per key."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key):
        lock = self._lock_for(str(key))
        with lock:
            yield
