"""Per-key mutual exclusion for read-check-write sequences."""

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator


class KeyedLock:
    """Hand out one lock per key; entries are dropped once nobody holds them.

    Used to serialize redemption per ticket id and capture per order id while
    letting unrelated keys proceed in parallel.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: Dict[str, Lock] = {}
        self._waiters: Dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
