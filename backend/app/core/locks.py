"""Per-key locks serializing check-then-insert for time entries."""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterable, List


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class KeyedLocks:
    """Hands out one lock per key.

    ``hold`` acquires several keys at once in sorted order so two submissions
    touching overlapping key sets cannot deadlock. A key's lock is dropped
    once nobody holds or waits for it, so only in-flight keys are tracked.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, _KeyLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: Hashable) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyLock()
                self._locks[key] = entry
            entry.users += 1
            return entry.lock

    def _checkin(self, key: Hashable):
        with self._guard:
            entry = self._locks[key]
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[Hashable]):
        ordered = sorted(set(keys), key=repr)
        checked_out: List[Hashable] = []
        acquired: List[threading.Lock] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)


# Shared by every request handled by this process
entry_locks = KeyedLocks()
