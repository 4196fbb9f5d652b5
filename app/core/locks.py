# app/core/locks.py
import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLock:
    """
    Process-local mutual exclusion keyed by record id.

    Two holders of the same key are serialized; different keys never
    wait on each other. Entries are reference-counted and dropped once
    nobody holds or waits on them, so the map only grows with the
    number of records being mutated *right now*.

    This only covers one process. Multi-worker deployments additionally
    rely on row locks (`SELECT ... FOR UPDATE`) in the repositories.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[Hashable, list] = {}  # key -> [lock, refcount]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._entries[key] = entry
            entry[1] += 1

        lock: threading.Lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
