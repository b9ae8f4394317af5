# src/task_sync/sync/locks.py

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterator


class KeyedLock:
    """
    One mutex per key, created on demand and dropped when nobody holds or waits on it.

    Used to make the per-task read-resolve-write sequence a critical section
    while different task ids proceed in parallel.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._refs: dict[str, int] = {}

    @contextlib.contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._refs[key] = self._refs.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._refs[key] -= 1
                if self._refs[key] == 0:
                    del self._refs[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
