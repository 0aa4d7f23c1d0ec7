"""
In-process slot locks.

When ENABLE_SLOT_LOCKING is set, booking operations hold one lock per
(therapist_id, date, time) from the availability check until commit, so two
requests in the same process cannot both book a slot. Multi-process
deployments still rely on the database.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date, time
from typing import Dict, Iterable, Iterator, List, Tuple

from core.config import ENABLE_SLOT_LOCKING

logger = logging.getLogger(__name__)

SlotKey = Tuple[int, date, time]


class SlotLockRegistry:
    """
    Registry of per-slot locks.

    A lock exists only while some request holds or waits for it; the last
    one out removes it.
    """

    def __init__(self, enabled: bool = ENABLE_SLOT_LOCKING):
        self.enabled = enabled
        self._locks: Dict[SlotKey, threading.Lock] = {}
        self._users: Dict[SlotKey, int] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, key: SlotKey) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: SlotKey) -> None:
        with self._registry_lock:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[SlotKey]) -> Iterator[None]:
        """
        Hold the locks of every given slot for the duration of the block.

        Locks are taken in sorted key order so overlapping series cannot deadlock.
        No-op when the registry is disabled.
        """
        if not self.enabled:
            yield
            return

        ordered: List[SlotKey] = sorted(set(keys))
        acquired: List[SlotKey] = []
        try:
            for key in ordered:
                self._checkout(key).acquire()
                acquired.append(key)
            logger.debug(f"Holding {len(acquired)} slot lock(s)")
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
                self._checkin(key)


slot_locks = SlotLockRegistry()
