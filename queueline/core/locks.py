"""
Per-queue locks

Every mutation of a queue's ticket set runs while holding that queue's lock,
so "read positions, compute, write back" is seen atomically by other
operations on the same queue. Different queues never share a lock.
"""

from contextlib import contextmanager
import threading
import uuid

from queueline.core.exceptions import QueueBusyError


class QueueLockRegistry:
    """Lazily creates one lock per queue id."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[uuid.UUID, threading.Lock] = {}

    def _lock_for(self, queue_id: uuid.UUID) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(queue_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[queue_id] = lock
            return lock

    @contextmanager
    def hold(self, queue_id: uuid.UUID):
        lock = self._lock_for(queue_id)
        if not lock.acquire(timeout=self.timeout):
            raise QueueBusyError(queue_id, self.timeout)
        try:
            yield
        finally:
            lock.release()

    def discard(self, queue_id: uuid.UUID) -> None:
        """Forget the lock of a deleted queue."""
        with self._guard:
            self._locks.pop(queue_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
