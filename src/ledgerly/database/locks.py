"""Per-owner commit locks."""

import threading


class OwnerLockRegistry:
    """Hands out one lock per owner so same-owner commits serialize.

    Owners never share a lock, so unrelated owners commit in parallel. The
    locks are reentrant: a service holding an owner's lock across a
    read-then-write sequence can call other services that take it again.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def lock_for(self, owner_id: str) -> threading.RLock:
        """Return the lock for owner_id, creating it on first use."""
        with self._guard:
            lock = self._locks.get(owner_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[owner_id] = lock
            return lock
