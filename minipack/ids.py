"""Module identity allocation."""

from __future__ import annotations

import threading


class IdentityAllocator:
    """Issues dense, strictly increasing module identities for one bundling run."""

    def __init__(self) -> None:
        self._next = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            identity = self._next
            self._next += 1
        return identity

    def reset(self) -> None:
        with self._lock:
            self._next = 0

    @property
    def issued(self) -> int:
        """Number of identities handed out since the last reset."""
        return self._next


__all__ = ["IdentityAllocator"]
