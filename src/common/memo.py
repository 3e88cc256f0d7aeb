"""One-shot memoization guarded by a lock."""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class OneShot(Generic[T]):
    """Compute a value at most once and hand the same instance to every caller.

    Concurrent first calls block on the lock and observe the single computed
    value. A factory that raises leaves the memo empty so a later call may
    try again.
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._lock = threading.Lock()
        self._done = False
        self._value: T

    def get(self) -> T:
        """Return the memoized value, computing it on first use."""
        if self._done:
            return self._value
        with self._lock:
            if not self._done:
                self._value = self._factory()
                self._done = True
        return self._value
