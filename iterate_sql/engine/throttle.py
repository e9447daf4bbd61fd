"""Bounded gate limiting how many rows are processed at the same time."""

from __future__ import annotations

from threading import BoundedSemaphore, Lock
from typing import Protocol


class _Cancellable(Protocol):
    def is_set(self) -> bool: ...


class ThrottleGate:
    """Counting semaphore with observable usage."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("ThrottleGate capacity must be >= 1")
        self.capacity = capacity
        self._semaphore = BoundedSemaphore(capacity)
        self._lock = Lock()
        self._in_use = 0
        self._peak = 0

    def acquire(self, cancel: _Cancellable | None = None, poll_interval: float = 0.05) -> bool:
        """Block until a slot is free.

        Returns ``False`` without taking a slot when ``cancel`` is set while
        waiting. The cancel flag is re-checked every ``poll_interval`` seconds,
        so a blocked caller notices cancellation up to that long after it is set.
        """

        if cancel is None:
            self._semaphore.acquire()
        else:
            while not self._semaphore.acquire(timeout=poll_interval):
                if cancel.is_set():
                    return False
        with self._lock:
            self._in_use += 1
            self._peak = max(self._peak, self._in_use)
        return True

    def release(self) -> None:
        with self._lock:
            self._in_use -= 1
        self._semaphore.release()

    @property
    def in_use(self) -> int:
        with self._lock:
            return self._in_use

    @property
    def peak(self) -> int:
        """Highest number of slots held at once since construction."""

        with self._lock:
            return self._peak


__all__ = ["ThrottleGate"]
