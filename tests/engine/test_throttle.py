from __future__ import annotations

import threading
import time

import pytest

from iterate_sql.engine import ThrottleGate


def test_gate_tracks_usage_and_peak() -> None:
    gate = ThrottleGate(2)
    assert gate.acquire()
    assert gate.acquire()
    assert gate.in_use == 2
    gate.release()
    gate.release()
    assert gate.in_use == 0
    assert gate.peak == 2


def test_gate_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        ThrottleGate(0)


def test_gate_blocks_until_slot_released() -> None:
    gate = ThrottleGate(1)
    gate.acquire()
    acquired = threading.Event()

    def _waiter() -> None:
        gate.acquire()
        acquired.set()

    thread = threading.Thread(target=_waiter)
    thread.start()
    time.sleep(0.1)
    assert not acquired.is_set()
    gate.release()
    assert acquired.wait(2)
    thread.join()
    assert gate.peak == 1


def test_gate_acquire_gives_up_when_cancelled() -> None:
    gate = ThrottleGate(1)
    gate.acquire()
    cancel = threading.Event()
    cancel.set()
    assert gate.acquire(cancel, poll_interval=0.01) is False
    assert gate.in_use == 1


def test_blocked_acquire_notices_cancel_within_poll_interval() -> None:
    gate = ThrottleGate(1)
    gate.acquire()
    cancel = threading.Event()
    result: list[bool] = []
    waiter = threading.Thread(target=lambda: result.append(gate.acquire(cancel, poll_interval=0.02)))
    waiter.start()
    time.sleep(0.05)
    cancel.set()
    started = time.monotonic()
    waiter.join(timeout=2)
    assert not waiter.is_alive()
    assert result == [False]
    assert time.monotonic() - started < 0.5
    assert gate.in_use == 1
