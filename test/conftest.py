"""
Shared test fixtures for loadcache.

Provides:
- FakeClock: controllable monotonic clock
- ManualScheduler: runs background work only when a test asks it to
"""

from typing import Callable

import pytest


class FakeClock:
    """Controllable clock for deterministic cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


class _Repeating:
    def __init__(self, interval: float, task: Callable[[], None]):
        self.interval = interval
        self.task = task
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler that queues work until run_pending() / tick() is called."""

    def __init__(self):
        self.pending: list[Callable[[], None]] = []
        self.repeating: list[_Repeating] = []
        self.shut_down = False

    def submit(self, task: Callable[[], None]) -> None:
        if self.shut_down:
            raise RuntimeError("cannot schedule new futures after shutdown")
        self.pending.append(task)

    def every(self, interval: float, task: Callable[[], None]) -> _Repeating:
        handle = _Repeating(interval, task)
        self.repeating.append(handle)
        return handle

    def shutdown(self) -> None:
        self.shut_down = True

    def run_pending(self) -> int:
        """Run queued tasks (including ones they queue). Returns how many ran."""
        ran = 0
        while self.pending:
            task = self.pending.pop(0)
            task()
            ran += 1
        return ran

    def tick(self) -> None:
        """Fire every active repeating task once."""
        for handle in list(self.repeating):
            if not handle.cancelled:
                handle.task()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def scheduler():
    return ManualScheduler()
