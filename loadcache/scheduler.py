"""
Background work for loading caches.

The cache never starts threads on its own; it hands closures to a
Scheduler. ThreadScheduler is the default. Tests substitute a scheduler
that runs work only when told to.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Runs closures off the caller's thread."""

    def submit(self, task: Callable[[], None]) -> None:
        """Run task once, as soon as possible."""
        ...

    def every(self, interval: float, task: Callable[[], None]) -> Cancellable:
        """Run task repeatedly, waiting interval seconds before each run."""
        ...

    def shutdown(self) -> None:
        ...


class _RepeatingTimer(threading.Thread):
    def __init__(self, interval: float, task: Callable[[], None]) -> None:
        super().__init__(name="loadcache-timer", daemon=True)
        self._interval = interval
        self._task = task
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._task()
            except Exception:
                logger.exception("Scheduled task failed")

    def cancel(self) -> None:
        self._stopped.set()


class ThreadScheduler:
    """Scheduler backed by a thread pool and daemon timer threads."""

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="loadcache-refresh"
        )
        self._timers: list[_RepeatingTimer] = []
        self._lock = threading.Lock()

    def submit(self, task: Callable[[], None]) -> None:
        self._executor.submit(task)

    def every(self, interval: float, task: Callable[[], None]) -> Cancellable:
        timer = _RepeatingTimer(interval, task)
        with self._lock:
            self._timers.append(timer)
        timer.start()
        return timer

    def shutdown(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)
