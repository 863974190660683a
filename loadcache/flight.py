"""
Single-flight gates around loader execution.

GlobalLoadGate allows one load at a time across all keys: callers queue on
a single lock and a process-wide flag tells non-blocking paths a load is
running. PerKeyLoadGate narrows that to one load per key: the first caller
runs the load and later callers for the same key wait on its Future
instead of loading again, while other keys proceed in parallel.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Optional, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LoadGate(Protocol):
    def run(self, key: str, load: Callable[[], T]) -> T:
        ...

    def in_flight(self, key: Optional[str] = None) -> bool:
        ...


class GlobalLoadGate:
    def __init__(self) -> None:
        # Reentrant so a loader may read through the same cache.
        self._lock = threading.RLock()
        self._loading = False

    def run(self, key: str, load: Callable[[], T]) -> T:
        with self._lock:
            outer = self._loading
            self._loading = True
            try:
                return load()
            finally:
                self._loading = outer

    def in_flight(self, key: Optional[str] = None) -> bool:
        # Any load counts, whatever the key.
        return self._loading


class PerKeyLoadGate:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._flights: dict[str, Future] = {}

    def run(self, key: str, load: Callable[[], T]) -> T:
        with self._lock:
            future = self._flights.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._flights[key] = future

        if not leader:
            logger.debug("Waiting on in-flight load for %r", key)
            return future.result()

        try:
            value = load()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(value)
            return value
        finally:
            with self._lock:
                self._flights.pop(key, None)

    def in_flight(self, key: Optional[str] = None) -> bool:
        with self._lock:
            if key is None:
                return bool(self._flights)
            return key in self._flights


def make_load_gate(mode: str) -> LoadGate:
    if mode == "per_key":
        return PerKeyLoadGate()
    return GlobalLoadGate()
