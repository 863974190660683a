"""
Loading cache: LRU store + expiry + refresh-ahead in front of a loader.

For each get() the cache classifies the current entry and then either
serves it, loads synchronously, or serves the stale value while a reload
runs in the background. Loads go through a single-flight gate so the
loader is not run redundantly.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from typing import Any, Callable, Iterable, Optional

from loadcache.config import CacheConfig
from loadcache.errors import CacheLoadError
from loadcache.flight import make_load_gate
from loadcache.freshness import classify, idle_ttl_for_set
from loadcache.governor import CapacityGovernor, Sizer, clamp_capacity
from loadcache.models import CacheEntry, CacheStats, Freshness, RemovalCause
from loadcache.scheduler import Scheduler, ThreadScheduler
from loadcache.store import EntryStore, RemovalListener

logger = logging.getLogger(__name__)

Loader = Callable[[str], Any]

_FRESH_ONLY = frozenset({Freshness.fresh})
_SERVABLE = frozenset({Freshness.fresh, Freshness.stale})


class LoadingCache:
    """
    Read-through cache keyed by string.

    - get_if_present(): cached value if fresh, else None. Never loads.
    - get(): cached value, loading it when missing, expired or stale.
    - set() / invalidate(): direct writes that bypass the loader.

    A loader returning None is not cached. Loader failures surface from
    get() as CacheLoadError and leave any cached value in place.
    """

    def __init__(
        self,
        config: CacheConfig,
        loader: Loader,
        *,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
        removal_listener: Optional[RemovalListener] = None,
        sizer: Optional[Sizer] = None,
    ) -> None:
        self._config = config
        self._loader = loader
        self._clock = clock or time.monotonic
        self._removal_listener = removal_listener
        self._store = EntryStore(
            config.starting_capacity,
            removal_listener=self._on_removal,
            clock=self._clock,
        )
        self._gate = make_load_gate(config.load_lock)

        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or ThreadScheduler(
            max_workers=config.refresh_workers
        )
        self._refreshing: set[str] = set()
        self._refresh_lock = threading.Lock()

        self._counters: Counter[str] = Counter()
        self._stats_lock = threading.Lock()

        self._governor = CapacityGovernor(
            self._store, config, self._scheduler, sizer=sizer
        )
        if config.auto_resize:
            self._governor.start()

    @property
    def config(self) -> CacheConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_if_present(self, key: str) -> Optional[Any]:
        """Return the cached value only if it is fresh. Never loads."""
        value = self._fresh_value(key)
        self._record("hit_count" if value is not None else "miss_count")
        return value

    def get(self, key: str) -> Any:
        """Return the value for key, invoking the loader if needed."""
        entry, state = self._lookup(key, _SERVABLE)
        if entry is None:
            # Missing, or expired and just dropped
            self._record("miss_count")
            return self._load(key)

        if state is Freshness.fresh:
            self._record("hit_count")
            return entry.value

        # Stale: refresh_after_write_ms is configured
        if self._config.auto_refresh:
            self._record("stale_hit_count")
            self._schedule_refresh(key)
            return entry.value

        if not self._gate.in_flight(key):
            self._record("miss_count")
            return self._load(key)

        self._record("stale_hit_count")
        return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store a value directly, bypassing the loader."""
        self._store.put(key, value, idle_ttl_ms=idle_ttl_for_set(self._config))

    def get_all_present(self, keys: Iterable[str]) -> dict[str, Any]:
        """Fresh cached values for keys; missing or stale keys are omitted."""
        result: dict[str, Any] = {}
        for key in keys:
            value = self.get_if_present(key)
            if value is not None:
                result[key] = value
        return result

    def invalidate(self, key: str) -> None:
        self._store.remove(key)

    def invalidate_all(self) -> None:
        self._store.clear()

    # ------------------------------------------------------------------
    # Inspection / sizing
    # ------------------------------------------------------------------

    def keys(self) -> list[str]:
        """Snapshot of stored keys, most recently used first."""
        return self._store.keys()

    def size(self) -> int:
        return len(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        # Presence only; a stored entry may still be stale or expired.
        return key in self._store

    @property
    def capacity(self) -> int:
        return self._store.capacity

    def set_capacity(self, capacity: int) -> None:
        """Resize the store, capped at max_capacity."""
        self._store.set_capacity(clamp_capacity(self._config, capacity))

    def stats(self) -> CacheStats:
        with self._stats_lock:
            counters = dict(self._counters)
        return CacheStats(
            **counters, size=len(self._store), capacity=self._store.capacity
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop background resizing and, if owned, the scheduler."""
        self._governor.stop()
        if self._owns_scheduler:
            self._scheduler.shutdown()

    def __enter__(self) -> "LoadingCache":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup(
        self, key: str, serve: frozenset[Freshness]
    ) -> tuple[Optional[CacheEntry], Optional[Freshness]]:
        """
        Classify the entry for key, touching it if it will be served.

        Expired entries are removed on the spot and reported as missing.
        """
        now = self._clock()
        state: Optional[Freshness] = None

        def should_touch(entry: CacheEntry) -> bool:
            nonlocal state
            state = classify(entry, self._config, now)
            return state in serve

        entry = self._store.lookup_and_touch(key, should_touch)
        if entry is None:
            return None, None

        if state is Freshness.expired:
            # Re-checked under the write lock so a concurrent set() survives.
            self._store.remove_if(
                key,
                lambda current: classify(current, self._config, self._clock())
                is Freshness.expired,
                cause=RemovalCause.expired,
            )
            return None, state

        return entry, state

    def _fresh_value(self, key: str) -> Optional[Any]:
        entry, state = self._lookup(key, _FRESH_ONLY)
        if entry is None or state is not Freshness.fresh:
            return None
        return entry.value

    def _load(self, key: str) -> Any:
        return self._gate.run(key, lambda: self._load_if_absent(key))

    def _load_if_absent(self, key: str) -> Any:
        # A writer may have filled the key while we waited for the gate.
        value = self._fresh_value(key)
        if value is not None:
            return value

        started = time.perf_counter()
        try:
            value = self._loader(key)
        except Exception as exc:
            self._record("load_failure_count")
            raise CacheLoadError(key) from exc
        self._record("load_success_count")
        logger.debug(
            "Loaded %r in %.1fms", key, (time.perf_counter() - started) * 1000
        )

        if value is not None:
            self.set(key, value)
        return value

    def _schedule_refresh(self, key: str) -> None:
        if self._gate.in_flight(key):
            return
        with self._refresh_lock:
            if key in self._refreshing:
                return
            self._refreshing.add(key)
        try:
            self._scheduler.submit(lambda: self._refresh(key))
        except RuntimeError as exc:
            # Scheduler already shut down
            with self._refresh_lock:
                self._refreshing.discard(key)
            logger.warning("Could not schedule refresh of %r: %s", key, exc)

    def _refresh(self, key: str) -> None:
        try:
            if self._gate.in_flight(key):
                return
            self._load(key)
        except CacheLoadError as exc:
            logger.warning(
                "Background refresh of %r failed, keeping stale value: %s",
                key,
                exc.__cause__,
            )
        finally:
            with self._refresh_lock:
                self._refreshing.discard(key)

    def _on_removal(self, key: str, value: Any, cause: RemovalCause) -> None:
        if cause is RemovalCause.size:
            self._record("eviction_count")
        if self._removal_listener is not None:
            self._removal_listener(key, value, cause)

    def _record(self, counter: str) -> None:
        with self._stats_lock:
            self._counters[counter] += 1
