"""
Capacity governor: periodically recomputes the store's capacity.

The target comes from a pluggable sizer. The default sizer returns a fixed
capacity; a host can supply one based on available memory instead.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from loadcache.config import CacheConfig
from loadcache.scheduler import Cancellable, Scheduler
from loadcache.store import EntryStore

logger = logging.getLogger(__name__)

Sizer = Callable[[], int]

DEFAULT_TARGET_CAPACITY = 100_000


def fixed_sizer(capacity: int = DEFAULT_TARGET_CAPACITY) -> Sizer:
    """Sizer that always proposes the same capacity."""
    return lambda: capacity


def clamp_capacity(config: CacheConfig, capacity: int) -> int:
    if config.max_capacity is not None:
        return min(capacity, config.max_capacity)
    return capacity


class CapacityGovernor:
    def __init__(
        self,
        store: EntryStore,
        config: CacheConfig,
        scheduler: Scheduler,
        sizer: Optional[Sizer] = None,
    ) -> None:
        self._store = store
        self._config = config
        self._scheduler = scheduler
        self._sizer = sizer or fixed_sizer()
        self._handle: Optional[Cancellable] = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is not None:
            return
        interval = self._config.resize_interval_ms / 1000.0
        self._handle = self._scheduler.every(interval, self.tick)
        logger.debug("Capacity governor started (every %.1fs)", interval)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def tick(self) -> None:
        """Apply one resize. No-op unless auto_resize is enabled."""
        if not self._config.auto_resize:
            return
        target = clamp_capacity(self._config, self._sizer())
        if target < 1:
            logger.warning("Ignoring non-positive capacity target %d", target)
            return
        current = self._store.capacity
        if target != current:
            logger.debug("Resizing cache capacity %d -> %d", current, target)
            self._store.set_capacity(target)
