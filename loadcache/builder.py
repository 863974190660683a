"""
Fluent builder for LoadingCache.

Settings are collected in a plain dict and validated into an immutable
CacheConfig when the cache is built, so later changes to the builder never
reach a cache that was already built from it.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from loadcache.config import CacheConfig, LoadLockMode
from loadcache.governor import Sizer
from loadcache.loading_cache import LoadingCache, Loader
from loadcache.scheduler import Scheduler
from loadcache.store import RemovalListener


class CacheBuilder:
    def __init__(self) -> None:
        self._settings: dict[str, Any] = {}
        self._scheduler: Optional[Scheduler] = None
        self._clock: Optional[Callable[[], float]] = None
        self._removal_listener: Optional[RemovalListener] = None
        self._sizer: Optional[Sizer] = None

    @classmethod
    def new_builder(cls) -> "CacheBuilder":
        return cls()

    @classmethod
    def from_config(cls, config: CacheConfig) -> "CacheBuilder":
        """Seed a builder with every setting of an existing config."""
        builder = cls()
        builder._settings = config.model_dump()
        return builder

    # -- capacity ----------------------------------------------------------

    def initial_capacity(self, capacity: int) -> "CacheBuilder":
        self._settings["initial_capacity"] = capacity
        return self

    def max_capacity(self, capacity: int) -> "CacheBuilder":
        """Upper bound on entry count, including automatic resizes."""
        self._settings["max_capacity"] = capacity
        return self

    # -- time bounds (milliseconds) ----------------------------------------

    def expire_after_access(self, ms: int) -> "CacheBuilder":
        """Drop entries not read or written for ms milliseconds.

        Loads after expiry block the caller.
        """
        self._settings["expire_after_access_ms"] = ms
        return self

    def expire_after_write(self, ms: int) -> "CacheBuilder":
        """Drop entries not written for ms milliseconds."""
        self._settings["expire_after_write_ms"] = ms
        return self

    def refresh_after_write(self, ms: int) -> "CacheBuilder":
        """Reload entries ms milliseconds after their last write.

        Should be smaller than the expiry bounds. Until the reload lands
        the old value keeps being served.
        """
        self._settings["refresh_after_write_ms"] = ms
        return self

    # -- background behavior -----------------------------------------------

    def auto_resize(self, enabled: bool = True) -> "CacheBuilder":
        self._settings["auto_resize"] = enabled
        return self

    def auto_refresh(self, enabled: bool = True) -> "CacheBuilder":
        """Refresh stale entries in the background instead of on the caller."""
        self._settings["auto_refresh"] = enabled
        return self

    def resize_interval(self, ms: int) -> "CacheBuilder":
        self._settings["resize_interval_ms"] = ms
        return self

    def refresh_workers(self, workers: int) -> "CacheBuilder":
        self._settings["refresh_workers"] = workers
        return self

    def load_lock(self, mode: LoadLockMode) -> "CacheBuilder":
        self._settings["load_lock"] = mode
        return self

    # -- collaborators -----------------------------------------------------

    def scheduler(self, scheduler: Scheduler) -> "CacheBuilder":
        self._scheduler = scheduler
        return self

    def clock(self, clock: Callable[[], float]) -> "CacheBuilder":
        self._clock = clock
        return self

    def removal_listener(self, listener: RemovalListener) -> "CacheBuilder":
        self._removal_listener = listener
        return self

    def sizer(self, sizer: Sizer) -> "CacheBuilder":
        self._sizer = sizer
        return self

    # -- build -------------------------------------------------------------

    def config(self) -> CacheConfig:
        """Validate the current settings into an immutable CacheConfig."""
        return CacheConfig(**self._settings)

    def build(self, loader: Loader) -> LoadingCache:
        return LoadingCache(
            self.config(),
            loader,
            scheduler=self._scheduler,
            clock=self._clock,
            removal_listener=self._removal_listener,
            sizer=self._sizer,
        )
