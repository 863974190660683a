"""Tests for the capacity governor."""

import logging

from loadcache.config import CacheConfig
from loadcache.governor import (
    DEFAULT_TARGET_CAPACITY,
    CapacityGovernor,
    clamp_capacity,
    fixed_sizer,
)
from loadcache.store import EntryStore


class TestCapacityGovernor:
    def _make_governor(self, scheduler, sizer=None, **settings):
        config = CacheConfig(**settings)
        store = EntryStore(config.starting_capacity)
        governor = CapacityGovernor(store, config, scheduler, sizer=sizer)
        return governor, store

    def test_default_sizer_uses_fixed_target(self, scheduler):
        governor, store = self._make_governor(scheduler, auto_resize=True)
        governor.tick()
        assert store.capacity == DEFAULT_TARGET_CAPACITY

    def test_target_clamped_to_max_capacity(self, scheduler):
        governor, store = self._make_governor(
            scheduler, sizer=fixed_sizer(500), auto_resize=True, max_capacity=64
        )
        governor.tick()
        assert store.capacity == 64

    def test_tick_noop_when_auto_resize_disabled(self, scheduler):
        governor, store = self._make_governor(scheduler, sizer=fixed_sizer(500))
        governor.tick()
        assert store.capacity == 16

    def test_non_positive_target_ignored(self, scheduler):
        governor, store = self._make_governor(
            scheduler, sizer=lambda: 0, auto_resize=True
        )
        governor.tick()
        assert store.capacity == 16

    def test_shrinking_evicts_oldest(self, scheduler):
        governor, store = self._make_governor(
            scheduler, sizer=fixed_sizer(2), auto_resize=True
        )
        for key in "abcd":
            store.put(key, key)
        governor.tick()
        assert store.keys() == ["d", "c"]

    def test_resize_logged_at_debug(self, scheduler, caplog):
        governor, store = self._make_governor(
            scheduler, sizer=fixed_sizer(32), auto_resize=True
        )
        with caplog.at_level(logging.DEBUG, logger="loadcache.governor"):
            governor.tick()
        assert store.capacity == 32
        records = [r for r in caplog.records if "Resizing" in r.getMessage()]
        assert [r.levelno for r in records] == [logging.DEBUG]

    def test_start_registers_one_timer(self, scheduler):
        governor, _ = self._make_governor(
            scheduler, auto_resize=True, resize_interval_ms=1500
        )
        governor.start()
        governor.start()
        assert len(scheduler.repeating) == 1
        assert scheduler.repeating[0].interval == 1.5
        assert governor.running

    def test_stop_cancels_timer(self, scheduler):
        governor, _ = self._make_governor(scheduler, auto_resize=True)
        governor.start()
        governor.stop()
        assert scheduler.repeating[0].cancelled
        assert not governor.running

    def test_default_interval_is_one_minute(self, scheduler):
        governor, _ = self._make_governor(scheduler, auto_resize=True)
        governor.start()
        assert scheduler.repeating[0].interval == 60.0


class TestClampCapacity:
    def test_unbounded(self):
        assert clamp_capacity(CacheConfig(), 10_000) == 10_000

    def test_bounded(self):
        assert clamp_capacity(CacheConfig(max_capacity=100), 10_000) == 100
        assert clamp_capacity(CacheConfig(max_capacity=100), 50) == 50
