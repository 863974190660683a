"""
Bounded entry store with LRU eviction.

Entries live in an arena of slots addressed by integer handles. The key
index maps key -> handle and the recency order is a doubly linked list of
handles threaded through the same slots, so both views always describe the
same set of entries. Every structural change happens under the exclusive
side of a ReadWriteLock.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from loadcache.models import CacheEntry, RemovalCause
from loadcache.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

RemovalListener = Callable[[str, Any, RemovalCause], None]

DEFAULT_CAPACITY = 255

# Sentinel handles for the recency list
_HEAD = 0
_TAIL = 1


@dataclass(slots=True)
class _Slot:
    key: Optional[str]
    value: Any
    last_access_time: float
    last_write_time: float
    idle_ttl_ms: Optional[int]
    prev: int
    next: int


class EntryStore:
    """
    Key -> entry map ordered by recency, most recently used first.

    - lookup(): read an entry without changing its position.
    - touch() / lookup_and_touch(): mark an entry as used.
    - put(): insert or update, then evict from the back while over capacity.
    - remove() / remove_if() / set_capacity(): removals, all through one path.
    """

    def __init__(
        self,
        capacity: int,
        removal_listener: Optional[RemovalListener] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._capacity = capacity if capacity > 0 else DEFAULT_CAPACITY
        self._slots: list[_Slot] = [
            _Slot(None, None, 0.0, 0.0, None, prev=_HEAD, next=_TAIL),
            _Slot(None, None, 0.0, 0.0, None, prev=_HEAD, next=_TAIL),
        ]
        self._free: list[int] = []
        self._index: dict[str, int] = {}
        self._lock = ReadWriteLock()
        self._removal_listener = removal_listener
        self._clock = clock or time.monotonic

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return a snapshot of the entry, or None. Does not reorder."""
        with self._lock.read():
            handle = self._index.get(key)
            if handle is None:
                return None
            return self._snapshot(handle)

    def lookup_and_touch(
        self, key: str, should_touch: Callable[[CacheEntry], bool]
    ) -> Optional[CacheEntry]:
        """
        Look up an entry and touch it if should_touch(snapshot) is true.

        The lookup runs under the upgradeable lock so only one caller at a
        time can go on to promote an entry. Returns the snapshot taken
        before the touch.
        """
        with self._lock.upgradeable():
            handle = self._index.get(key)
            if handle is None:
                return None
            entry = self._snapshot(handle)
            if should_touch(entry):
                with self._lock.upgraded():
                    self._touch_locked(handle, self._clock())
            return entry

    def keys(self) -> list[str]:
        """Snapshot of live keys, most recently used first."""
        with self._lock.read():
            keys = []
            handle = self._slots[_HEAD].next
            while handle != _TAIL:
                slot = self._slots[handle]
                keys.append(slot.key)
                handle = slot.next
            return keys

    @property
    def capacity(self) -> int:
        with self._lock.read():
            return self._capacity

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._index)

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._index

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def touch(self, key: str) -> None:
        """Move the entry to the front and stamp its access time."""
        with self._lock.write():
            handle = self._index.get(key)
            if handle is not None:
                self._touch_locked(handle, self._clock())

    def put(self, key: str, value: Any, idle_ttl_ms: Optional[int] = None) -> None:
        """Insert or update an entry, then enforce capacity."""
        removed: list[tuple[CacheEntry, RemovalCause]] = []
        with self._lock.write():
            now = self._clock()
            handle = self._index.get(key)
            if handle is None:
                handle = self._allocate(key, value, now, idle_ttl_ms)
                self._index[key] = handle
                self._link_front(handle)
            else:
                slot = self._slots[handle]
                slot.value = value
                slot.last_write_time = now
                slot.idle_ttl_ms = idle_ttl_ms
                self._touch_locked(handle, now)
            self._evict_locked(removed)
        self._notify(removed)

    def remove(self, key: str, cause: RemovalCause = RemovalCause.explicit) -> bool:
        """Delete the entry. Returns True if one was removed."""
        removed: list[tuple[CacheEntry, RemovalCause]] = []
        with self._lock.write():
            deleted = self._remove_locked(key, cause, removed)
        self._notify(removed)
        return deleted

    def remove_if(
        self,
        key: str,
        predicate: Callable[[CacheEntry], bool],
        cause: RemovalCause = RemovalCause.explicit,
    ) -> bool:
        """Delete the entry only if predicate(snapshot) holds at removal time."""
        removed: list[tuple[CacheEntry, RemovalCause]] = []
        with self._lock.write():
            handle = self._index.get(key)
            if handle is None or not predicate(self._snapshot(handle)):
                return False
            self._remove_locked(key, cause, removed)
        self._notify(removed)
        return True

    def set_capacity(self, capacity: int) -> None:
        """Change capacity, evicting least recently used entries to fit."""
        if capacity <= 0:
            return
        removed: list[tuple[CacheEntry, RemovalCause]] = []
        with self._lock.write():
            if capacity == self._capacity:
                return
            self._capacity = capacity
            self._evict_locked(removed)
        if removed:
            logger.debug(
                "Capacity set to %d, evicted %d entries", capacity, len(removed)
            )
        self._notify(removed)

    def clear(self) -> None:
        """Remove all entries."""
        removed: list[tuple[CacheEntry, RemovalCause]] = []
        with self._lock.write():
            for key in list(self._index):
                self._remove_locked(key, RemovalCause.explicit, removed)
        self._notify(removed)

    # ------------------------------------------------------------------
    # Internals (caller holds the exclusive lock)
    # ------------------------------------------------------------------

    def _allocate(
        self, key: str, value: Any, now: float, idle_ttl_ms: Optional[int]
    ) -> int:
        if self._free:
            handle = self._free.pop()
            slot = self._slots[handle]
            slot.key = key
            slot.value = value
            slot.last_access_time = now
            slot.last_write_time = now
            slot.idle_ttl_ms = idle_ttl_ms
            return handle
        self._slots.append(
            _Slot(key, value, now, now, idle_ttl_ms, prev=_HEAD, next=_TAIL)
        )
        return len(self._slots) - 1

    def _link_front(self, handle: int) -> None:
        slot = self._slots[handle]
        first = self._slots[_HEAD].next
        slot.prev = _HEAD
        slot.next = first
        self._slots[first].prev = handle
        self._slots[_HEAD].next = handle

    def _unlink(self, handle: int) -> None:
        slot = self._slots[handle]
        self._slots[slot.prev].next = slot.next
        self._slots[slot.next].prev = slot.prev
        slot.prev = slot.next = handle

    def _touch_locked(self, handle: int, now: float) -> None:
        self._slots[handle].last_access_time = now
        if self._slots[_HEAD].next != handle:
            self._unlink(handle)
            self._link_front(handle)

    def _remove_locked(
        self,
        key: str,
        cause: RemovalCause,
        removed: list[tuple[CacheEntry, RemovalCause]],
    ) -> bool:
        handle = self._index.pop(key, None)
        if handle is None:
            return False
        removed.append((self._snapshot(handle), cause))
        self._unlink(handle)
        slot = self._slots[handle]
        slot.key = None
        slot.value = None
        self._free.append(handle)
        return True

    def _evict_locked(self, removed: list[tuple[CacheEntry, RemovalCause]]) -> None:
        while len(self._index) > self._capacity:
            last = self._slots[_TAIL].prev
            self._remove_locked(self._slots[last].key, RemovalCause.size, removed)

    def _snapshot(self, handle: int) -> CacheEntry:
        slot = self._slots[handle]
        return CacheEntry(
            key=slot.key,
            value=slot.value,
            last_access_time=slot.last_access_time,
            last_write_time=slot.last_write_time,
            idle_ttl_ms=slot.idle_ttl_ms,
        )

    def _notify(self, removed: list[tuple[CacheEntry, RemovalCause]]) -> None:
        # Runs after the lock is released so listeners may call back in.
        for entry, cause in removed:
            logger.debug("Removed %r (%s)", entry.key, cause.value)
            if self._removal_listener is None:
                continue
            try:
                self._removal_listener(entry.key, entry.value, cause)
            except Exception:
                logger.exception("Removal listener failed for %r", entry.key)
