"""
Readers-writer lock with an upgradeable read mode.

Any number of readers may hold the lock together. A single holder may take
it in upgradeable mode, which coexists with plain readers but excludes other
upgradeable holders and writers, and can later be promoted to exclusive
access without letting another writer in between. Waiting writers block new
readers so writes are not starved.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """Non-reentrant readers-writer lock built on a single Condition."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0
        self._upgradeable_owner: int | None = None
        self._upgrade_pending = False

    # -- shared ------------------------------------------------------------

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting or self._upgrade_pending:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() without a matching acquire")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    # -- exclusive ---------------------------------------------------------

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while (
                    self._writer
                    or self._readers
                    or self._upgradeable_owner is not None
                ):
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() without a matching acquire")
            self._writer = False
            self._cond.notify_all()

    # -- upgradeable -------------------------------------------------------

    def acquire_upgradeable(self) -> None:
        with self._cond:
            while (
                self._writer
                or self._writers_waiting
                or self._upgradeable_owner is not None
            ):
                self._cond.wait()
            self._upgradeable_owner = threading.get_ident()

    def release_upgradeable(self) -> None:
        with self._cond:
            if self._upgradeable_owner != threading.get_ident():
                raise RuntimeError("release_upgradeable() by a non-owner")
            self._upgradeable_owner = None
            self._cond.notify_all()

    def upgrade(self) -> None:
        """Promote the calling upgradeable holder to exclusive access."""
        with self._cond:
            if self._upgradeable_owner != threading.get_ident():
                raise RuntimeError("upgrade() requires the upgradeable lock")
            self._upgrade_pending = True
            try:
                while self._readers:
                    self._cond.wait()
            finally:
                self._upgrade_pending = False
            self._writer = True

    def downgrade(self) -> None:
        """Give up exclusive access, keeping the upgradeable lock."""
        self.release_write()

    # -- context managers --------------------------------------------------

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @contextmanager
    def upgradeable(self) -> Iterator[None]:
        self.acquire_upgradeable()
        try:
            yield
        finally:
            self.release_upgradeable()

    @contextmanager
    def upgraded(self) -> Iterator[None]:
        self.upgrade()
        try:
            yield
        finally:
            self.downgrade()
