"""
Reader/writer lock with an upgradeable read mode.

Modes:
- read: shared, any number of holders
- upgradeable read: shared with plain readers, but only one holder at a
  time; the holder may escalate to write without releasing first
- write: exclusive

The write owner may re-enter any mode (nested calls under a held write lock
never block). A plain reader must not ask for the write lock; that is a
deadlock and a programming error. Waiting writers block new readers so a
steady stream of readers cannot starve registration.

Usage:
    lock = ReaderWriterLock()

    with lock.read_lock():
        snapshot = list(items)

    with lock.upgradeable_read_lock():
        if key not in items:
            with lock.write_lock():
                items.append(key)

Copyright (c) 2025 Brent Lefebure / EhkoLabs
Licensed under AGPLv3
"""

from contextlib import contextmanager
from typing import Iterator, Optional
import threading


class ReaderWriterLock:
    """Single-writer/multi-reader lock (see module docstring)."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0                      # Shared holders, upgrader included
        self._writer: Optional[int] = None     # Thread ident owning write
        self._write_depth = 0
        self._upgrader: Optional[int] = None   # Thread ident owning upgradeable read
        self._writers_waiting = 0

    # =========================================================================
    # Shared
    # =========================================================================

    def acquire_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._write_depth += 1
                return
            while self._writer is not None or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._release_nested_write()
                return
            if self._readers <= 0:
                raise RuntimeError("release_read() without a matching acquire_read()")
            self._readers -= 1
            # An escalating upgrader waits for readers to drop to one
            self._cond.notify_all()

    # =========================================================================
    # Upgradeable
    # =========================================================================

    def acquire_upgradeable_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._write_depth += 1
                return
            if self._upgrader == me:
                raise RuntimeError("upgradeable read lock is not re-entrant")
            while (self._writer is not None or self._upgrader is not None
                   or self._writers_waiting):
                self._cond.wait()
            self._upgrader = me
            self._readers += 1

    def release_upgradeable_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            # Inner entries taken under the write lock unwind first
            if self._writer == me and (self._upgrader != me or self._write_depth > 1):
                self._release_nested_write()
                return
            if self._upgrader != me:
                raise RuntimeError("release_upgradeable_read() by a non-holder")
            if self._writer == me:
                raise RuntimeError("write lock still held inside upgradeable read")
            self._upgrader = None
            self._readers -= 1
            self._cond.notify_all()

    # =========================================================================
    # Exclusive
    # =========================================================================

    def acquire_write(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._write_depth += 1
                return

            # Escalation waits for every reader but the upgrader itself
            own_share = 1 if self._upgrader == me else 0
            self._writers_waiting += 1
            try:
                while self._writer is not None or self._readers > own_share:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1

            self._writer = me
            self._write_depth = 1

    def release_write(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer != me:
                raise RuntimeError("release_write() by a thread that does not own the lock")
            self._release_nested_write()

    def _release_nested_write(self) -> None:
        # Caller holds self._cond
        self._write_depth -= 1
        if self._write_depth == 0:
            self._writer = None
            self._cond.notify_all()

    # =========================================================================
    # Context managers
    # =========================================================================

    @contextmanager
    def read_lock(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def upgradeable_read_lock(self) -> Iterator[None]:
        self.acquire_upgradeable_read()
        try:
            yield
        finally:
            self.release_upgradeable_read()

    @contextmanager
    def write_lock(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def is_write_locked(self) -> bool:
        with self._cond:
            return self._writer is not None

    @property
    def reader_count(self) -> int:
        with self._cond:
            return self._readers


__all__ = [
    "ReaderWriterLock",
]
