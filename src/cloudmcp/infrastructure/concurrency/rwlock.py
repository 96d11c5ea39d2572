# src/cloudmcp/infrastructure/concurrency/rwlock.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Reader-preferred read/write lock.

Readers share the lock and are admitted whenever no writer holds it, even
if a writer is waiting. Writers are exclusive. The lock is not reentrant:
code holding the write side must not take the read side.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

__all__ = ["ReaderPreferredLock"]


class ReaderPreferredLock:
    """Many-reader, single-writer lock built on :class:`threading.Condition`."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock in shared mode for the duration of the block."""
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()
