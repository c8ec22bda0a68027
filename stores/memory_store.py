"""
In-memory record store for single-process deployments.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .base import RecordStore
from .record import Record


class _ReadWriteLock:
    """
    Many readers or one writer.

    A waiting writer blocks new readers, so a steady stream of reads cannot
    starve writes.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
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
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class InMemoryRecordStore(RecordStore):
    """
    Thread-safe in-memory record store.

    Suitable for single-process deployments and testing.
    Data is lost on restart.
    """

    def __init__(self) -> None:
        self._lock = _ReadWriteLock()
        self._records: Dict[str, Record] = {}

    def list(self) -> List[Record]:
        with self._lock.read_locked():
            return list(self._records.values())

    def get(self, name: str) -> Optional[Record]:
        with self._lock.read_locked():
            return self._records.get(name)

    def put(self, record: Record) -> None:
        with self._lock.write_locked():
            self._records[record.name] = record

    def delete(self, name: str) -> None:
        with self._lock.write_locked():
            self._records.pop(name, None)

    def ping(self) -> bool:
        return True
