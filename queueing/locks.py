"""
Keyed critical sections for queue writes.

Row locks (``select_for_update``) serialize writers across processes on
MySQL/PostgreSQL but are a no-op on SQLite.  The in-process lock taken
here serializes writers within one process regardless of the backend;
callers take it *outside* ``transaction.atomic()`` so the lock is only
released after commit.
"""
from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Hashable, Iterator


class _KeyLock:
    __slots__ = ('lock', '__weakref__')

    def __init__(self) -> None:
        self.lock = threading.Lock()


_registry_lock = threading.Lock()
# An entry lives only while some caller holds a reference to its lock.
_locks: "weakref.WeakValueDictionary[Hashable, _KeyLock]" = weakref.WeakValueDictionary()


def _lock_for(key: Hashable) -> _KeyLock:
    with _registry_lock:
        holder = _locks.get(key)
        if holder is None:
            holder = _KeyLock()
            _locks[key] = holder
        return holder


@contextmanager
def critical_section(key: Hashable) -> Iterator[None]:
    holder = _lock_for(key)
    with holder.lock:
        yield


def day_key(doctor_id, service_date) -> tuple:
    return ('day', doctor_id, service_date.isoformat())


def doctor_key(doctor_id) -> tuple:
    return ('doctor', doctor_id)
