"""
locks.py
--------
Mutual exclusion for the booking commit (check capacity, then insert).

The lock key is (business, date). That is coarser than a single slot on
purpose: bookings with different start times can still overlap, and an
"any staff" booking only learns its staff member inside the lock.

Two layers:
1) an in-process lock per key, so threads of one worker serialize without
   touching the database. Entries are reference counted and dropped once no
   caller holds or waits on them;
2) on PostgreSQL, a transaction-scoped advisory lock on the same key, so
   separate worker processes serialize too. It is released automatically at
   commit/rollback.

SQLite has no cross-process lock here. Two processes writing at once get
"database is locked", which is reported as ConflictError so the caller
re-fetches slots; run multiple workers on PostgreSQL.
"""

import threading
import zlib
from contextlib import contextmanager

from django.db import OperationalError, connection, transaction

from ..exceptions import ConflictError

_registry_lock = threading.Lock()
# key -> [lock, number of callers holding or waiting]
_key_locks = {}


def _acquire_entry(key):
    with _registry_lock:
        entry = _key_locks.get(key)
        if entry is None:
            entry = _key_locks[key] = [threading.Lock(), 0]
        entry[1] += 1
        return entry[0]


def _release_entry(key):
    with _registry_lock:
        entry = _key_locks[key]
        entry[1] -= 1
        if entry[1] == 0:
            del _key_locks[key]


@contextmanager
def _local_lock(key):
    lock = _acquire_entry(key)
    try:
        with lock:
            yield
    finally:
        _release_entry(key)


def advisory_key(business_id, day) -> int:
    """Stable signed 32-bit key for pg_advisory_xact_lock."""
    raw = zlib.crc32(f"booking:{business_id}:{day.isoformat()}".encode("utf-8"))
    return raw - (1 << 32) if raw >= (1 << 31) else raw


@contextmanager
def booking_slot_lock(business_id, day):
    """
    Hold the (business, date) lock and an open transaction for the body.
    Everything inside commits or rolls back as one unit.
    """
    with _local_lock((business_id, day)):
        try:
            with transaction.atomic():
                if connection.vendor == "postgresql":
                    with connection.cursor() as cursor:
                        cursor.execute("SELECT pg_advisory_xact_lock(%s)", [advisory_key(business_id, day)])
                yield
        except OperationalError as exc:
            if connection.vendor == "sqlite" and "locked" in str(exc):
                raise ConflictError("Calendar is busy, try again.") from exc
            raise
