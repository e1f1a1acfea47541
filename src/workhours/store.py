"""Durable per-day aggregate store."""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Callable, Optional

from pydantic import TypeAdapter, ValidationError

from .db import SQLiteKeyValueStore
from .errors import StorageError
from .models import DailyAggregate

logger = logging.getLogger(__name__)

KEY_PREFIX = "daily_stats:"

_AGGREGATE_ADAPTER = TypeAdapter(DailyAggregate)


def storage_key(day_key: str) -> str:
    return f"{KEY_PREFIX}{day_key}"


class DailyAggregateStore:
    """Owns every stored DailyAggregate and is their only mutator.

    Reads decode a fresh object from persistence, so a returned aggregate can
    be modified freely without touching stored state. Writes for the same day
    are serialized by a per-day lock; other days are not blocked.
    """

    def __init__(self, backend: SQLiteKeyValueStore) -> None:
        self._backend = backend
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def get(self, day_key: str) -> Optional[DailyAggregate]:
        payload = self._backend.get(storage_key(day_key))
        if payload is None:
            return None
        return _decode(day_key, payload)

    def get_or_empty(self, day_key: str) -> DailyAggregate:
        return self.get(day_key) or DailyAggregate(day_key=day_key)

    def update(
        self, day_key: str, mutate: Callable[[DailyAggregate], None]
    ) -> DailyAggregate:
        """Apply ``mutate`` to the day's aggregate and persist the result.

        The aggregate is created lazily on first write.
        """
        with self._lock_for(day_key):
            aggregate = self.get_or_empty(day_key)
            mutate(aggregate)
            self._backend.set(storage_key(day_key), _encode(aggregate))
        return aggregate

    def day_keys(self) -> list[str]:
        keys = self._backend.list_keys(KEY_PREFIX)
        return sorted(key[len(KEY_PREFIX):] for key in keys)

    def delete(self, day_key: str) -> None:
        with self._lock_for(day_key):
            self._backend.delete(storage_key(day_key))
        logger.info("Cleared stored aggregate for %s", day_key)

    def delete_all(self) -> int:
        day_keys = self.day_keys()
        for day_key in day_keys:
            self.delete(day_key)
        return len(day_keys)

    def _lock_for(self, day_key: str) -> threading.Lock:
        # Entries live only while some caller holds the lock object.
        with self._locks_guard:
            lock = self._locks.get(day_key)
            if lock is None:
                lock = threading.Lock()
                self._locks[day_key] = lock
            return lock


def _encode(aggregate: DailyAggregate) -> bytes:
    return _AGGREGATE_ADAPTER.dump_json(aggregate)


def _decode(day_key: str, payload: bytes) -> DailyAggregate:
    try:
        return _AGGREGATE_ADAPTER.validate_json(payload)
    except ValidationError as exc:
        raise StorageError(f"Stored aggregate for {day_key} is corrupt") from exc
