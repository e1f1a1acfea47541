"""Day-bucketed aggregation of tracked sessions."""

from __future__ import annotations

import copy
import logging
import threading
from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Iterable, Optional

from .config import TrackerSettings, parse_day_key
from .models import DailyAggregate, Session
from .store import DailyAggregateStore

logger = logging.getLogger(__name__)

AggregateListener = Callable[[DailyAggregate], None]


class IntervalAggregator:
    """Folds closed sessions into the daily aggregate store."""

    def __init__(self, store: DailyAggregateStore, settings: TrackerSettings) -> None:
        self.store = store
        self.settings = settings
        self._listeners: list[AggregateListener] = []
        self._listeners_lock = threading.Lock()

    def record_session(self, session: Session) -> DailyAggregate:
        # A session crossing midnight is attributed entirely to its start day.
        day_key = self.settings.day_key(session.start_time)
        aggregate = self.store.update(day_key, lambda agg: agg.add_session(session))
        logger.info(
            "Session recorded: %s %s (%ss) on %s",
            session.category,
            session.source_id,
            session.duration_seconds,
            day_key,
        )
        self._notify(aggregate)
        return aggregate

    def get_daily_aggregate(self, day_key: str) -> DailyAggregate:
        return self.store.get_or_empty(day_key)

    def get_today_snapshot(
        self, now: datetime, open_session: Optional[Session] = None
    ) -> DailyAggregate:
        """Return today's aggregate plus the provisional time of an open session.

        The provisional part only exists on the returned copy.
        """
        return self.add_open_session(
            self.store.get_or_empty(self.settings.day_key(now)), now, open_session
        )

    def add_open_session(
        self,
        snapshot: DailyAggregate,
        now: datetime,
        open_session: Optional[Session],
    ) -> DailyAggregate:
        """Add an open session to an already read copy of today's aggregate."""
        today = self.settings.day_key(now)
        if (
            open_session is not None
            and open_session.duration_seconds >= self.settings.min_session_seconds
            and self.settings.day_key(open_session.start_time) == today
        ):
            snapshot.total_seconds += open_session.duration_seconds
            snapshot.per_category_seconds[open_session.category] = (
                snapshot.per_category_seconds.get(open_session.category, 0)
                + open_session.duration_seconds
            )
        return snapshot

    def get_stats_in_range(self, start: date, end: date) -> list[DailyAggregate]:
        """Aggregates for every day in [start, end] that recorded any time."""
        results: list[DailyAggregate] = []
        for day_key in self.store.day_keys():
            try:
                day = parse_day_key(day_key)
            except ValueError:
                logger.warning("Ignoring stored aggregate with bad day key %r.", day_key)
                continue
            if not start <= day <= end:
                continue
            aggregate = self.store.get(day_key)
            if aggregate is not None and aggregate.total_seconds > 0:
                results.append(aggregate)
        return results

    def get_all_stored_day_keys(self) -> list[str]:
        return self.store.day_keys()

    def clear_day(self, day_key: str) -> None:
        self.store.delete(day_key)

    def clear_all(self) -> int:
        count = self.store.delete_all()
        logger.info("Cleared %d stored days.", count)
        return count

    def subscribe(self, listener: AggregateListener) -> Callable[[], None]:
        with self._listeners_lock:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: AggregateListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, aggregate: DailyAggregate) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(copy.deepcopy(aggregate))
            except Exception:
                logger.exception("Aggregate listener %r failed.", listener)


def merge_category_seconds(aggregates: Iterable[DailyAggregate]) -> dict[str, int]:
    """Sum per-category seconds across several days."""
    totals: defaultdict[str, int] = defaultdict(int)
    for aggregate in aggregates:
        for category, seconds in aggregate.per_category_seconds.items():
            totals[category] += seconds
    return dict(totals)
