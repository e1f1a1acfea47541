"""Tracker service: wires the session tracker, aggregator and heartbeat."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Callable, Optional

from .aggregator import AggregateListener, IntervalAggregator
from .config import TrackerSettings
from .errors import ConfigurationError
from .models import DailyAggregate
from .store import DailyAggregateStore
from .tracker import SessionTracker

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now().astimezone()


class WorkHoursService:
    """Explicitly constructed tracking service with a start/stop lifecycle.

    ``start()`` launches the heartbeat thread; ``stop()`` cancels it and flushes
    the open session. Use as a context manager to guarantee teardown.
    """

    def __init__(
        self,
        store: Optional[DailyAggregateStore],
        settings: Optional[TrackerSettings] = None,
        clock: Clock = system_clock,
    ) -> None:
        if store is None:
            raise ConfigurationError("WorkHoursService requires a DailyAggregateStore")
        self.settings = settings or TrackerSettings()
        self.clock = clock
        self.aggregator = IntervalAggregator(store, self.settings)
        self.tracker = SessionTracker(self.settings, self.aggregator.record_session)
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def __enter__(self) -> "WorkHoursService":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run_heartbeat,
                args=(stop_event,),
                name="workhours-heartbeat",
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
        logger.info("Heartbeat started every %s.", self.settings.heartbeat_interval)

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if self._stop_event is not None:
                self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        try:
            if thread is not None:
                thread.join(timeout=10)
                logger.info("Heartbeat stopped.")
        finally:
            self.tracker.close()

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def record_ping(
        self, category: str, source_id: str, timestamp: Optional[datetime] = None
    ) -> None:
        self._ensure_running()
        self.tracker.record_ping(category, source_id, timestamp or self.clock())

    def record_focus_change(
        self,
        focused: bool,
        category: Optional[str] = None,
        source_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        self._ensure_running()
        if not focused:
            self.tracker.focus_lost()
            return
        self.tracker.focus_gained(category, source_id, timestamp or self.clock())

    def editor_changed(
        self,
        category: Optional[str],
        source_id: Optional[str],
        timestamp: Optional[datetime] = None,
    ) -> None:
        self._ensure_running()
        self.tracker.editor_changed(category, source_id, timestamp or self.clock())

    def heartbeat_tick(self, now: Optional[datetime] = None) -> None:
        self.tracker.heartbeat(now or self.clock())

    def get_today_snapshot(self, now: Optional[datetime] = None) -> DailyAggregate:
        now = now or self.clock()
        # Stored totals are read before the open session so a session closed
        # in between is never counted twice.
        stored = self.aggregator.get_daily_aggregate(self.settings.day_key(now))
        return self.aggregator.add_open_session(
            stored, now, self.tracker.provisional_session(now)
        )

    def get_daily_aggregate(self, day_key: str) -> DailyAggregate:
        return self.aggregator.get_daily_aggregate(day_key)

    def get_stats_in_range(self, start: date, end: date) -> list[DailyAggregate]:
        return self.aggregator.get_stats_in_range(start, end)

    def get_all_stored_day_keys(self) -> list[str]:
        return self.aggregator.get_all_stored_day_keys()

    def clear_day(self, day_key: str) -> None:
        self.aggregator.clear_day(day_key)

    def clear_all(self) -> int:
        return self.aggregator.clear_all()

    def subscribe(self, listener: AggregateListener) -> Callable[[], None]:
        return self.aggregator.subscribe(listener)

    def unsubscribe(self, listener: AggregateListener) -> None:
        self.aggregator.unsubscribe(listener)

    def _ensure_running(self) -> None:
        if not self.is_running():
            raise ConfigurationError("WorkHoursService has not been started")

    def _run_heartbeat(self, stop_event: threading.Event) -> None:
        interval = self.settings.heartbeat_interval.total_seconds()
        # Sleep in an interruptible manner.
        while not stop_event.wait(interval):
            try:
                self.heartbeat_tick()
            except Exception:
                logger.exception("Heartbeat tick failed; tracking continues.")
