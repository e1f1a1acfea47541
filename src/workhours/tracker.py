"""Idle-aware session tracking from editor activity."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .config import TrackerSettings
from .errors import ConfigurationError
from .models import ActivityPing, Session

logger = logging.getLogger(__name__)

SessionSink = Callable[[Session], None]


@dataclass(slots=True)
class TrackerState:
    """The open session while tracking."""

    category: str
    source_id: str
    session_start: datetime
    last_activity: datetime

    def matches(self, category: str, source_id: str) -> bool:
        return self.category == category and self.source_id == source_id


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.astimezone()


class SessionTracker:
    """Turns activity pings, focus changes and heartbeats into sessions.

    The tracker is either idle (``state is None``) or tracking one open
    session. Events are applied one at a time under a lock. A closed session
    is handed to ``sink`` after the transition has been committed, so a sink
    failure propagates to the caller without disturbing tracking.
    """

    def __init__(self, settings: TrackerSettings, sink: Optional[SessionSink]) -> None:
        if sink is None:
            raise ConfigurationError("SessionTracker requires a session sink")
        self.settings = settings
        self._sink = sink
        self._state: Optional[TrackerState] = None
        self._lock = threading.Lock()

    @property
    def is_tracking(self) -> bool:
        with self._lock:
            return self._state is not None

    @property
    def state(self) -> Optional[TrackerState]:
        with self._lock:
            if self._state is None:
                return None
            return TrackerState(
                category=self._state.category,
                source_id=self._state.source_id,
                session_start=self._state.session_start,
                last_activity=self._state.last_activity,
            )

    def record(self, ping: ActivityPing) -> None:
        self.record_ping(ping.category, ping.source_id, ping.timestamp)

    def record_ping(self, category: str, source_id: str, timestamp: datetime) -> None:
        if not category or not source_id:
            self.editor_changed(None, None, timestamp)
            return
        timestamp = _as_aware(timestamp)
        with self._lock:
            current = self._state
            if current is None:
                self._open_locked(category, source_id, timestamp)
                return
            gap = timestamp - current.last_activity
            if current.matches(category, source_id) and gap <= self.settings.idle_timeout:
                if timestamp > current.last_activity:
                    current.last_activity = timestamp
                return
            if gap > self.settings.idle_timeout:
                logger.debug("Idle gap of %s before ping; starting new session.", gap)
            closed = self._close_locked()
            self._open_locked(category, source_id, timestamp)
        self._emit(closed)

    def focus_lost(self) -> None:
        with self._lock:
            closed = self._close_locked()
        self._emit(closed)

    def focus_gained(
        self, category: Optional[str], source_id: Optional[str], timestamp: datetime
    ) -> None:
        if not category or not source_id:
            return
        self._reopen(category, source_id, timestamp)

    def editor_changed(
        self, category: Optional[str], source_id: Optional[str], timestamp: datetime
    ) -> None:
        if not category or not source_id:
            self.focus_lost()
            return
        self._reopen(category, source_id, timestamp)

    def heartbeat(self, now: datetime) -> None:
        now = _as_aware(now)
        with self._lock:
            current = self._state
            if current is None or now - current.last_activity <= self.settings.idle_timeout:
                return
            logger.debug("Idle timeout reached; closing session for %s.", current.source_id)
            closed = self._close_locked()
        self._emit(closed)

    def close(self) -> None:
        """End any open session, as on shutdown."""
        self.focus_lost()

    def provisional_session(self, now: datetime) -> Optional[Session]:
        """The open session as if it ended at ``now``; never recorded."""
        now = _as_aware(now)
        with self._lock:
            current = self._state
            if current is None:
                return None
            end = max(now, current.session_start)
            return Session.from_bounds(
                current.session_start, end, current.category, current.source_id
            )

    def _reopen(self, category: str, source_id: str, timestamp: datetime) -> None:
        timestamp = _as_aware(timestamp)
        with self._lock:
            closed = self._close_locked()
            self._open_locked(category, source_id, timestamp)
        self._emit(closed)

    def _open_locked(self, category: str, source_id: str, timestamp: datetime) -> None:
        self._state = TrackerState(
            category=category,
            source_id=source_id,
            session_start=timestamp,
            last_activity=timestamp,
        )

    def _close_locked(self) -> Optional[Session]:
        current = self._state
        if current is None:
            return None
        self._state = None
        # The session ends at the last observed activity, not at the moment it
        # was closed.
        session = Session.from_bounds(
            current.session_start,
            current.last_activity,
            current.category,
            current.source_id,
        )
        if session.duration_seconds < self.settings.min_session_seconds:
            logger.debug(
                "Discarding %ss session for %s.",
                session.duration_seconds,
                session.source_id,
            )
            return None
        return session

    def _emit(self, session: Optional[Session]) -> None:
        if session is not None:
            self._sink(session)
