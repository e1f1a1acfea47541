"""Configuration models and helpers for the work-hours tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigurationError


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for the session tracker."""

    idle_timeout: timedelta = timedelta(minutes=5)
    heartbeat_interval: timedelta = timedelta(seconds=30)
    min_session_seconds: int = 10
    # IANA zone used to derive day keys; None means the machine's local zone.
    timezone: Optional[str] = None

    def __post_init__(self) -> None:
        if self.idle_timeout <= timedelta(0):
            raise ConfigurationError("idle_timeout must be positive")
        if self.heartbeat_interval <= timedelta(0):
            raise ConfigurationError("heartbeat_interval must be positive")
        if self.min_session_seconds < 0:
            raise ConfigurationError("min_session_seconds must not be negative")
        if self.timezone is not None:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ConfigurationError(f"Unknown timezone: {self.timezone}") from exc

    @classmethod
    def from_intervals(
        cls,
        idle_minutes: float,
        heartbeat_seconds: float | None = None,
        min_session_seconds: int | None = None,
        timezone: str | None = None,
    ) -> "TrackerSettings":
        heartbeat = heartbeat_seconds if heartbeat_seconds is not None else 30.0
        minimum = min_session_seconds if min_session_seconds is not None else 10
        return cls(
            idle_timeout=timedelta(minutes=idle_minutes),
            heartbeat_interval=timedelta(seconds=heartbeat),
            min_session_seconds=minimum,
            timezone=timezone,
        )

    @property
    def tzinfo(self) -> Optional[tzinfo]:
        return ZoneInfo(self.timezone) if self.timezone else None

    def day_key(self, instant: datetime) -> str:
        """Return the YYYY-MM-DD bucket for an instant.

        Naive datetimes are interpreted as machine local time.
        """
        return instant.astimezone(self.tzinfo).date().isoformat()


def parse_day_key(value: str) -> date:
    """Validate a YYYY-MM-DD day key and return it as a date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError(f"Invalid date {value!r}; expected YYYY-MM-DD") from exc
