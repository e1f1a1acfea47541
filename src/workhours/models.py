"""Domain models for tracked work time."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(slots=True, frozen=True)
class ActivityPing:
    """An edit observed in a document at a point in time."""

    category: str
    source_id: str
    timestamp: datetime


@dataclass(slots=True, frozen=True)
class Session:
    """A contiguous block of inferred work on one category and source."""

    start_time: datetime
    end_time: datetime
    category: str
    source_id: str
    duration_seconds: int

    @classmethod
    def from_bounds(
        cls, start_time: datetime, end_time: datetime, category: str, source_id: str
    ) -> "Session":
        elapsed = (end_time - start_time).total_seconds()
        return cls(
            start_time=start_time,
            end_time=end_time,
            category=category,
            source_id=source_id,
            duration_seconds=max(int(math.floor(elapsed)), 0),
        )


@dataclass(slots=True)
class DailyAggregate:
    """Accumulated work time for one calendar day."""

    day_key: str
    total_seconds: int = 0
    per_category_seconds: dict[str, int] = field(default_factory=dict)
    sessions: list[Session] = field(default_factory=list)

    def add_session(self, session: Session) -> None:
        self.total_seconds += session.duration_seconds
        self.per_category_seconds[session.category] = (
            self.per_category_seconds.get(session.category, 0)
            + session.duration_seconds
        )
        self.sessions.append(session)


@dataclass(slots=True, frozen=True)
class CommitRecord:
    """A commit as reported by the version-control history."""

    author: Optional[str]
    timestamp: Optional[datetime]
    message: str = ""
    id: str = ""

    @property
    def short_id(self) -> str:
        return self.id[:7]


@dataclass(slots=True)
class DayWorkRecord:
    """Elapsed time between an author's first and last commit of a day."""

    day_key: str
    first_timestamp: datetime
    last_timestamp: datetime
    commits: list[CommitRecord]

    @property
    def hours(self) -> float:
        return (self.last_timestamp - self.first_timestamp).total_seconds() / 3600


@dataclass(slots=True)
class AuthorWorkRecord:
    """An author's commits and the per-day work derived from them."""

    author: str
    commits: list[CommitRecord] = field(default_factory=list)
    daily_work: list[DayWorkRecord] = field(default_factory=list)

    @property
    def commit_count(self) -> int:
        return len(self.commits)

    @property
    def total_hours(self) -> float:
        return sum(day.hours for day in self.daily_work)


@dataclass(slots=True, frozen=True)
class LanguageShare:
    category: str
    display_name: str
    seconds: int
    percentage: float
