"""FastAPI application that receives editor activity and serves work-time reports."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from . import __version__
from .aggregator import merge_category_seconds
from .commits import GitLogReader, aggregate_commit_log, parse_since
from .config import TrackerSettings, parse_day_key
from .db import SQLiteKeyValueStore
from .errors import CommitLogError, ConfigurationError, InvalidInputError, StorageError
from .models import AuthorWorkRecord, DailyAggregate, Session
from .paths import get_db_path
from .reporting import format_duration, language_shares
from .service import WorkHoursService
from .store import DailyAggregateStore

logger = logging.getLogger(__name__)


class PingPayload(BaseModel):
    category: str
    source_id: str
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


class FocusPayload(BaseModel):
    focused: bool
    category: Optional[str] = None
    source_id: Optional[str] = None
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


class EditorPayload(BaseModel):
    category: Optional[str] = None
    source_id: Optional[str] = None
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    service: Optional[WorkHoursService] = None,
) -> FastAPI:
    """Instantiate the FastAPI application.

    The service is started and stopped with the application lifespan.
    """
    if service is None:
        resolved_db_path = Path(db_path or get_db_path())
        backend = SQLiteKeyValueStore(resolved_db_path)
        service = WorkHoursService(DailyAggregateStore(backend), settings=settings)
    tracker_service = service

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        tracker_service.start()
        try:
            yield
        finally:
            tracker_service.stop()

    app = FastAPI(title="Work Hours", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.service = tracker_service

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(ConfigurationError)
    async def _configuration_error(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        svc: WorkHoursService = request.app.state.service
        state = svc.tracker.state
        return {
            "running": svc.is_running(),
            "tracking": state is not None,
            "category": state.category if state else None,
            "source_id": state.source_id if state else None,
            "idle_minutes": svc.settings.idle_timeout.total_seconds() / 60.0,
            "heartbeat_seconds": svc.settings.heartbeat_interval.total_seconds(),
            "min_session_seconds": svc.settings.min_session_seconds,
        }

    @app.post("/api/ping", status_code=204)
    def ping(payload: PingPayload, request: Request) -> None:
        request.app.state.service.record_ping(
            payload.category, payload.source_id, payload.timestamp
        )

    @app.post("/api/focus", status_code=204)
    def focus(payload: FocusPayload, request: Request) -> None:
        request.app.state.service.record_focus_change(
            payload.focused, payload.category, payload.source_id, payload.timestamp
        )

    @app.post("/api/editor", status_code=204)
    def editor(payload: EditorPayload, request: Request) -> None:
        request.app.state.service.editor_changed(
            payload.category, payload.source_id, payload.timestamp
        )

    @app.get("/api/today")
    def today(request: Request) -> Dict[str, Any]:
        return _aggregate_payload(request.app.state.service.get_today_snapshot())

    @app.get("/api/days")
    def list_days(request: Request) -> Dict[str, Any]:
        return {"days": request.app.state.service.get_all_stored_day_keys()}

    @app.get("/api/days/{day_key}")
    def get_day(day_key: str, request: Request) -> Dict[str, Any]:
        day = _parse_date(day_key).isoformat()
        aggregate = request.app.state.service.get_daily_aggregate(day)
        return _aggregate_payload(aggregate, include_sessions=True)

    @app.delete("/api/days/{day_key}", status_code=204)
    def clear_day(day_key: str, request: Request) -> None:
        request.app.state.service.clear_day(_parse_date(day_key).isoformat())

    @app.delete("/api/days")
    def clear_all(request: Request) -> Dict[str, Any]:
        return {"cleared": request.app.state.service.clear_all()}

    @app.get("/api/range")
    def stats_in_range(
        request: Request,
        start: str = Query(description="Start date in YYYY-MM-DD format (inclusive)."),
        end: Optional[str] = Query(
            default=None,
            description="End date in YYYY-MM-DD format (inclusive).",
        ),
    ) -> Dict[str, Any]:
        start_day = _parse_date(start)
        end_day = _parse_date(end) if end else start_day
        if end_day < start_day:
            raise HTTPException(
                status_code=400, detail="end date must be on or after start date"
            )
        aggregates = request.app.state.service.get_stats_in_range(start_day, end_day)
        total = sum(aggregate.total_seconds for aggregate in aggregates)
        return {
            "start": start_day.isoformat(),
            "end": end_day.isoformat(),
            "total_seconds": total,
            "total_display": format_duration(total),
            "days": [_aggregate_payload(aggregate) for aggregate in aggregates],
            "languages": _shares_payload(merge_category_seconds(aggregates)),
        }

    @app.get("/api/commits")
    def commits(
        repo: str = Query(description="Path of the git repository to read."),
        since: Optional[str] = Query(
            default=None,
            description="Only commits on or after this YYYY-MM-DD date.",
        ),
    ) -> Dict[str, Any]:
        try:
            since_day = parse_since(since)
            records = GitLogReader(Path(repo)).read(since=since_day)
        except InvalidInputError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CommitLogError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        tz = tracker_service.settings.tzinfo
        authors = aggregate_commit_log(records, tz=tz)
        return {
            "since": since_day.isoformat() if since_day else None,
            "total_hours": sum(author.total_hours for author in authors),
            "authors": [_author_payload(author) for author in authors],
        }

    return app


def _parse_date(value: str) -> date:
    try:
        return parse_day_key(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc


def _shares_payload(per_category: Any) -> list[Dict[str, Any]]:
    return [
        {
            "category": share.category,
            "display_name": share.display_name,
            "seconds": share.seconds,
            "percentage": share.percentage,
        }
        for share in language_shares(per_category)
    ]


def _session_payload(session: Session) -> Dict[str, Any]:
    return {
        "start_time": session.start_time.isoformat(),
        "end_time": session.end_time.isoformat(),
        "category": session.category,
        "source_id": session.source_id,
        "duration_seconds": session.duration_seconds,
    }


def _aggregate_payload(
    aggregate: DailyAggregate, *, include_sessions: bool = False
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "date": aggregate.day_key,
        "total_seconds": aggregate.total_seconds,
        "total_display": format_duration(aggregate.total_seconds),
        "per_category_seconds": dict(aggregate.per_category_seconds),
        "languages": _shares_payload(aggregate),
    }
    if include_sessions:
        payload["sessions"] = [_session_payload(s) for s in aggregate.sessions]
    return payload


def _author_payload(record: AuthorWorkRecord) -> Dict[str, Any]:
    return {
        "author": record.author,
        "commits": record.commit_count,
        "total_hours": record.total_hours,
        "daily_work": [
            {
                "day": day.day_key,
                "first_commit": day.first_timestamp.isoformat(),
                "last_commit": day.last_timestamp.isoformat(),
                "hours": day.hours,
                "commits": [
                    {
                        "id": commit.short_id,
                        "timestamp": commit.timestamp.isoformat() if commit.timestamp else None,
                        "message": commit.message,
                    }
                    for commit in day.commits
                ],
            }
            for day in record.daily_work
        ],
    }
