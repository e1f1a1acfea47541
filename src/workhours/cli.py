"""Command-line interface for the work-hours tracker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer

from .config import TrackerSettings, parse_day_key
from .errors import ConfigurationError, WorkHoursError
from .paths import get_db_path

app = typer.Typer(help="Work hours from editor activity and commit history.")

DB_OPTION_HELP = "Location of the work-hours SQLite database."


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _open_service(db_path: Optional[Path]):
    from .db import SQLiteKeyValueStore
    from .service import WorkHoursService
    from .store import DailyAggregateStore

    try:
        backend = SQLiteKeyValueStore(db_path or get_db_path())
    except WorkHoursError as exc:
        _fail(exc)
    return WorkHoursService(DailyAggregateStore(backend))


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


def _parse_date_option(value: str) -> str:
    try:
        return parse_day_key(value).isoformat()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help=DB_OPTION_HELP
    ),
    idle_minutes: float = typer.Option(
        5.0,
        "--idle-timeout",
        min=0.5,
        help="Minutes without activity before a session is closed.",
    ),
    heartbeat_seconds: float = typer.Option(
        30.0,
        "--heartbeat",
        min=1.0,
        help="Seconds between idle checks.",
    ),
    min_session_seconds: int = typer.Option(
        10,
        "--min-session",
        min=0,
        help="Sessions shorter than this many seconds are discarded.",
    ),
    timezone: Optional[str] = typer.Option(
        None,
        "--timezone",
        help="IANA timezone used for day boundaries (defaults to local time).",
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", path_type=Path, help="Write logs to this file."
    ),
) -> None:
    """Run the local tracking service that editors send activity to."""
    from .server_runner import run_server

    try:
        settings = TrackerSettings.from_intervals(
            idle_minutes=idle_minutes,
            heartbeat_seconds=heartbeat_seconds,
            min_session_seconds=min_session_seconds,
            timezone=timezone,
        )
    except ConfigurationError as exc:
        _fail(exc)
    run_server(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=settings,
        log_file=log_file,
    )


@app.command()
def summary(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help=DB_OPTION_HELP
    ),
) -> None:
    """Print worked time and language shares for one day."""
    from .reporting import SummaryPrinter

    service = _open_service(db_path)
    try:
        if date:
            aggregate = service.get_daily_aggregate(_parse_date_option(date))
        else:
            aggregate = service.get_today_snapshot()
    except WorkHoursError as exc:
        _fail(exc)
    SummaryPrinter().print_daily_summary(aggregate)


@app.command("range")
def range_summary(
    start: str = typer.Option(..., "--start", help="First date (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(
        None, "--end", help="Last date (YYYY-MM-DD). Defaults to the start date."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help=DB_OPTION_HELP
    ),
) -> None:
    """Print worked time for every day in a date range."""
    from .reporting import SummaryPrinter

    start_day = parse_day_key(_parse_date_option(start))
    end_day = parse_day_key(_parse_date_option(end)) if end else start_day
    if end_day < start_day:
        raise typer.BadParameter("end date must be on or after start date")

    service = _open_service(db_path)
    try:
        aggregates = service.get_stats_in_range(start_day, end_day)
    except WorkHoursError as exc:
        _fail(exc)
    SummaryPrinter().print_range_summary(
        start_day.isoformat(), end_day.isoformat(), aggregates
    )


@app.command()
def days(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help=DB_OPTION_HELP
    ),
) -> None:
    """List every day that has recorded work."""
    service = _open_service(db_path)
    try:
        day_keys = service.get_all_stored_day_keys()
    except WorkHoursError as exc:
        _fail(exc)
    if not day_keys:
        typer.echo("No days recorded.")
        return
    for day_key in day_keys:
        typer.echo(day_key)


@app.command()
def clear(
    date: Optional[str] = typer.Option(None, "--date", help="Day (YYYY-MM-DD) to clear."),
    clear_all: bool = typer.Option(False, "--all", help="Clear every stored day."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help=DB_OPTION_HELP
    ),
) -> None:
    """Delete stored work time for one day or for all days."""
    if bool(date) == clear_all:
        raise typer.BadParameter("pass exactly one of --date or --all")
    day_key = _parse_date_option(date) if date else None

    target = day_key or "ALL stored days"
    if not yes and not typer.confirm(f"Clear {target}?"):
        raise typer.Abort()

    service = _open_service(db_path)
    try:
        if day_key:
            service.clear_day(day_key)
            typer.echo(f"Cleared {day_key}.")
        else:
            count = service.clear_all()
            typer.echo(f"Cleared {count} days.")
    except WorkHoursError as exc:
        _fail(exc)


@app.command()
def commits(
    repo: Path = typer.Option(
        Path("."), "--repo", path_type=Path, help="Git repository to read."
    ),
    since: Optional[str] = typer.Option(
        None,
        "--since",
        help="Only count commits on or after this date (YYYY-MM-DD).",
    ),
    timezone: Optional[str] = typer.Option(
        None,
        "--timezone",
        help="IANA timezone used for day boundaries (defaults to local time).",
    ),
) -> None:
    """Estimate hours per author from first and last commit of each day."""
    from .commits import GitLogReader, aggregate_commit_log, parse_since
    from .reporting import SummaryPrinter

    try:
        settings = TrackerSettings(timezone=timezone)
        records = GitLogReader(repo).read(since=parse_since(since))
    except WorkHoursError as exc:
        _fail(exc)
    authors = aggregate_commit_log(records, tz=settings.tzinfo)
    SummaryPrinter().print_commit_report(authors)
    if authors:
        total = sum(author.total_hours for author in authors)
        typer.echo(f"Total: {total:.2f} hours")
