"""Work hours inferred from commit history."""

from __future__ import annotations

import logging
import subprocess
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import Iterable, Optional

from .errors import CommitLogError, InvalidInputError
from .models import AuthorWorkRecord, CommitRecord, DayWorkRecord

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"%H{_FIELD_SEP}%an{_FIELD_SEP}%aI{_FIELD_SEP}%s{_RECORD_SEP}"


def parse_since(value: Optional[str]) -> Optional[date]:
    """Parse an optional YYYY-MM-DD lower bound."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidInputError(f"Invalid since date {value!r}; expected YYYY-MM-DD") from exc


def _validate(commit: CommitRecord) -> tuple[str, datetime]:
    if not commit.author:
        raise InvalidInputError(f"Commit {commit.id or '?'} has no author")
    if commit.timestamp is None:
        raise InvalidInputError(f"Commit {commit.id or '?'} has no timestamp")
    timestamp = commit.timestamp
    if timestamp.tzinfo is None:
        timestamp = timestamp.astimezone()
    return commit.author, timestamp


def aggregate_commit_log(
    commits: Iterable[CommitRecord], tz: Optional[tzinfo] = None
) -> list[AuthorWorkRecord]:
    """Group commits per author and day and measure first-to-last spans.

    A day with a single commit counts as zero hours: elapsed time needs two
    observations. Malformed records are skipped.
    """
    by_author: dict[str, list[tuple[datetime, CommitRecord]]] = {}
    for commit in commits:
        try:
            author, timestamp = _validate(commit)
        except InvalidInputError as exc:
            logger.warning("Skipping commit: %s", exc)
            continue
        by_author.setdefault(author, []).append((timestamp, commit))

    records: list[AuthorWorkRecord] = []
    for author, entries in by_author.items():
        entries.sort(key=lambda item: item[0])
        days: dict[str, list[tuple[datetime, CommitRecord]]] = {}
        for timestamp, commit in entries:
            day_key = timestamp.astimezone(tz).date().isoformat()
            days.setdefault(day_key, []).append((timestamp, commit))

        daily_work = [
            DayWorkRecord(
                day_key=day_key,
                first_timestamp=day_entries[0][0],
                last_timestamp=day_entries[-1][0],
                commits=[commit for _, commit in day_entries],
            )
            for day_key, day_entries in days.items()
        ]
        daily_work.sort(key=lambda day: day.first_timestamp)
        records.append(
            AuthorWorkRecord(
                author=author,
                commits=[commit for _, commit in entries],
                daily_work=daily_work,
            )
        )
    return records


def parse_git_log(output: str) -> list[CommitRecord]:
    """Parse ``git log`` output produced with the reader's pretty format."""
    commits: list[CommitRecord] = []
    for chunk in output.split(_RECORD_SEP):
        chunk = chunk.strip("\n")
        if not chunk:
            continue
        try:
            commits.append(_parse_record(chunk))
        except InvalidInputError as exc:
            logger.warning("Skipping git log entry: %s", exc)
    return commits


def _parse_record(chunk: str) -> CommitRecord:
    parts = chunk.split(_FIELD_SEP)
    if len(parts) != 4:
        raise InvalidInputError(f"Unexpected field count in {chunk[:40]!r}")
    sha, author, raw_timestamp, message = parts
    try:
        timestamp = datetime.fromisoformat(raw_timestamp.replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidInputError(f"Bad timestamp {raw_timestamp!r} for {sha[:7]}") from exc
    return CommitRecord(
        author=author.strip() or None,
        timestamp=timestamp,
        message=message,
        id=sha,
    )


class GitLogReader:
    """Reads commit records from a local git repository."""

    def __init__(self, path: Path, timeout: float = 30.0) -> None:
        self.path = Path(path).resolve()
        self.timeout = timeout

    def read(self, since: Optional[date] = None) -> list[CommitRecord]:
        args = ["log", f"--pretty=format:{_LOG_FORMAT}"]
        if since is not None:
            args.append(f"--after={since.isoformat()} 00:00:00")
        return parse_git_log(self._run_git(*args))

    def _run_git(self, *args: str) -> str:
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise CommitLogError(f"Cannot run git in {self.path}") from exc
        except subprocess.TimeoutExpired as exc:
            raise CommitLogError(f"git log timed out in {self.path}") from exc
        if result.returncode != 0:
            raise CommitLogError(
                f"git log failed in {self.path}: {result.stderr.strip()}"
            )
        return result.stdout
