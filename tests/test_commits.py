"""Tests for commit-log work hours."""

import subprocess
from datetime import date, datetime, timedelta, timezone

import pytest

from workhours.commits import (
    GitLogReader,
    aggregate_commit_log,
    parse_git_log,
    parse_since,
)
from workhours.errors import CommitLogError, InvalidInputError
from workhours.models import CommitRecord

UTC = timezone.utc
DAY_ONE = datetime(2025, 3, 3, 9, 0, tzinfo=UTC)


def commit(author, when, message="work"):
    return CommitRecord(
        author=author, timestamp=when, message=message, id=f"{author}-{when:%d%H%M}"
    )


def log_line(sha, author, iso, subject):
    return f"{sha}\x1f{author}\x1f{iso}\x1f{subject}\x1e"


class TestAggregateCommitLog:
    def test_single_commit_day_counts_zero_hours(self):
        records = aggregate_commit_log([commit("ana", DAY_ONE)], tz=UTC)

        assert len(records) == 1
        assert records[0].daily_work[0].hours == 0
        assert records[0].total_hours == 0

    def test_two_commits_ninety_minutes_apart(self):
        records = aggregate_commit_log(
            [commit("ana", DAY_ONE), commit("ana", DAY_ONE + timedelta(minutes=90))],
            tz=UTC,
        )

        day = records[0].daily_work[0]
        assert day.hours == pytest.approx(1.5)
        assert day.first_timestamp == DAY_ONE
        assert day.last_timestamp == DAY_ONE + timedelta(minutes=90)

    def test_days_split_and_sum_into_total(self):
        day_two = DAY_ONE + timedelta(days=1)
        records = aggregate_commit_log(
            [
                commit("ana", day_two + timedelta(hours=3)),
                commit("ana", DAY_ONE + timedelta(hours=2)),
                commit("ana", day_two),
                commit("ana", DAY_ONE),
            ],
            tz=UTC,
        )

        daily = records[0].daily_work
        assert [d.day_key for d in daily] == ["2025-03-03", "2025-03-04"]
        assert [d.hours for d in daily] == [pytest.approx(2.0), pytest.approx(3.0)]
        assert records[0].total_hours == pytest.approx(5.0)

    def test_commits_within_day_are_chronological(self):
        late = commit("ana", DAY_ONE + timedelta(hours=4), "late")
        early = commit("ana", DAY_ONE, "early")
        middle = commit("ana", DAY_ONE + timedelta(hours=1), "middle")

        records = aggregate_commit_log([late, early, middle], tz=UTC)

        assert [c.message for c in records[0].daily_work[0].commits] == [
            "early",
            "middle",
            "late",
        ]
        assert [c.message for c in records[0].commits] == ["early", "middle", "late"]

    def test_authors_keep_first_seen_order(self):
        records = aggregate_commit_log(
            [
                commit("zoe", DAY_ONE + timedelta(hours=5)),
                commit("ana", DAY_ONE),
                commit("zoe", DAY_ONE),
            ],
            tz=UTC,
        )

        assert [r.author for r in records] == ["zoe", "ana"]
        assert records[0].commit_count == 2
        assert records[0].total_hours == pytest.approx(5.0)

    def test_day_boundary_follows_timezone(self):
        late_evening = datetime(2025, 3, 3, 23, 30, tzinfo=UTC)
        after_midnight = late_evening + timedelta(hours=1)
        plus_two = timezone(timedelta(hours=2))

        in_utc = aggregate_commit_log(
            [commit("ana", late_evening), commit("ana", after_midnight)], tz=UTC
        )
        shifted = aggregate_commit_log(
            [commit("ana", late_evening), commit("ana", after_midnight)], tz=plus_two
        )

        assert len(in_utc[0].daily_work) == 2
        assert in_utc[0].total_hours == 0
        assert len(shifted[0].daily_work) == 1
        assert shifted[0].daily_work[0].day_key == "2025-03-04"
        assert shifted[0].total_hours == pytest.approx(1.0)

    def test_malformed_records_are_skipped(self, caplog):
        records = aggregate_commit_log(
            [
                CommitRecord(author=None, timestamp=DAY_ONE, id="noauthor"),
                CommitRecord(author="ana", timestamp=None, id="notime"),
                commit("ana", DAY_ONE),
                commit("ana", DAY_ONE + timedelta(hours=1)),
            ],
            tz=UTC,
        )

        assert [r.author for r in records] == ["ana"]
        assert records[0].commit_count == 2
        assert "noauthor" in caplog.text
        assert "notime" in caplog.text

    def test_empty_log(self):
        assert aggregate_commit_log([]) == []


class TestParseGitLog:
    def test_parses_records(self):
        output = log_line(
            "a" * 40, "Ana", "2025-03-03T09:00:00+00:00", "Add parser"
        ) + "\n" + log_line("b" * 40, "Bo", "2025-03-03T10:30:00Z", "Fix tests")

        commits = parse_git_log(output)

        assert [c.author for c in commits] == ["Ana", "Bo"]
        assert commits[0].timestamp == DAY_ONE
        assert commits[1].timestamp == datetime(2025, 3, 3, 10, 30, tzinfo=UTC)
        assert commits[0].short_id == "aaaaaaa"
        assert commits[1].message == "Fix tests"

    def test_skips_unparsable_entries(self):
        output = (
            log_line("a" * 40, "Ana", "yesterday", "bad time")
            + "garbage without separators\x1e"
            + log_line("c" * 40, "Cy", "2025-03-03T09:00:00+00:00", "ok")
        )

        commits = parse_git_log(output)

        assert [c.id for c in commits] == ["c" * 40]

    def test_blank_author_becomes_missing(self):
        commits = parse_git_log(log_line("d" * 40, "  ", "2025-03-03T09:00:00+00:00", "x"))
        assert commits[0].author is None

    def test_empty_output(self):
        assert parse_git_log("") == []


class TestParseSince:
    def test_none_and_empty(self):
        assert parse_since(None) is None
        assert parse_since("") is None

    def test_valid_date(self):
        assert parse_since("2025-01-31") == date(2025, 1, 31)

    def test_invalid_date(self):
        with pytest.raises(InvalidInputError):
            parse_since("31/01/2025")


class TestGitLogReader:
    def test_passes_since_bound_to_git(self, monkeypatch, tmp_path):
        calls = []

        def fake_run(args, **kwargs):
            calls.append((args, kwargs))
            return subprocess.CompletedProcess(
                args,
                0,
                stdout=log_line("e" * 40, "Ana", "2025-03-03T09:00:00+00:00", "hi"),
                stderr="",
            )

        monkeypatch.setattr(subprocess, "run", fake_run)

        commits = GitLogReader(tmp_path).read(since=date(2025, 3, 1))

        args, kwargs = calls[0]
        assert args[:2] == ["git", "log"]
        assert "--after=2025-03-01 00:00:00" in args
        assert kwargs["cwd"] == tmp_path.resolve()
        assert [c.author for c in commits] == ["Ana"]

    def test_without_since_reads_everything(self, monkeypatch, tmp_path):
        calls = []

        def fake_run(args, **kwargs):
            calls.append(args)
            return subprocess.CompletedProcess(args, 0, stdout="", stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)

        assert GitLogReader(tmp_path).read() == []
        assert not any(arg.startswith("--after") for arg in calls[0])

    def test_git_failure_raises(self, monkeypatch, tmp_path):
        def fake_run(args, **kwargs):
            return subprocess.CompletedProcess(
                args, 128, stdout="", stderr="fatal: not a git repository"
            )

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(CommitLogError, match="not a git repository"):
            GitLogReader(tmp_path).read()

    def test_missing_git_raises(self, monkeypatch, tmp_path):
        def fake_run(args, **kwargs):
            raise FileNotFoundError("git")

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(CommitLogError):
            GitLogReader(tmp_path).read()
