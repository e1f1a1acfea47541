"""Tests for shares, duration formatting and console summaries."""

from datetime import datetime, timedelta, timezone

import pytest

from workhours.commits import aggregate_commit_log
from workhours.languages import display_name
from workhours.models import CommitRecord, DailyAggregate
from workhours.reporting import SummaryPrinter, format_duration, language_shares


class TestDisplayName:
    def test_known_language(self):
        assert display_name("typescriptreact") == "TypeScript React"
        assert display_name("csharp") == "C#"

    def test_unknown_language_falls_back_to_id(self):
        assert display_name("zig") == "zig"

    def test_missing_language(self):
        assert display_name("") == "Unknown"
        assert display_name(None) == "Unknown"


class TestLanguageShares:
    def test_empty_aggregate(self):
        assert language_shares(DailyAggregate(day_key="2025-01-01")) == []

    def test_zero_second_categories_excluded(self):
        aggregate = DailyAggregate(
            day_key="2025-01-01",
            total_seconds=120,
            per_category_seconds={"go": 120, "rust": 0},
        )

        shares = language_shares(aggregate)

        assert len(shares) == 1
        assert shares[0].category == "go"
        assert shares[0].display_name == "Go"
        assert shares[0].seconds == 120
        assert shares[0].percentage == 100.0

    def test_sorted_by_seconds_then_category(self):
        aggregate = DailyAggregate(
            day_key="2025-01-01",
            total_seconds=400,
            per_category_seconds={"rust": 100, "go": 100, "python": 200},
        )

        shares = language_shares(aggregate)

        assert [s.category for s in shares] == ["python", "go", "rust"]
        assert [s.percentage for s in shares] == [50.0, 25.0, 25.0]

    def test_plain_category_map(self):
        shares = language_shares({"go": 30, "markdown": 10})

        assert [(s.category, s.percentage) for s in shares] == [
            ("go", 75.0),
            ("markdown", 25.0),
        ]

    def test_percentages_are_not_rounded(self):
        shares = language_shares({"a": 1, "b": 1, "c": 1})
        assert sum(s.percentage for s in shares) == pytest.approx(100.0)
        assert shares[0].percentage == pytest.approx(100 / 3)


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "0s"),
            (45, "45s"),
            (59, "59s"),
            (60, "1m0s"),
            (125, "2m5s"),
            (3599, "59m59s"),
            (3600, "1h0m"),
            (3661, "1h1m"),
            (3719, "1h1m"),
            (90061, "25h1m"),
        ],
    )
    def test_formats(self, seconds, expected):
        assert format_duration(seconds) == expected

    def test_negative_clamps_to_zero(self):
        assert format_duration(-5) == "0s"


class TestSummaryPrinter:
    def test_daily_summary(self, capsys):
        aggregate = DailyAggregate(
            day_key="2025-01-25",
            total_seconds=3900,
            per_category_seconds={"go": 3600, "python": 300},
        )

        SummaryPrinter().print_daily_summary(aggregate)

        out = capsys.readouterr().out
        assert "Summary for 2025-01-25" in out
        assert "Worked time: 1h5m" in out
        assert "Go" in out
        assert "Python" in out

    def test_daily_summary_empty(self, capsys):
        SummaryPrinter().print_daily_summary(DailyAggregate(day_key="2025-01-25"))
        assert "No work recorded for 2025-01-25." in capsys.readouterr().out

    def test_range_summary(self, capsys):
        aggregates = [
            DailyAggregate("2025-01-25", 60, {"go": 60}),
            DailyAggregate("2025-01-26", 120, {"rust": 120}),
        ]

        SummaryPrinter().print_range_summary("2025-01-25", "2025-01-26", aggregates)

        out = capsys.readouterr().out
        assert "2025-01-25  1m0s" in out
        assert "Worked time: 3m0s" in out
        assert "Rust" in out

    def test_commit_report(self, capsys):
        start = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
        records = aggregate_commit_log(
            [
                CommitRecord("ana", start, "first", "a1"),
                CommitRecord("ana", start + timedelta(minutes=90), "second", "a2"),
            ],
            tz=timezone.utc,
        )

        SummaryPrinter().print_commit_report(records)

        out = capsys.readouterr().out
        assert "ana - 1.50 hours over 2 commits" in out
        assert "2025-03-03" in out

    def test_commit_report_empty(self, capsys):
        SummaryPrinter().print_commit_report([])
        assert "No commits found." in capsys.readouterr().out
