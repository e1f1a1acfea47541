"""Category shares, duration formatting and console summaries."""

from __future__ import annotations

from typing import Mapping, Sequence, Union

from .aggregator import merge_category_seconds
from .languages import display_name
from .models import AuthorWorkRecord, DailyAggregate, LanguageShare


def language_shares(
    aggregate: Union[DailyAggregate, Mapping[str, int]],
) -> list[LanguageShare]:
    """Rank categories by time spent, with their share of the total.

    Accepts a DailyAggregate or a plain category -> seconds map covering any
    period. Categories without time are left out.
    """
    if isinstance(aggregate, DailyAggregate):
        per_category: Mapping[str, int] = aggregate.per_category_seconds
        total = aggregate.total_seconds
    else:
        per_category = aggregate
        total = sum(aggregate.values())
    if total <= 0:
        return []

    shares = [
        LanguageShare(
            category=category,
            display_name=display_name(category),
            seconds=seconds,
            percentage=100 * seconds / total,
        )
        for category, seconds in per_category.items()
        if seconds > 0
    ]
    shares.sort(key=lambda share: (-share.seconds, share.category))
    return shares


def format_duration(seconds: float) -> str:
    """Format seconds as "45s", "2m5s" or "1h1m".

    Seconds are dropped once hours are shown.
    """
    total_seconds = max(int(seconds), 0)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h{minutes}m"
    if minutes > 0:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def print_daily_summary(self, aggregate: DailyAggregate) -> None:
        if aggregate.total_seconds == 0:
            print(f"No work recorded for {aggregate.day_key}.")
            return

        print(f"Summary for {aggregate.day_key}")
        print("-" * 40)
        print(f"Worked time: {format_duration(aggregate.total_seconds)}")
        print(f"Sessions:    {len(aggregate.sessions)}")
        self._print_shares(language_shares(aggregate))

    def print_range_summary(
        self, start: str, end: str, aggregates: Sequence[DailyAggregate]
    ) -> None:
        if not aggregates:
            print(f"No work recorded between {start} and {end}.")
            return

        total = sum(aggregate.total_seconds for aggregate in aggregates)
        print(f"Summary for {start} to {end}")
        print("-" * 40)
        for aggregate in aggregates:
            print(f"  {aggregate.day_key}  {format_duration(aggregate.total_seconds)}")
        print(f"Worked time: {format_duration(total)}")

        self._print_shares(language_shares(merge_category_seconds(aggregates)))

    def print_commit_report(self, records: Sequence[AuthorWorkRecord]) -> None:
        if not records:
            print("No commits found.")
            return

        for record in records:
            print(
                f"{record.author} - {record.total_hours:.2f} hours "
                f"over {record.commit_count} commits"
            )
            print("-" * 40)
            for day in record.daily_work:
                print(
                    f"  {day.day_key}  {day.hours:5.2f}h  "
                    f"{day.first_timestamp:%H:%M:%S}-{day.last_timestamp:%H:%M:%S}  "
                    f"{len(day.commits)} commits"
                )
            print()

    @staticmethod
    def _print_shares(shares: Sequence[LanguageShare]) -> None:
        if not shares:
            return
        print()
        print("Languages:")
        for share in shares:
            print(
                f"  {share.display_name:<20} {format_duration(share.seconds):>8} "
                f"{share.percentage:5.1f}%"
            )
