"""Core date-partition value types.

This module defines the immutable values shared by the planners, the
storage backends and the runtime: dated storage locations, inclusive day
windows and the calendar that knows how days are spelled in storage paths.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo


@dataclass(frozen=True, slots=True, order=True)
class DatedLocation:
    """
    One day's partition of a source, or one day's output.

    Ordering is by date first, then by location.
    """

    date: date
    location: str

    def __str__(self) -> str:
        return f"[date={self.date.isoformat()}, location={self.location}]"


@dataclass(frozen=True, slots=True)
class DateWindow:
    """
    Inclusive calendar-day interval.
    """

    begin: date
    end: date

    def __post_init__(self) -> None:
        if self.begin > self.end:
            raise ValueError(
                f"Window begin {self.begin.isoformat()} is after end {self.end.isoformat()}"
            )

    @property
    def num_days(self) -> int:
        return (self.end - self.begin).days + 1

    def contains(self, day: date) -> bool:
        return self.begin <= day <= self.end

    def days(self) -> tuple[date, ...]:
        return tuple(iter_days(self.begin, self.end))

    def __str__(self) -> str:
        return f"[{self.begin.isoformat()},{self.end.isoformat()}]"


def iter_days(start_day: date, end_day: date) -> Iterator[date]:
    current = start_day
    while current <= end_day:
        yield current
        current += timedelta(days=1)


@dataclass(frozen=True, slots=True)
class PartitionCalendar:
    """
    Explicit calendar configuration threaded through every planning call.

    flat_format:
        Spelling of a day as a single path component (collapsed outputs).
    nested_format:
        Spelling of a day as nested path components (daily partitions).
    timezone:
        IANA zone used for wall-clock timestamps (statistics, staging ids).
    """

    flat_format: str = "%Y%m%d"
    nested_format: str = "%Y/%m/%d"
    timezone: str = "UTC"

    @property
    def nested_depth(self) -> int:
        return self.nested_format.count("/") + 1

    def format_flat(self, day: date) -> str:
        return day.strftime(self.flat_format)

    def format_nested(self, day: date) -> str:
        return day.strftime(self.nested_format)

    def parse_flat(self, text: str) -> date | None:
        return self._parse(text, self.flat_format)

    def parse_nested(self, text: str) -> date | None:
        return self._parse(text, self.nested_format)

    def shift(self, day: date, days: int) -> date:
        return day + timedelta(days=days)

    def now(self) -> datetime:
        return datetime.now(ZoneInfo(self.timezone))

    @staticmethod
    def _parse(text: str, fmt: str) -> date | None:
        try:
            parsed = datetime.strptime(text, fmt).date()
        except ValueError:
            return None

        # strptime accepts unpadded fields, only canonical spellings count
        if parsed.strftime(fmt) != text:
            return None

        return parsed
