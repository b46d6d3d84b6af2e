"""
Multi-source date alignment.

A day is usable when every configured source holds a partition for it. The
alignment is a merge over the sorted per-source date sets that keeps an
explicit count of the sources seen for each day.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Sequence

from incremental_rollup.core.domain.errors import IncompleteCoverageError, NoDataAvailableError

if TYPE_CHECKING:
    from incremental_rollup.core.domain.types import DatedLocation, DateWindow
    from incremental_rollup.planning.partition_index import PartitionIndex

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AlignedAvailability:
    """
    Usable days and the locations of every source for each of them.

    partial_dates:
        Days after the first fully covered day for which only some sources
        hold data. In relaxed mode they are also present in ``by_date`` with
        whatever locations were found.
    strict:
        Whether partial coverage inside the window is an error.
    """

    by_date: Mapping[date, tuple[DatedLocation, ...]]
    partial_dates: tuple[date, ...]
    source_count: int
    strict: bool

    def dates(self) -> tuple[date, ...]:
        return tuple(sorted(self.by_date))

    def get(self, day: date) -> tuple[DatedLocation, ...] | None:
        return self.by_date.get(day)

    def __contains__(self, day: object) -> bool:
        return day in self.by_date


def count_coverage(indices: Sequence[PartitionIndex]) -> list[tuple[date, int]]:
    """
    Return ``(day, number of sources holding day)`` in ascending day order.
    """
    merged = heapq.merge(*(index.dates() for index in indices))
    return [(day, sum(1 for _ in group)) for day, group in itertools.groupby(merged)]


def align_partitions(
    indices: Sequence[PartitionIndex],
    *,
    fail_on_missing: bool,
) -> AlignedAvailability:
    if not indices:
        raise ValueError("At least one input source is required")

    coverage = count_coverage(indices)
    if not coverage:
        raise NoDataAvailableError("No input data!")

    needed = len(indices)
    usable: dict[date, tuple[DatedLocation, ...]] = {}
    partial: list[date] = []

    for day, found in coverage:
        locations = tuple(
            location
            for location in (index.get(day) for index in indices)
            if location is not None
        )

        if found == needed:
            usable[day] = locations
            continue

        # Partial days before the first complete one are leading history
        if not usable:
            LOGGER.debug("Ignoring partially covered leading date %s", day.isoformat())
            continue

        LOGGER.info(
            "Did not find all input data for date %s (%d of %d sources)",
            day.isoformat(),
            found,
            needed,
        )
        for location in locations:
            LOGGER.info("=> %s", location.location)

        partial.append(day)

        if not fail_on_missing:
            usable[day] = locations

    return AlignedAvailability(
        by_date=MappingProxyType(usable),
        partial_dates=tuple(partial),
        source_count=needed,
        strict=fail_on_missing,
    )


def ensure_complete_coverage(availability: AlignedAvailability, window: DateWindow) -> None:
    """
    In strict mode, fail if any partially covered day lies inside the window.
    """
    if not availability.strict:
        return

    for day in availability.partial_dates:
        if window.contains(day):
            raise IncompleteCoverageError(
                f"Did not find all input data for date {day.isoformat()}"
            )
