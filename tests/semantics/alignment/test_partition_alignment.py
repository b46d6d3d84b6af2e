"""
Semantic test: multi-source alignment.

Invariant:
A day is usable only when every source holds it. Partial days before the
first complete day are ignored. Later partial days are joined with whatever
was found in relaxed mode and fail the plan in strict mode when they fall
inside the window.
"""

from __future__ import annotations

from datetime import date

import pytest

from incremental_rollup.core.domain.errors import IncompleteCoverageError, NoDataAvailableError
from incremental_rollup.core.domain.types import DatedLocation, DateWindow
from incremental_rollup.planning.alignment import (
    align_partitions,
    count_coverage,
    ensure_complete_coverage,
)
from incremental_rollup.planning.partition_index import PartitionIndex


def day(n: int) -> date:
    return date(2024, 1, n)


def index_for(root: str, days) -> PartitionIndex:
    return PartitionIndex.from_locations(
        root,
        [DatedLocation(day(n), f"{root}/2024/01/{n:02d}") for n in days],
    )


def test_coverage_counts_sources_per_day() -> None:
    coverage = count_coverage([index_for("/a", [1, 2, 3]), index_for("/b", [2, 3, 4])])
    assert coverage == [(day(1), 1), (day(2), 2), (day(3), 2), (day(4), 1)]


def test_leading_partial_days_are_ignored() -> None:
    availability = align_partitions(
        [index_for("/a", [1, 2, 3, 4]), index_for("/b", [3, 4])],
        fail_on_missing=True,
    )

    assert availability.dates() == (day(3), day(4))
    assert availability.partial_dates == ()


def test_usable_day_lists_every_source() -> None:
    availability = align_partitions(
        [index_for("/a", [1, 2]), index_for("/b", [1, 2])],
        fail_on_missing=True,
    )

    assert availability.get(day(2)) == (
        DatedLocation(day(2), "/a/2024/01/02"),
        DatedLocation(day(2), "/b/2024/01/02"),
    )


def test_relaxed_mode_joins_partial_day() -> None:
    availability = align_partitions(
        [index_for("/a", [1, 2, 3]), index_for("/b", [1, 3])],
        fail_on_missing=False,
    )

    assert availability.partial_dates == (day(2),)
    assert availability.get(day(2)) == (DatedLocation(day(2), "/a/2024/01/02"),)
    assert day(2) in availability

    # relaxed mode never fails on coverage
    ensure_complete_coverage(availability, DateWindow(day(1), day(3)))


def test_strict_mode_rejects_partial_day_inside_window() -> None:
    availability = align_partitions(
        [index_for("/a", [1, 2, 3]), index_for("/b", [1, 3])],
        fail_on_missing=True,
    )

    assert day(2) not in availability

    with pytest.raises(IncompleteCoverageError):
        ensure_complete_coverage(availability, DateWindow(day(1), day(3)))


def test_strict_mode_accepts_partial_day_outside_window() -> None:
    availability = align_partitions(
        [index_for("/a", [1, 2, 3, 4]), index_for("/b", [1, 3, 4])],
        fail_on_missing=True,
    )

    ensure_complete_coverage(availability, DateWindow(day(3), day(4)))


def test_no_dates_at_all_rejected() -> None:
    with pytest.raises(NoDataAvailableError):
        align_partitions([index_for("/a", []), index_for("/b", [])], fail_on_missing=False)


def test_disjoint_sources_have_no_usable_day() -> None:
    availability = align_partitions(
        [index_for("/a", [1, 2]), index_for("/b", [3, 4])],
        fail_on_missing=False,
    )

    assert availability.dates() == ()
