"""
Partition discovery.

This module turns storage listings into per-source indices mapping each
calendar day to the location holding that day's data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping

from incremental_rollup.core.domain.types import DatedLocation
from incremental_rollup.core.ports.storage import join_location

if TYPE_CHECKING:
    from incremental_rollup.core.domain.types import PartitionCalendar
    from incremental_rollup.core.ports.storage import Storage

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PartitionIndex:
    """
    Ordered ``date -> DatedLocation`` mapping for one source root.
    """

    root: str
    by_date: Mapping[date, DatedLocation]

    @classmethod
    def from_locations(cls, root: str, locations: Iterable[DatedLocation]) -> PartitionIndex:
        ordered = {item.date: item for item in sorted(locations)}
        return cls(root=root, by_date=MappingProxyType(ordered))

    def dates(self) -> tuple[date, ...]:
        return tuple(self.by_date.keys())

    def get(self, day: date) -> DatedLocation | None:
        return self.by_date.get(day)

    def __contains__(self, day: object) -> bool:
        return day in self.by_date

    def __len__(self) -> int:
        return len(self.by_date)


def find_nested_dated_paths(
    storage: Storage,
    root: str,
    calendar: PartitionCalendar,
) -> list[DatedLocation]:
    """
    List day partitions spelled as nested components (e.g. ``2024/01/31``).
    """
    found: list[DatedLocation] = []

    for relative in storage.list_dirs(root, depth=calendar.nested_depth):
        day = calendar.parse_nested(relative)
        if day is None:
            continue
        found.append(DatedLocation(day, join_location(root, relative)))

    return sorted(found)


def find_flat_dated_paths(
    storage: Storage,
    root: str,
    calendar: PartitionCalendar,
) -> list[DatedLocation]:
    """
    List day partitions spelled as a single component (e.g. ``20240131``).
    """
    found: list[DatedLocation] = []

    for name in storage.list_dirs(root, depth=1):
        day = calendar.parse_flat(name)
        if day is None:
            continue
        found.append(DatedLocation(day, join_location(root, name)))

    return sorted(found)


def build_partition_indices(
    storage: Storage,
    roots: Iterable[str],
    calendar: PartitionCalendar,
) -> tuple[PartitionIndex, ...]:
    indices: list[PartitionIndex] = []

    for root in roots:
        LOGGER.info("Searching for available input data", extra={"root": root})
        index = PartitionIndex.from_locations(
            root,
            find_nested_dated_paths(storage, root, calendar),
        )
        LOGGER.info(
            "Found %d daily partitions under %s",
            len(index),
            root,
        )
        indices.append(index)

    return tuple(indices)
