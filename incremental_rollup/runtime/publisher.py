"""Staged publishing of engine output.

The engine always writes into a private staging location. Publishing moves
staging into the final location with a single rename per output, so readers
observe either the previous output or the new one. Failed or interrupted
passes discard staging and leave the final location untouched.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import date
from typing import TYPE_CHECKING, Iterable, Iterator

from incremental_rollup.core.domain.errors import PublishError
from incremental_rollup.core.ports.storage import join_location
from incremental_rollup.planning.partition_index import (
    find_flat_dated_paths,
    find_nested_dated_paths,
)
from incremental_rollup.runtime.run_statistics import render_statistics

if TYPE_CHECKING:
    from incremental_rollup.core.domain.types import PartitionCalendar
    from incremental_rollup.core.ports.compute_engine import RunStatistics
    from incremental_rollup.core.ports.storage import Storage

LOGGER = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


class StagingCleaner:
    """Remembers staging locations and deletes those still present."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._locations: list[str] = []

    def add(self, location: str) -> str:
        self._locations.append(location)
        return location

    def clean(self) -> list[str]:
        removed: list[str] = []
        for location in self._locations:
            if self._storage.exists(location):
                LOGGER.info("Removing %s", location)
                self._storage.delete(location)
                removed.append(location)
        self._locations.clear()
        return removed


class StagedPublisher:
    def __init__(
        self,
        storage: Storage,
        calendar: PartitionCalendar,
        staging_root: str,
    ) -> None:
        self._storage = storage
        self._calendar = calendar
        self._staging_root = staging_root

    @property
    def staging_root(self) -> str:
        return self._staging_root

    def new_staging_location(self, job_name: str) -> str:
        stamp = self._calendar.now().strftime(TIMESTAMP_FORMAT)
        return join_location(self._staging_root, f"{job_name}-{stamp}-{uuid.uuid4().hex[:8]}")

    @contextmanager
    def staging(self, job_name: str) -> Iterator[str]:
        """Yield a fresh staging location, discarding it if the block raises.

        Interrupts (KeyboardInterrupt, SystemExit) discard staging too and
        are re-raised unchanged.
        """
        location = self.new_staging_location(job_name)
        self._storage.make_dirs(location)

        try:
            yield location
        except BaseException:
            LOGGER.warning("Discarding staged output", extra={"staging": location})
            self.discard(location)
            raise

    def discard(self, staging: str) -> None:
        self._storage.delete(staging)

    def publish(self, staging: str, final: str) -> str:
        """Replace ``final`` with ``staging``."""
        try:
            if self._storage.exists(final):
                LOGGER.info("Removing previous output %s", final)
                self._storage.delete(final)

            LOGGER.info("Moving %s to %s", staging, final)
            self._storage.rename(staging, final)
        except OSError as exc:
            raise PublishError(f"Could not move {staging} to {final}: {exc}") from exc

        return final

    def publish_partitions(
        self,
        staging: str,
        output_root: str,
        dates: Iterable[date],
    ) -> list[str]:
        """Move per-day staged outputs to their nested day locations.

        Every day must be present in staging before the first one moves.
        """
        moves: list[tuple[str, str]] = []

        for day in dates:
            source = join_location(staging, self._calendar.format_flat(day))
            if not self._storage.exists(source):
                raise PublishError(f"Engine produced no output for {day.isoformat()} in {staging}")

            moves.append((source, join_location(output_root, self._calendar.format_nested(day))))

        return [self.publish(source, target) for source, target in moves]

    def write_statistics(self, stats: RunStatistics, parent: str) -> str:
        stamp = self._calendar.now().strftime(TIMESTAMP_FORMAT)
        location = join_location(parent, f".counters.{stamp}")

        LOGGER.info("Writing counters to %s", location)
        lines = render_statistics(stats)
        self._storage.write_text(location, "".join(f"{line}\n" for line in lines))
        return location


def apply_retention(
    storage: Storage,
    output_root: str,
    retention_count: int | None,
    calendar: PartitionCalendar,
    *,
    nested: bool,
) -> list[str]:
    """Delete all but the newest ``retention_count`` dated outputs.

    None keeps everything. Returns the deleted locations, oldest first.
    """
    if retention_count is None:
        return []

    if retention_count < 1:
        raise ValueError("retention_count must be >= 1")

    if nested:
        outputs = find_nested_dated_paths(storage, output_root, calendar)
    else:
        outputs = find_flat_dated_paths(storage, output_root, calendar)

    expired = outputs[:-retention_count] if len(outputs) > retention_count else []

    for item in expired:
        LOGGER.info("Removing old output %s", item.location)
        storage.delete(item.location)

    return [item.location for item in expired]
