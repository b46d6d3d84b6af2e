"""
Reduce-stage sizing.

The number of reduce workers is derived from the bytes read per input tag
(e.g. "input" for fresh partitions, "previous" for a reused output) and the
configured bytes-per-reducer ratio for each tag.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping

from incremental_rollup.core.config.job_config import DEFAULT_TAG, ReduceSizingConfig

LOGGER = logging.getLogger(__name__)


def estimate_reducers(sizes_by_tag: Mapping[str, int], config: ReduceSizingConfig) -> int:
    """
    Sum of ``ceil(bytes / ratio)`` over tags, never less than 1.
    """
    total = 0

    for tag, size in sorted(sizes_by_tag.items()):
        ratio = config.ratio_for(tag)
        reducers = math.ceil(size / ratio)
        LOGGER.info(
            "Found %d bytes for tag %s at %d bytes per reducer, needs %d reducers",
            size,
            tag,
            ratio,
            reducers,
        )
        total += reducers

    return max(1, total)


class ReduceSizer:
    """
    Accumulates input sizes by tag and estimates the reducer count.
    """

    def __init__(self, config: ReduceSizingConfig | None = None) -> None:
        self._config = config or ReduceSizingConfig()
        self._sizes: dict[str, tuple[str, int]] = {}

    def add_input(self, location: str, size_bytes: int, tag: str = DEFAULT_TAG) -> None:
        if location in self._sizes:
            raise ValueError(f"Input already added: {location}")
        if size_bytes < 0:
            raise ValueError(f"Negative size for {location}: {size_bytes}")

        self._sizes[location] = (tag, size_bytes)

    def bytes_by_tag(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for tag, size in self._sizes.values():
            totals[tag] = totals.get(tag, 0) + size
        return totals

    @property
    def total_bytes(self) -> int:
        return sum(size for _, size in self._sizes.values())

    def reducer_count(self) -> int:
        count = estimate_reducers(self.bytes_by_tag(), self._config)
        LOGGER.info("Reducers: %d", count)
        return count
