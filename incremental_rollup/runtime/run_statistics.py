"""Rendering of engine run statistics.

Produces the ``KEY=value`` lines written next to a published output:
counters first, then wall-clock and per-task timing figures, then attempt
counts by status and task kind. Timing figures are written only when the
setup start, map start, reduce finish and cleanup finish are all known.
"""

from __future__ import annotations

import logging
import statistics
from collections import Counter
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from incremental_rollup.core.ports.compute_engine import RunStatistics, TaskTiming

LOGGER = logging.getLogger(__name__)


def _durations(timings: Iterable[TaskTiming], kind: str) -> list[int]:
    result: list[int] = []
    for timing in timings:
        if timing.kind != kind:
            continue
        if timing.start_ms == 0 or timing.finish_ms == 0:
            LOGGER.warning("Skipping %s task with zero start or finish time", kind)
            continue
        result.append(timing.finish_ms - timing.start_ms)
    return result


def _describe(prefix: str, durations: list[int]) -> list[str]:
    if durations:
        std = statistics.stdev(durations) if len(durations) > 1 else 0.0
        figures = {
            "MAX": max(durations),
            "MIN": min(durations),
            "AVG": int(statistics.fmean(durations)),
            "STD": int(std),
            "SUM": sum(durations),
        }
    else:
        figures = {"MAX": 0, "MIN": 0, "AVG": 0, "STD": 0, "SUM": 0}

    lines = [f"{prefix}_TOTAL_TASKS={len(durations)}"]
    lines.extend(f"{prefix}_{name}_TIME_MS={value}" for name, value in figures.items())
    return lines


def render_statistics(stats: RunStatistics) -> list[str]:
    lines = [f"{name}={value}" for name, value in sorted(stats.counters.items())]

    timings = stats.task_timings

    setup_starts = [t.start_ms for t in timings if t.kind == "setup" and t.start_ms]
    cleanup_finishes = [t.finish_ms for t in timings if t.kind == "cleanup" and t.finish_ms]
    map_durations = _durations(timings, "map")
    reduce_durations = _durations(timings, "reduce")
    map_starts = [t.start_ms for t in timings if t.kind == "map" and t.start_ms and t.finish_ms]
    reduce_finishes = [
        t.finish_ms for t in timings if t.kind == "reduce" and t.start_ms and t.finish_ms
    ]

    complete = True
    for label, values in (
        ("setup start", setup_starts),
        ("cleanup finish", cleanup_finishes),
        ("map-reduce start", map_starts),
        ("map-reduce finish", reduce_finishes),
    ):
        if not values:
            LOGGER.error("Could not determine %s time", label)
            complete = False

    if complete:
        setup_start = min(setup_starts)
        cleanup_finish = max(cleanup_finishes)
        min_start = min(map_starts)
        max_finish = max(reduce_finishes)

        lines.append(f"SETUP_START_TIME_MS={setup_start}")
        lines.append(f"CLEANUP_FINISH_TIME_MS={cleanup_finish}")
        lines.append(f"COMPLETE_WALL_CLOCK_TIME_MS={cleanup_finish - setup_start}")

        lines.append(f"MAP_REDUCE_START_TIME_MS={min_start}")
        lines.append(f"MAP_REDUCE_FINISH_TIME_MS={max_finish}")
        lines.append(f"MAP_REDUCE_WALL_CLOCK_TIME_MS={max_finish - min_start}")

        lines.extend(_describe("MAP", map_durations))
        lines.extend(_describe("REDUCE", reduce_durations))

        lines.append(f"MAP_REDUCE_SUM_TIME_MS={sum(map_durations) + sum(reduce_durations)}")

        attempts = Counter(
            f"{attempt.status.upper()}_{attempt.kind.upper()}_ATTEMPTS" for attempt in stats.attempts
        )
        lines.extend(f"{key}={count}" for key, count in sorted(attempts.items()))

    for line in lines:
        LOGGER.info(line)

    return lines
