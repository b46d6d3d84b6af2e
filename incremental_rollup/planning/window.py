"""
Date window resolution.

Resolves the concrete ``[begin, end]`` window a run should cover from the
configured date options and the dates for which data is actually available.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Iterable

from incremental_rollup.core.domain.errors import (
    BeginDateUnavailableError,
    ConflictingConfigError,
    EndDateUnavailableError,
    NoDataAvailableError,
)
from incremental_rollup.core.domain.types import DateWindow, PartitionCalendar

if TYPE_CHECKING:
    from incremental_rollup.core.config.job_config import WindowConfig

LOGGER = logging.getLogger(__name__)


def resolve_window(
    *,
    begin: date | None,
    end: date | None,
    days_ago: int | None,
    num_days: int | None,
    available: Iterable[date],
    calendar: PartitionCalendar,
) -> DateWindow:
    """
    Determine the window of input days to consume.

    Resolution order:
    1. explicit begin and end are used verbatim (no days_ago / num_days)
    2. begin only: end = begin + num_days - 1 when num_days is given
    3. end only: begin = end - num_days + 1 when num_days is given
    4. unresolved end: latest available day, moved back by days_ago
    5. end must not be after the latest available day
    6. unresolved begin: earliest available day, or end - num_days + 1
    7. begin must not be before the earliest available day

    The function is pure: the same arguments always yield the same window.
    """

    available_days = sorted(set(available))
    if not available_days:
        raise NoDataAvailableError("No data available")

    begin_available = available_days[0]
    end_available = available_days[-1]

    if begin is not None and end is not None:
        LOGGER.info("Specified begin date is %s", calendar.format_flat(begin))
        LOGGER.info("Specified end date is %s", calendar.format_flat(end))

        if days_ago is not None:
            raise ConflictingConfigError("Cannot specify days ago when begin and end date set")

        if num_days is not None:
            raise ConflictingConfigError("Cannot specify num days when begin and end date set")

    elif begin is not None:
        LOGGER.info("Specified begin date is %s", calendar.format_flat(begin))

        if num_days is not None:
            end = calendar.shift(begin, num_days - 1)
            LOGGER.info(
                "Num days is %d, giving end date of %s",
                num_days,
                calendar.format_flat(end),
            )

    elif end is not None:
        LOGGER.info("Specified end date is %s", calendar.format_flat(end))

        if num_days is not None:
            begin = calendar.shift(end, -(num_days - 1))
            LOGGER.info(
                "Num days is %d, giving begin date of %s",
                num_days,
                calendar.format_flat(begin),
            )

    if end is None:
        end = end_available
        LOGGER.info(
            "No end date specified, using date for latest available input: %s",
            calendar.format_flat(end),
        )

        if days_ago is not None:
            end = calendar.shift(end, -days_ago)
            LOGGER.info(
                "However days ago is %d, giving end date of %s",
                days_ago,
                calendar.format_flat(end),
            )

    if end_available < end:
        raise EndDateUnavailableError(
            f"Latest available date {calendar.format_flat(end_available)} "
            f"is less than desired end date {calendar.format_flat(end)}"
        )

    if begin is None:
        begin = begin_available

        if num_days is not None:
            begin = calendar.shift(end, -(num_days - 1))
            LOGGER.info(
                "Num days is %d, giving begin date of %s",
                num_days,
                calendar.format_flat(begin),
            )

    if begin_available > begin:
        raise BeginDateUnavailableError(
            f"Desired begin date is {calendar.format_flat(begin)} "
            f"but the next available date is {calendar.format_flat(begin_available)}"
        )

    if begin > end:
        raise ConflictingConfigError(
            f"Resolved begin date {calendar.format_flat(begin)} "
            f"is after end date {calendar.format_flat(end)}"
        )

    window = DateWindow(begin, end)
    LOGGER.info("Determined date range of inputs to consume is %s", window)
    return window


def resolve_configured_window(
    window_cfg: WindowConfig,
    available: Iterable[date],
    calendar: PartitionCalendar,
) -> DateWindow:
    return resolve_window(
        begin=window_cfg.start_date,
        end=window_cfg.end_date,
        days_ago=window_cfg.days_ago,
        num_days=window_cfg.num_days,
        available=available,
        calendar=calendar,
    )
