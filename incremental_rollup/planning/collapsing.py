"""
Input selection for partition-collapsing jobs.

A collapsing job produces a single output covering the whole window. When
reuse is enabled, the most recent output may be carried forward: days it
covers that fell out of the window are subtracted ("old" inputs) and days it
never saw are added ("new" inputs). Reuse is chosen only when it reads fewer
partitions than reprocessing the whole window.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING

from incremental_rollup.core.domain.errors import (
    CannotSubtractMissingDataError,
    MaxInputDataExceededError,
    MissingPartitionError,
)
from incremental_rollup.core.domain.types import DateWindow, iter_days
from incremental_rollup.planning.planner_models import InputSelection, ReuseDecision

if TYPE_CHECKING:
    from incremental_rollup.core.domain.types import DatedLocation
    from incremental_rollup.planning.alignment import AlignedAvailability

LOGGER = logging.getLogger(__name__)


def select_collapsing_inputs(
    *,
    availability: AlignedAvailability,
    window: DateWindow,
    latest_output: DatedLocation | None,
    latest_output_window: DateWindow | None,
    reuse_previous_output: bool,
    max_to_process: int,
    fail_on_missing: bool,
) -> InputSelection:
    """
    Choose between reusing the latest output and reprocessing the window.

    Parameters
    ----------
    availability:
        Aligned input partitions.

    window:
        Resolved window the output must cover.

    latest_output / latest_output_window:
        Most recent published output and the window recorded in its
        provenance. Either may be None when nothing reusable exists.

    reuse_previous_output:
        Whether the job may carry a previous output forward. Without reuse
        a pass cannot be split, so exceeding ``max_to_process`` is an error.

    max_to_process:
        Maximum number of new days read in one pass.

    fail_on_missing:
        Whether a window day without aligned data is an error or skipped.
    """

    if max_to_process <= 0:
        raise ValueError("max_to_process must be > 0")

    decision: ReuseDecision | None = None

    if not reuse_previous_output:
        LOGGER.info("Creating plan that does not reuse previous output")
    elif latest_output is None or latest_output_window is None:
        LOGGER.info("No previous output to reuse")
    else:
        decision = _evaluate_reuse(
            availability=availability,
            window=window,
            candidate=latest_output,
            candidate_window=latest_output_window,
        )

        if decision.accepted:
            LOGGER.info("Creating plan that reuses previous output: %s", decision.reason)
            return _build_selection(
                availability=availability,
                window=window,
                previous_output=latest_output,
                covered_until=latest_output_window.end,
                old_inputs=_collect_old_inputs(availability, window, latest_output_window),
                max_to_process=max_to_process,
                fail_on_missing=fail_on_missing,
                allow_multiple_passes=True,
                decision=decision,
            )

        LOGGER.info("Discarding reuse of previous output: %s", decision.reason)

    return _build_selection(
        availability=availability,
        window=window,
        previous_output=None,
        covered_until=None,
        old_inputs=(),
        max_to_process=max_to_process,
        fail_on_missing=fail_on_missing,
        allow_multiple_passes=reuse_previous_output,
        decision=decision,
    )


# ---------------------------------------------------------------------------
# Reuse evaluation
# ---------------------------------------------------------------------------


def _evaluate_reuse(
    *,
    availability: AlignedAvailability,
    window: DateWindow,
    candidate: DatedLocation,
    candidate_window: DateWindow,
) -> ReuseDecision:
    direct_cost = window.num_days

    LOGGER.info(
        "Previous output %s has date range %s",
        candidate.location,
        candidate_window,
    )

    if candidate_window.begin > window.begin:
        return ReuseDecision(
            candidate=candidate,
            candidate_window=candidate_window,
            reuse_cost=None,
            direct_cost=direct_cost,
            accepted=False,
            reason=f"previous output starts after window begin {window.begin.isoformat()}",
        )

    if candidate_window.end > window.end:
        return ReuseDecision(
            candidate=candidate,
            candidate_window=candidate_window,
            reuse_cost=None,
            direct_cost=direct_cost,
            accepted=False,
            reason=f"previous output ends after window end {window.end.isoformat()}",
        )

    old_days = _days_to_subtract(window, candidate_window)

    for day in old_days:
        if day not in availability:
            raise CannotSubtractMissingDataError(
                f"Missing incremental data for {day.isoformat()}, "
                "so can't remove it from previous output"
            )

    new_days = [
        day
        for day in iter_days(
            max(window.begin, candidate_window.end + timedelta(days=1)),
            window.end,
        )
        if day in availability
    ]

    reuse_cost = len(old_days) + len(new_days)
    accepted = reuse_cost < direct_cost

    LOGGER.info(
        "Reuse consumes %d old and %d new days against %d days without reuse",
        len(old_days),
        len(new_days),
        direct_cost,
    )

    return ReuseDecision(
        candidate=candidate,
        candidate_window=candidate_window,
        reuse_cost=reuse_cost,
        direct_cost=direct_cost,
        accepted=accepted,
        reason=f"reuse cost {reuse_cost} {'<' if accepted else '>='} direct cost {direct_cost}",
    )


def _days_to_subtract(window: DateWindow, candidate_window: DateWindow) -> list[date]:
    """
    Days covered by the previous output that precede the window.
    """
    last = min(window.begin - timedelta(days=1), candidate_window.end)
    if candidate_window.begin > last:
        return []
    return list(iter_days(candidate_window.begin, last))


def _collect_old_inputs(
    availability: AlignedAvailability,
    window: DateWindow,
    candidate_window: DateWindow,
) -> tuple[DatedLocation, ...]:
    old_inputs: list[DatedLocation] = []

    for day in _days_to_subtract(window, candidate_window):
        for location in availability.get(day) or ():
            LOGGER.info("Old Input: %s", location.location)
            old_inputs.append(location)

    return tuple(old_inputs)


# ---------------------------------------------------------------------------
# New-side walk
# ---------------------------------------------------------------------------


def _build_selection(
    *,
    availability: AlignedAvailability,
    window: DateWindow,
    previous_output: DatedLocation | None,
    covered_until: date | None,
    old_inputs: tuple[DatedLocation, ...],
    max_to_process: int,
    fail_on_missing: bool,
    allow_multiple_passes: bool,
    decision: ReuseDecision | None,
) -> InputSelection:
    new_inputs: list[DatedLocation] = []
    new_days = 0
    last_day = window.begin
    needs_another_pass = False

    for day in window.days():
        if new_days >= max_to_process:
            if not allow_multiple_passes:
                raise MaxInputDataExceededError(
                    f"Amount of input data has exceeded max of {max_to_process} "
                    "however output is not being reused so cannot do in multiple passes"
                )

            # too much data to process in a single run, will require another pass
            needs_another_pass = True
            break

        if covered_until is None or day > covered_until:
            locations = availability.get(day)

            if locations is None:
                if fail_on_missing:
                    raise MissingPartitionError(f"missing {day.isoformat()}")
                LOGGER.info("No input data found for %s", day.isoformat())
            else:
                for location in locations:
                    LOGGER.info("New Input: %s", location.location)
                    new_inputs.append(location)
                new_days += 1

        last_day = day

    if previous_output is not None:
        LOGGER.info("Previous Output: %s", previous_output.location)

    return InputSelection(
        window=window,
        current_window=DateWindow(window.begin, last_day),
        new_inputs=tuple(new_inputs),
        old_inputs=old_inputs,
        previous_output=previous_output,
        needs_another_pass=needs_another_pass,
        reuse_decision=decision,
    )
