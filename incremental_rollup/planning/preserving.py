"""
Input selection for partition-preserving jobs.

Preserving jobs produce one output per input day. Days that already have an
output are skipped, and a pass never takes more than ``max_to_process`` days.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Collection

from incremental_rollup.core.domain.errors import MissingPartitionError
from incremental_rollup.core.domain.types import DateWindow
from incremental_rollup.planning.planner_models import InputSelection

if TYPE_CHECKING:
    from incremental_rollup.core.domain.types import DatedLocation
    from incremental_rollup.planning.alignment import AlignedAvailability

LOGGER = logging.getLogger(__name__)


def select_preserving_inputs(
    *,
    availability: AlignedAvailability,
    window: DateWindow,
    existing_outputs: Collection[date],
    max_to_process: int,
) -> InputSelection:
    """
    Walk the window and collect the days still lacking an output.

    When the cap is reached and another pending day remains, selection stops
    and the result asks for another pass.
    """

    if max_to_process <= 0:
        raise ValueError("max_to_process must be > 0")

    LOGGER.info("Determining inputs to process")

    inputs: list[DatedLocation] = []
    processed_days: list[date] = []
    needs_another_pass = False

    for day in window.days():
        if day in existing_outputs:
            continue

        locations = availability.get(day)
        if locations is None:
            raise MissingPartitionError(f"missing input data for {day.isoformat()}")

        if len(processed_days) >= max_to_process:
            # too much data to process in a single run, will require another pass
            needs_another_pass = True
            break

        for location in locations:
            LOGGER.info("Input: %s", location.location)
            inputs.append(location)

        processed_days.append(day)

    current_window = (
        DateWindow(processed_days[0], processed_days[-1]) if processed_days else None
    )

    return InputSelection(
        window=window,
        current_window=current_window,
        new_inputs=tuple(inputs),
        needs_another_pass=needs_another_pass,
    )
