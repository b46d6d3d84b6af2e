"""
Planning model definitions.

This module contains the immutable structures produced while planning a
pass: the storage snapshot planning reads, the input selection made by the
preserving and collapsing planners, and the final execution plan.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any, Literal, Mapping

if TYPE_CHECKING:
    from incremental_rollup.core.domain.types import DatedLocation, DateWindow
    from incremental_rollup.planning.partition_index import PartitionIndex

PlanMode = Literal["preserving", "collapsing"]


@dataclass(frozen=True, slots=True)
class StorageSnapshot:
    """
    Everything planning reads from storage, captured once per pass.
    """

    indices: tuple[PartitionIndex, ...]
    outputs: tuple[DatedLocation, ...]
    latest_output_window: DateWindow | None = None

    @property
    def latest_output(self) -> DatedLocation | None:
        return self.outputs[-1] if self.outputs else None

    def output_dates(self) -> frozenset[date]:
        return frozenset(item.date for item in self.outputs)


@dataclass(frozen=True, slots=True)
class ReuseDecision:
    """
    Outcome of comparing a reuse plan against full reprocessing.
    """

    candidate: DatedLocation
    candidate_window: DateWindow
    reuse_cost: int | None
    direct_cost: int
    accepted: bool
    reason: str


@dataclass(frozen=True, slots=True)
class InputSelection:
    """
    Which partitions a pass reads, before sizing and schema resolution.
    """

    window: DateWindow
    current_window: DateWindow | None
    new_inputs: tuple[DatedLocation, ...]
    old_inputs: tuple[DatedLocation, ...] = ()
    previous_output: DatedLocation | None = None
    needs_another_pass: bool = False
    reuse_decision: ReuseDecision | None = None

    @property
    def inputs_to_process(self) -> tuple[DatedLocation, ...]:
        return self.old_inputs + self.new_inputs


@dataclass(frozen=True, slots=True)
class ExecutionPlan:
    """
    Execution plan for a single pass.
    """

    mode: PlanMode
    window: DateWindow
    current_window: DateWindow | None
    inputs_to_process: tuple[DatedLocation, ...]
    new_inputs_to_process: tuple[DatedLocation, ...]
    old_inputs_to_process: tuple[DatedLocation, ...]
    previous_output_to_process: DatedLocation | None
    reducer_count: int
    needs_another_pass: bool
    schema_by_path: Mapping[str, Any]
    total_bytes: int
    reuse_decision: ReuseDecision | None = None

    @property
    def dates_to_process(self) -> tuple[date, ...]:
        return tuple(sorted({item.date for item in self.inputs_to_process}))

    @property
    def is_empty(self) -> bool:
        return not self.inputs_to_process
